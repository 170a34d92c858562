"""Base classes for distributions and copulas."""

from .distribution import Distribution
from .copula import Copula

__all__ = [
    "Distribution",
    "Copula",
]
