"""Copula families."""

from .normal_copula import NormalCopula
from .independent_copula import IndependentCopula

__all__ = [
    "NormalCopula",
    "IndependentCopula",
]
