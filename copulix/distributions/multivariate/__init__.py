"""Multivariate distributions."""

from .normal import MultivariateNormal, MVN

__all__ = [
    "MultivariateNormal",
    "MVN",
]
