"""Utility functions for copulix package."""

from .linalg import cholesky_factor, nearest_correlation
from .mvn import bivariate_normal_cdf, trivariate_normal_cdf, genz_normal_cdf, standard_normal_cdf

__all__ = [
    'cholesky_factor', 'nearest_correlation',
    'bivariate_normal_cdf', 'trivariate_normal_cdf', 'genz_normal_cdf', 'standard_normal_cdf',
]
