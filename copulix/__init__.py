"""
copulix: multivariate distributions and copulas for uncertainty quantification.

Implements the normal copula, the independent copula and the multivariate
normal distribution with a scipy-like API (pdf, logpdf, cdf, sf, ppf, isf,
rvs) and the operations built on top of it.

Key features:
- Density, CDF, survival and density-gradient evaluation
- Multivariate quantiles along the equal-marginal-probability curve
- Reproducible sampling through an injected, thread-safe random source
- Marginal distributions over any ordered subset of coordinates
- Confidence regions: minimum volume intervals and level sets, bilateral and
  unilateral confidence intervals
- Spearman/Kendall <-> linear correlation conversions for the normal copula
- Frozen dataclass parameter containers (copulix.params)
"""

import logging

from copulix.config import DEFAULT_SETTINGS, NumericalSettings
from copulix.exceptions import (
    ConvergenceError,
    CopulixError,
    DimensionMismatchError,
    InvalidArgumentError,
    InvalidParameterError,
    UnsupportedOperationError,
)
from copulix.params import (
    IndependentCopulaParams,
    MultivariateNormalParams,
    NormalCopulaParams,
)
from copulix.regions import Interval, IntervalResult, LevelSet, LevelSetResult
from copulix.rng import RandomSource
from copulix.base import Copula, Distribution
from copulix.distributions import IndependentCopula, MultivariateNormal, NormalCopula

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    # Distributions
    "Distribution",
    "Copula",
    "NormalCopula",
    "IndependentCopula",
    "MultivariateNormal",
    # Parameter dataclasses
    "NormalCopulaParams",
    "IndependentCopulaParams",
    "MultivariateNormalParams",
    # Regions
    "Interval",
    "LevelSet",
    "IntervalResult",
    "LevelSetResult",
    # Infrastructure
    "RandomSource",
    "NumericalSettings",
    "DEFAULT_SETTINGS",
    # Errors
    "CopulixError",
    "InvalidParameterError",
    "InvalidArgumentError",
    "DimensionMismatchError",
    "ConvergenceError",
    "UnsupportedOperationError",
]
