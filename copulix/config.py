"""
Numerical settings shared by the evaluation, quantile and region code.

Settings are held in a frozen dataclass so that a distribution can carry its
own copy without any global mutable state. Use :data:`DEFAULT_SETTINGS` or
derive a modified copy with :meth:`NumericalSettings.replace`.

Examples
--------
>>> from copulix.config import DEFAULT_SETTINGS
>>> coarse = DEFAULT_SETTINGS.replace(cdf_absolute_error=1e-4)
>>> coarse.cdf_absolute_error
0.0001
"""

import dataclasses
from dataclasses import dataclass, fields

import numpy as np

from copulix.exceptions import InvalidParameterError

_SEED_FIELDS = ("cdf_seed", "level_set_seed")


@dataclass(frozen=True, slots=True)
class NumericalSettings:
    """
    Tolerances and budgets of the numerical algorithms.

    Attributes
    ----------
    quantile_xtol : float
        Absolute tolerance of the Brent root finder on the marginal level.
    quantile_rtol : float
        Relative tolerance of the Brent root finder.
    quantile_max_iterations : int
        Iteration budget of the Brent root finder.
    ddf_step : float
        Step of the central finite-difference density derivative.
    cdf_absolute_error : float
        Target absolute error of the Genz integration of the normal CDF
        (dimension 4 and above).
    cdf_max_points : int
        Integrand evaluation budget of the Genz integration, per dimension.
    cdf_seed : int
        Seed of the Genz integration. Fixed so that the CDF is a
        deterministic function of its argument.
    level_set_sample_size : int
        Sample size of the Monte Carlo density-threshold estimate.
    level_set_seed : int
        Seed of the level-set sample.
    """
    quantile_xtol: float = 1e-12
    quantile_rtol: float = 4 * np.finfo(float).eps
    quantile_max_iterations: int = 100
    ddf_step: float = 1e-5
    cdf_absolute_error: float = 1e-6
    cdf_max_points: int = 1_000_000
    cdf_seed: int = 1234
    level_set_sample_size: int = 10000
    level_set_seed: int = 4321

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name in _SEED_FIELDS:
                if value < 0:
                    raise InvalidParameterError(
                        f"Setting '{f.name}' must be a non-negative seed, got {value}"
                    )
            elif not np.isfinite(value) or value <= 0:
                raise InvalidParameterError(
                    f"Setting '{f.name}' must be positive and finite, got {value}"
                )

    def replace(self, **changes) -> 'NumericalSettings':
        """Return a copy with the given fields replaced."""
        return dataclasses.replace(self, **changes)


DEFAULT_SETTINGS = NumericalSettings()


def resolve_settings(settings):
    """Return ``settings`` or the defaults when it is None."""
    if settings is None:
        return DEFAULT_SETTINGS
    if not isinstance(settings, NumericalSettings):
        raise InvalidParameterError(
            f"settings must be a NumericalSettings instance, got {type(settings).__name__}"
        )
    return settings
