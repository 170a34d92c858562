"""
Region types produced by the confidence-region methods.

- :class:`Interval`: a box :math:`[a_1, b_1] \\times \\dots \\times [a_d, b_d]`
  with possibly infinite bounds.
- :class:`LevelSet`: a density super-level set
  :math:`\\{x : f(x) \\ge t\\}`.

Confidence-region methods return named tuples, so results unpack directly:

>>> interval, beta = copula.bilateral_confidence_interval(0.95)  # doctest: +SKIP
"""

from dataclasses import dataclass
from typing import Callable, NamedTuple, Union

import numpy as np
from numpy.typing import ArrayLike, NDArray

from copulix.exceptions import DimensionMismatchError, InvalidArgumentError

# Confidence regions are only defined up to this dimension.
MAX_REGION_DIMENSION = 2


@dataclass(frozen=True)
class Interval:
    """
    Axis-aligned box with possibly infinite bounds.

    Attributes
    ----------
    lower : ndarray, shape (d,)
        Lower bounds.
    upper : ndarray, shape (d,)
        Upper bounds, ``upper >= lower`` componentwise.
    """
    lower: NDArray
    upper: NDArray

    def __post_init__(self):
        lower = np.atleast_1d(np.array(self.lower, dtype=float))
        upper = np.atleast_1d(np.array(self.upper, dtype=float))
        if lower.ndim != 1 or lower.shape != upper.shape:
            raise DimensionMismatchError(
                f"Interval bounds must be 1-D of equal length, got {lower.shape} and {upper.shape}"
            )
        if np.any(np.isnan(lower)) or np.any(np.isnan(upper)):
            raise InvalidArgumentError("Interval bounds must not be NaN")
        if np.any(upper < lower):
            raise InvalidArgumentError("Interval upper bounds must not be below lower bounds")
        lower.setflags(write=False)
        upper.setflags(write=False)
        object.__setattr__(self, 'lower', lower)
        object.__setattr__(self, 'upper', upper)

    @property
    def dimension(self) -> int:
        """Number of coordinates."""
        return len(self.lower)

    def contains(self, x: ArrayLike) -> Union[bool, NDArray]:
        """
        Test membership of a point or a batch of points.

        Parameters
        ----------
        x : array_like
            Shape ``(d,)`` for one point, ``(n, d)`` for n points.

        Returns
        -------
        inside : bool or ndarray of bool
        """
        x = np.asarray(x, dtype=float)
        if x.shape[-1:] != (self.dimension,):
            raise DimensionMismatchError(
                f"Expected {self.dimension}-dimensional points, got shape {x.shape}"
            )
        inside = np.all((x >= self.lower) & (x <= self.upper), axis=-1)
        return bool(inside) if inside.ndim == 0 else inside

    def volume(self) -> float:
        """Lebesgue measure of the box (``inf`` for unbounded boxes)."""
        return float(np.prod(self.upper - self.lower))

    def intersect(self, other: 'Interval') -> 'Interval':
        """Intersection with another box (empty intersections collapse to a point)."""
        if other.dimension != self.dimension:
            raise DimensionMismatchError(
                f"Cannot intersect intervals of dimension {self.dimension} and {other.dimension}"
            )
        lower = np.maximum(self.lower, other.lower)
        upper = np.maximum(np.minimum(self.upper, other.upper), lower)
        return Interval(lower, upper)

    def __repr__(self) -> str:
        bounds = ", ".join(f"[{a:.6g}, {b:.6g}]" for a, b in zip(self.lower, self.upper))
        return f"Interval({bounds})"


@dataclass(frozen=True)
class LevelSet:
    """
    Density super-level set :math:`\\{x : f(x) \\ge t\\}`.

    Attributes
    ----------
    density : callable
        Density function accepting ``(d,)`` or ``(n, d)`` arrays.
    threshold : float
        Density threshold :math:`t`.
    dimension : int
        Number of coordinates.
    """
    density: Callable[[ArrayLike], Union[float, NDArray]]
    threshold: float
    dimension: int

    def contains(self, x: ArrayLike) -> Union[bool, NDArray]:
        """Test whether the density at ``x`` reaches the threshold."""
        inside = np.asarray(self.density(x)) >= self.threshold
        return bool(inside) if inside.ndim == 0 else inside

    def __repr__(self) -> str:
        return f"LevelSet(d={self.dimension}, threshold={self.threshold:.6g})"


class IntervalResult(NamedTuple):
    """Box-shaped confidence region and the common marginal probability of its sides."""
    interval: Interval
    marginal_probability: float


class LevelSetResult(NamedTuple):
    """Minimum volume level set, its density threshold and its achieved coverage."""
    level_set: LevelSet
    threshold: float
    coverage: float
