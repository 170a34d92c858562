"""
Base class for multivariate probability distributions with a scipy-like API.

The API includes:

- **Density functions**: :meth:`pdf`, :meth:`logpdf`, :meth:`ddf` (gradient
  of the density)
- **Cumulative distribution**: :meth:`cdf`, :meth:`sf` (survival function),
  :meth:`probability` (mass of a box)
- **Quantile functions**: :meth:`ppf`, :meth:`isf` (inverse survival)
- **Random sampling**: :meth:`rvs`
- **Moments and dependence**: :meth:`mean`, :meth:`var`, :meth:`cov`,
  :meth:`correlation`, :meth:`spearman_correlation`, :meth:`kendall_tau`
- **Structure**: :meth:`marginal`, :meth:`is_elliptical`,
  :meth:`has_elliptical_copula`, :meth:`has_independent_copula`
- **Confidence regions** (dimension 1 and 2):
  :meth:`minimum_volume_interval`, :meth:`minimum_volume_level_set`,
  :meth:`bilateral_confidence_interval`,
  :meth:`unilateral_confidence_interval`

Subclasses implement the family-specific closed forms (``logpdf``, ``cdf``,
``rvs``, the 1-D marginal quantile ``_marginal_ppf`` and the parameter
container); everything generic lives here: finite-difference derivatives,
inclusion-exclusion survival, quantile root finding, box probabilities and the
confidence-region constructions.

Distributions are immutable. Derived quantities are computed lazily with
``functools.cached_property``; since parameters never change, the caches
never need invalidation.

Points are 1-D arrays of length ``d``; a batch of ``n`` points is an
``(n, d)`` array and yields arrays of length ``n``. For ``d = 1`` a scalar is
accepted as a point.
"""

import itertools
import warnings
from abc import ABC, abstractmethod
from functools import cached_property
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.optimize import minimize_scalar

from copulix.config import NumericalSettings, resolve_settings
from copulix.exceptions import (
    DimensionMismatchError,
    InvalidArgumentError,
    UnsupportedOperationError,
)
from copulix.regions import (
    MAX_REGION_DIMENSION,
    Interval,
    IntervalResult,
    LevelSet,
    LevelSetResult,
)
from copulix.rng import RandomSource
from copulix.solvers import frechet_bracket, solve_level, validate_probability


class Distribution(ABC):
    """
    Abstract base class for multivariate probability distributions.

    Parameters
    ----------
    settings : NumericalSettings, optional
        Numerical tolerances. :data:`copulix.config.DEFAULT_SETTINGS` when
        omitted. Marginals inherit the settings of their parent.

    Notes
    -----
    Subclasses must implement:

    - ``d`` (property): dimension.
    - ``range`` (property): support as an :class:`~copulix.regions.Interval`.
    - ``logpdf(x)``, ``cdf(x)``, ``rvs(size, random_state)``.
    - ``_marginal_ppf(i, q)``: quantile of the i-th 1-D marginal.
    - ``_compute_classical_params()``: frozen parameter dataclass.

    and may override any generic algorithm with a closed form.
    """

    def __init__(self, *, settings: Optional[NumericalSettings] = None):
        self._settings = resolve_settings(settings)

    # ============================================================
    # Structure
    # ============================================================

    @property
    @abstractmethod
    def d(self) -> int:
        """Dimension of the distribution."""

    @property
    @abstractmethod
    def range(self) -> Interval:
        """Support of the distribution as a (possibly unbounded) box."""

    @property
    def settings(self) -> NumericalSettings:
        """Numerical settings used by this distribution."""
        return self._settings

    @classmethod
    def from_classical_params(cls, **kwargs) -> 'Distribution':
        """
        Create a distribution from classical parameters.

        The keyword arguments are the fields of the family's parameter
        dataclass, so ``cls.from_classical_params(**dist.classical_params)``
        rebuilds an equal distribution.

        Parameters
        ----------
        **kwargs
            Distribution-specific classical parameters.

        Returns
        -------
        dist : Distribution
        """
        return cls(**kwargs)

    @cached_property
    def classical_params(self):
        """
        Classical parameters as a frozen dataclass (cached).

        Returns
        -------
        params : dataclass
            Full parameter state of the distribution.
        """
        return self._compute_classical_params()

    @abstractmethod
    def _compute_classical_params(self):
        """Build the frozen parameter dataclass from the internal state."""

    # ============================================================
    # Input validation
    # ============================================================

    def _as_points(self, x: ArrayLike) -> Tuple[NDArray, bool]:
        """
        Validate ``x`` and return it as an ``(n, d)`` array.

        Returns
        -------
        points : ndarray, shape (n, d)
        single : bool
            Whether ``x`` was a single point.
        """
        x = np.asarray(x, dtype=float)
        d = self.d
        if x.ndim == 0:
            if d != 1:
                raise DimensionMismatchError(f"Expected {d}-dimensional input, got a scalar")
            return x.reshape(1, 1), True
        if x.ndim == 1:
            if x.shape[0] != d:
                raise DimensionMismatchError(f"Expected {d}-dimensional input, got {x.shape[0]}")
            return x.reshape(1, d), True
        if x.ndim == 2:
            if x.shape[1] != d:
                raise DimensionMismatchError(f"Expected {d}-dimensional input, got {x.shape[1]}")
            return x, False
        raise DimensionMismatchError(f"Expected a point or a batch of points, got shape {x.shape}")

    @staticmethod
    def _output(values: NDArray, single: bool) -> Union[float, NDArray]:
        return float(values[0]) if single else values

    def _as_indices(self, indices: Union[int, Sequence[int]]) -> List[int]:
        """
        Validate marginal indices.

        Raises
        ------
        InvalidArgumentError
            Empty selection, duplicate or non-integer indices.
        DimensionMismatchError
            Indices outside ``[0, d)``.
        """
        if isinstance(indices, (int, np.integer)) and not isinstance(indices, bool):
            indices = [indices]
        try:
            selected = list(indices)
        except TypeError:
            raise InvalidArgumentError(
                f"Indices must be an int or a sequence of ints, got {type(indices).__name__}"
            ) from None
        if not selected:
            raise InvalidArgumentError("Marginal indices must not be empty")
        for i in selected:
            if not isinstance(i, (int, np.integer)) or isinstance(i, bool):
                raise InvalidArgumentError(f"Marginal indices must be integers, got {i!r}")
            if not 0 <= i < self.d:
                raise DimensionMismatchError(
                    f"Marginal index {i} is out of range for dimension {self.d}"
                )
        if len(set(selected)) != len(selected):
            raise InvalidArgumentError(
                f"Marginal indices must be distinct, got {selected}"
            )
        return [int(i) for i in selected]

    # ============================================================
    # Density functions
    # ============================================================

    @abstractmethod
    def logpdf(self, x: ArrayLike) -> Union[float, NDArray]:
        """
        Log probability density, ``-inf`` outside the support.

        Parameters
        ----------
        x : array_like
            Shape ``(d,)`` for one point, ``(n, d)`` for n points.

        Returns
        -------
        logpdf : float or ndarray
        """

    def pdf(self, x: ArrayLike) -> Union[float, NDArray]:
        """
        Probability density: p(x) = exp(logpdf(x)).
        """
        return np.exp(self.logpdf(x))

    def ddf(self, x: ArrayLike) -> NDArray:
        """
        Gradient of the density by central finite differences.

        Families with a closed form override this method; the finite
        difference version remains available as ``Distribution.ddf(dist, x)``
        and serves as the reference in regression tests.

        Parameters
        ----------
        x : array_like
            Shape ``(d,)`` for one point, ``(n, d)`` for n points.

        Returns
        -------
        ddf : ndarray
            Shape ``(d,)`` for one point, ``(n, d)`` for n points.
        """
        points, single = self._as_points(x)
        n, d = points.shape
        h = self._settings.ddf_step
        steps = h * np.eye(d)
        forward = (points[:, None, :] + steps).reshape(-1, d)
        backward = (points[:, None, :] - steps).reshape(-1, d)
        grad = (np.asarray(self.pdf(forward)) - np.asarray(self.pdf(backward))) / (2.0 * h)
        grad = grad.reshape(n, d)
        return grad[0] if single else grad

    # ============================================================
    # Cumulative functions
    # ============================================================

    @abstractmethod
    def cdf(self, x: ArrayLike) -> Union[float, NDArray]:
        """
        Cumulative distribution function :math:`P(X \\le x)`.

        Parameters
        ----------
        x : array_like
            Shape ``(d,)`` for one point, ``(n, d)`` for n points.

        Returns
        -------
        cdf : float or ndarray
            Values in :math:`[0, 1]`.
        """

    def sf(self, x: ArrayLike) -> Union[float, NDArray]:
        """
        Survival function :math:`P(X > x)` by inclusion-exclusion.

        .. math::
            \\bar F(x) = \\sum_{A \\subseteq \\{1..d\\}} (-1)^{|A|} F_A(x_A)

        where :math:`F_A` is the CDF of the marginal over :math:`A`
        (:math:`F_\\emptyset = 1`), obtained by pushing the other coordinates
        to the upper bound of the support.

        Parameters
        ----------
        x : array_like
            Shape ``(d,)`` for one point, ``(n, d)`` for n points.

        Returns
        -------
        sf : float or ndarray
        """
        points, single = self._as_points(x)
        d = self.d
        upper = self.range.upper
        total = np.ones(len(points))
        for r in range(1, d + 1):
            for subset in itertools.combinations(range(d), r):
                y = np.tile(upper, (len(points), 1))
                y[:, list(subset)] = points[:, list(subset)]
                total += (-1.0) ** r * np.asarray(self.cdf(y))
        return self._output(np.clip(total, 0.0, 1.0), single)

    def probability(self, interval: Interval) -> float:
        """
        Probability mass of a box, :math:`P(X \\in [a, b])`.

        Computed by inclusion-exclusion of the CDF over the :math:`2^d`
        corners of the box intersected with the support.

        Parameters
        ----------
        interval : Interval
            Box of matching dimension.

        Returns
        -------
        p : float
        """
        if interval.dimension != self.d:
            raise DimensionMismatchError(
                f"Expected a {self.d}-dimensional interval, got {interval.dimension}"
            )
        box = interval.intersect(self.range)
        d = self.d
        corners = np.empty((2 ** d, d))
        signs = np.empty(2 ** d)
        for k, choice in enumerate(itertools.product((0, 1), repeat=d)):
            choice = np.asarray(choice, dtype=bool)
            corners[k] = np.where(choice, box.upper, box.lower)
            signs[k] = (-1.0) ** (d - np.count_nonzero(choice))
        value = float(np.dot(signs, np.asarray(self.cdf(corners))))
        return float(np.clip(value, 0.0, 1.0))

    # ============================================================
    # Quantile functions
    # ============================================================

    @abstractmethod
    def _marginal_ppf(self, i: int, q: float) -> float:
        """Quantile of order ``q`` of the i-th 1-D marginal."""

    def _marginal_isf(self, i: int, s: float) -> float:
        """Inverse survival function of the i-th 1-D marginal."""
        return self._marginal_ppf(i, 1.0 - s)

    def _level_point(self, q: float) -> NDArray:
        """Point whose coordinates all have marginal CDF ``q``."""
        return np.array([self._marginal_ppf(i, q) for i in range(self.d)])

    def _survival_level_point(self, s: float) -> NDArray:
        """Point whose coordinates all have marginal survival ``s``."""
        return np.array([self._marginal_isf(i, s) for i in range(self.d)])

    def _quantile_level(self, p: float, tail: bool = False) -> float:
        """
        Common marginal level of the quantile (``tail=False``) or of the
        inverse survival point (``tail=True``) of order ``p``.
        """
        if self.d == 1:
            return p
        if tail:
            return solve_level(
                lambda s: float(self.sf(self._survival_level_point(s))),
                p, frechet_bracket(p, self.d), self._settings,
                what="inverse survival",
            )
        return solve_level(
            lambda q: float(self.cdf(self._level_point(q))),
            p, frechet_bracket(p, self.d), self._settings,
            what="quantile",
        )

    def ppf(self, p: float) -> NDArray:
        """
        Quantile: the point :math:`x` with :math:`F(x) = p`.

        Among all solutions, the one whose coordinates share a common marginal
        probability level :math:`q` is returned:
        :math:`x = (F_1^{-1}(q), \\dots, F_d^{-1}(q))`.

        Parameters
        ----------
        p : float
            Probability in :math:`(0, 1)`.

        Returns
        -------
        x : ndarray, shape (d,)

        Raises
        ------
        InvalidArgumentError
            If ``p`` is outside :math:`(0, 1)`.
        ConvergenceError
            If the root finder exhausts its iteration budget.
        """
        p = validate_probability(p)
        return self._level_point(self._quantile_level(p))

    def isf(self, p: float) -> NDArray:
        """
        Inverse survival function: the point :math:`x` with :math:`\\bar F(x) = p`.

        Uses the same common-marginal-level rule as :meth:`ppf`, applied to
        the marginal survival functions.

        Parameters
        ----------
        p : float
            Probability in :math:`(0, 1)`.

        Returns
        -------
        x : ndarray, shape (d,)
        """
        p = validate_probability(p)
        return self._survival_level_point(self._quantile_level(p, tail=True))

    def median(self) -> NDArray:
        """Quantile of order 0.5."""
        return self.ppf(0.5)

    # ============================================================
    # Sampling
    # ============================================================

    @abstractmethod
    def rvs(
        self,
        size: Optional[int] = None,
        random_state: Optional[Union[int, np.random.Generator, RandomSource]] = None,
    ) -> NDArray:
        """
        Random variate sampling.

        Parameters
        ----------
        size : int, optional
            Number of points. A single point of shape ``(d,)`` is returned
            when omitted, otherwise a sample of shape ``(size, d)``.
        random_state : RandomSource, Generator or int, optional
            Random source (see :func:`copulix.rng.as_random_source`).

        Returns
        -------
        rvs : ndarray
        """

    # ============================================================
    # Moments and dependence
    # ============================================================

    def mean(self) -> NDArray:
        """Mean vector."""
        raise UnsupportedOperationError(f"Mean not implemented for {type(self).__name__}")

    def cov(self) -> NDArray:
        """Covariance matrix."""
        raise UnsupportedOperationError(f"Covariance not implemented for {type(self).__name__}")

    def var(self) -> NDArray:
        """Marginal variances (diagonal of the covariance matrix)."""
        return np.diag(self.cov()).copy()

    def std(self) -> NDArray:
        """Marginal standard deviations."""
        return np.sqrt(self.var())

    def correlation(self) -> NDArray:
        """Linear (Pearson) correlation matrix."""
        cov = self.cov()
        s = np.sqrt(np.diag(cov))
        R = cov / np.outer(s, s)
        np.fill_diagonal(R, 1.0)
        return R

    def spearman_correlation(self) -> NDArray:
        """Spearman rank-correlation matrix."""
        raise UnsupportedOperationError(
            f"Spearman correlation not implemented for {type(self).__name__}"
        )

    def kendall_tau(self) -> NDArray:
        """Kendall tau matrix."""
        raise UnsupportedOperationError(f"Kendall tau not implemented for {type(self).__name__}")

    # ============================================================
    # Predicates
    # ============================================================

    def is_elliptical(self) -> bool:
        """Whether the distribution is elliptical."""
        return False

    def has_elliptical_copula(self) -> bool:
        """Whether the copula of the distribution is elliptical."""
        return False

    def has_independent_copula(self) -> bool:
        """Whether the components are independent."""
        return False

    # ============================================================
    # Marginals
    # ============================================================

    def marginal(self, indices: Union[int, Sequence[int]]) -> 'Distribution':
        """
        Marginal distribution over the selected coordinates.

        Parameters
        ----------
        indices : int or sequence of int
            Coordinates to keep, in the order of the returned distribution.

        Returns
        -------
        marginal : Distribution
            New, independent distribution of dimension ``len(indices)``.

        Raises
        ------
        InvalidArgumentError
            Empty or duplicate indices.
        DimensionMismatchError
            Indices outside ``[0, d)``.
        UnsupportedOperationError
            If the family is not closed under marginalization.
        """
        return self._marginal(self._as_indices(indices))

    def _marginal(self, indices: List[int]) -> 'Distribution':
        raise UnsupportedOperationError(
            f"{type(self).__name__} is not closed under marginalization"
        )

    # ============================================================
    # Confidence regions
    # ============================================================

    def _check_region_dimension(self) -> None:
        if self.d > MAX_REGION_DIMENSION:
            raise UnsupportedOperationError(
                f"Confidence regions are only available up to dimension "
                f"{MAX_REGION_DIMENSION}, got {self.d}"
            )

    def _marginal_minimum_volume_interval(self, i: int, alpha: float) -> Tuple[float, float]:
        """
        Shortest interval of the i-th marginal with probability ``alpha``.

        Minimizes :math:`F_i^{-1}(t + \\alpha) - F_i^{-1}(t)` over the lower
        tail mass :math:`t \\in (0, 1 - \\alpha)`.
        """
        def length(t):
            return self._marginal_ppf(i, t + alpha) - self._marginal_ppf(i, t)

        result = minimize_scalar(
            length, bounds=(0.0, 1.0 - alpha), method='bounded',
            options={'xatol': 1e-10},
        )
        t = float(result.x)
        return self._marginal_ppf(i, t), self._marginal_ppf(i, t + alpha)

    def _marginal_bilateral_interval(self, i: int, alpha: float) -> Tuple[float, float]:
        return self._marginal_ppf(i, 0.5 * (1.0 - alpha)), self._marginal_ppf(i, 0.5 * (1.0 + alpha))

    def _solve_box(self, p: float, side, what: str) -> IntervalResult:
        """Box with common marginal probability solved for joint coverage ``p``."""
        def make_box(alpha):
            bounds = np.array([side(i, alpha) for i in range(self.d)])
            return Interval(bounds[:, 0], bounds[:, 1])

        if self.d == 1:
            alpha = p
        else:
            # Bonferroni: P(box) >= 1 - d (1 - alpha)
            alpha = solve_level(
                lambda a: self.probability(make_box(a)),
                p, (p, 1.0 - (1.0 - p) / self.d), self._settings, what=what,
            )
        return IntervalResult(make_box(alpha), alpha)

    def minimum_volume_interval(self, p: float) -> IntervalResult:
        """
        Minimum volume box with probability ``p``.

        Every side is the shortest interval of its marginal at a common
        marginal probability, which is solved so that the box has joint
        probability ``p``.

        Parameters
        ----------
        p : float
            Coverage probability in :math:`(0, 1)`.

        Returns
        -------
        result : IntervalResult
            ``(interval, marginal_probability)``.

        Raises
        ------
        UnsupportedOperationError
            For dimension above 2.
        """
        p = validate_probability(p)
        self._check_region_dimension()
        return self._solve_box(p, self._marginal_minimum_volume_interval, "minimum volume interval")

    def bilateral_confidence_interval(self, p: float) -> IntervalResult:
        """
        Box of central marginal intervals with joint probability ``p``.

        Each side is :math:`[F_i^{-1}((1-\\alpha)/2), F_i^{-1}((1+\\alpha)/2)]`.

        Parameters
        ----------
        p : float
            Coverage probability in :math:`(0, 1)`.

        Returns
        -------
        result : IntervalResult
            ``(interval, marginal_probability)``; ``marginal_probability``
            equals ``p`` in dimension 1.
        """
        p = validate_probability(p)
        self._check_region_dimension()
        return self._solve_box(p, self._marginal_bilateral_interval, "bilateral interval")

    def unilateral_confidence_interval(self, p: float, tail: bool = False) -> IntervalResult:
        """
        One-sided box with probability ``p``.

        Parameters
        ----------
        p : float
            Coverage probability in :math:`(0, 1)`.
        tail : bool, optional
            ``False`` (default) for the lower tail box
            :math:`[\\text{lower bound}, \\mathrm{ppf}(p)]`, ``True`` for the
            upper tail box :math:`[\\mathrm{isf}(p), \\text{upper bound}]`.

        Returns
        -------
        result : IntervalResult
            ``(interval, marginal_probability)``.
        """
        p = validate_probability(p)
        self._check_region_dimension()
        support = self.range
        level = self._quantile_level(p, tail=tail)
        if tail:
            interval = Interval(self._survival_level_point(level), support.upper)
        else:
            interval = Interval(support.lower, self._level_point(level))
        return IntervalResult(interval, level)

    def minimum_volume_level_set(self, p: float) -> LevelSetResult:
        """
        Density level set :math:`\\{x : f(x) \\ge t\\}` with probability ``p``.

        The threshold :math:`t` is the :math:`1 - p` quantile of
        :math:`f(X)`, estimated from a sample drawn with the seeded source of
        ``settings.level_set_seed``; the coverage is the fraction of that
        sample inside the level set.

        Parameters
        ----------
        p : float
            Coverage probability in :math:`(0, 1)`.

        Returns
        -------
        result : LevelSetResult
            ``(level_set, threshold, coverage)``.
        """
        p = validate_probability(p)
        self._check_region_dimension()
        source = RandomSource(self._settings.level_set_seed)
        sample = self.rvs(self._settings.level_set_sample_size, random_state=source)
        values = np.asarray(self.pdf(sample))
        threshold = float(np.quantile(values, 1.0 - p))
        coverage = float(np.mean(values >= threshold))
        if abs(coverage - p) > 0.05:
            warnings.warn(
                f"Level set coverage {coverage:.4f} differs from requested {p:.4f}; "
                f"the density is flat around the threshold {threshold:.6g}"
            )
        return LevelSetResult(LevelSet(self.pdf, threshold, self.d), threshold, coverage)

    # ============================================================
    # String representation
    # ============================================================

    def __repr__(self) -> str:
        """String representation of the distribution."""
        return f"{self.__class__.__name__}(d={self.d})"
