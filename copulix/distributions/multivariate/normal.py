"""
Multivariate Normal distribution.

The multivariate Normal distribution has PDF:

.. math::
    p(x|\\mu,\\Sigma) = (2\\pi)^{-d/2} |\\Sigma|^{-1/2}
    \\exp\\left(-\\frac{1}{2} (x-\\mu)^T \\Sigma^{-1} (x-\\mu)\\right)

for :math:`x \\in \\mathbb{R}^d`, where :math:`\\mu` is the mean vector
and :math:`\\Sigma` is the covariance matrix.

Its copula is the normal copula of the correlation matrix
:math:`R = D^{-1} \\Sigma D^{-1}`, :math:`D = \\mathrm{diag}(\\sigma_i)`, so
the CDF reduces to the standard multivariate normal CDF of the standardized
point, :math:`F(x) = \\Phi_d(D^{-1}(x - \\mu); R)`.

Internal storage
----------------
The distribution stores the Cholesky decomposition of the covariance matrix
rather than the full covariance or its inverse:

- ``_mu``: mean vector, shape ``(d,)``
- ``_L``: lower Cholesky factor of :math:`\\Sigma`, shape ``(d, d)``

Derived quantities ``log_det_Sigma``, ``L_inv``, ``precision`` and
``corr`` are cached properties.
"""

from functools import cached_property
from typing import List, Optional, Tuple, Union

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy import stats
from scipy.linalg import solve_triangular
from scipy.special import ndtri

from copulix import dependence
from copulix.base import Distribution
from copulix.config import NumericalSettings
from copulix.distributions.copulas import NormalCopula
from copulix.exceptions import InvalidArgumentError, InvalidParameterError
from copulix.params import MultivariateNormalParams
from copulix.regions import Interval, LevelSet, LevelSetResult
from copulix.rng import as_random_source
from copulix.solvers import validate_probability
from copulix.utils.linalg import cholesky_factor
from copulix.utils.mvn import standard_normal_cdf


class MultivariateNormal(Distribution):
    """
    Multivariate Normal distribution.

    Supports both univariate (d=1) and multivariate (d>1) cases.

    Parameters
    ----------
    mu : array_like, shape (d,)
        Mean vector.
    sigma : array_like, shape (d, d)
        Covariance matrix, symmetric positive definite. A scalar is read as
        a 1x1 variance, a 1-D array as a diagonal.
    settings : NumericalSettings, optional
        Numerical settings.

    Attributes
    ----------
    _mu : ndarray
        Mean vector, shape ``(d,)``.
    _L : ndarray
        Lower Cholesky factor of :math:`\\Sigma`, shape ``(d, d)``.
        :math:`\\Sigma = L L^T`.

    Examples
    --------
    >>> # 1D case (univariate normal)
    >>> dist = MultivariateNormal.from_classical_params(mu=0.0, sigma=np.array([[1.0]]))
    >>> dist.mean()
    array([0.])

    >>> # 2D case
    >>> mu = np.array([1.0, 2.0])
    >>> sigma = np.array([[1.0, 0.5], [0.5, 1.0]])
    >>> dist = MultivariateNormal(mu, sigma)
    >>> dist.mean()
    array([1., 2.])

    Notes
    -----
    The internal storage uses the Cholesky decomposition :math:`L` of the
    covariance :math:`\\Sigma = LL^T`, which:

    - Avoids repeated matrix inversions in ``logpdf`` and ``rvs``
    - Provides numerically stable log-determinant: :math:`\\log|\\Sigma| = 2\\sum_i \\log L_{ii}`
    - Enables efficient Mahalanobis distance via ``solve_triangular``
    """

    def __init__(self, mu: ArrayLike, sigma: ArrayLike, *,
                 settings: Optional[NumericalSettings] = None):
        super().__init__(settings=settings)
        mu = np.asarray(mu, dtype=float).flatten()
        sigma = np.asarray(sigma, dtype=float)

        # Handle scalar input for 1D case
        if sigma.ndim == 0:
            sigma = np.array([[float(sigma)]])
        elif sigma.ndim == 1:
            sigma = np.diag(sigma)

        d = len(mu)
        if d == 0:
            raise InvalidParameterError("Mean vector must not be empty")
        if sigma.shape != (d, d):
            raise InvalidParameterError(
                f"sigma shape {sigma.shape} doesn't match mu dimension {d}"
            )
        if not np.all(np.isfinite(mu)) or not np.all(np.isfinite(sigma)):
            raise InvalidParameterError("Mean and covariance must be finite")
        if not np.allclose(sigma, sigma.T, rtol=1e-10, atol=1e-10):
            raise InvalidParameterError("Covariance matrix must be symmetric")

        self._d = d
        self._mu = mu.copy()
        self._L = cholesky_factor(0.5 * (sigma + sigma.T), name="Covariance matrix")

    @classmethod
    def from_sample(cls, X: ArrayLike, *, settings: Optional[NumericalSettings] = None) -> 'MultivariateNormal':
        """
        Maximum likelihood estimate from a sample.

        For MVN, the MLE is:

        - :math:`\\hat\\mu` = sample mean
        - :math:`\\hat\\Sigma` = sample covariance (biased)

        Parameters
        ----------
        X : array_like
            Sample. Shape ``(n, d)`` or ``(n,)`` for 1D.

        Returns
        -------
        dist : MultivariateNormal
        """
        X = np.asarray(X, dtype=float)
        if X.ndim == 1:
            X = X.reshape(-1, 1)
        if X.ndim != 2 or X.shape[0] < 2:
            raise InvalidArgumentError(f"Expected a sample of shape (n, d) with n >= 2, got {X.shape}")
        d = X.shape[1]

        mu_hat = np.mean(X, axis=0)
        Sigma_hat = np.atleast_2d(np.cov(X, rowvar=False, bias=True))

        # Regularization for numerical stability
        min_eig = np.min(np.linalg.eigvalsh(Sigma_hat))
        if min_eig < 1e-10:
            Sigma_hat += (1e-10 - min_eig) * np.eye(d)

        return cls(mu_hat, Sigma_hat, settings=settings)

    # ============================================================
    # Structure and cached derived quantities
    # ============================================================

    @property
    def d(self) -> int:
        """Dimension of the distribution."""
        return self._d

    @property
    def range(self) -> Interval:
        """The whole space :math:`\\mathbb{R}^d`."""
        return Interval(np.full(self._d, -np.inf), np.full(self._d, np.inf))

    @cached_property
    def log_det_Sigma(self) -> float:
        r"""
        Log-determinant of the covariance matrix (cached).

        .. math::
            \log|\Sigma| = 2 \sum_{i=1}^d \log L_{ii}

        Returns
        -------
        log_det : float
        """
        return 2.0 * np.sum(np.log(np.diag(self._L)))

    @cached_property
    def L_inv(self) -> NDArray:
        r"""
        Inverse of the lower Cholesky factor (cached).

        :math:`L^{-1}` such that :math:`\Sigma^{-1} = L^{-T} L^{-1}`.

        Returns
        -------
        L_inv : ndarray, shape ``(d, d)``
            Lower triangular matrix.
        """
        return solve_triangular(self._L, np.eye(self._d), lower=True)

    @cached_property
    def precision(self) -> NDArray:
        """Precision matrix :math:`\\Sigma^{-1}` (cached)."""
        return self.L_inv.T @ self.L_inv

    @cached_property
    def std_devs(self) -> NDArray:
        """Marginal standard deviations :math:`\\sigma_i` (cached)."""
        return np.sqrt(np.sum(self._L ** 2, axis=1))

    @cached_property
    def corr(self) -> NDArray:
        """Correlation matrix :math:`D^{-1} \\Sigma D^{-1}` (cached)."""
        s = self.std_devs
        R = (self._L @ self._L.T) / np.outer(s, s)
        R = 0.5 * (R + R.T)
        np.fill_diagonal(R, 1.0)
        return R

    def _compute_classical_params(self):
        """Return frozen dataclass of classical parameters."""
        Sigma = self._L @ self._L.T
        return MultivariateNormalParams(mu=self._mu.copy(), sigma=Sigma)

    # ============================================================
    # Density functions
    # ============================================================

    def logpdf(self, x: ArrayLike) -> Union[float, NDArray[np.floating]]:
        """
        Log probability density using Cholesky-based computation.

        Uses ``solve_triangular`` instead of ``np.linalg.inv`` for the
        Mahalanobis distance:

        .. math::
            \\log p(x|\\mu,\\Sigma) = -\\frac{d}{2}\\log(2\\pi)
            - \\frac{1}{2}\\log|\\Sigma|
            - \\frac{1}{2}(x-\\mu)^T \\Sigma^{-1}(x-\\mu)

        where :math:`\\Sigma^{-1}(x-\\mu) = L^{-T}(L^{-1}(x-\\mu))`.

        Parameters
        ----------
        x : array_like
            Points at which to evaluate log PDF.
            Shape ``(d,)`` for single sample, ``(n, d)`` for n samples.

        Returns
        -------
        logpdf : float or ndarray
            Log probability density at each point.
        """
        x, single = self._as_points(x)
        const = -0.5 * self._d * np.log(2 * np.pi) - 0.5 * self.log_det_Sigma

        # Solve L @ Z = (X - μ)^T => Z = L^{-1}(X - μ)^T, shape (d, n)
        Z = solve_triangular(self._L, (x - self._mu).T, lower=True)
        mahal = np.sum(Z ** 2, axis=0)
        return self._output(const - 0.5 * mahal, single)

    def ddf(self, x: ArrayLike) -> NDArray:
        """
        Gradient of the density.

        .. math::
            \\nabla p(x) = -p(x)\\, \\Sigma^{-1}(x - \\mu)
        """
        x, single = self._as_points(x)
        p = np.asarray(self.pdf(x))
        grad = -p[:, None] * ((x - self._mu) @ self.precision)
        return grad[0] if single else grad

    # ============================================================
    # Cumulative functions
    # ============================================================

    def cdf(self, x: ArrayLike) -> Union[float, NDArray[np.floating]]:
        """
        Cumulative distribution function.

        Evaluated as :math:`\\Phi_d(D^{-1}(x - \\mu); R)` with the normal-law
        numerics of :mod:`copulix.utils.mvn`.

        Parameters
        ----------
        x : array_like
            Points at which to evaluate CDF.

        Returns
        -------
        cdf : float or ndarray
            CDF values.
        """
        x, single = self._as_points(x)
        b = (x - self._mu) / self.std_devs
        out = np.array([standard_normal_cdf(row, self.corr, self._settings) for row in b])
        return self._output(out, single)

    def sf(self, x: ArrayLike) -> Union[float, NDArray[np.floating]]:
        """
        Survival function by central symmetry, :math:`\\bar F(x) = F(2\\mu - x)`.
        """
        x, single = self._as_points(x)
        reflected = 2.0 * self._mu - x
        return self.cdf(reflected[0] if single else reflected)

    def _marginal_ppf(self, i: int, q: float) -> float:
        return float(self._mu[i] + self.std_devs[i] * ndtri(q))

    def _marginal_isf(self, i: int, s: float) -> float:
        return float(self._mu[i] - self.std_devs[i] * ndtri(s))

    # ============================================================
    # Sampling
    # ============================================================

    def rvs(self, size=None, random_state=None) -> NDArray:
        """
        Generate random samples using :math:`X = \\mu + L Z` where :math:`Z \\sim N(0, I)`.

        Parameters
        ----------
        size : int, optional
            Number of samples to generate.
        random_state : RandomSource, Generator or int, optional
            Random source.

        Returns
        -------
        samples : ndarray
            Shape (size, d), or (d,) for size = None.
        """
        source = as_random_source(random_state)
        n = 1 if size is None else int(size)
        z = source.standard_normal((n, self._d))
        x = self._mu + z @ self._L.T  # Equivalent to (L @ z.T).T
        return x[0] if size is None else x

    # ============================================================
    # Moments and dependence
    # ============================================================

    def mean(self) -> NDArray:
        """Mean of the distribution: E[X] = μ."""
        return self._mu.copy()

    def var(self) -> NDArray:
        """Variance (diagonal of covariance matrix)."""
        # diag(Σ) = diag(L L^T) = sum of squares of rows of L
        return np.sum(self._L ** 2, axis=1)

    def cov(self) -> NDArray:
        """Covariance matrix Σ = L L^T."""
        return self._L @ self._L.T

    def correlation(self) -> NDArray:
        """Linear correlation matrix."""
        return self.corr.copy()

    def spearman_correlation(self) -> NDArray:
        """Spearman matrix of the normal copula."""
        return dependence.spearman_from_correlation(self.corr)

    def kendall_tau(self) -> NDArray:
        """Kendall tau matrix of the normal copula."""
        return dependence.kendall_from_correlation(self.corr)

    def entropy(self) -> float:
        """
        Differential entropy.

        .. math::
            H(X) = \\frac{d}{2}(1 + \\log(2\\pi)) + \\frac{1}{2}\\log|\\Sigma|
        """
        return 0.5 * self._d * (1 + np.log(2 * np.pi)) + 0.5 * self.log_det_Sigma

    def copula(self) -> NormalCopula:
        """Normal copula of the distribution."""
        return NormalCopula(self.corr, settings=self._settings)

    # ============================================================
    # Predicates and marginals
    # ============================================================

    def is_elliptical(self) -> bool:
        return True

    def has_elliptical_copula(self) -> bool:
        return True

    def has_independent_copula(self) -> bool:
        """True iff Σ is diagonal."""
        Sigma = self.cov()
        return bool(np.all(Sigma[~np.eye(self._d, dtype=bool)] == 0.0))

    def _marginal(self, indices: List[int]) -> 'MultivariateNormal':
        Sigma = self.cov()
        return MultivariateNormal(
            self._mu[indices], Sigma[np.ix_(indices, indices)], settings=self._settings
        )

    # ============================================================
    # Confidence regions
    # ============================================================

    def _marginal_minimum_volume_interval(self, i: int, alpha: float) -> Tuple[float, float]:
        # symmetric unimodal marginal
        return self._marginal_bilateral_interval(i, alpha)

    def minimum_volume_level_set(self, p: float) -> LevelSetResult:
        """
        Exact minimum volume level set, an ellipsoid.

        .. math::
            \\{x : (x-\\mu)^T\\Sigma^{-1}(x-\\mu) \\le \\chi^2_{d}(p)\\}

        The density threshold is :math:`(2\\pi)^{-d/2}|\\Sigma|^{-1/2}
        \\exp(-\\chi^2_{d}(p)/2)` and the coverage is exactly ``p``.
        """
        p = validate_probability(p)
        self._check_region_dimension()
        r2 = stats.chi2.ppf(p, self._d)
        log_threshold = -0.5 * (self._d * np.log(2 * np.pi) + self.log_det_Sigma + r2)
        threshold = float(np.exp(log_threshold))
        return LevelSetResult(LevelSet(self.pdf, threshold, self._d), threshold, p)

    # ============================================================
    # Scipy compatibility
    # ============================================================

    def to_scipy(self) -> stats.multivariate_normal:
        """
        Convert to scipy.stats.multivariate_normal.
        """
        return stats.multivariate_normal(mean=self._mu, cov=self.cov())

    @classmethod
    def from_scipy(cls, rv: stats.multivariate_normal) -> 'MultivariateNormal':
        """
        Create from scipy.stats.multivariate_normal.
        """
        return cls.from_classical_params(mu=rv.mean, sigma=rv.cov)

    # ============================================================
    # String representation
    # ============================================================

    def __repr__(self) -> str:
        """String representation."""
        d = self._d
        mu = self._mu
        if d == 1:
            sigma_sq = self._L[0, 0] ** 2
            return f"MultivariateNormal(μ={mu[0]:.4f}, σ²={sigma_sq:.4f})"
        elif d <= 3:
            mu_str = ", ".join(f"{x:.4f}" for x in mu)
            return f"MultivariateNormal(μ=[{mu_str}], d={d})"
        else:
            return f"MultivariateNormal(d={d})"


# Alias for convenience
MVN = MultivariateNormal
