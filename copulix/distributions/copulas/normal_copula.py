"""
Normal (Gaussian) copula.

The normal copula with correlation matrix :math:`R` is the copula of
:math:`N(0, R)`:

.. math::
    C(u) = \\Phi_d(\\Phi^{-1}(u_1), \\dots, \\Phi^{-1}(u_d); R)

with density

.. math::
    c(u) = |R|^{-1/2}
    \\exp\\left(-\\frac{1}{2} z^T (R^{-1} - I) z\\right),
    \\qquad z_i = \\Phi^{-1}(u_i)

on the open unit cube, and 0 elsewhere.

Rank correlations have closed forms (see :mod:`copulix.dependence`):
:math:`\\rho_S = \\frac{6}{\\pi}\\arcsin\\frac{R}{2}`,
:math:`\\tau = \\frac{2}{\\pi}\\arcsin R`.

Internal storage
----------------
- ``_R``: correlation matrix, shape ``(d, d)``
- ``_L``: lower Cholesky factor of :math:`R`

Derived quantities ``log_det_R``, ``L_inv`` and ``precision`` are cached
properties.
"""

from functools import cached_property
from typing import List, Optional, Union

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.linalg import solve_triangular
from scipy.special import ndtr, ndtri
from scipy.stats import norm

from copulix import dependence
from copulix.base import Copula
from copulix.config import NumericalSettings
from copulix.params import NormalCopulaParams
from copulix.rng import as_random_source
from copulix.utils.linalg import cholesky_factor, nearest_correlation
from copulix.utils.mvn import standard_normal_cdf


class NormalCopula(Copula):
    """
    Normal (Gaussian) copula.

    Parameters
    ----------
    corr : array_like, shape (d, d)
        Correlation matrix :math:`R`: symmetric, positive definite, unit
        diagonal. A scalar is read as the 1x1 matrix (which must be 1).
    settings : NumericalSettings, optional
        Numerical settings.

    Raises
    ------
    InvalidParameterError
        If ``corr`` is not a positive definite correlation matrix.

    Examples
    --------
    >>> R = np.array([[1.0, 0.25, 0.0], [0.25, 1.0, 0.25], [0.0, 0.25, 1.0]])
    >>> copula = NormalCopula(R)
    >>> copula.d
    3
    >>> u = copula.ppf(0.5)
    >>> round(copula.cdf(u), 6)
    0.5
    """

    def __init__(self, corr: ArrayLike, *, settings: Optional[NumericalSettings] = None):
        super().__init__(settings=settings)
        R = dependence.validate_correlation_matrix(corr)
        self._L = cholesky_factor(R, name="Correlation matrix")
        self._R = R
        self._d = R.shape[0]

    # ============================================================
    # Alternative constructors
    # ============================================================

    @staticmethod
    def correlation_from_spearman(S: ArrayLike) -> NDArray:
        """
        Correlation matrix of the normal copula with Spearman matrix ``S``.

        .. math::
            R_{ij} = 2 \\sin\\left(\\frac{\\pi}{6} \\rho^S_{ij}\\right)

        Parameters
        ----------
        S : array_like, shape (d, d)
            Spearman correlation matrix.

        Returns
        -------
        R : ndarray, shape (d, d)
        """
        return dependence.correlation_from_spearman(S)

    @classmethod
    def from_spearman(cls, S: ArrayLike, *, settings: Optional[NumericalSettings] = None) -> 'NormalCopula':
        """Normal copula with the given Spearman correlation matrix."""
        return cls(dependence.correlation_from_spearman(S), settings=settings)

    @classmethod
    def from_kendall(cls, T: ArrayLike, *, settings: Optional[NumericalSettings] = None) -> 'NormalCopula':
        """Normal copula with the given Kendall tau matrix."""
        return cls(dependence.correlation_from_kendall(T), settings=settings)

    @classmethod
    def from_sample(cls, X: ArrayLike, *, settings: Optional[NumericalSettings] = None) -> 'NormalCopula':
        """
        Estimate a normal copula from a sample by inverting Spearman's rho.

        The empirical Spearman matrix is mapped to a correlation matrix and
        projected onto the positive definite correlation matrices.

        Parameters
        ----------
        X : array_like, shape (n, d)
            Sample, on any scale (only ranks are used).

        Returns
        -------
        copula : NormalCopula
        """
        S = dependence.empirical_spearman(X)
        R = nearest_correlation(dependence.correlation_from_spearman(S))
        return cls(R, settings=settings)

    # ============================================================
    # Structure and cached derived quantities
    # ============================================================

    @property
    def d(self) -> int:
        """Dimension of the copula."""
        return self._d

    @cached_property
    def log_det_R(self) -> float:
        r"""
        Log-determinant of the correlation matrix (cached).

        .. math::
            \log|R| = 2 \sum_{i=1}^d \log L_{ii}
        """
        return 2.0 * np.sum(np.log(np.diag(self._L)))

    @cached_property
    def L_inv(self) -> NDArray:
        """Inverse of the lower Cholesky factor of :math:`R` (cached)."""
        return solve_triangular(self._L, np.eye(self._d), lower=True)

    @cached_property
    def precision(self) -> NDArray:
        """Inverse correlation matrix :math:`R^{-1} = L^{-T} L^{-1}` (cached)."""
        return self.L_inv.T @ self.L_inv

    def _compute_classical_params(self):
        return NormalCopulaParams(corr=self._R.copy())

    # ============================================================
    # Evaluation
    # ============================================================

    def _normal_scores(self, u: NDArray):
        """Mask of points inside the open cube and their normal scores."""
        inside = np.all((u > 0.0) & (u < 1.0), axis=1)
        return inside, ndtri(u[inside])

    def logpdf(self, x: ArrayLike) -> Union[float, NDArray]:
        """
        Log density of the copula, ``-inf`` outside the open unit cube.

        .. math::
            \\log c(u) = -\\frac{1}{2}\\log|R| - \\frac{1}{2} z^T (R^{-1} - I) z
        """
        u, single = self._as_points(x)
        inside, z = self._normal_scores(u)
        out = np.full(len(u), -np.inf)
        w = z @ self.L_inv.T
        quad = np.sum(w ** 2, axis=1) - np.sum(z ** 2, axis=1)
        out[inside] = -0.5 * self.log_det_R - 0.5 * quad
        return self._output(out, single)

    def ddf(self, x: ArrayLike) -> NDArray:
        """
        Gradient of the copula density.

        .. math::
            \\frac{\\partial c}{\\partial u_i}(u) =
            c(u) \\frac{z_i - (R^{-1} z)_i}{\\phi(z_i)}

        Zero outside the open unit cube.
        """
        u, single = self._as_points(x)
        inside, z = self._normal_scores(u)
        grad = np.zeros_like(u)
        if np.any(inside):
            c = np.exp(np.atleast_1d(self.logpdf(u[inside])))
            grad[inside] = c[:, None] * (z - z @ self.precision) / norm.pdf(z)
        return grad[0] if single else grad

    def cdf(self, x: ArrayLike) -> Union[float, NDArray]:
        """
        Copula CDF, :math:`\\Phi_d(\\Phi^{-1}(u); R)`.

        Coordinates at or above 1 are marginalized out; any coordinate at or
        below 0 gives 0.
        """
        u, single = self._as_points(x)
        z = ndtri(np.clip(u, 0.0, 1.0))
        out = np.array([standard_normal_cdf(row, self._R, self._settings) for row in z])
        return self._output(out, single)

    def sf(self, x: ArrayLike) -> Union[float, NDArray]:
        """
        Survival function by radial symmetry, :math:`\\bar C(u) = C(1 - u)`.
        """
        u, single = self._as_points(x)
        return self.cdf(1.0 - u[0] if single else 1.0 - u)

    # ============================================================
    # Sampling
    # ============================================================

    def rvs(self, size=None, random_state=None) -> NDArray:
        """
        Generate random samples using :math:`U = \\Phi(L Z)`, :math:`Z \\sim N(0, I)`.

        Parameters
        ----------
        size : int, optional
            Number of points; a single point when omitted.
        random_state : RandomSource, Generator or int, optional
            Random source.

        Returns
        -------
        samples : ndarray
            Shape ``(size, d)``, or ``(d,)`` for ``size=None``.
        """
        source = as_random_source(random_state)
        n = 1 if size is None else int(size)
        z = source.standard_normal((n, self._d))
        u = ndtr(z @ self._L.T)
        return u[0] if size is None else u

    # ============================================================
    # Dependence
    # ============================================================

    def spearman_correlation(self) -> NDArray:
        """Spearman matrix, :math:`\\frac{6}{\\pi}\\arcsin(R / 2)`."""
        return dependence.spearman_from_correlation(self._R)

    def kendall_tau(self) -> NDArray:
        """Kendall tau matrix, :math:`\\frac{2}{\\pi}\\arcsin R`."""
        return dependence.kendall_from_correlation(self._R)

    def has_elliptical_copula(self) -> bool:
        return True

    def has_independent_copula(self) -> bool:
        """True iff :math:`R` is exactly the identity."""
        return bool(np.array_equal(self._R, np.eye(self._d)))

    def _marginal(self, indices: List[int]) -> 'NormalCopula':
        return NormalCopula(self._R[np.ix_(indices, indices)], settings=self._settings)

    def __repr__(self) -> str:
        if self._d <= 3:
            rows = ", ".join(
                "[" + ", ".join(f"{r:.4f}" for r in row) + "]" for row in self._R
            )
            return f"NormalCopula(R=[{rows}])"
        return f"NormalCopula(d={self._d})"
