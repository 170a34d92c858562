"""
Base class for copulas: distributions on :math:`[0, 1]^d` with uniform marginals.

Because every marginal is :math:`U(0, 1)`, the generic machinery of
:class:`~copulix.base.distribution.Distribution` simplifies:

- marginal quantiles are the identity, :math:`F_i^{-1}(q) = q`;
- the moments follow from the Spearman matrix :math:`\\rho_S`:
  :math:`E[U] = 1/2` and :math:`\\mathrm{Cov}(U) = \\rho_S / 12`, so the
  linear correlation of the uniforms *is* the Spearman matrix;
- every interval of length :math:`\\alpha` is a minimum volume interval of a
  uniform marginal; the centered one is used.
"""

from typing import Tuple

import numpy as np
from numpy.typing import NDArray

from copulix.base.distribution import Distribution
from copulix.regions import Interval


class Copula(Distribution):
    """
    Abstract base class for copulas.

    Subclasses implement ``logpdf``, ``cdf``, ``rvs``,
    ``spearman_correlation``, ``kendall_tau`` and the parameter container.
    """

    @property
    def range(self) -> Interval:
        """Unit hypercube :math:`[0, 1]^d`."""
        return Interval(np.zeros(self.d), np.ones(self.d))

    # ============================================================
    # Uniform marginals
    # ============================================================

    def _marginal_ppf(self, i: int, q: float) -> float:
        return float(q)

    def _marginal_isf(self, i: int, s: float) -> float:
        return 1.0 - float(s)

    def _marginal_minimum_volume_interval(self, i: int, alpha: float) -> Tuple[float, float]:
        return self._marginal_bilateral_interval(i, alpha)

    # ============================================================
    # Moments
    # ============================================================

    def mean(self) -> NDArray:
        """Mean vector, :math:`(1/2, \\dots, 1/2)`."""
        return np.full(self.d, 0.5)

    def cov(self) -> NDArray:
        """Covariance matrix, :math:`\\rho_S / 12`."""
        return self.spearman_correlation() / 12.0

    def correlation(self) -> NDArray:
        """Linear correlation of the uniforms, equal to the Spearman matrix."""
        return self.spearman_correlation()

    # ============================================================
    # Predicates
    # ============================================================

    def is_elliptical(self) -> bool:
        """A copula is elliptical only in dimension 1 (the uniform law)."""
        return self.d == 1
