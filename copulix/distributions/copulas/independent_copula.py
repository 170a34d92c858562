"""
Independent (product) copula, :math:`C(u) = \\prod_i u_i`.

The copula of independent components. It coincides with the normal copula
for :math:`R = I`, so it counts as an elliptical copula.
"""

from typing import List, Optional, Union

import numpy as np
from numpy.typing import ArrayLike, NDArray

from copulix.base import Copula
from copulix.config import NumericalSettings
from copulix.exceptions import InvalidParameterError
from copulix.params import IndependentCopulaParams
from copulix.rng import as_random_source


class IndependentCopula(Copula):
    """
    Independent copula of dimension ``d``.

    Parameters
    ----------
    d : int
        Dimension, at least 1.
    settings : NumericalSettings, optional
        Numerical settings.

    Examples
    --------
    >>> copula = IndependentCopula(2)
    >>> copula.cdf([0.5, 0.5])
    0.25
    """

    def __init__(self, d: int, *, settings: Optional[NumericalSettings] = None):
        super().__init__(settings=settings)
        if not isinstance(d, (int, np.integer)) or isinstance(d, bool) or d < 1:
            raise InvalidParameterError(f"Dimension must be a positive integer, got {d!r}")
        self._d = int(d)

    @property
    def d(self) -> int:
        """Dimension of the copula."""
        return self._d

    def _compute_classical_params(self):
        return IndependentCopulaParams(d=self._d)

    def logpdf(self, x: ArrayLike) -> Union[float, NDArray]:
        """Log density: 0 on the closed unit cube, ``-inf`` elsewhere."""
        u, single = self._as_points(x)
        inside = np.all((u >= 0.0) & (u <= 1.0), axis=1)
        return self._output(np.where(inside, 0.0, -np.inf), single)

    def ddf(self, x: ArrayLike) -> NDArray:
        """Gradient of the density, identically zero."""
        u, single = self._as_points(x)
        grad = np.zeros_like(u)
        return grad[0] if single else grad

    def cdf(self, x: ArrayLike) -> Union[float, NDArray]:
        """:math:`C(u) = \\prod_i \\min(\\max(u_i, 0), 1)`."""
        u, single = self._as_points(x)
        return self._output(np.prod(np.clip(u, 0.0, 1.0), axis=1), single)

    def sf(self, x: ArrayLike) -> Union[float, NDArray]:
        """:math:`\\bar C(u) = \\prod_i (1 - u_i)` clipped to the cube."""
        u, single = self._as_points(x)
        return self._output(np.prod(np.clip(1.0 - u, 0.0, 1.0), axis=1), single)

    def _quantile_level(self, p: float, tail: bool = False) -> float:
        # C(q, ..., q) = q^d, and the survival copula is again the product
        return p ** (1.0 / self._d)

    def rvs(self, size=None, random_state=None) -> NDArray:
        """
        Generate independent uniforms.

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
        u = source.uniform((n, self._d))
        return u[0] if size is None else u

    def spearman_correlation(self) -> NDArray:
        return np.eye(self._d)

    def kendall_tau(self) -> NDArray:
        return np.eye(self._d)

    def has_elliptical_copula(self) -> bool:
        return True

    def has_independent_copula(self) -> bool:
        return True

    def _marginal(self, indices: List[int]) -> 'IndependentCopula':
        return IndependentCopula(len(indices), settings=self._settings)

    def __repr__(self) -> str:
        return f"IndependentCopula(d={self._d})"
