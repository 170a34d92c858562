"""
Cumulative distribution function of the standard multivariate normal law.

Computes :math:`\\Phi_d(b; R) = P(Z_1 \\le b_1, \\dots, Z_d \\le b_d)` for
:math:`Z \\sim N(0, R)` with a correlation matrix :math:`R`. The method depends
on the effective dimension (coordinates with :math:`b_i = +\\infty` are
marginalized out first):

- :math:`d = 1`: :func:`scipy.special.ndtr`.
- :math:`d = 2`: Plackett's identity

  .. math::
      \\Phi_2(h, k; \\rho) = \\Phi(h)\\Phi(k) + \\frac{1}{2\\pi}
      \\int_0^{\\arcsin\\rho}
      \\exp\\left(-\\frac{h^2 + k^2 - 2hk\\sin\\theta}{2\\cos^2\\theta}\\right) d\\theta

  evaluated with 20-point Gauss-Legendre for :math:`|\\rho| < 0.925` and
  adaptive quadrature otherwise.
- :math:`d = 3`: conditioning on the first coordinate,

  .. math::
      \\Phi_3(b; R) = \\int_{-\\infty}^{b_1} \\phi(x)\\,
      \\Phi_2\\left(\\frac{b_2 - \\rho_{12} x}{s_2}, \\frac{b_3 - \\rho_{13} x}{s_3};
      \\rho_{23|1}\\right) dx

- :math:`d \\geq 4`: Genz's quasi-Monte Carlo integration through
  :class:`scipy.stats.multivariate_normal`, seeded from the settings so that
  the result is a deterministic function of :math:`b`.

All routines are deterministic and free of shared state.

References
----------
Genz, A. (1992). Numerical computation of multivariate normal probabilities.
Journal of Computational and Graphical Statistics, 1, 141-150.

Genz, A. (2004). Numerical computation of rectangular bivariate and trivariate
normal and t probabilities. Statistics and Computing, 14, 251-260.
"""

import logging

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.integrate import quad
from scipy.special import ndtr
from scipy.stats import multivariate_normal

from copulix.config import DEFAULT_SETTINGS, NumericalSettings
from copulix.exceptions import ConvergenceError

logger = logging.getLogger(__name__)

_GL_NODES, _GL_WEIGHTS = np.polynomial.legendre.leggauss(20)
_BIVARIATE_GL_LIMIT = 0.925
_TWO_PI = 2.0 * np.pi


def _plackett_integrand(theta, h, k):
    cos2 = np.cos(theta) ** 2
    return np.exp(-(h * h + k * k - 2.0 * h * k * np.sin(theta)) / (2.0 * cos2)) / _TWO_PI


def bivariate_normal_cdf(h: float, k: float, rho: float) -> float:
    """
    Standard bivariate normal CDF :math:`\\Phi_2(h, k; \\rho)`.

    Parameters
    ----------
    h, k : float
        Upper integration limits (may be infinite).
    rho : float
        Correlation, :math:`|\\rho| < 1`.

    Returns
    -------
    p : float
    """
    h = float(h)
    k = float(k)
    if h == -np.inf or k == -np.inf:
        return 0.0
    if h == np.inf:
        return float(ndtr(k))
    if k == np.inf:
        return float(ndtr(h))
    base = ndtr(h) * ndtr(k)
    if rho == 0.0:
        return float(base)
    upper = np.arcsin(rho)
    if abs(rho) < _BIVARIATE_GL_LIMIT:
        theta = 0.5 * upper * (_GL_NODES + 1.0)
        correction = 0.5 * upper * np.dot(_GL_WEIGHTS, _plackett_integrand(theta, h, k))
    else:
        correction, _ = quad(
            _plackett_integrand, 0.0, upper, args=(h, k),
            epsabs=1e-15, epsrel=1e-12, limit=200,
        )
    return float(np.clip(base + correction, 0.0, 1.0))


def trivariate_normal_cdf(b: NDArray, R: NDArray) -> float:
    """
    Standard trivariate normal CDF by one-dimensional conditioning.

    Parameters
    ----------
    b : ndarray, shape (3,)
        Finite upper limits.
    R : ndarray, shape (3, 3)
        Positive definite correlation matrix.

    Returns
    -------
    p : float
    """
    r12, r13, r23 = R[0, 1], R[0, 2], R[1, 2]
    s2 = np.sqrt(1.0 - r12 * r12)
    s3 = np.sqrt(1.0 - r13 * r13)
    partial = (r23 - r12 * r13) / (s2 * s3)
    b1, b2, b3 = float(b[0]), float(b[1]), float(b[2])

    def integrand(x):
        return np.exp(-0.5 * x * x) / np.sqrt(_TWO_PI) * bivariate_normal_cdf(
            (b2 - r12 * x) / s2, (b3 - r13 * x) / s3, partial
        )

    value, _ = quad(integrand, -np.inf, b1, epsabs=1e-13, epsrel=1e-10, limit=200)
    return float(np.clip(value, 0.0, 1.0))


def genz_normal_cdf(
    b: NDArray,
    R: NDArray,
    settings: NumericalSettings = DEFAULT_SETTINGS,
) -> float:
    """
    Multivariate normal CDF by Genz's quasi-Monte Carlo method.

    Delegates to :meth:`scipy.stats.multivariate_normal.cdf`. A fresh frozen
    distribution seeded with ``settings.cdf_seed`` is built on every call, so
    the result is a deterministic function of ``b``.

    Parameters
    ----------
    b : ndarray, shape (d,)
        Finite upper limits.
    R : ndarray, shape (d, d)
        Positive definite correlation matrix.
    settings : NumericalSettings, optional
        Supplies the target absolute error, the integrand evaluation budget
        per dimension and the seed.

    Returns
    -------
    p : float

    Raises
    ------
    ConvergenceError
        If the integration returns a non-finite value.
    """
    b = np.asarray(b, dtype=float)
    d = len(b)
    maxpts = settings.cdf_max_points * d
    law = multivariate_normal(
        np.zeros(d), R,
        seed=settings.cdf_seed,
        maxpts=maxpts,
        abseps=settings.cdf_absolute_error,
        releps=0.0,
    )
    value = float(law.cdf(b))
    logger.debug(
        "Genz normal CDF, d=%d: maxpts=%d, abseps=%.1e, value=%.10g",
        d, maxpts, settings.cdf_absolute_error, value,
    )
    if not np.isfinite(value):
        raise ConvergenceError(
            f"Normal CDF integration failed in dimension {d} with {maxpts} points"
        )
    return float(np.clip(value, 0.0, 1.0))


def standard_normal_cdf(
    b: ArrayLike,
    R: NDArray,
    settings: NumericalSettings = DEFAULT_SETTINGS,
) -> float:
    """
    CDF of :math:`N(0, R)` at a single point ``b``.

    Coordinates equal to :math:`+\\infty` are marginalized out; any coordinate
    equal to :math:`-\\infty` gives 0.

    Parameters
    ----------
    b : array_like, shape (d,)
        Upper limits in standardized units.
    R : ndarray, shape (d, d)
        Correlation matrix (positive definite).
    settings : NumericalSettings, optional
        Settings of the Genz integration (:math:`d \\geq 4`).

    Returns
    -------
    p : float
    """
    b = np.asarray(b, dtype=float)
    if np.any(np.isnan(b)):
        return np.nan
    if np.any(b == -np.inf):
        return 0.0
    keep = b < np.inf
    if not np.any(keep):
        return 1.0
    if not np.all(keep):
        b = b[keep]
        R = R[np.ix_(keep, keep)]

    d = len(b)
    if d == 1:
        return float(ndtr(b[0]))
    if d == 2:
        return bivariate_normal_cdf(b[0], b[1], R[0, 1])
    if d == 3:
        return trivariate_normal_cdf(b, R)
    return genz_normal_cdf(b, R, settings)
