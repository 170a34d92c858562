"""
Bounded root finding used by the quantile and confidence-region code.

Multivariate quantiles are searched along the curve of points whose
coordinates all share the same marginal probability level :math:`q`,

.. math::
    x(q) = (F_1^{-1}(q), \\dots, F_d^{-1}(q)),

so that :math:`q \\mapsto F(x(q))` is a monotone scalar function and a
bracketing root finder applies. For any copula the Fréchet bounds

.. math::
    \\max(0, d q - d + 1) \\le C(q, \\dots, q) \\le q

confine the solution of :math:`C(q, \\dots, q) = p` to
:math:`[p, (p + d - 1) / d]`, which is the default bracket.
"""

import logging
from typing import Callable, Tuple

import numpy as np
from scipy.optimize import brentq

from copulix.config import NumericalSettings
from copulix.exceptions import ConvergenceError, InvalidArgumentError

logger = logging.getLogger(__name__)

_TINY = np.finfo(float).tiny
_ONE_MINUS = 1.0 - np.finfo(float).epsneg


def validate_probability(p, *, name: str = "p") -> float:
    """
    Check that ``p`` lies in the open interval :math:`(0, 1)`.

    Raises
    ------
    InvalidArgumentError
        If ``p`` is not a finite real strictly between 0 and 1.
    """
    try:
        value = float(p)
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"{name} must be a real number, got {p!r}") from None
    if not 0.0 < value < 1.0:
        raise InvalidArgumentError(f"{name} must lie in (0, 1), got {p!r}")
    return value


def frechet_bracket(p: float, d: int) -> Tuple[float, float]:
    """Bracket of the common marginal level solving ``C(q, ..., q) = p``."""
    return p, 1.0 - (1.0 - p) / d


def solve_level(
    func: Callable[[float], float],
    target: float,
    bracket: Tuple[float, float],
    settings: NumericalSettings,
    *,
    what: str = "quantile",
) -> float:
    """
    Find :math:`q \\in (0, 1)` with ``func(q) == target`` for nondecreasing ``func``.

    Parameters
    ----------
    func : callable
        Nondecreasing function of the marginal level.
    target : float
        Target value.
    bracket : tuple of float
        Initial bracket. When numerical noise makes it fail to enclose a sign
        change, the whole interval :math:`(0, 1)` is used instead.
    settings : NumericalSettings
        Tolerances and iteration budget.
    what : str, optional
        Name of the computed quantity, used in log records and errors.

    Returns
    -------
    q : float

    Raises
    ------
    ConvergenceError
        If no sign change can be bracketed or Brent's method exhausts
        ``settings.quantile_max_iterations``.
    """
    lo = min(max(bracket[0], _TINY), _ONE_MINUS)
    hi = min(max(bracket[1], _TINY), _ONE_MINUS)
    if lo == hi:
        return lo

    f_lo = func(lo) - target
    f_hi = func(hi) - target
    if f_lo == 0.0:
        return lo
    if f_hi == 0.0:
        return hi
    if f_lo > 0.0 or f_hi < 0.0:
        logger.debug(
            "%s: bracket [%.6g, %.6g] does not enclose the root, widening", what, lo, hi
        )
        lo, hi = _TINY, _ONE_MINUS
        f_lo = func(lo) - target
        f_hi = func(hi) - target
        if f_lo > 0.0 or f_hi < 0.0:
            raise ConvergenceError(
                f"Could not bracket the {what} for target {target:.6g}: "
                f"f({lo:.3g})={f_lo:.3g}, f({hi:.3g})={f_hi:.3g}"
            )

    root, result = brentq(
        lambda q: func(q) - target, lo, hi,
        xtol=settings.quantile_xtol,
        rtol=settings.quantile_rtol,
        maxiter=settings.quantile_max_iterations,
        full_output=True,
        disp=False,
    )
    if not result.converged:
        raise ConvergenceError(
            f"{what} solver did not converge in {result.iterations} iterations "
            f"({result.flag})"
        )
    logger.debug(
        "%s: level %.12g after %d iterations, %d evaluations",
        what, root, result.iterations, result.function_calls,
    )
    return float(root)
