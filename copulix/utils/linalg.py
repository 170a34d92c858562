"""Linear algebra utilities for copulix.

Provides a strict Cholesky factorization used to validate user parameters and
an eigenvalue-based repair of estimated correlation matrices.
"""

import logging

import numpy as np
from numpy.typing import NDArray
from scipy.linalg import cholesky, LinAlgError

from copulix.exceptions import InvalidParameterError

logger = logging.getLogger(__name__)


def cholesky_factor(A: NDArray, *, name: str = "Matrix") -> NDArray:
    r"""
    Lower Cholesky factor of a user-supplied symmetric positive definite matrix.

    Unlike :func:`nearest_correlation`, no regularization is ever applied:
    a matrix that is not positive definite is rejected.

    Parameters
    ----------
    A : ndarray, shape (d, d)
        Symmetric positive definite matrix.
    name : str, optional
        Name used in the error message.

    Returns
    -------
    L : ndarray, shape (d, d)
        Lower triangular factor with :math:`L L^T = A`.

    Raises
    ------
    InvalidParameterError
        If ``A`` is not positive definite.
    """
    try:
        return cholesky(A, lower=True)
    except LinAlgError:
        min_eig = np.linalg.eigvalsh(A)[0]
        raise InvalidParameterError(
            f"{name} must be positive definite. Min eigenvalue: {min_eig:.6g}"
        ) from None


def nearest_correlation(R: NDArray, *, eps: float = 1e-8) -> NDArray:
    r"""
    Repair an estimated correlation matrix into a positive definite one.

    If :math:`R` is not positive definite, adds
    :math:`(|\lambda_{\min}| + \varepsilon) I` and rescales the result back to
    a unit diagonal:

    .. math::
        R' = D^{-1/2} (R + \delta I) D^{-1/2}, \quad D = \mathrm{diag}(R + \delta I)

    Parameters
    ----------
    R : ndarray, shape (d, d)
        Symmetric matrix with unit diagonal, typically converted from an
        empirical rank correlation.
    eps : float, optional
        Margin added beyond :math:`|\lambda_{\min}|`. Default is ``1e-8``.

    Returns
    -------
    R_pd : ndarray, shape (d, d)
        Positive definite correlation matrix. ``R`` itself (as a copy) when it
        is already positive definite.

    Notes
    -----
    Intended for sample-based factories only. Matrices passed to distribution
    constructors are validated strictly with :func:`cholesky_factor`.

    Examples
    --------
    >>> R = np.array([[1.0, 0.9, -0.9], [0.9, 1.0, 0.9], [-0.9, 0.9, 1.0]])
    >>> R_pd = nearest_correlation(R)
    >>> bool(np.all(np.linalg.eigvalsh(R_pd) > 0))
    True
    """
    R = 0.5 * (np.asarray(R, dtype=float) + np.asarray(R, dtype=float).T)
    try:
        cholesky(R, lower=True)
        return R.copy()
    except LinAlgError:
        d = R.shape[0]
        min_eig = np.linalg.eigvalsh(R)[0]
        jitter = max(eps, abs(min_eig) + eps)
        logger.debug("Regularizing correlation matrix with jitter %.3g", jitter)
        A = R + jitter * np.eye(d)
        s = np.sqrt(np.diag(A))
        A = A / np.outer(s, s)
        np.fill_diagonal(A, 1.0)
        return A
