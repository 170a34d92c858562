"""
Conversions between rank correlations and the normal copula correlation.

For the normal copula with linear correlation :math:`\\rho`, Spearman's rho
and Kendall's tau have closed forms:

.. math::
    \\rho_S = \\frac{6}{\\pi}\\arcsin\\frac{\\rho}{2}, \\qquad
    \\tau = \\frac{2}{\\pi}\\arcsin\\rho

with inverses

.. math::
    \\rho = 2\\sin\\frac{\\pi\\rho_S}{6}, \\qquad
    \\rho = \\sin\\frac{\\pi\\tau}{2}

The conversions act elementwise on correlation matrices and keep the unit
diagonal. Inputs are validated with :func:`validate_correlation_matrix`; the
output of an inverse conversion is not guaranteed to be positive definite
(use :func:`nearest_correlation` when building a copula from estimates).

Empirical estimators :func:`empirical_spearman` and :func:`empirical_kendall`
compute the rank-correlation matrices of a sample.
"""

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.stats import kendalltau, rankdata

from copulix.exceptions import InvalidArgumentError, InvalidParameterError
from copulix.utils.linalg import nearest_correlation

__all__ = [
    'validate_correlation_matrix',
    'spearman_from_correlation',
    'correlation_from_spearman',
    'kendall_from_correlation',
    'correlation_from_kendall',
    'empirical_spearman',
    'empirical_kendall',
    'nearest_correlation',
]


def validate_correlation_matrix(R: ArrayLike, *, name: str = "Correlation matrix") -> NDArray:
    """
    Check that ``R`` is a valid correlation matrix.

    Parameters
    ----------
    R : array_like, shape (d, d)
        Candidate matrix. A scalar is read as a 1x1 matrix.
    name : str, optional
        Name used in error messages.

    Returns
    -------
    R : ndarray, shape (d, d)
        Float copy of the input, exactly symmetrized.

    Raises
    ------
    InvalidParameterError
        If ``R`` is not square, not finite, not symmetric, does not have a
        unit diagonal, or has entries outside :math:`[-1, 1]`.
    """
    R = np.array(R, dtype=float)
    if R.ndim == 0:
        R = R.reshape(1, 1)
    if R.ndim != 2 or R.shape[0] != R.shape[1] or R.shape[0] == 0:
        raise InvalidParameterError(f"{name} must be a non-empty square matrix, got shape {R.shape}")
    if not np.all(np.isfinite(R)):
        raise InvalidParameterError(f"{name} must be finite")
    if not np.allclose(R, R.T, rtol=0.0, atol=1e-12):
        raise InvalidParameterError(f"{name} must be symmetric")
    if not np.allclose(np.diag(R), 1.0, rtol=0.0, atol=1e-12):
        raise InvalidParameterError(f"{name} must have a unit diagonal")
    if np.any(np.abs(R) > 1.0):
        raise InvalidParameterError(f"{name} entries must lie in [-1, 1]")
    R = 0.5 * (R + R.T)
    np.fill_diagonal(R, 1.0)
    return R


def _elementwise(R: NDArray, func) -> NDArray:
    out = func(R)
    np.fill_diagonal(out, 1.0)
    return out


def spearman_from_correlation(R: ArrayLike) -> NDArray:
    """
    Spearman correlation matrix of the normal copula with correlation ``R``.

    Parameters
    ----------
    R : array_like, shape (d, d)
        Linear correlation matrix.

    Returns
    -------
    S : ndarray, shape (d, d)
    """
    R = validate_correlation_matrix(R)
    return _elementwise(R, lambda r: 6.0 / np.pi * np.arcsin(0.5 * r))


def correlation_from_spearman(S: ArrayLike) -> NDArray:
    """
    Normal copula correlation matrix matching a Spearman correlation matrix.

    Parameters
    ----------
    S : array_like, shape (d, d)
        Spearman rank-correlation matrix.

    Returns
    -------
    R : ndarray, shape (d, d)

    Examples
    --------
    >>> S = np.array([[1.0, 0.25], [0.25, 1.0]])
    >>> R = correlation_from_spearman(S)
    >>> round(float(R[0, 1]), 6)
    0.261052
    """
    S = validate_correlation_matrix(S, name="Spearman correlation matrix")
    return _elementwise(S, lambda s: 2.0 * np.sin(np.pi / 6.0 * s))


def kendall_from_correlation(R: ArrayLike) -> NDArray:
    """
    Kendall tau matrix of the normal copula with correlation ``R``.

    Parameters
    ----------
    R : array_like, shape (d, d)
        Linear correlation matrix.

    Returns
    -------
    T : ndarray, shape (d, d)
    """
    R = validate_correlation_matrix(R)
    return _elementwise(R, lambda r: 2.0 / np.pi * np.arcsin(r))


def correlation_from_kendall(T: ArrayLike) -> NDArray:
    """
    Normal copula correlation matrix matching a Kendall tau matrix.

    Parameters
    ----------
    T : array_like, shape (d, d)
        Kendall tau matrix.

    Returns
    -------
    R : ndarray, shape (d, d)
    """
    T = validate_correlation_matrix(T, name="Kendall tau matrix")
    return _elementwise(T, lambda t: np.sin(0.5 * np.pi * t))


def _as_sample(X: ArrayLike) -> NDArray:
    X = np.asarray(X, dtype=float)
    if X.ndim == 1:
        X = X.reshape(-1, 1)
    if X.ndim != 2 or X.shape[0] < 2:
        raise InvalidArgumentError(f"Expected a sample of shape (n, d) with n >= 2, got {X.shape}")
    return X


def empirical_spearman(X: ArrayLike) -> NDArray:
    """
    Empirical Spearman correlation matrix of a sample.

    Parameters
    ----------
    X : array_like, shape (n, d)
        Sample.

    Returns
    -------
    S : ndarray, shape (d, d)
        Pearson correlation of the column ranks (average ranks for ties).
    """
    X = _as_sample(X)
    ranks = rankdata(X, axis=0)
    S = np.atleast_2d(np.corrcoef(ranks, rowvar=False))
    np.fill_diagonal(S, 1.0)
    return S


def empirical_kendall(X: ArrayLike) -> NDArray:
    """
    Empirical Kendall tau matrix of a sample.

    Parameters
    ----------
    X : array_like, shape (n, d)
        Sample.

    Returns
    -------
    T : ndarray, shape (d, d)
    """
    X = _as_sample(X)
    d = X.shape[1]
    T = np.eye(d)
    for i in range(d):
        for j in range(i + 1, d):
            T[i, j] = T[j, i] = kendalltau(X[:, i], X[:, j]).statistic
    return T
