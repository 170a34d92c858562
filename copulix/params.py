"""
Frozen dataclass parameter containers for all distributions.

Each distribution's classical parameters are represented as a frozen dataclass
with ``slots=True``. The containers expose the complete parameter state of a
distribution, so that ``Family.from_classical_params(**params)`` rebuilds an
equal instance:

- **IDE autocompletion**: ``params.corr`` instead of ``params['corr']``
- **Immutability**: Prevents accidental reassignment of parameters
- **Dict conversion**: ``dataclasses.asdict(params)`` when needed

Examples
--------
>>> import numpy as np
>>> from copulix.params import NormalCopulaParams
>>> p = NormalCopulaParams(corr=np.eye(2))
>>> p.corr.shape
(2, 2)
>>> p.corr = np.eye(3)  # Raises FrozenInstanceError

Notes
-----
The ``frozen=True`` flag prevents attribute reassignment, but numpy arrays
are internally mutable. Distributions hand out copies, so writing into a
returned array never changes the distribution.
"""

from dataclasses import dataclass, fields
import numpy as np


class _ParamsBase:
    """Mixin providing dict-style access on frozen dataclass params.

    Allows both ``params.corr`` and ``params['corr']`` access styles,
    plus ``items()``, ``keys()``, ``values()`` for iteration.
    """

    __slots__ = ()

    def __getitem__(self, key: str):
        try:
            return getattr(self, key)
        except AttributeError:
            raise KeyError(key)

    def __contains__(self, key: str) -> bool:
        return hasattr(self, key)

    def keys(self):
        """Yield field names."""
        return (f.name for f in fields(self))

    def values(self):
        """Yield field values."""
        return (getattr(self, f.name) for f in fields(self))

    def items(self):
        """Yield ``(name, value)`` pairs."""
        return ((f.name, getattr(self, f.name)) for f in fields(self))


# ============================================================================
# Copula parameters
# ============================================================================

@dataclass(frozen=True, slots=True)
class NormalCopulaParams(_ParamsBase):
    """
    Classical parameters for the normal (Gaussian) copula.

    Attributes
    ----------
    corr : np.ndarray
        Linear correlation matrix :math:`R`, shape ``(d, d)``, symmetric
        positive definite with unit diagonal.
    """
    corr: np.ndarray


@dataclass(frozen=True, slots=True)
class IndependentCopulaParams(_ParamsBase):
    """
    Classical parameters for the independent (product) copula.

    Attributes
    ----------
    d : int
        Dimension :math:`d \\geq 1`.
    """
    d: int


# ============================================================================
# Multivariate distribution parameters
# ============================================================================

@dataclass(frozen=True, slots=True)
class MultivariateNormalParams(_ParamsBase):
    """
    Classical parameters for the Multivariate Normal distribution.

    Attributes
    ----------
    mu : np.ndarray
        Mean vector, shape ``(d,)``.
    sigma : np.ndarray
        Covariance matrix :math:`\\Sigma`, shape ``(d, d)``.
    """
    mu: np.ndarray
    sigma: np.ndarray
