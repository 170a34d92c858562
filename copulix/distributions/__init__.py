"""Distribution families: copulas and multivariate distributions."""

from .copulas import IndependentCopula, NormalCopula
from .multivariate import MultivariateNormal

__all__ = [
    "IndependentCopula",
    "NormalCopula",
    "MultivariateNormal",
]
