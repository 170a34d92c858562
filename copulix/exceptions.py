"""
Exception hierarchy for copulix.

Every error derives from :class:`CopulixError` and from the builtin exception
that callers would naturally catch, so ``except ValueError`` keeps working
for parameter and argument problems.

- :class:`InvalidParameterError`: a distribution cannot be constructed from
  the given parameters (e.g. a correlation matrix that is not positive
  definite). The object never comes into existence.
- :class:`InvalidArgumentError`: malformed call-site input such as an empty
  index list or a probability outside :math:`(0, 1)`.
- :class:`DimensionMismatchError`: a point or index does not agree with the
  dimension of the distribution.
- :class:`ConvergenceError`: an iterative solver or adaptive integration ran
  out of its iteration budget.
- :class:`UnsupportedOperationError`: the operation is not defined for this
  family or dimension.
"""


class CopulixError(Exception):
    """Base class for all copulix errors."""


class InvalidParameterError(CopulixError, ValueError):
    """Distribution parameters violate the family constraints."""


class InvalidArgumentError(CopulixError, ValueError):
    """A call-site argument is malformed."""


class DimensionMismatchError(CopulixError, ValueError):
    """A point or index set does not match the distribution dimension."""


class ConvergenceError(CopulixError, RuntimeError):
    """An iterative algorithm exhausted its budget without converging."""


class UnsupportedOperationError(CopulixError, NotImplementedError):
    """The operation is undefined for this family or dimension."""
