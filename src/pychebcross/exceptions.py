"""Exceptions and warnings raised while building low-rank approximations.

Malformed input (a degenerate domain, a negative fixed rank, an unknown
grid family) and functions that evaluate to Inf or NaN are fatal and
raise immediately. Non-convergence is not an error: the builder returns
its best factorization and emits one of the warnings below.
"""


class Cross2DError(Exception):
    """Base class for all pychebcross errors."""


class InvalidDomainError(Cross2DError, ValueError):
    """The domain is malformed or degenerate."""


class InvalidRankError(Cross2DError, ValueError):
    """A fixed rank was requested that is not a non-negative integer."""


class UnsupportedRepresentationError(Cross2DError, ValueError):
    """The requested grid family is not known."""


class NonFiniteResultError(Cross2DError, ArithmeticError):
    """The function returned Inf when evaluated."""


class InvalidResultError(Cross2DError, ArithmeticError):
    """The function returned NaN when evaluated."""


class Cross2DWarning(UserWarning):
    """Base class for build diagnostics."""


class RankExceededWarning(Cross2DWarning):
    """The function is not numerically low rank under the rank cap."""


class UnresolvedMaxLengthWarning(Cross2DWarning):
    """A row or column slice stayed unresolved at the maximum length."""
