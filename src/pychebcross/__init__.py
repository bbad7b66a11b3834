"""PyChebCross: Adaptive low-rank approximation of bivariate functions.

Provides the :class:`ChebyshevCross2D` class and the :func:`construct`
builder, which approximate ``f(x, y)`` on a rectangle by a sum of
products of univariate Chebyshev (or Fourier) expansions,
``sum_k c_k(y) r_k(x) / p_k``, found by cross approximation with
complete pivoting.

Example
-------
>>> import numpy as np
>>> from pychebcross import ChebyshevCross2D
>>> cc = ChebyshevCross2D(lambda x, y: np.exp(x) * np.sin(y))
>>> cc.build(verbose=False)
>>> cc.rank
1
>>> round(cc.eval(0.5, 0.3), 4)
0.4872
"""

from pychebcross._version import __version__
from pychebcross.exceptions import (
    Cross2DError,
    Cross2DWarning,
    InvalidDomainError,
    InvalidRankError,
    InvalidResultError,
    NonFiniteResultError,
    RankExceededWarning,
    UnresolvedMaxLengthWarning,
    UnsupportedRepresentationError,
)
from pychebcross.factorization import Factorization, normalize_rank, sample_test
from pychebcross.lowrank import BuildResult, BuildState, ChebyshevCross2D, construct
from pychebcross.quasimatrix import Quasimatrix

__all__ = [
    "ChebyshevCross2D",
    "construct",
    "BuildResult",
    "BuildState",
    "Factorization",
    "Quasimatrix",
    "normalize_rank",
    "sample_test",
    "Cross2DError",
    "Cross2DWarning",
    "InvalidDomainError",
    "InvalidRankError",
    "InvalidResultError",
    "NonFiniteResultError",
    "RankExceededWarning",
    "UnresolvedMaxLengthWarning",
    "UnsupportedRepresentationError",
    "__version__",
]
