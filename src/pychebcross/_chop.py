"""Resolution oracle: decide where a coefficient sequence reaches noise.

The rule looks for a plateau in the monotone envelope of the coefficient
magnitudes and places the cutoff at the point where the envelope, tilted
by a small linear penalty, is lowest.

References
----------
- Aurentz & Trefethen (2017), "Chopping a Chebyshev series",
  ACM Trans. Math. Softw. 43(4)
"""

from __future__ import annotations

import math
from typing import Tuple

import numpy as np

#: Sequences shorter than this are never declared resolved.
MIN_CHOP_LENGTH = 17


def _round_half_away(x: float) -> int:
    """Round half away from zero (``round`` in Python rounds half to even)."""
    return int(math.floor(x + 0.5))


def standard_chop(coeffs: np.ndarray, tol: float) -> int:
    """Return the number of coefficients worth keeping.

    Parameters
    ----------
    coeffs : ndarray of shape (n,)
        Coefficients ordered by increasing degree (or frequency).
    tol : float
        Relative accuracy target, e.g. machine epsilon.

    Returns
    -------
    int
        Cutoff length. A value equal to ``len(coeffs)`` means no plateau
        was found, i.e. the sequence is not resolved.
    """
    if tol >= 1:
        return 1

    b = np.abs(np.asarray(coeffs)).ravel()
    n = len(b)
    if n == 0 or not np.any(b):
        # The zero sequence is resolved at any length.
        return 1

    cutoff = n
    if n < MIN_CHOP_LENGTH:
        return cutoff

    # Monotone non-increasing envelope, normalized to start at 1
    envelope = np.maximum.accumulate(b[::-1])[::-1]
    envelope = envelope / envelope[0]

    # Step 1: find the start of a plateau (1-based indices below)
    plateau_point = 0
    j2 = 0
    for j in range(2, n + 1):
        j2 = _round_half_away(1.25 * j + 5)
        if j2 > n:
            return cutoff
        e1 = envelope[j - 1]
        e2 = envelope[j2 - 1]
        if e1 == 0:
            plateau = True
        else:
            r = 3.0 * (1.0 - math.log(e1) / math.log(tol))
            plateau = e2 / e1 > r
        if plateau:
            plateau_point = j - 1
            break

    # Step 2: pick the cutoff inside the plateau
    if envelope[plateau_point - 1] == 0:
        return plateau_point

    floor = tol ** (7.0 / 6.0)
    j3 = int(np.sum(envelope >= floor))
    if j3 < j2:
        j2 = j3 + 1
        envelope[j2 - 1] = floor
    with np.errstate(divide="ignore"):
        cc = np.log10(envelope[:j2])
    cc = cc + np.linspace(0.0, (-1.0 / 3.0) * math.log10(tol), j2)
    d = int(np.argmin(cc)) + 1
    return max(d - 1, 1)


def happiness_check(coeffs: np.ndarray, tol: float) -> Tuple[bool, float]:
    """Report whether a coefficient sequence is resolved.

    Parameters
    ----------
    coeffs : ndarray of shape (n,)
        Coefficient magnitudes ordered by increasing degree.
    tol : float
        Relative accuracy target.

    Returns
    -------
    happy : bool
        True if a cutoff shorter than the sequence was found.
    accuracy : float
        Largest discarded coefficient relative to the largest coefficient
        when resolved; the relative size of the trailing coefficient
        otherwise. Zero for the zero sequence.
    """
    b = np.abs(np.asarray(coeffs)).ravel()
    scale = float(np.max(b)) if b.size else 0.0
    if scale == 0.0:
        return True, 0.0

    cutoff = standard_chop(b, tol)
    n = len(b)
    if cutoff < n:
        return True, float(np.max(b[cutoff:]) / scale)
    return False, float(b[-1] / scale)
