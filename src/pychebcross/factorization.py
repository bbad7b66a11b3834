"""Low-rank factorization of a bivariate function.

A :class:`Factorization` represents

.. math::

    f(x, y) \\approx \\sum_{k=1}^{r} \\frac{c_k(y)\\, r_k(x)}{p_k}

with column functions :math:`c_k` of ``y``, row functions :math:`r_k` of
``x`` and pivot values :math:`p_k`. Terms with a zero pivot contribute
nothing, which is how fixed-rank padding and the zero function are stored.
"""

from __future__ import annotations

from typing import Callable, Optional, Sequence, Tuple

import numpy as np

from pychebcross._sampling import evaluate
from pychebcross.exceptions import InvalidRankError
from pychebcross.quasimatrix import Quasimatrix

#: The sample test passes when the max error is within this multiple of
#: the construction tolerance.
SAMPLE_TEST_FACTOR = 1e3


class Factorization:
    """Columns, pivots and rows of a cross approximation.

    Parameters
    ----------
    cols : Quasimatrix
        Column functions of ``y`` on ``[y_lo, y_hi]``.
    pivot_values : array_like of shape (r,)
        Pivot values in discovery order.
    rows : Quasimatrix
        Row functions of ``x`` on ``[x_lo, x_hi]``.
    pivot_locations : array_like of shape (r, 2)
        ``(x, y)`` coordinates of the pivots.
    domain : sequence of 4 floats
        ``(x_lo, x_hi, y_lo, y_hi)``.
    """

    def __init__(
        self,
        cols: Quasimatrix,
        pivot_values,
        rows: Quasimatrix,
        pivot_locations,
        domain: Sequence[float],
    ):
        pivot_values = np.atleast_1d(np.asarray(pivot_values))
        if not (len(cols) == len(rows) == len(pivot_values)):
            raise ValueError(
                f"Inconsistent factorization: {len(cols)} columns, "
                f"{len(pivot_values)} pivots, {len(rows)} rows"
            )
        self.cols = cols
        self.rows = rows
        self.pivot_values = pivot_values
        self.pivot_locations = np.asarray(pivot_locations, dtype=float).reshape(-1, 2)
        self.domain = tuple(float(v) for v in domain)

    @classmethod
    def zero(
        cls,
        domain: Sequence[float],
        row_family="chebyshev2",
        col_family="chebyshev2",
    ) -> "Factorization":
        """The identically zero function: one zero pivot at the domain midpoint."""
        x_lo, x_hi, y_lo, y_hi = domain
        midpoint = [[0.5 * (x_lo + x_hi), 0.5 * (y_lo + y_hi)]]
        return cls(
            Quasimatrix.zeros(1, (y_lo, y_hi), col_family),
            np.zeros(1),
            Quasimatrix.zeros(1, (x_lo, x_hi), row_family),
            midpoint,
            domain,
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def is_zero(self) -> bool:
        """True if every pivot is zero (the identically zero function)."""
        return not np.any(self.pivot_values)

    @property
    def rank(self) -> int:
        """Number of terms; 0 for the zero function with a single zero pivot."""
        n = len(self.pivot_values)
        if n == 0 or (n == 1 and self.pivot_values[0] == 0):
            return 0
        return n

    def _inverse_pivots(self) -> np.ndarray:
        p = self.pivot_values
        inv = np.zeros(p.shape, dtype=np.result_type(p, float))
        nonzero = p != 0
        inv[nonzero] = 1.0 / p[nonzero]
        return inv

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate(self, x, y):
        """Evaluate at points ``(x, y)``; ``x`` and ``y`` broadcast together.

        Returns a float for scalar input, otherwise an ndarray of the
        broadcast shape.
        """
        x, y = np.broadcast_arrays(np.asarray(x, dtype=float), np.asarray(y, dtype=float))
        shape = x.shape
        C = self.cols(y.ravel())
        R = self.rows(x.ravel())
        vals = np.sum((C * self._inverse_pivots()) * R, axis=1)
        if shape == ():
            return vals[0].item()
        return vals.reshape(shape)

    __call__ = evaluate

    def evaluate_grid(self, x, y) -> np.ndarray:
        """Evaluate on the tensor grid ``x`` by ``y``.

        Returns
        -------
        ndarray of shape (len(y), len(x))
        """
        C = self.cols(y)
        R = self.rows(x)
        return (C * self._inverse_pivots()) @ R.T

    def vscale(self) -> float:
        """Approximate max-norm, sampled on the slice grids."""
        x = self.rows.family.grid(max(self.rows.length, self.rows.family.min_samples),
                                  self.domain[:2])
        y = self.cols.family.grid(max(self.cols.length, self.cols.family.min_samples),
                                  self.domain[2:])
        return float(np.max(np.abs(self.evaluate_grid(x, y))))

    def __repr__(self) -> str:
        return (
            f"Factorization(rank={self.rank}, "
            f"domain={list(self.domain)}, "
            f"lengths=({self.rows.length}, {self.cols.length}))"
        )


# ======================================================================
# Rank normalization
# ======================================================================

def normalize_rank(fact: Factorization, target_rank: int) -> Factorization:
    """Truncate or zero-pad a factorization to a fixed rank.

    Parameters
    ----------
    fact : Factorization
        Factorization in discovery order.
    target_rank : int
        0 keeps the adaptive rank. A larger rank than ``fact`` has is
        reached by appending zero columns, rows and pivots; a smaller one
        by keeping the first ``target_rank`` terms.

    Returns
    -------
    Factorization
        A new factorization; ``fact`` is not modified.

    Raises
    ------
    InvalidRankError
        If ``target_rank`` is negative or not an integer.
    """
    if isinstance(target_rank, bool) or not isinstance(target_rank, (int, np.integer)):
        raise InvalidRankError(f"Fixed rank must be an integer, got {target_rank!r}")
    if target_rank < 0:
        raise InvalidRankError(f"Fixed rank must be non-negative, got {target_rank}")

    current = len(fact.pivot_values)
    if target_rank == 0 or target_rank == current:
        return Factorization(fact.cols, fact.pivot_values.copy(), fact.rows,
                             fact.pivot_locations.copy(), fact.domain)

    if current > target_rank:
        keep = slice(0, target_rank)
        return Factorization(
            fact.cols.select(keep),
            fact.pivot_values[keep].copy(),
            fact.rows.select(keep),
            fact.pivot_locations[keep].copy(),
            fact.domain,
        )

    extra = target_rank - current
    x_lo, x_hi, y_lo, y_hi = fact.domain
    midpoint = np.array([[0.5 * (x_lo + x_hi), 0.5 * (y_lo + y_hi)]])
    return Factorization(
        fact.cols.pad_columns(extra),
        np.concatenate([fact.pivot_values, np.zeros(extra, dtype=fact.pivot_values.dtype)]),
        fact.rows.pad_columns(extra),
        np.vstack([fact.pivot_locations, np.repeat(midpoint, extra, axis=0)]),
        fact.domain,
    )


# ======================================================================
# Sample test
# ======================================================================

def sample_test(
    fact: Factorization,
    func: Callable,
    tol: float,
    vectorize: bool = False,
    n_points: int = 8,
    seed: Optional[int] = 0,
) -> Tuple[bool, float]:
    """Spot-check a factorization against fresh samples of ``func``.

    Draws ``n_points`` uniformly random interior coordinates in each
    direction (almost surely off every construction grid) and compares
    ``func`` with the factorization on their tensor grid.

    Parameters
    ----------
    fact : Factorization
        Approximation to check.
    func : callable
        The function ``f(x, y)`` the approximation was built from.
    tol : float
        Absolute construction tolerance.
    vectorize : bool, optional
        Evaluate ``func`` point by point. Default is False.
    n_points : int, optional
        Points per direction. Default is 8.
    seed : int or None, optional
        Seed for the point generator. Default is 0.

    Returns
    -------
    passed : bool
        True if the max error is at most ``SAMPLE_TEST_FACTOR * tol``.
    max_error : float
        Largest absolute error at the test points.
    """
    rng = np.random.default_rng(seed)
    x_lo, x_hi, y_lo, y_hi = fact.domain
    x = np.sort(rng.uniform(x_lo, x_hi, size=n_points))
    y = np.sort(rng.uniform(y_lo, y_hi, size=n_points))

    exact = evaluate(func, x, y, vectorize)
    approx = fact.evaluate_grid(x, y)
    max_error = float(np.max(np.abs(exact - approx)))
    return max_error <= SAMPLE_TEST_FACTOR * tol, max_error
