"""Cross approximation with complete pivoting on a sample matrix.

Gaussian elimination with complete pivoting, stopped early: at each step
the entry of largest magnitude in the residual is chosen as the pivot and
a rank-1 term is subtracted. Stopping when the residual falls below a
tolerance reveals the numerical rank of the sampled function, and the
extracted rows and columns are the slices of a separable expansion.

References
----------
- Townsend & Trefethen (2013), "An extension of Chebfun to two
  dimensions", SIAM J. Sci. Comput. 35(6)
- Bebendorf (2000), "Approximation of boundary element matrices",
  Numer. Math. 86
"""

from __future__ import annotations

from typing import NamedTuple, Optional, Tuple

import numpy as np


class CrossResult(NamedTuple):
    """Output of :func:`complete_aca`."""

    pivot_values: np.ndarray
    """Pivot values in discovery order, shape (rank,)."""
    pivot_positions: np.ndarray
    """(row, col) index of each pivot, shape (rank, 2)."""
    rows: np.ndarray
    """Residual rows at each pivot, shape (rank, n_cols)."""
    cols: np.ndarray
    """Residual columns at each pivot, shape (n_rows, rank)."""
    failed: bool
    """True if elimination stopped at the rank cap instead of the tolerance."""


def _next_pivot(A: np.ndarray, tol: float) -> Tuple[float, int, int]:
    """Locate the next pivot, preferring the diagonal of square matrices.

    Complete pivoting and Cholesky coincide on nonnegative definite
    matrices, whose absolute maximum lies on the diagonal, except that an
    off-diagonal entry may tie with it. Biasing toward the diagonal breaks
    such ties.
    """
    absA = np.abs(A)
    ind = int(np.argmax(absA))
    row, col = np.unravel_index(ind, A.shape)
    inf_norm = float(absA[row, col])

    n_rows, n_cols = A.shape
    if n_rows == n_cols:
        diag = np.diagonal(absA)
        k = int(np.argmax(diag))
        if diag[k] - inf_norm > -tol:
            return float(diag[k]), k, k
    return inf_norm, int(row), int(col)


def complete_aca(
    A: np.ndarray,
    tol: float,
    rank_cap_factor: Optional[float] = 4,
) -> CrossResult:
    """Adaptive cross approximation with complete pivoting.

    Parameters
    ----------
    A : ndarray of shape (m, n)
        Sample matrix. Not modified.
    tol : float
        Absolute tolerance on the residual max-norm.
    rank_cap_factor : float or None, optional
        At most ``min(m, n) / rank_cap_factor`` pivots are taken before the
        elimination is declared to have failed. ``None`` or 0 disables the
        cap. Default is 4.

    Returns
    -------
    CrossResult
        Pivot values, positions, residual rows and columns, and the
        failure flag. A zero matrix yields a single zero pivot, no
        positions, empty slices and ``failed=False``.
    """
    A = np.array(A, copy=True)
    if not np.issubdtype(A.dtype, np.inexact):
        A = A.astype(float)
    n_rows, n_cols = A.shape
    width = min(n_rows, n_cols)
    cap = width / rank_cap_factor if rank_cap_factor else np.inf

    inf_norm, row, col = _next_pivot(A, tol)

    if inf_norm == 0:
        return CrossResult(
            pivot_values=np.zeros(1, dtype=A.dtype),
            pivot_positions=np.zeros((0, 2), dtype=np.intp),
            rows=np.zeros((0, n_cols), dtype=A.dtype),
            cols=np.zeros((n_rows, 0), dtype=A.dtype),
            failed=False,
        )

    pivot_values = []
    positions = []
    rows = []
    cols = []

    while inf_norm > tol and len(pivot_values) < cap and len(pivot_values) < width:
        row_vals = A[row, :].copy()
        col_vals = A[:, col].copy()
        pivot = A[row, col]

        # One step of Gaussian elimination
        A -= np.outer(col_vals, row_vals / pivot)

        pivot_values.append(pivot)
        positions.append((row, col))
        rows.append(row_vals)
        cols.append(col_vals)

        inf_norm, row, col = _next_pivot(A, tol)

    rank = len(pivot_values)
    failed = inf_norm > tol
    if rank >= cap:
        failed = True

    return CrossResult(
        pivot_values=np.array(pivot_values, dtype=A.dtype),
        pivot_positions=np.array(positions, dtype=np.intp).reshape(rank, 2),
        rows=np.array(rows, dtype=A.dtype).reshape(rank, n_cols),
        cols=np.array(cols, dtype=A.dtype).T.reshape(n_rows, rank),
        failed=bool(failed),
    )


def deflate_skeleton(
    cols: np.ndarray,
    rows: np.ndarray,
    pivot_values: np.ndarray,
    pivot_indices: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray]:
    """Replay the rank-1 eliminations on raw row and column samples.

    Given samples ``cols[:, k] = f(x_k, y)`` along the pivot columns and
    ``rows[k, :] = f(x, y_k)`` along the pivot rows, subtract the earlier
    rank-1 terms in pivot order so that the slices match the residual
    slices :func:`complete_aca` would have extracted on the same grids.

    Parameters
    ----------
    cols : ndarray of shape (n_y, rank)
        Raw column samples.
    rows : ndarray of shape (rank, n_x)
        Raw row samples.
    pivot_values : ndarray of shape (rank,)
        Pivot values in discovery order.
    pivot_indices : ndarray of shape (rank, 2)
        (row, col) indices of the pivots on the current grids.

    Returns
    -------
    cols, rows : ndarray
        Deflated copies.
    """
    cols = np.array(cols, copy=True)
    rows = np.array(rows, copy=True)
    if np.iscomplexobj(pivot_values):
        cols = cols.astype(complex)
        rows = rows.astype(complex)
    rank = len(pivot_values)
    for k in range(rank - 1):
        later = pivot_indices[k + 1:]
        piv = pivot_values[k]
        cols[:, k + 1:] -= np.outer(cols[:, k], rows[k, later[:, 1]] / piv)
        rows[k + 1:, :] -= np.outer(cols[later[:, 0], k], rows[k, :] / piv)
    return cols, rows
