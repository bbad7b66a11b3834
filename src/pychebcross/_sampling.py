"""Sampling a bivariate function on tensor grids."""

from __future__ import annotations

from typing import Callable, Sequence

import numpy as np

from pychebcross.exceptions import InvalidResultError, NonFiniteResultError


def _check_finite(vals: np.ndarray) -> None:
    """Raise if the samples contain Inf or NaN."""
    if np.isinf(vals).any():
        raise NonFiniteResultError("Function returned Inf when evaluated")
    if np.isnan(vals).any():
        raise InvalidResultError("Function returned NaN when evaluated")


def evaluate(
    func: Callable,
    x_grid: np.ndarray,
    y_grid: np.ndarray,
    vectorize: bool = False,
) -> np.ndarray:
    """Sample ``func(x, y)`` on the tensor grid ``x_grid`` x ``y_grid``.

    Parameters
    ----------
    func : callable
        ``f(x, y)``. With ``vectorize=False`` it must accept coordinate
        arrays of equal shape; otherwise it receives two floats.
    x_grid, y_grid : 1-D array_like
        Points along x (columns) and y (rows).
    vectorize : bool, optional
        If True, call ``func`` once per point in nested loops.

    Returns
    -------
    ndarray of shape (len(y_grid), len(x_grid))
        Sample matrix, rows indexed by y and columns by x.

    Raises
    ------
    NonFiniteResultError
        If any sample is infinite.
    InvalidResultError
        If any sample is NaN.
    """
    x_grid = np.asarray(x_grid, dtype=float).ravel()
    y_grid = np.asarray(y_grid, dtype=float).ravel()

    if vectorize:
        vals = np.array([
            [func(float(x), float(y)) for x in x_grid]
            for y in y_grid
        ]).reshape(len(y_grid), len(x_grid))
    else:
        xx, yy = np.meshgrid(x_grid, y_grid)
        vals = np.asarray(func(xx, yy))
        if vals.shape != xx.shape:
            # Constant or partially broadcast results, e.g. lambda x, y: 3.0
            vals = vals + np.zeros(xx.shape)
    if vals.dtype.kind in "biu":
        vals = vals.astype(float)

    _check_finite(vals)
    return vals


def needs_vectorize(func: Callable, domain: Sequence[float], tol: float) -> bool:
    """Check whether ``func`` evaluates correctly on coordinate arrays.

    Evaluates ``func`` at the four corners of the domain once as a 2x2
    array call and once point by point.

    Returns
    -------
    bool
        True if the array call fails with ``TypeError`` or ``ValueError``,
        cannot be broadcast to the grid, or disagrees with
        the pointwise values.
    """
    x_lo, x_hi, y_lo, y_hi = domain
    xx, yy = np.meshgrid([x_lo, x_hi], [y_lo, y_hi])
    try:
        array_vals = np.asarray(func(xx, yy))
    except (TypeError, ValueError):
        return True
    if array_vals.shape != xx.shape:
        try:
            array_vals = array_vals + np.zeros(xx.shape)
        except ValueError:
            return True

    point_vals = np.array([
        [func(float(xx[j, k]), float(yy[j, k])) for k in range(2)]
        for j in range(2)
    ])

    with np.errstate(invalid="ignore"):
        mismatch = np.abs(array_vals - point_vals)
        vscale = max(float(np.max(np.abs(point_vals))), 1.0)
    return bool(np.any(mismatch > min(1000 * tol, 1e-4) * vscale))
