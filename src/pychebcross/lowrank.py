"""Adaptive low-rank approximation of bivariate functions.

Builds an approximation

.. math::

    f(x, y) \\approx \\sum_{k=1}^{r} \\frac{c_k(y)\\, r_k(x)}{p_k}

on a rectangle in two phases:

1. **Rank discovery.** Sample ``f`` on a tensor grid and run cross
   approximation with complete pivoting until the residual falls below a
   tolerance. If the rank cap of the grid is hit, refine the grid and
   try again.
2. **Slice resolution.** Keep the pivot locations and refine the row and
   column slices independently, sampling only along the pivot lines,
   until the Chebyshev (or Fourier) coefficients of both slice sums
   reach machine-precision noise.

An optional sample test compares the result with fresh samples of ``f``
and restarts on a finer grid if it does not match.

References
----------
- Townsend & Trefethen (2013), "An extension of Chebfun to two
  dimensions", SIAM J. Sci. Comput. 35(6)
- Townsend (2014), "Computing with functions in two dimensions",
  DPhil thesis, University of Oxford
"""

from __future__ import annotations

import enum
import inspect
import os
import pickle
import time
import warnings
from typing import Callable, NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np

from pychebcross._cross import CrossResult, complete_aca, deflate_skeleton
from pychebcross._families import GridFamily, get_family
from pychebcross._sampling import _check_finite, evaluate, needs_vectorize
from pychebcross.exceptions import (
    InvalidDomainError,
    InvalidRankError,
    RankExceededWarning,
    UnresolvedMaxLengthWarning,
)
from pychebcross.factorization import Factorization, normalize_rank, sample_test
from pychebcross.quasimatrix import Quasimatrix

EPS = float(np.finfo(float).eps)

#: Ratio between the grid size and the number of pivots allowed on it.
RANK_CAP_FACTOR = 4
#: Phase 1 gives up on refining after this many consecutive noise strikes.
MAX_NOISE_STRIKES = 3
#: A leading pivot below ``NOISE_FACTOR * vscale * tol`` counts as a strike.
NOISE_FACTOR = 1e4
DEFAULT_MAX_RANK = 513
SAMPLE_TEST_POINTS = 8

_PERIODICITY = {
    None: (False, False),
    "none": (False, False),
    "x": (True, False),
    "y": (False, True),
    "both": (True, True),
}


class BuildState(enum.Enum):
    """States of the two-phase construction."""

    SAMPLING = "sampling"
    PIVOTING = "pivoting"
    RESOLVING = "resolving"
    NORMALIZING = "normalizing"
    DONE = "done"
    FAILED = "failed"


class BuildResult(NamedTuple):
    """Outcome of :func:`construct`."""

    factorization: Factorization
    success: bool
    state: BuildState
    diagnostic: Optional[str]
    n_evaluations: int
    tolerance: float
    accuracy: Tuple[float, float]
    """Achieved relative accuracy of the (row, column) slice sums."""
    lengths: Tuple[int, int]
    """Final (row, column) slice grid sizes."""


# ======================================================================
# Input validation
# ======================================================================

def _validate_domain(domain) -> Tuple[float, float, float, float]:
    """Normalize ``domain`` to ``(x_lo, x_hi, y_lo, y_hi)``.

    Accepts ``None`` (the unit square ``[-1, 1]^2``), a flat sequence of
    four bounds, or ``[[x_lo, x_hi], [y_lo, y_hi]]``.
    """
    if domain is None:
        return (-1.0, 1.0, -1.0, 1.0)
    try:
        bounds = np.asarray(domain, dtype=float).ravel()
    except (TypeError, ValueError):
        raise InvalidDomainError(f"Domain not fully determined: {domain!r}") from None
    if bounds.shape != (4,):
        raise InvalidDomainError(
            f"Domain must have 4 bounds (x_lo, x_hi, y_lo, y_hi), got {domain!r}"
        )
    if not np.all(np.isfinite(bounds)):
        raise InvalidDomainError(f"Domain bounds must be finite, got {domain!r}")
    x_lo, x_hi, y_lo, y_hi = (float(v) for v in bounds)
    if not x_lo < x_hi:
        raise InvalidDomainError(f"x bounds must satisfy lo < hi, got [{x_lo}, {x_hi}]")
    if not y_lo < y_hi:
        raise InvalidDomainError(f"y bounds must satisfy lo < hi, got [{y_lo}, {y_hi}]")
    return (x_lo, x_hi, y_lo, y_hi)


def _validate_fixed_rank(fixed_rank) -> int:
    if isinstance(fixed_rank, bool) or not isinstance(fixed_rank, (int, np.integer)):
        raise InvalidRankError(f"Fixed rank must be an integer, got {fixed_rank!r}")
    if fixed_rank < 0:
        raise InvalidRankError(f"Nonadaptive rank should be non-negative, got {fixed_rank}")
    return int(fixed_rank)


def _resolve_families(periodicity, nodes) -> Tuple[GridFamily, GridFamily]:
    """Grid families for the (x, y) directions."""
    if periodicity not in _PERIODICITY:
        raise ValueError(
            f"periodicity must be one of None, 'none', 'x', 'y', 'both'; "
            f"got {periodicity!r}"
        )
    bounded = get_family(nodes)
    if bounded.periodic:
        raise ValueError(
            f"nodes must be a non-periodic family, got {bounded.name!r}; "
            f"use periodicity= for periodic directions"
        )
    x_periodic, y_periodic = _PERIODICITY[periodicity]
    trig = get_family("trig")
    return (trig if x_periodic else bounded), (trig if y_periodic else bounded)


def _pair(value, name: str) -> Tuple[Optional[int], Optional[int]]:
    """Expand an int-or-pair option to an (x, y) pair."""
    if value is None:
        return None, None
    if isinstance(value, (int, np.integer)):
        value = (value, value)
    if len(value) != 2:
        raise ValueError(f"{name} must be an int or a pair of ints, got {value!r}")
    x_val, y_val = (int(v) for v in value)
    if x_val < 1 or y_val < 1:
        raise ValueError(f"{name} must be positive, got {value!r}")
    return x_val, y_val


def _validate_options(tolerance, max_rank, min_samples, max_length):
    """Check the numeric build options; return the (x, y) sample bounds."""
    if not 0 < tolerance < 1:
        raise ValueError(f"tolerance must lie in (0, 1), got {tolerance}")
    if max_rank < 1:
        raise ValueError(f"max_rank must be >= 1, got {max_rank}")
    return _pair(min_samples, "min_samples"), _pair(max_length, "max_length")


def _as_bivariate(func: Callable) -> Callable:
    """Read a one-argument ``f(z)`` as ``f(x + 1j*y)``."""
    try:
        params = list(inspect.signature(func).parameters.values())
    except (TypeError, ValueError):
        return func
    positional = [p for p in params if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)]
    if len(positional) == 1 and not any(p.kind is p.VAR_POSITIONAL for p in params):
        return lambda x, y: func(x + 1j * y)
    return func


def _tolerance(n_x: int, n_y: int, hscale: float, vscale: float, eps: float) -> float:
    """Working tolerance scaled by grid size, domain extent and magnitude."""
    return max(n_x, n_y) ** (2.0 / 3.0) * hscale * vscale * eps


def _slices_to_factorization(
    cols: np.ndarray,
    pivot_values: np.ndarray,
    rows: np.ndarray,
    pivot_locations: np.ndarray,
    domain: Sequence[float],
    row_family: GridFamily,
    col_family: GridFamily,
) -> Factorization:
    """Wrap sampled slices, ``cols`` (n_y, r) and ``rows`` (r, n_x), as functions."""
    return Factorization(
        Quasimatrix.from_values(cols, domain[2:], col_family),
        pivot_values,
        Quasimatrix.from_values(rows.T, domain[:2], row_family),
        pivot_locations,
        domain,
    )


# ======================================================================
# Construction
# ======================================================================

def construct(
    func: Callable,
    domain=None,
    *,
    fixed_rank: int = 0,
    periodicity: Optional[str] = None,
    vectorize: bool = False,
    sample_test: bool = True,
    tolerance: float = EPS,
    nodes: Union[str, GridFamily] = "chebyshev2",
    min_samples=None,
    max_length=None,
    max_rank: int = DEFAULT_MAX_RANK,
    verbose: bool = False,
) -> BuildResult:
    """Build a low-rank approximation of ``func`` on ``domain``.

    The construction is a state machine. SAMPLING evaluates ``func`` on
    the minimum tensor grid, PIVOTING runs cross approximation (refining
    the grid while the rank cap is hit), RESOLVING refines the row and
    column slices until both are resolved, and NORMALIZING applies the
    fixed rank and the sample test. A failed sample test restarts at
    SAMPLING with finer minimum grids.

    Parameters
    ----------
    func : callable
        ``f(x, y)`` accepting coordinate arrays of equal shape, or two
        floats when ``vectorize`` is True. A callable of one argument is
        read as a function of ``z = x + iy``.
    domain : sequence, optional
        ``(x_lo, x_hi, y_lo, y_hi)`` or ``[[x_lo, x_hi], [y_lo, y_hi]]``.
        Default is ``[-1, 1] x [-1, 1]``.
    fixed_rank : int, optional
        Non-adaptive rank; 0 (default) keeps the rank found adaptively.
    periodicity : {None, 'none', 'x', 'y', 'both'}, optional
        Directions in which ``func`` is periodic; those use Fourier grids.
    vectorize : bool, optional
        Evaluate ``func`` point by point. If False and ``func`` does not
        evaluate correctly on arrays, a warning is issued and per-point
        evaluation is switched on.
    sample_test : bool, optional
        Verify the result at random off-grid points. Default is True.
    tolerance : float, optional
        Relative accuracy target. Default is machine epsilon.
    nodes : {'chebyshev2', 'chebyshev1'}, optional
        Grid family of the non-periodic directions.
    min_samples : int or (int, int), optional
        Initial grid sizes in (x, y). Rounded up to the nearest size
        whose refinements nest. Default is the family minimum.
    max_length : int or (int, int), optional
        Maximum slice length. Default is the family maximum.
    max_rank : int, optional
        Largest rank looked for. Default is 513.
    verbose : bool, optional
        Print progress. Default is False.

    Returns
    -------
    BuildResult
        The factorization, a success flag, the terminal state and a
        diagnostic message when the construction failed.

    Raises
    ------
    InvalidDomainError
        If the domain is malformed or degenerate.
    InvalidRankError
        If ``fixed_rank`` is negative.
    UnsupportedRepresentationError
        If ``nodes`` is not a known family.
    NonFiniteResultError, InvalidResultError
        If ``func`` returns Inf or NaN.
    """
    dom = _validate_domain(domain)
    fixed_rank = _validate_fixed_rank(fixed_rank)
    row_family, col_family = _resolve_families(periodicity, nodes)
    (min_x, min_y), (max_x, max_y) = _validate_options(
        tolerance, max_rank, min_samples, max_length
    )
    min_x = row_family.nested_size(min_x or row_family.min_samples)
    min_y = col_family.nested_size(min_y or col_family.min_samples)
    max_len = min(max_x or row_family.max_length, max_y or col_family.max_length)

    hscale = max(float(np.max(np.abs(dom))), 1.0)
    ceiling = RANK_CAP_FACTOR * (max_rank - 1) + 1

    func = _as_bivariate(func)
    if not vectorize and needs_vectorize(func, dom, tolerance):
        warnings.warn(
            "Function did not correctly evaluate on an array. "
            "Turning on vectorize; pass vectorize=True to avoid this warning.",
            UserWarning,
            stacklevel=2,
        )
        vectorize = True

    n_evals = 0

    def _sample(x_pts, y_pts):
        nonlocal n_evals
        vals = evaluate(func, x_pts, y_pts, vectorize)
        n_evals += vals.size
        return vals

    state = BuildState.SAMPLING
    diagnostic = None
    fact = None
    tol = 0.0
    accuracy = (1.0, 1.0)
    n_x, n_y = min_x, min_y

    while state not in (BuildState.DONE, BuildState.FAILED):

        if state is BuildState.SAMPLING:
            n_x, n_y = min_x, min_y
            x = row_family.grid(n_x, dom[:2])
            y = col_family.grid(n_y, dom[2:])
            vals = _sample(x, y)
            vscale = float(np.max(np.abs(vals)))
            tol = _tolerance(n_x, n_y, hscale, vscale, tolerance)
            state = BuildState.PIVOTING

        elif state is BuildState.PIVOTING:
            cross = complete_aca(vals, tol, RANK_CAP_FACTOR)
            strikes = 0
            while cross.failed and min(n_x, n_y) <= ceiling and strikes < MAX_NOISE_STRIKES:
                n_x, _ = row_family.refine(n_x)
                n_y, _ = col_family.refine(n_y)
                x = row_family.grid(n_x, dom[:2])
                y = col_family.grid(n_y, dom[2:])
                vals = _sample(x, y)
                vscale = float(np.max(np.abs(vals)))
                tol = _tolerance(n_x, n_y, hscale, vscale, tolerance)
                cross = complete_aca(vals, tol, RANK_CAP_FACTOR)
                # Strike: leading pivot at the noise level
                if abs(cross.pivot_values[0]) < NOISE_FACTOR * vscale * tol:
                    strikes += 1
                else:
                    strikes = 0

            if verbose:
                print(f"  Phase 1: grid {n_x} x {n_y}, "
                      f"{len(cross.pivot_positions)} pivots, tol = {tol:.2e}")

            if cross.failed and min(n_x, n_y) > ceiling:
                diagnostic = f"Not a low-rank function (max_rank={max_rank})."
                warnings.warn(diagnostic, RankExceededWarning, stacklevel=2)
                if len(cross.pivot_positions):
                    fact = _slices_to_factorization(
                        cross.cols, cross.pivot_values, cross.rows,
                        np.column_stack([x[cross.pivot_positions[:, 1]],
                                         y[cross.pivot_positions[:, 0]]]),
                        dom, row_family, col_family,
                    )
                else:
                    fact = Factorization.zero(dom, row_family, col_family)
                state = BuildState.FAILED
            else:
                state = BuildState.RESOLVING

        elif state is BuildState.RESOLVING:
            fact, resolved, accuracy, (n_x, n_y) = _resolve_slices(
                _sample, cross, vals, x, y, dom, row_family, col_family,
                tolerance, max_len, verbose,
            )
            if resolved:
                state = BuildState.NORMALIZING
            else:
                diagnostic = f"Unresolved with maximum length: {max_len}."
                warnings.warn(diagnostic, UnresolvedMaxLengthWarning, stacklevel=2)
                state = BuildState.FAILED

        elif state is BuildState.NORMALIZING:
            fact = Factorization(
                fact.cols.simplify(tolerance), fact.pivot_values,
                fact.rows.simplify(tolerance), fact.pivot_locations, dom,
            )
            if sample_test:
                # Tested before fixed-rank truncation
                passed, max_error = _sample_test(fact, func, tol, vectorize)
                n_evals += SAMPLE_TEST_POINTS ** 2
                if not passed:
                    if verbose:
                        print(f"  Sample test failed (max error {max_error:.2e}), "
                              f"refining minimum grid")
                    min_x, _ = row_family.refine(min_x)
                    min_y, _ = col_family.refine(min_y)
                    if max(min_x, min_y) >= max_len:
                        diagnostic = f"Unresolved with maximum length: {max_len}."
                        warnings.warn(diagnostic, UnresolvedMaxLengthWarning, stacklevel=2)
                        state = BuildState.FAILED
                    else:
                        state = BuildState.SAMPLING
                    continue
            fact = normalize_rank(fact, fixed_rank)
            state = BuildState.DONE

    if state is BuildState.FAILED:
        fact = normalize_rank(fact, fixed_rank)

    if verbose:
        print(f"  Rank {fact.rank}, slice lengths (x, y) = ({n_x}, {n_y}), "
              f"{n_evals:,} function evaluations")

    return BuildResult(
        factorization=fact,
        success=state is BuildState.DONE,
        state=state,
        diagnostic=diagnostic,
        n_evaluations=n_evals,
        tolerance=tol,
        accuracy=accuracy,
        lengths=(n_x, n_y),
    )


def _sample_test(fact, func, tol, vectorize):
    # The construct() keyword of the same name hides the module-level function
    return sample_test(fact, func, tol, vectorize, n_points=SAMPLE_TEST_POINTS)


def _resolve_slices(
    sample: Callable,
    cross: CrossResult,
    vals: np.ndarray,
    x: np.ndarray,
    y: np.ndarray,
    dom: Sequence[float],
    row_family: GridFamily,
    col_family: GridFamily,
    tolerance: float,
    max_len: int,
    verbose: bool,
):
    """Phase 2: refine row and column slices until both are resolved.

    Pivot positions are carried to each refined grid through the nesting
    map, so the pivot coordinates never move. Only the refined direction
    is resampled, and only along the pivot lines; the other direction
    keeps its raw samples. The eliminations are then replayed on the raw
    slices in the original pivot order.

    Returns
    -------
    fact : Factorization
    resolved : bool
    accuracy : (float, float)
        Achieved relative accuracy of the row and column sums.
    lengths : (int, int)
        Final row and column grid sizes.
    """
    n_x, n_y = len(x), len(y)

    if len(cross.pivot_positions) == 0:
        # Zero function: resolved on the first pass
        return Factorization.zero(dom, row_family, col_family), True, (0.0, 0.0), (n_x, n_y)

    pivot_values = cross.pivot_values
    positions = cross.pivot_positions.copy()
    pivot_x = x[positions[:, 1]]
    pivot_y = y[positions[:, 0]]

    # Raw slices through the pivots, read off the phase-1 sample matrix
    raw_cols = vals[:, positions[:, 1]]
    raw_rows = vals[positions[:, 0], :]
    cols, rows = cross.cols, cross.rows

    cols_ok, col_acc = col_family.is_resolved(cols.sum(axis=1), tolerance)
    rows_ok, row_acc = row_family.is_resolved(rows.sum(axis=0), tolerance)

    iteration = 0
    resolved = cols_ok and rows_ok
    while not resolved:
        if max(n_x, n_y) >= max_len:
            break
        iteration += 1
        if not cols_ok:
            n_y, nesting = col_family.refine(n_y)
            raw_cols = sample(pivot_x, col_family.grid(n_y, dom[2:]))
            positions[:, 0] = nesting[positions[:, 0]]
        if not rows_ok:
            n_x, nesting = row_family.refine(n_x)
            raw_rows = sample(row_family.grid(n_x, dom[:2]), pivot_y)
            positions[:, 1] = nesting[positions[:, 1]]

        cols, rows = deflate_skeleton(raw_cols, raw_rows, pivot_values, positions)

        if not cols_ok:
            cols_ok, col_acc = col_family.is_resolved(cols.sum(axis=1), tolerance)
        if not rows_ok:
            rows_ok, row_acc = row_family.is_resolved(rows.sum(axis=0), tolerance)
        resolved = cols_ok and rows_ok

        if verbose:
            print(f"  Phase 2, pass {iteration}: lengths (x, y) = ({n_x}, {n_y}), "
                  f"resolved = ({rows_ok}, {cols_ok})")

    fact = _slices_to_factorization(
        cols, pivot_values, rows, np.column_stack([pivot_x, pivot_y]),
        dom, row_family, col_family,
    )
    return fact, resolved, (row_acc, col_acc), (n_x, n_y)


# ======================================================================
# Public class
# ======================================================================

class ChebyshevCross2D:
    """Adaptive low-rank approximation of a function of two variables.

    Discovers the numerical rank of ``f`` by cross approximation on
    tensor grids, then refines the row and column slices through the
    pivots until their Chebyshev (or Fourier) expansions are resolved.
    Only ``O(r * (m + n))`` samples are taken once the rank is known.

    Parameters
    ----------
    function : callable
        Function to approximate. Signature: ``f(x, y)``, where ``x`` and
        ``y`` are arrays of equal shape (or floats if ``vectorize=True``).
        A function of one argument is evaluated at ``x + 1j*y``.
    domain : sequence, optional
        ``[x_lo, x_hi, y_lo, y_hi]`` or ``[[x_lo, x_hi], [y_lo, y_hi]]``.
        Default is ``[-1, 1] x [-1, 1]``.
    fixed_rank : int, optional
        Return exactly this many terms (truncating or zero-padding).
        Default is 0 (adaptive).
    periodicity : {None, 'x', 'y', 'both'}, optional
        Periodic directions, approximated with Fourier series.
    vectorize : bool, optional
        Evaluate ``function`` one point at a time. Default is False.
    sample_test : bool, optional
        Check the result at random points. Default is True.
    tolerance : float, optional
        Relative accuracy target. Default is machine epsilon.
    nodes : {'chebyshev2', 'chebyshev1'}, optional
        Grid family of the non-periodic directions. Default is
        ``'chebyshev2'``.
    min_samples : int or (int, int), optional
        Initial grid size in (x, y).
    max_length : int or (int, int), optional
        Maximum slice length in (x, y).
    max_rank : int, optional
        Maximum rank. Default is 513.

    Raises
    ------
    InvalidDomainError, InvalidRankError, UnsupportedRepresentationError
        For a malformed domain, rank or grid family.
    ValueError
        For an out-of-range ``tolerance``, ``max_rank``, ``min_samples``
        or ``max_length``.

    Examples
    --------
    >>> import numpy as np
    >>> cc = ChebyshevCross2D(lambda x, y: np.cos(x * y), [0, 2, -1, 1])
    >>> cc.build(verbose=False)  # doctest: +SKIP
    >>> cc.rank  # doctest: +SKIP
    7
    >>> cc.eval(1.0, 0.5)  # doctest: +SKIP
    0.8775825618903...
    """

    def __init__(
        self,
        function: Optional[Callable],
        domain=None,
        fixed_rank: int = 0,
        periodicity: Optional[str] = None,
        vectorize: bool = False,
        sample_test: bool = True,
        tolerance: float = EPS,
        nodes: str = "chebyshev2",
        min_samples=None,
        max_length=None,
        max_rank: int = DEFAULT_MAX_RANK,
    ):
        self.function = function
        self.domain = _validate_domain(domain)
        self.fixed_rank = _validate_fixed_rank(fixed_rank)
        _resolve_families(periodicity, nodes)
        _validate_options(tolerance, max_rank, min_samples, max_length)
        self.periodicity = periodicity
        self.vectorize = vectorize
        self.sample_test = sample_test
        self.tolerance = tolerance
        self.nodes_family = nodes
        self.min_samples = min_samples
        self.max_length = max_length
        self.max_rank = max_rank

        # Build-time state
        self._factorization: Factorization | None = None
        self._built: bool = False
        self._success: bool = False
        self._state: BuildState | None = None
        self._diagnostic: str | None = None
        self._accuracy: Tuple[float, float] = (1.0, 1.0)
        self._build_time: float = 0.0
        self._total_build_evals: int = 0
        self._cached_error_estimate: float | None = None

    def build(self, verbose: bool = True) -> None:
        """Sample the function and construct the low-rank approximation.

        Failure to reach the requested accuracy is not an error: the best
        approximation found is kept, :attr:`success` is False and a
        :class:`~pychebcross.exceptions.Cross2DWarning` is issued.

        Parameters
        ----------
        verbose : bool, optional
            If True, print build progress. Default is True.

        Raises
        ------
        RuntimeError
            If there is no function to sample (e.g. after :meth:`load`).
        NonFiniteResultError, InvalidResultError
            If the function returns Inf or NaN.
        """
        if self.function is None:
            raise RuntimeError(
                "No function to sample; assign one to .function before build()."
            )

        start = time.time()
        self._cached_error_estimate = None

        if verbose:
            x_lo, x_hi, y_lo, y_hi = self.domain
            print(f"Building ChebyshevCross2D on [{x_lo}, {x_hi}] x [{y_lo}, {y_hi}] "
                  f"(nodes={self.nodes_family!r}, max_rank={self.max_rank})...")

        result = construct(
            self.function,
            self.domain,
            fixed_rank=self.fixed_rank,
            periodicity=self.periodicity,
            vectorize=self.vectorize,
            sample_test=self.sample_test,
            tolerance=self.tolerance,
            nodes=self.nodes_family,
            min_samples=self.min_samples,
            max_length=self.max_length,
            max_rank=self.max_rank,
            verbose=verbose,
        )

        self._factorization = result.factorization
        self._success = result.success
        self._state = result.state
        self._diagnostic = result.diagnostic
        self._accuracy = result.accuracy
        self._total_build_evals = result.n_evaluations
        self._build_time = time.time() - start
        self._built = True

        if verbose:
            status = "converged" if self._success else f"FAILED ({self._diagnostic})"
            print(f"  Built in {self._build_time:.3f}s, {status}")

    def _check_built(self) -> None:
        """Raise RuntimeError if build() has not been called."""
        if not self._built:
            raise RuntimeError("Call build() before using this method.")

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def eval(self, x, y):
        """Evaluate at ``(x, y)``.

        ``x`` and ``y`` may be scalars or arrays that broadcast together.

        Returns
        -------
        float or ndarray
            A float for scalar input, otherwise an array of the broadcast
            shape.
        """
        self._check_built()
        return self._factorization.evaluate(x, y)

    __call__ = eval

    def eval_batch(self, points: np.ndarray) -> np.ndarray:
        """Evaluate at many points.

        Parameters
        ----------
        points : ndarray of shape (N, 2)
            Query points, one ``(x, y)`` pair per row.

        Returns
        -------
        ndarray of shape (N,)
        """
        self._check_built()
        points = np.asarray(points, dtype=float)
        if points.ndim != 2 or points.shape[1] != 2:
            raise ValueError(f"points must have shape (N, 2), got {points.shape}")
        return self._factorization.evaluate(points[:, 0], points[:, 1])

    def eval_grid(self, x, y) -> np.ndarray:
        """Evaluate on the tensor grid ``x`` by ``y``.

        Returns
        -------
        ndarray of shape (len(y), len(x))
            Rows indexed by ``y``, columns by ``x``.
        """
        self._check_built()
        return self._factorization.evaluate_grid(
            np.atleast_1d(np.asarray(x, dtype=float)),
            np.atleast_1d(np.asarray(y, dtype=float)),
        )

    # ------------------------------------------------------------------
    # Error estimation
    # ------------------------------------------------------------------

    def error_estimate(self) -> float:
        """Estimate the absolute approximation error.

        The larger of the achieved relative accuracies of the row and
        column slice sums, as reported by the resolution check, times the
        magnitude of the approximation.

        Returns
        -------
        float
            Estimated error.

        Raises
        ------
        RuntimeError
            If ``build()`` has not been called.
        """
        self._check_built()

        if self._cached_error_estimate is not None:
            return self._cached_error_estimate

        estimate = max(self._accuracy) * self._factorization.vscale()
        self._cached_error_estimate = estimate
        return estimate

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def factorization(self) -> Factorization:
        """The underlying :class:`Factorization`."""
        self._check_built()
        return self._factorization

    @property
    def rank(self) -> int:
        """Number of terms; 0 for the zero function.

        Raises
        ------
        RuntimeError
            If ``build()`` has not been called.
        """
        self._check_built()
        return self._factorization.rank

    @property
    def pivot_values(self) -> np.ndarray:
        """Pivot values in the order they were found."""
        self._check_built()
        return self._factorization.pivot_values.copy()

    @property
    def pivot_locations(self) -> np.ndarray:
        """``(x, y)`` coordinates of the pivots, shape (r, 2)."""
        self._check_built()
        return self._factorization.pivot_locations.copy()

    @property
    def success(self) -> bool:
        """True if the construction reached the requested accuracy."""
        self._check_built()
        return self._success

    @property
    def state(self) -> BuildState:
        """Terminal state of the last build, DONE or FAILED."""
        self._check_built()
        return self._state

    @property
    def diagnostic(self) -> Optional[str]:
        """Why the construction failed, or None."""
        self._check_built()
        return self._diagnostic

    @property
    def total_build_evals(self) -> int:
        """Total number of function evaluations used during build.

        Returns
        -------
        int
            Number of function evaluations. Only meaningful after
            :meth:`build`.
        """
        return self._total_build_evals

    # ------------------------------------------------------------------
    # Pre-computed values
    # ------------------------------------------------------------------

    @staticmethod
    def nodes(
        n_x: int,
        n_y: int,
        domain=None,
        nodes: str = "chebyshev2",
        periodicity: Optional[str] = None,
    ) -> dict:
        """Generate sample points without evaluating any function.

        Evaluate your function on the returned grid externally, then pass
        the values to :meth:`from_values`.

        Parameters
        ----------
        n_x, n_y : int
            Number of points in x and y.
        domain : sequence, optional
            Rectangle, as for the constructor.
        nodes : {'chebyshev2', 'chebyshev1'}, optional
            Grid family of the non-periodic directions.
        periodicity : {None, 'x', 'y', 'both'}, optional
            Periodic directions, which use equispaced points.

        Returns
        -------
        dict
            ``'x'`` and ``'y'`` : ascending 1-D arrays of points.

            ``'shape'`` : ``(n_y, n_x)``, the expected shape of the value
            matrix (rows indexed by y).

        Examples
        --------
        >>> info = ChebyshevCross2D.nodes(5, 3)
        >>> info['shape']
        (3, 5)
        """
        dom = _validate_domain(domain)
        row_family, col_family = _resolve_families(periodicity, nodes)
        return {
            "x": row_family.grid(n_x, dom[:2]),
            "y": col_family.grid(n_y, dom[2:]),
            "shape": (n_y, n_x),
        }

    @classmethod
    def from_values(
        cls,
        values: np.ndarray,
        domain=None,
        nodes: str = "chebyshev2",
        periodicity: Optional[str] = None,
        tolerance: float = EPS,
        fixed_rank: int = 0,
    ) -> "ChebyshevCross2D":
        """Compress a matrix of samples into a low-rank approximation.

        Runs cross approximation on ``values`` without a rank cap; no
        refinement is possible since there is no function to sample.

        Parameters
        ----------
        values : ndarray of shape (n_y, n_x)
            Samples on the grid returned by :meth:`nodes`; entry
            ``values[j, k]`` is ``f(x[k], y[j])``.
        domain, nodes, periodicity
            As for :meth:`nodes`.
        tolerance : float, optional
            Relative accuracy target. Default is machine epsilon.
        fixed_rank : int, optional
            Truncate or pad to this rank. Default is 0 (adaptive).

        Returns
        -------
        ChebyshevCross2D
            A built approximation with ``function=None``.

        Raises
        ------
        ValueError
            If ``values`` is not a 2-D array.
        NonFiniteResultError, InvalidResultError
            If ``values`` contains Inf or NaN.

        Examples
        --------
        >>> info = ChebyshevCross2D.nodes(17, 17)
        >>> xx, yy = np.meshgrid(info['x'], info['y'])
        >>> cc = ChebyshevCross2D.from_values(xx * yy)
        >>> cc.rank
        1
        """
        values = np.asarray(values)
        if values.ndim != 2:
            raise ValueError(f"values must be a 2-D array, got shape {values.shape}")
        if values.dtype.kind in "biu":
            values = values.astype(float)
        _check_finite(values)

        obj = cls(None, domain, fixed_rank=fixed_rank, periodicity=periodicity,
                  tolerance=tolerance, nodes=nodes)
        row_family, col_family = _resolve_families(periodicity, nodes)
        n_y, n_x = values.shape
        x = row_family.grid(n_x, obj.domain[:2])
        y = col_family.grid(n_y, obj.domain[2:])

        hscale = max(float(np.max(np.abs(obj.domain))), 1.0)
        vscale = float(np.max(np.abs(values)))
        tol = _tolerance(n_x, n_y, hscale, vscale, tolerance)
        cross = complete_aca(values, tol, rank_cap_factor=None)

        if len(cross.pivot_positions) == 0:
            fact = Factorization.zero(obj.domain, row_family, col_family)
            accuracy = (0.0, 0.0)
        else:
            fact = _slices_to_factorization(
                cross.cols, cross.pivot_values, cross.rows,
                np.column_stack([x[cross.pivot_positions[:, 1]],
                                 y[cross.pivot_positions[:, 0]]]),
                obj.domain, row_family, col_family,
            )
            _, row_acc = row_family.is_resolved(cross.rows.sum(axis=0), tolerance)
            _, col_acc = col_family.is_resolved(cross.cols.sum(axis=1), tolerance)
            accuracy = (row_acc, col_acc)
            fact = Factorization(
                fact.cols.simplify(tolerance), fact.pivot_values,
                fact.rows.simplify(tolerance), fact.pivot_locations, obj.domain,
            )

        obj._factorization = normalize_rank(fact, obj.fixed_rank)
        obj._success = True
        obj._state = BuildState.DONE
        obj._accuracy = accuracy
        obj._built = True
        return obj

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def __getstate__(self) -> dict:
        """Return picklable state, excluding the original function."""
        from pychebcross._version import __version__

        state = self.__dict__.copy()
        state["function"] = None
        state["_pychebcross_version"] = __version__
        return state

    def __setstate__(self, state: dict) -> None:
        """Restore state from a pickled dict."""
        from pychebcross._version import __version__

        saved_version = state.pop("_pychebcross_version", None)
        if saved_version is not None and saved_version != __version__:
            warnings.warn(
                f"This object was saved with pychebcross {saved_version}, "
                f"but you are loading it with {__version__}. "
                f"Evaluation results may differ if internal data layout changed.",
                UserWarning,
                stacklevel=2,
            )

        self.__dict__.update(state)
        self.function = None

    def save(self, path: str | os.PathLike) -> None:
        """Save the built approximation to a file.

        The original function is **not** saved, only the slices, pivots
        and build metadata needed for evaluation.

        Parameters
        ----------
        path : str or path-like
            Destination file path.

        Raises
        ------
        RuntimeError
            If ``build()`` has not been called.
        """
        self._check_built()
        with open(os.fspath(path), "wb") as f:
            pickle.dump(self, f, protocol=pickle.HIGHEST_PROTOCOL)

    @classmethod
    def load(cls, path: str | os.PathLike) -> "ChebyshevCross2D":
        """Load a previously saved approximation from a file.

        The ``function`` attribute of the result is ``None``.

        Parameters
        ----------
        path : str or path-like
            Path to the saved file.

        Returns
        -------
        ChebyshevCross2D

        Warns
        -----
        UserWarning
            If the file was saved with a different pychebcross version.

        .. warning::

            This method uses :mod:`pickle` internally. Only load files
            you trust.
        """
        with open(os.fspath(path), "rb") as f:
            obj = pickle.load(f)  # noqa: S301
        if not isinstance(obj, cls):
            raise TypeError(
                f"Expected a {cls.__name__} instance, got {type(obj).__name__}"
            )
        return obj

    # ------------------------------------------------------------------
    # Printing
    # ------------------------------------------------------------------

    def __repr__(self) -> str:
        rank = self._factorization.rank if self._built else None
        return (
            f"ChebyshevCross2D("
            f"domain={list(self.domain)}, "
            f"nodes={self.nodes_family!r}, "
            f"rank={rank}, "
            f"built={self._built})"
        )

    def __str__(self) -> str:
        status = "built" if self._built else "not built"
        x_lo, x_hi, y_lo, y_hi = self.domain
        periodic = self.periodicity if self.periodicity not in (None, "none") else "none"

        lines = [
            f"ChebyshevCross2D ({status})",
            f"  Domain:      [{x_lo}, {x_hi}] x [{y_lo}, {y_hi}]",
            f"  Nodes:       {self.nodes_family} (periodic: {periodic})",
        ]

        if self._built:
            fact = self._factorization
            zero = " (zero function)" if fact.is_zero else ""
            lines.append(f"  Rank:        {fact.rank}{zero}")
            lines.append(f"  Lengths:     x {fact.rows.length}, y {fact.cols.length}")
            lines.append(
                f"  Build:       {self._build_time:.3f}s "
                f"({self._total_build_evals:,} function evals)"
            )
            lines.append(f"  Status:      {'converged' if self._success else self._diagnostic}")
            lines.append(f"  Error est:   {self.error_estimate():.2e}")

        return "\n".join(lines)
