"""
Compare adaptive cross construction vs compressing a full tensor grid.

Tests:
1. Build cost: function evaluations and wall time per test function
2. Accuracy: max error on a 201 x 201 uniform grid
3. Rank and slice lengths reached by each method

The adaptive path samples the function on a coarse grid, then refines only
the pivot rows and columns. The tensor path evaluates the function on the
full grid at the final adaptive lengths and compresses those values with
``ChebyshevCross2D.from_values``.

Usage:
    uv run python compare_adaptive_vs_tensor.py

NOTE: This script is for local benchmarking only. It is NOT part of the
test suite and is NOT run in CI.
"""

import time

import numpy as np

from pychebcross import ChebyshevCross2D, construct


# ============================================================================
# Test functions
# ============================================================================

CASES = [
    ("exp(x)*sin(y)", lambda x, y: np.exp(x) * np.sin(y), [[-1, 1], [-1, 1]]),
    ("cos(x*y)", lambda x, y: np.cos(x * y), [[-3, 3], [-3, 3]]),
    ("1/(1+25(x^2+y^2))", lambda x, y: 1.0 / (1.0 + 25.0 * (x**2 + y**2)),
     [[-1, 1], [-1, 1]]),
    ("exp(-(x^2+y^2)/0.1)", lambda x, y: np.exp(-(x**2 + y**2) / 0.1),
     [[-1, 1], [-1, 1]]),
    ("sin(10x)+cos(8y)", lambda x, y: np.sin(10 * x) + np.cos(8 * y),
     [[0, 2], [-1, 1]]),
]

N_TEST = 201


# ============================================================================
# Helpers
# ============================================================================

def max_grid_error(fact, f, domain):
    """Max absolute error on a uniform N_TEST x N_TEST grid."""
    xs = np.linspace(domain[0][0], domain[0][1], N_TEST)
    ys = np.linspace(domain[1][0], domain[1][1], N_TEST)
    xx, yy = np.meshgrid(xs, ys)
    return float(np.max(np.abs(fact.evaluate_grid(xs, ys) - f(xx, yy))))


def build_adaptive(f, domain):
    """Adaptive cross. Returns (BuildResult, build_time)."""
    start = time.perf_counter()
    result = construct(f, domain)
    return result, time.perf_counter() - start


def build_tensor(f, domain, n_x, n_y):
    """Full grid compression. Returns (obj, build_time, n_evals)."""
    start = time.perf_counter()
    info = ChebyshevCross2D.nodes(n_x, n_y, domain=domain)
    xx, yy = np.meshgrid(info["x"], info["y"])
    cc = ChebyshevCross2D.from_values(f(xx, yy), domain=domain)
    return cc, time.perf_counter() - start, n_x * n_y


# ============================================================================
# Main
# ============================================================================

def main():
    print(f"\n{'=' * 78}")
    print(f"  Adaptive cross vs full tensor grid")
    print(f"{'=' * 78}")

    header = (f"  {'Function':<22s} {'Method':<9s} {'Evals':>9s} "
              f"{'Time (s)':>9s} {'Rank':>5s} {'Max error':>11s}")
    print(header)
    print(f"  {'─' * 70}")

    for label, f, domain in CASES:
        result, t_adaptive = build_adaptive(f, domain)
        adaptive = result.factorization
        # Tensor grid at the sampled sizes, before simplification
        n_x, n_y = result.lengths
        tensor, t_tensor, tensor_evals = build_tensor(f, domain, n_x, n_y)

        err_adaptive = max_grid_error(adaptive, f, domain)
        err_tensor = max_grid_error(tensor.factorization, f, domain)

        print(f"  {label:<22s} {'adaptive':<9s} {result.n_evaluations:>9,} "
              f"{t_adaptive:>9.3f} {adaptive.rank:>5d} {err_adaptive:>11.2e}")
        print(f"  {'':<22s} {'tensor':<9s} {tensor_evals:>9,} "
              f"{t_tensor:>9.3f} {tensor.rank:>5d} {err_tensor:>11.2e}")
        print(f"  {'':<22s} grid {n_x} x {n_y}, simplified to "
              f"{adaptive.rows.length} x {adaptive.cols.length}, "
              f"{tensor_evals / result.n_evaluations:.1f}x fewer evals")


if __name__ == "__main__":
    main()
