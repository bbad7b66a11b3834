"""Quick start example: compress a 2D function into a low-rank approximation."""

import math

import numpy as np

from pychebcross import ChebyshevCross2D


def f(x, y):
    """A smooth 2D function: sin(x) * exp(-y) + cos(x * y)."""
    return np.sin(x) * np.exp(-y) + np.cos(x * y)


# Build approximation
cc = ChebyshevCross2D(f, domain=[[-3, 3], [0, 2]])
cc.build()
print(cc)

# Evaluate at a test point
x, y = 1.0, 0.5
exact = math.sin(x) * math.exp(-y) + math.cos(x * y)
approx = cc.eval(x, y)

print(f"\nExact:  {exact:.15f}")
print(f"Approx: {approx:.15f}")
print(f"Error:  {abs(approx - exact):.2e}")

# Error on a fine grid
xs = np.linspace(-3, 3, 201)
ys = np.linspace(0, 2, 101)
xx, yy = np.meshgrid(xs, ys)
err = np.max(np.abs(cc.eval_grid(xs, ys) - f(xx, yy)))
print(f"\nMax error on 201 x 101 grid: {err:.2e}")
print(f"Rank {cc.rank}, {cc.total_build_evals:,} function evaluations "
      f"(a full {cc.factorization.rows.length} x {cc.factorization.cols.length} "
      f"tensor grid would need "
      f"{cc.factorization.rows.length * cc.factorization.cols.length:,})")
