"""Shared test fixtures for pychebcross tests."""

import numpy as np
import pytest

from pychebcross import ChebyshevCross2D, Factorization, Quasimatrix


# ---------------------------------------------------------------------------
# Test functions
# ---------------------------------------------------------------------------

def xy(x, y):
    """x * y, rank 1."""
    return x * y


def rank3(x, y):
    """cos(x) sin(y) + x y^2 + exp(x), rank 3."""
    return np.cos(x) * np.sin(y) + x * y**2 + np.exp(x)


def sin_sum(x, y):
    """sin(x + y) = sin(x) cos(y) + cos(x) sin(y), rank 2."""
    return np.sin(x + y)


_SIN_SUM_DOMAIN = [0.0, 2.0, -1.0, 1.0]


def random_points(domain, n, seed=42):
    """``n`` uniform random (x, y) points inside ``domain``."""
    rng = np.random.default_rng(seed)
    x_lo, x_hi, y_lo, y_hi = domain
    return rng.uniform(x_lo, x_hi, n), rng.uniform(y_lo, y_hi, n)


def xy_factorization():
    """Hand-made factorization of x * y with a unit pivot at (1, 1)."""
    cols = Quasimatrix(np.array([0.0, 1.0]), (-1, 1), "chebyshev2")  # c(y) = y
    rows = Quasimatrix(np.array([0.0, 1.0]), (-1, 1), "chebyshev2")  # r(x) = x
    return Factorization(cols, [1.0], rows, [[1.0, 1.0]], (-1, 1, -1, 1))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="module")
def cc_xy():
    """Pre-built x * y on [-1, 1]^2."""
    cc = ChebyshevCross2D(xy)
    cc.build(verbose=False)
    return cc


@pytest.fixture(scope="module")
def cc_rank3():
    """Pre-built rank-3 sum on [-1, 1]^2."""
    cc = ChebyshevCross2D(rank3)
    cc.build(verbose=False)
    return cc


@pytest.fixture(scope="module")
def cc_sin_sum():
    """Pre-built sin(x + y) on [0, 2] x [-1, 1]."""
    cc = ChebyshevCross2D(sin_sum, _SIN_SUM_DOMAIN)
    cc.build(verbose=False)
    return cc
