"""Tests for sampling functions on tensor grids."""

import math

import numpy as np
import pytest

from pychebcross._sampling import evaluate, needs_vectorize
from pychebcross.exceptions import Cross2DError, InvalidResultError, NonFiniteResultError

_X = np.array([-1.0, 0.0, 0.5, 1.0])
_Y = np.array([-0.5, 0.25, 1.0])
_SQUARE = (-1.0, 1.0, -1.0, 1.0)
_EPS = np.finfo(float).eps


class TestEvaluate:

    def test_rows_indexed_by_y(self):
        vals = evaluate(lambda x, y: x + 10 * y, _X, _Y)
        assert vals.shape == (3, 4)
        assert vals[2, 1] == 10.0
        assert vals[0, 3] == pytest.approx(-4.0)

    def test_constant_broadcast(self):
        vals = evaluate(lambda x, y: 3.0, _X, _Y)
        assert vals.shape == (3, 4)
        assert np.all(vals == 3.0)

    def test_partial_broadcast(self):
        vals = evaluate(lambda x, y: np.cos(x[0, :]), _X, _Y)
        np.testing.assert_allclose(vals, np.tile(np.cos(_X), (3, 1)))

    def test_vectorize_pointwise(self):
        vals = evaluate(lambda x, y: math.sin(x) * y, _X, _Y, vectorize=True)
        np.testing.assert_allclose(vals, np.outer(_Y, np.sin(_X)))

    def test_integer_results_cast_to_float(self):
        vals = evaluate(lambda x, y: (x > 0).astype(int), _X, _Y)
        assert vals.dtype == float

    def test_inf_raises(self):
        with pytest.raises(NonFiniteResultError, match="Inf"):
            evaluate(lambda x, y: np.full_like(x, np.inf), _X, _Y)

    def test_nan_raises(self):
        with pytest.raises(InvalidResultError, match="NaN"):
            evaluate(lambda x, y: x * np.nan, _X, _Y)

    def test_inf_reported_before_nan(self):
        def f(x, y):
            out = np.full_like(x, np.inf)
            out[0, 0] = np.nan
            return out

        with pytest.raises(NonFiniteResultError):
            evaluate(f, _X, _Y)

    def test_errors_share_base_class(self):
        assert issubclass(NonFiniteResultError, Cross2DError)
        assert issubclass(InvalidResultError, ArithmeticError)


class TestNeedsVectorize:

    def test_numpy_function_ok(self):
        assert not needs_vectorize(lambda x, y: np.sin(x) * y, _SQUARE, _EPS)

    def test_math_function_detected(self):
        assert needs_vectorize(lambda x, y: math.sin(x) * y, _SQUARE, _EPS)

    def test_branching_function_detected(self):
        assert needs_vectorize(lambda x, y: max(x, y), _SQUARE, _EPS)

    def test_reducing_function_detected(self):
        assert needs_vectorize(lambda x, y: np.sum(x * y), _SQUARE, _EPS)

    def test_constant_ok(self):
        assert not needs_vectorize(lambda x, y: 2.0, _SQUARE, _EPS)

    def test_large_magnitude_ok(self):
        assert not needs_vectorize(lambda x, y: 1e200 * np.cos(x * y), _SQUARE, _EPS)
