"""Tests for Factorization, rank normalization and the sample test."""

import numpy as np
import pytest

from pychebcross import Factorization, InvalidRankError, Quasimatrix, normalize_rank, sample_test
from conftest import xy, xy_factorization


# ======================================================================
# Factorization
# ======================================================================


class TestFactorization:

    def test_scalar_evaluation_returns_float(self):
        fact = xy_factorization()
        val = fact.evaluate(0.3, -0.7)
        assert isinstance(val, float)
        assert val == pytest.approx(-0.21, abs=1e-15)

    def test_call_alias(self):
        fact = xy_factorization()
        assert fact(0.5, 0.5) == pytest.approx(0.25)

    def test_broadcast_evaluation(self):
        fact = xy_factorization()
        x = np.linspace(-1, 1, 5)
        out = fact.evaluate(x[:, None], np.array([0.5, -0.5]))
        assert out.shape == (5, 2)
        np.testing.assert_allclose(out, np.outer(x, [0.5, -0.5]), atol=1e-15)

    def test_grid_evaluation(self):
        fact = xy_factorization()
        x = np.array([0.1, 0.2, 0.3])
        y = np.array([-1.0, 1.0])
        out = fact.evaluate_grid(x, y)
        assert out.shape == (2, 3)
        np.testing.assert_allclose(out, np.outer(y, x), atol=1e-15)

    @pytest.mark.parametrize("scale", [1e200, 1e-200])
    def test_pointwise_extreme_scale(self, scale):
        cols = Quasimatrix(np.array([0.0, scale]), (-1, 1), "chebyshev2")
        rows = Quasimatrix(np.array([0.0, scale]), (-1, 1), "chebyshev2")
        fact = Factorization(cols, [scale], rows, [[1.0, 1.0]], (-1, 1, -1, 1))
        assert fact.evaluate(0.3, -0.7) == pytest.approx(-0.21 * scale, rel=1e-14)
        np.testing.assert_allclose(fact.evaluate([0.3, 0.5], [-0.7, 0.5]),
                                   fact.evaluate_grid([0.3, 0.5], [-0.7, 0.5]).diagonal(),
                                   rtol=1e-14)

    def test_rank(self):
        assert xy_factorization().rank == 1

    def test_vscale(self):
        assert xy_factorization().vscale() == pytest.approx(1.0)

    def test_inconsistent_lengths_raise(self):
        fact = xy_factorization()
        with pytest.raises(ValueError, match="Inconsistent"):
            Factorization(fact.cols, [1.0, 2.0], fact.rows, [[0, 0], [0, 0]], fact.domain)

    def test_repr(self):
        assert "rank=1" in repr(xy_factorization())


class TestZeroFactorization:

    def test_rank_zero(self):
        fact = Factorization.zero((0.0, 2.0, 1.0, 3.0))
        assert fact.rank == 0
        assert fact.is_zero

    def test_pivot_at_midpoint(self):
        fact = Factorization.zero((0.0, 2.0, 1.0, 3.0))
        np.testing.assert_array_equal(fact.pivot_locations, [[1.0, 2.0]])
        np.testing.assert_array_equal(fact.pivot_values, [0.0])

    def test_evaluates_to_zero(self):
        fact = Factorization.zero((-1.0, 1.0, -1.0, 1.0))
        assert fact.evaluate(0.3, 0.4) == 0.0
        np.testing.assert_array_equal(fact.evaluate_grid([0.1, 0.2], [0.5]), [[0.0, 0.0]])


# ======================================================================
# Rank normalization
# ======================================================================


class TestNormalizeRank:

    def test_adaptive_keeps_rank(self):
        fact = normalize_rank(xy_factorization(), 0)
        assert fact.rank == 1

    def test_same_rank_returns_copy(self):
        original = xy_factorization()
        fact = normalize_rank(original, 1)
        assert fact is not original
        fact.pivot_values[0] = 5.0
        assert original.pivot_values[0] == 1.0

    def test_pad_with_zeros(self):
        fact = normalize_rank(xy_factorization(), 4)
        assert fact.rank == 4
        np.testing.assert_array_equal(fact.pivot_values, [1.0, 0.0, 0.0, 0.0])
        np.testing.assert_array_equal(fact.pivot_locations[1:], [[0.0, 0.0]] * 3)
        assert fact.evaluate(0.3, -0.7) == pytest.approx(-0.21, abs=1e-15)

    def test_truncate_keeps_first_terms(self):
        padded = normalize_rank(xy_factorization(), 3)
        fact = normalize_rank(padded, 1)
        assert fact.rank == 1
        np.testing.assert_array_equal(fact.pivot_values, [1.0])
        np.testing.assert_array_equal(fact.pivot_locations, [[1.0, 1.0]])

    def test_pad_then_truncate_same_values(self):
        original = xy_factorization()
        restored = normalize_rank(normalize_rank(original, 5), 1)
        x = np.linspace(-1, 1, 7)
        np.testing.assert_array_equal(restored.evaluate(x, x[::-1]),
                                      original.evaluate(x, x[::-1]))

    def test_idempotent(self):
        once = normalize_rank(xy_factorization(), 3)
        twice = normalize_rank(once, 3)
        np.testing.assert_array_equal(once.pivot_values, twice.pivot_values)
        np.testing.assert_array_equal(once.pivot_locations, twice.pivot_locations)

    def test_pad_zero_function(self):
        fact = normalize_rank(Factorization.zero((-1, 1, -1, 1)), 2)
        assert fact.rank == 2
        assert fact.is_zero

    @pytest.mark.parametrize("bad", [-1, 1.5, True, "2"])
    def test_invalid_rank_raises(self, bad):
        with pytest.raises(InvalidRankError):
            normalize_rank(xy_factorization(), bad)

    def test_invalid_rank_is_value_error(self):
        with pytest.raises(ValueError):
            normalize_rank(xy_factorization(), -3)


# ======================================================================
# Sample test
# ======================================================================


class TestSampleTest:

    def test_exact_passes(self):
        passed, max_error = sample_test(xy_factorization(), xy, 1e-15)
        assert passed
        assert max_error < 1e-15

    def test_wrong_function_fails(self):
        passed, max_error = sample_test(xy_factorization(), lambda x, y: x * y + 0.1, 1e-15)
        assert not passed
        assert max_error == pytest.approx(0.1)

    def test_threshold_scales_with_tolerance(self):
        passed, _ = sample_test(xy_factorization(), lambda x, y: x * y + 1e-6, 1e-8)
        assert passed

    def test_vectorized_function(self):
        passed, _ = sample_test(xy_factorization(), lambda x, y: float(x) * float(y),
                                1e-15, vectorize=True)
        assert passed
