"""Tests for the coefficient chopping rule and the resolution check."""

import numpy as np
import pytest

from pychebcross._chop import MIN_CHOP_LENGTH, happiness_check, standard_chop

EPS = np.finfo(float).eps


class TestStandardChop:

    def test_geometric_decay_chopped(self):
        """Coefficients 10^-k reach noise near k = 16."""
        coeffs = 10.0 ** -np.arange(40)
        cutoff = standard_chop(coeffs, EPS)
        assert 15 <= cutoff <= 20

    def test_slow_decay_not_chopped(self):
        coeffs = 1.0 / (np.arange(40) + 1.0) ** 2
        assert standard_chop(coeffs, EPS) == 40

    def test_short_sequence_not_chopped(self):
        coeffs = 10.0 ** -np.arange(MIN_CHOP_LENGTH - 1)
        assert standard_chop(coeffs, EPS) == MIN_CHOP_LENGTH - 1

    def test_zero_sequence(self):
        assert standard_chop(np.zeros(30), EPS) == 1

    def test_empty_sequence(self):
        assert standard_chop(np.array([]), EPS) == 1

    def test_loose_tolerance_chops_earlier(self):
        coeffs = 10.0 ** -np.arange(40)
        assert standard_chop(coeffs, 1e-8) < standard_chop(coeffs, EPS)

    def test_tolerance_at_least_one(self):
        assert standard_chop(np.ones(30), 1.0) == 1

    def test_exact_zeros_after_polynomial(self):
        coeffs = np.zeros(33)
        coeffs[:3] = [0.5, 0.0, 0.5]
        assert standard_chop(coeffs, EPS) == 3


class TestHappinessCheck:

    def test_resolved_reports_discarded_size(self):
        coeffs = 10.0 ** -np.arange(40)
        happy, accuracy = happiness_check(coeffs, EPS)
        assert happy
        assert accuracy < EPS

    def test_unresolved_reports_trailing_size(self):
        coeffs = 1.0 / (np.arange(40) + 1.0) ** 2
        happy, accuracy = happiness_check(coeffs, EPS)
        assert not happy
        assert accuracy == pytest.approx(1.0 / 1600)

    def test_zero_is_happy(self):
        assert happiness_check(np.zeros(5), EPS) == (True, 0.0)

    def test_scale_invariant(self):
        coeffs = 10.0 ** -np.arange(40)
        assert happiness_check(1e6 * coeffs, EPS)[0]
        assert happiness_check(1e-6 * coeffs, EPS)[0]
