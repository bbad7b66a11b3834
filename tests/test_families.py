"""Tests for grid families: points, nesting, refinement and transforms."""

import numpy as np
import pytest

from pychebcross._families import (
    FAMILIES,
    ChebyshevFirstKind,
    ChebyshevSecondKind,
    Trigonometric,
    get_family,
    grid,
    refine,
)
from pychebcross.exceptions import UnsupportedRepresentationError


# ======================================================================
# Points and nesting
# ======================================================================


class TestPoints:
    """Sample points on [-1, 1] and on general intervals."""

    def test_second_kind_includes_endpoints(self):
        pts = ChebyshevSecondKind().points(17)
        assert pts[0] == -1.0
        assert pts[-1] == 1.0
        assert pts[8] == 0.0

    def test_second_kind_symmetric(self):
        pts = ChebyshevSecondKind().points(33)
        np.testing.assert_array_equal(pts, -pts[::-1])

    def test_first_kind_excludes_endpoints(self):
        pts = ChebyshevFirstKind().points(17)
        assert -1.0 < pts[0] and pts[-1] < 1.0

    def test_trig_equispaced_half_open(self):
        pts = Trigonometric().points(16)
        assert pts[0] == -1.0
        assert pts[-1] < 1.0
        np.testing.assert_allclose(np.diff(pts), 2.0 / 16)

    @pytest.mark.parametrize("name", sorted(FAMILIES))
    def test_ascending(self, name):
        pts = get_family(name).points(20)
        assert np.all(np.diff(pts) > 0)

    def test_grid_maps_interval(self):
        pts = grid(17, (0.0, 2.0), "chebyshev2")
        assert pts[0] == pytest.approx(0.0)
        assert pts[-1] == pytest.approx(2.0)
        assert pts[8] == pytest.approx(1.0)

    def test_grid_size_zero_raises(self):
        with pytest.raises(ValueError, match="grid size"):
            grid(0, (-1, 1), "chebyshev2")


class TestNesting:
    """Refined grids contain the old points bit for bit."""

    @pytest.mark.parametrize("name,size", [
        ("chebyshev2", 17), ("chebyshev2", 65),
        ("chebyshev1", 17), ("chebyshev1", 51),
        ("trig", 16), ("trig", 64),
    ])
    def test_nested_points_identical(self, name, size):
        family = get_family(name)
        new_size, nesting = family.refine(size)
        assert len(nesting) == size
        np.testing.assert_array_equal(family.points(new_size)[nesting], family.points(size))

    def test_nested_points_identical_on_interval(self):
        family = get_family("chebyshev2")
        new_size, nesting = family.refine(33)
        old = family.grid(33, (0.5, 3.0))
        new = family.grid(new_size, (0.5, 3.0))
        np.testing.assert_array_equal(new[nesting], old)

    @pytest.mark.parametrize("name", sorted(FAMILIES))
    def test_nested_samples_reproduced(self, name):
        family = get_family(name)
        size = family.min_samples
        old = family.grid(size, (0.0, 5.0))
        new_size, nesting = family.refine(size)
        new = family.grid(new_size, (0.0, 5.0))
        f = lambda x: np.exp(np.sin(3 * x))  # noqa: E731
        np.testing.assert_array_equal(f(new[nesting]), f(old))

    def test_refine_sizes(self):
        assert refine(17, "chebyshev2")[0] == 33
        assert refine(33, "chebyshev2")[0] == 65
        assert refine(17, "chebyshev1")[0] == 51
        assert refine(16, "trig")[0] == 32

    def test_nested_size(self):
        cheb2 = get_family("chebyshev2")
        trig = get_family("trig")
        assert cheb2.nested_size(17) == 17
        assert cheb2.nested_size(20) == 33
        assert cheb2.nested_size(2) == 3
        assert trig.nested_size(16) == 16
        assert trig.nested_size(20) == 32

    def test_family_limits(self):
        assert get_family("chebyshev2").min_samples == 17
        assert get_family("chebyshev2").max_length == 65537
        assert get_family("trig").min_samples == 16
        assert get_family("trig").max_length == 65536


class TestLookup:

    def test_unknown_family_raises(self):
        with pytest.raises(UnsupportedRepresentationError, match="legendre"):
            get_family("legendre")

    def test_unknown_family_is_value_error(self):
        with pytest.raises(ValueError):
            get_family(None)

    def test_instance_passthrough(self):
        family = Trigonometric()
        assert get_family(family) is family


# ======================================================================
# Transforms
# ======================================================================


class TestTransforms:
    """Values to coefficients and evaluation off the grid."""

    @pytest.mark.parametrize("name", ["chebyshev2", "chebyshev1"])
    def test_chebyshev_coefficients_of_t3(self, name):
        family = get_family(name)
        x = family.points(17)
        coeffs = family.vals2coeffs(4 * x**3 - 3 * x)
        expected = np.zeros(17)
        expected[3] = 1.0
        np.testing.assert_allclose(coeffs, expected, atol=1e-14)

    @pytest.mark.parametrize("name", ["chebyshev2", "chebyshev1"])
    def test_chebyshev_interpolation_on_interval(self, name):
        family = get_family(name)
        interval = (0.0, 2.0)
        x = family.grid(33, interval)
        coeffs = family.vals2coeffs(np.exp(x))
        pts = np.array([0.1, 0.77, 1.234, 1.99])
        np.testing.assert_allclose(family.evaluate(coeffs, pts, interval), np.exp(pts),
                                   rtol=1e-13)

    def test_chebyshev_evaluate_columns(self):
        family = get_family("chebyshev2")
        x = family.points(33)
        vals = np.column_stack([np.sin(x), np.cos(x)])
        out = family.evaluate(family.vals2coeffs(vals), [0.25, -0.5], (-1, 1))
        assert out.shape == (2, 2)
        np.testing.assert_allclose(out[:, 1], np.cos([0.25, -0.5]), atol=1e-14)

    def test_trig_interpolation(self):
        family = get_family("trig")
        x = family.points(32)
        vals = np.exp(np.sin(np.pi * x))
        coeffs = family.vals2coeffs(vals)
        pts = np.array([-0.9, -0.13, 0.4, 0.95])
        out = np.real(family.evaluate(coeffs, pts, (-1, 1)))
        np.testing.assert_allclose(out, np.exp(np.sin(np.pi * pts)), atol=1e-12)

    def test_trig_nyquist_mode_is_real_cosine(self):
        family = get_family("trig")
        vals = (-1.0) ** np.arange(16)
        coeffs = family.vals2coeffs(vals)
        on_grid = family.evaluate(coeffs, family.points(16), (-1, 1))
        np.testing.assert_allclose(np.real(on_grid), vals, atol=1e-13)
        # Halfway between two grid points cos(8 pi t) vanishes
        off_grid = family.evaluate(coeffs, [-1.0 + 1.0 / 16], (-1, 1))
        assert abs(off_grid[0]) < 1e-12

    def test_trig_chop_coeffs_combines_frequencies(self):
        family = get_family("trig")
        coeffs = np.array([1.0, 2.0, 3.0, 4.0, 5.0])
        np.testing.assert_array_equal(family.chop_coeffs(coeffs), [3.0, 6.0, 6.0])

    def test_trig_truncate_symmetric(self):
        family = get_family("trig")
        coeffs = np.arange(7.0)
        np.testing.assert_array_equal(family.truncate(coeffs, 2), [2.0, 3.0, 4.0])
        np.testing.assert_array_equal(family.truncate(coeffs, 10), coeffs)

    def test_chebyshev_truncate(self):
        family = get_family("chebyshev2")
        np.testing.assert_array_equal(family.truncate(np.arange(5.0), 3), [0.0, 1.0, 2.0])


class TestResolution:
    """The per-family resolution oracle."""

    def test_smooth_function_resolved(self):
        family = get_family("chebyshev2")
        ok, accuracy = family.is_resolved(np.exp(family.points(33)), np.finfo(float).eps)
        assert ok
        assert accuracy < 1e-14

    def test_too_short_not_resolved(self):
        family = get_family("chebyshev2")
        ok, _ = family.is_resolved(np.exp(family.points(9)), np.finfo(float).eps)
        assert not ok

    def test_zero_is_resolved(self):
        family = get_family("trig")
        assert family.is_resolved(np.zeros(16), np.finfo(float).eps) == (True, 0.0)

    def test_kink_not_resolved(self):
        family = get_family("chebyshev2")
        x = family.points(65)
        ok, _ = family.is_resolved(np.abs(x - 0.1), np.finfo(float).eps)
        assert not ok
