"""
Unit tests for the reference path.

Run with: pytest test/test_reference_path.py
"""

import pytest
import numpy as np
from scipy.interpolate import CubicSpline
from path_optimizer.exceptions import InputError
from path_optimizer.models.reference_path import ReferencePath
from path_optimizer.models.state import State


def curve_of_length(length: float) -> ReferencePath:
    """Straight reference curve without samples."""
    s = np.linspace(0.0, length, 11)
    reference = ReferencePath()
    reference.set_spline(CubicSpline(s, s), CubicSpline(s, np.zeros_like(s)), length)
    return reference


class TestContinuousCurve:
    """Tests for the continuous curve."""

    def test_empty_by_default(self):
        """Test a new reference is empty."""
        reference = ReferencePath()
        assert reference.is_empty()
        assert reference.size == 0

    def test_state_at(self):
        """Test pose evaluation on the curve."""
        reference = curve_of_length(10.0)
        state = reference.state_at(4.0)

        assert abs(state.x - 4.0) < 1e-9
        assert abs(state.y) < 1e-9
        assert abs(state.heading) < 1e-9
        assert state.arc_length == 4.0

    def test_westward_heading_is_pi(self):
        """Test a curve driven toward -x has heading +pi at every sample."""
        s = np.linspace(0.0, 10.0, 11)
        reference = ReferencePath()
        reference.set_spline(CubicSpline(s, -s), CubicSpline(s, np.full_like(s, -0.0)), 10.0)
        reference.build_reference_from_spline(1.0, 1.0, 0.0)

        assert np.all(reference.heading == np.pi)
        assert reference.state_at(5.0).heading == np.pi

    def test_set_length_clamped(self):
        """Test the usable length stays within the curve domain."""
        reference = curve_of_length(10.0)

        reference.set_length(15.0)
        assert reference.length == 10.0

        reference.set_length(6.0)
        assert reference.length == 6.0

    def test_clear(self, make_reference):
        """Test clearing drops the curve and samples."""
        reference = make_reference(10.0)
        reference.clear()

        assert reference.is_empty()
        assert len(reference) == 0


class TestDiscretization:
    """Tests for sampling the curve."""

    def test_samples_monotonic(self):
        """Test samples are strictly increasing and end at the curve length."""
        reference = curve_of_length(50.0)
        reference.build_reference_from_spline(0.3, 1.0, 10.0)

        assert reference.size >= 2
        assert reference.s[0] == 0.0
        assert reference.s[-1] == 50.0
        assert np.all(np.diff(reference.s) > 0)

    def test_fine_section(self):
        """Test the first section uses the smaller step."""
        reference = curve_of_length(50.0)
        reference.build_reference_from_spline(0.3, 1.0, 10.0)
        diffs = np.diff(reference.s)

        assert abs(diffs[0] - 0.3) < 1e-9
        assert abs(diffs[-2] - 1.0) < 1e-9
        assert np.all(diffs <= 1.5 + 1e-9)

    def test_short_tail_merged(self):
        """Test a tail under half a step is merged into the last sample."""
        reference = curve_of_length(10.35)
        reference.build_reference_from_spline(1.0, 1.0, 0.0)

        assert reference.size == 11
        assert reference.s[-1] == 10.35
        assert abs(reference.s[-1] - reference.s[-2] - 1.35) < 1e-9

    def test_long_tail_kept(self):
        """Test a tail of at least half a step gets its own sample."""
        reference = curve_of_length(10.6)
        reference.build_reference_from_spline(1.0, 1.0, 0.0)

        assert reference.size == 12
        assert abs(reference.s[-1] - reference.s[-2] - 0.6) < 1e-9

    def test_shorter_than_one_step(self):
        """Test a very short curve still yields two samples."""
        reference = curve_of_length(0.2)
        reference.build_reference_from_spline(0.3, 1.0, 10.0)

        assert reference.size == 2
        assert reference.s[-1] == 0.2

    def test_empty_curve_rejected(self):
        """Test sampling an empty reference fails."""
        with pytest.raises(InputError):
            ReferencePath().build_reference_from_spline(0.3, 1.0)

    def test_sample_limits(self, straight_path):
        """Test sample positions, headings and curvatures of a straight line."""
        assert np.allclose(straight_path.x, 5.0 + straight_path.s)
        assert np.allclose(straight_path.y, 20.0)
        assert np.all(np.abs(straight_path.heading) < 1e-9)
        assert np.all(np.abs(straight_path.k) < 1e-9)


class TestSetReference:
    """Tests for using states directly as samples."""

    def test_set_reference(self):
        """Test states become samples with arc length."""
        reference = ReferencePath()
        reference.set_reference([State(x=float(i), y=0.0) for i in range(6)])

        assert reference.size == 6
        assert np.allclose(reference.s, [0, 1, 2, 3, 4, 5])
        assert reference.length == 5.0

    def test_duplicates_removed(self):
        """Test repeated positions are dropped."""
        reference = ReferencePath()
        reference.set_reference([State(0, 0), State(0, 0), State(1, 0), State(2, 0)])

        assert reference.size == 3

    def test_too_few_states(self):
        """Test one state is rejected."""
        with pytest.raises(InputError):
            ReferencePath().set_reference([State(0, 0)])

    def test_collapsed_states(self):
        """Test states at one position are rejected."""
        with pytest.raises(InputError):
            ReferencePath().set_reference([State(1, 1), State(1, 1)])


class TestBounds:
    """Tests for corridor bounds."""

    def test_update_bounds_open_map(self, straight_path, open_map):
        """Test the corridor is capped by the maximum clearance."""
        straight_path.update_bounds(open_map, 5.0)

        assert len(straight_path.lower) == straight_path.size
        assert np.allclose(straight_path.upper, 5.0)
        assert np.allclose(straight_path.lower, -5.0)
        assert straight_path.abnormal_bounds == []

    def test_abnormal_bounds(self, open_map, make_reference):
        """Test samples inside an obstacle are recorded."""
        open_map.add_circle_obstacle(center=(30.0, 20.0), radius=1.0)
        reference = make_reference()

        reference.update_bounds(open_map, 5.0)

        assert len(reference.abnormal_bounds) > 0
        for state, lower, upper in reference.abnormal_bounds:
            assert abs(state.x - 30.0) <= 1.1
            assert not lower < upper

    def test_set_bounds_shape(self, straight_path):
        """Test bounds must match the number of samples."""
        with pytest.raises(ValueError):
            straight_path.set_bounds([0.0], [1.0])

    def test_bounds_at_interpolates(self, make_reference):
        """Test bounds are interpolated and clamped."""
        reference = make_reference(2.0)
        reference.set_bounds([-1.0, -2.0, -3.0], [1.0, 2.0, 3.0])

        assert reference.bounds_at(0.5) == (-1.5, 1.5)
        assert reference.bounds_at(10.0) == (-3.0, 3.0)
        assert reference.bounds_at(-1.0) == (-1.0, 1.0)

    def test_boundary_states(self, make_reference):
        """Test boundaries are offset along the left normal."""
        reference = make_reference(2.0)
        reference.set_bounds([-1.0, -1.0, -1.0], [2.0, 2.0, 2.0])

        left, right = reference.boundary_states()

        assert len(left) == len(right) == 3
        assert abs(left[0].y - 22.0) < 1e-9
        assert abs(right[0].y - 19.0) < 1e-9


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
