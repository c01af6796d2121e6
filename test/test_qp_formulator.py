"""
Unit tests for the QP formulation.

Run with: pytest test/test_qp_formulator.py
"""

import pytest
import numpy as np
from scipy import sparse
from path_optimizer.models.config import Config
from path_optimizer.models.state import VehicleState
from path_optimizer.planning.qp_formulator import (
    QpFormulator,
    HeadingConstraint,
    HeadingOffsetConstraint,
    num_variables,
    state_index,
    control_index
)


@pytest.fixture
def formulator(default_config):
    """Fixture providing a formulator with default weights."""
    return QpFormulator(default_config)


@pytest.fixture
def bounded_path(straight_path):
    """Fixture providing the straight reference with a +-3 m corridor."""
    straight_path.set_bounds(np.full(straight_path.size, -3.0),
                             np.full(straight_path.size, 3.0))
    return straight_path


class TestIndexing:
    """Tests for the decision vector layout."""

    def test_num_variables(self):
        """Test two states per sample plus one input per segment."""
        assert num_variables(2) == 5
        assert num_variables(10) == 29

    def test_indices(self):
        """Test states come first, then inputs."""
        assert state_index(0) == 0
        assert state_index(3) == 6
        assert control_index(10, 0) == 20
        assert control_index(10, 8) == 28


class TestHessian:
    """Tests for the cost matrix."""

    def test_shape_and_triangle(self, formulator):
        """Test size and upper triangular storage."""
        hessian = formulator.hessian(10)

        assert hessian.shape == (29, 29)
        assert sparse.tril(hessian, k=-1).count_nonzero() == 0

    def test_values(self, formulator):
        """Test curvature and curvature-rate weights for three samples."""
        hessian = formulator.hessian(3).toarray()

        # u0, u1 at 6, 7: 2 * (w_k I + w_dk D^T D)
        assert abs(hessian[6, 6] - 420.0) < 1e-9
        assert abs(hessian[7, 7] - 420.0) < 1e-9
        assert abs(hessian[6, 7] + 400.0) < 1e-9
        assert hessian[7, 6] == 0.0
        assert np.all(hessian[:6, :6] == 0.0)

    def test_deviation_weight(self):
        """Test the deviation weight applies to lateral errors only."""
        hessian = QpFormulator(Config(opt_deviation_w=5.0)).hessian(3).toarray()

        assert abs(hessian[0, 0] - 10.0) < 1e-9
        assert hessian[1, 1] == 0.0
        assert abs(hessian[4, 4] - 10.0) < 1e-9

    def test_invalid_horizon(self, formulator):
        """Test a horizon below two samples is rejected."""
        with pytest.raises(ValueError):
            formulator.hessian(1)


class TestDynamics:
    """Tests for the discrete error dynamics."""

    def test_matrices(self):
        """Test A, B, C for one segment."""
        matrix_a, matrix_b, matrix_c = QpFormulator.dynamics(0.1, 0.5)

        assert np.allclose(matrix_a, [[1.0, 0.5], [-0.005, 1.0]])
        assert np.allclose(matrix_b, [0.0, 0.5])
        assert np.allclose(matrix_c, [0.0, -0.05])

    def test_straight_segment(self):
        """Test a straight segment has no drift."""
        matrix_a, matrix_b, matrix_c = QpFormulator.dynamics(0.0, 1.0)

        assert np.allclose(matrix_a, [[1.0, 1.0], [0.0, 1.0]])
        assert np.allclose(matrix_c, [0.0, 0.0])


class TestConstraints:
    """Tests for the stacked constraints."""

    def test_row_count(self, formulator, bounded_path):
        """Test rows: initial, dynamics, four circles, curvature."""
        n = bounded_path.size
        matrix, lower, upper = formulator.constraints(bounded_path, VehicleState())

        assert matrix.shape == (2 + 7 * (n - 1), num_variables(n))
        assert len(lower) == len(upper) == matrix.shape[0]

    def test_initial_rows(self, formulator, bounded_path):
        """Test the initial error is pinned."""
        vehicle_state = VehicleState(initial_lateral_offset=0.4, initial_heading_error=-0.1)
        matrix, lower, upper = formulator.constraints(bounded_path, vehicle_state)
        dense = matrix.toarray()

        assert dense[0, 0] == 1.0 and lower[0] == upper[0] == 0.4
        assert dense[1, 1] == 1.0 and lower[1] == upper[1] == -0.1

    def test_dynamics_rows(self, formulator, bounded_path):
        """Test the first segment's dynamics rows."""
        n = bounded_path.size
        dense = formulator.constraints(bounded_path, VehicleState())[0].toarray()

        assert dense[2, state_index(1)] == 1.0
        assert dense[2, 0] == -1.0
        assert dense[2, 1] == -1.0
        assert dense[3, state_index(1) + 1] == 1.0
        assert dense[3, 1] == -1.0
        assert dense[3, control_index(n, 0)] == -1.0

    def test_corridor_rows(self, formulator, bounded_path, default_config):
        """Test corridor rows shrink the bounds by the circle radius."""
        n = bounded_path.size
        matrix, lower, upper = formulator.constraints(bounded_path, VehicleState())
        dense = matrix.toarray()
        first = 2 + 2 * (n - 1)
        radius = default_config.circle_radius

        for j, offset in enumerate(default_config.circle_offsets_from_rear_axle):
            row = first + j
            assert dense[row, state_index(1)] == 1.0
            assert abs(dense[row, state_index(1) + 1] - offset) < 1e-12
            assert abs(lower[row] - (-3.0 + radius)) < 1e-9
            assert abs(upper[row] - (3.0 - radius)) < 1e-9

    def test_corridor_curvature_drift(self, formulator, bounded_path, default_config):
        """Test the corridor shifts by k L^2 / 2 on a curved reference."""
        bounded_path.k[:] = 0.1
        n = bounded_path.size
        _, lower, upper = formulator.constraints(bounded_path, VehicleState())
        row = 2 + 2 * (n - 1) + 3
        offset = default_config.circle_offsets_from_rear_axle[3]
        drift = 0.5 * 0.1 * offset ** 2

        assert abs(lower[row] - (-3.0 + default_config.circle_radius + drift)) < 1e-9
        assert abs(upper[row] - (3.0 - default_config.circle_radius + drift)) < 1e-9

    def test_curvature_rows(self, formulator, bounded_path, default_config):
        """Test curvature inputs are bounded by the steering limit."""
        n = bounded_path.size
        _, lower, upper = formulator.constraints(bounded_path, VehicleState())
        first = 2 + 6 * (n - 1)

        assert np.allclose(lower[first:], -default_config.max_curvature)
        assert np.allclose(upper[first:], default_config.max_curvature)

    def test_zero_is_feasible_on_straight(self, formulator, bounded_path):
        """Test the zero vector satisfies every row without initial error."""
        matrix, lower, upper = formulator.constraints(bounded_path, VehicleState())
        value = matrix @ np.zeros(matrix.shape[1])

        assert np.all(lower <= value + 1e-12)
        assert np.all(value <= upper + 1e-12)

    def test_heading_constraint(self, formulator, bounded_path):
        """Test one terminal row pins the relative end heading."""
        n = bounded_path.size
        matrix, lower, upper = formulator.constraints(
            bounded_path, VehicleState(), HeadingConstraint(target_heading=0.2, tolerance=0.05))

        assert matrix.shape[0] == 2 + 7 * (n - 1) + 1
        assert matrix.toarray()[-1, state_index(n - 1) + 1] == 1.0
        assert abs(lower[-1] - 0.15) < 1e-12
        assert abs(upper[-1] - 0.25) < 1e-12

    def test_heading_offset_constraint(self, formulator, bounded_path):
        """Test two terminal rows pin heading and lateral offset."""
        n = bounded_path.size
        terminal = HeadingOffsetConstraint(target_heading=0.0, target_offset=0.8)
        matrix, lower, upper = formulator.constraints(bounded_path, VehicleState(), terminal)
        dense = matrix.toarray()

        assert matrix.shape[0] == 2 + 7 * (n - 1) + 2
        assert dense[-2, state_index(n - 1) + 1] == 1.0
        assert dense[-1, state_index(n - 1)] == 1.0
        assert lower[-1] == upper[-1] == 0.8

    def test_prefix_horizon(self, formulator, bounded_path):
        """Test constraints over the first samples only."""
        matrix, _, _ = formulator.constraints(bounded_path, VehicleState(), horizon=10)
        assert matrix.shape == (2 + 7 * 9, num_variables(10))

    def test_invalid_horizon(self, formulator, bounded_path):
        """Test a horizon beyond the reference is rejected."""
        with pytest.raises(ValueError):
            formulator.constraints(bounded_path, VehicleState(), horizon=bounded_path.size + 1)

    def test_missing_bounds(self, formulator, straight_path):
        """Test a reference without bounds is rejected."""
        with pytest.raises(ValueError):
            formulator.constraints(straight_path, VehicleState())

    def test_unknown_terminal(self, formulator, bounded_path):
        """Test an unsupported terminal constraint is rejected."""
        with pytest.raises(TypeError):
            formulator.constraints(bounded_path, VehicleState(), terminal=0.5)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
