"""
QP formulation of path optimization.

The vehicle state relative to the reference is x = [e, psi] (lateral error,
heading error) and the input of every segment is the path curvature u. Along
a segment of length ds with reference curvature k_r the linearized
single-track model gives

    x_{i+1} = A_i x_i + B_i u_i + C_i

    A_i = [[1,          ds],      B_i = [0, ds]^T,    C_i = [0, -k_r ds]^T
           [-k_r^2 ds,   1]]

The decision vector is [e_0, psi_0, ..., e_{N-1}, psi_{N-1}, u_0, ..., u_{N-2}].
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

import numpy as np
from scipy import sparse

from ..models.config import Config
from ..models.geometry import normalize_angle
from ..models.reference_path import ReferencePath
from ..models.state import VehicleState


@dataclass(frozen=True)
class HeadingConstraint:
    """Pin the final heading to `target_heading` (world frame)."""
    target_heading: float
    tolerance: float = 0.0


@dataclass(frozen=True)
class HeadingOffsetConstraint:
    """Pin the final heading and the final lateral offset, each within a tolerance."""
    target_heading: float
    target_offset: float
    heading_tolerance: float = 0.0
    offset_tolerance: float = 0.0


TerminalConstraint = Optional[Union[HeadingConstraint, HeadingOffsetConstraint]]


def num_variables(horizon: int) -> int:
    """Size of the decision vector for `horizon` samples."""
    return 3 * horizon - 1


def state_index(i: int) -> int:
    """Index of e_i; psi_i follows it."""
    return 2 * i


def control_index(horizon: int, i: int) -> int:
    """Index of u_i."""
    return 2 * horizon + i


class QpFormulator:
    """
    Builds the cost and constraint matrices of the path QP.

    Attributes:
        config: Vehicle geometry, weights and limits
    """

    def __init__(self, config: Config):
        self.config = config

    # ------------------------------------------------------------------
    # Cost
    # ------------------------------------------------------------------

    def hessian(self, horizon: int) -> sparse.csc_matrix:
        """
        Quadratic cost matrix P of 1/2 x^T P x (upper triangle).

        w_dev * sum(e_i^2) + w_k * sum(u_i^2) + w_dk * sum((u_{i+1} - u_i)^2)

        The matrix depends only on the horizon and the weights, so it can be
        reused for every reference of the same size.

        Args:
            horizon: Number of samples N (>= 2)

        Returns:
            Sparse (3N-1)x(3N-1) matrix in CSC format
        """
        if horizon < 2:
            raise ValueError(f"Horizon must be at least 2, got {horizon}")
        n_ctrl = horizon - 1

        state_weights = np.tile([self.config.opt_deviation_w, 0.0], horizon)
        p_state = sparse.diags(state_weights)

        p_ctrl = self.config.opt_curvature_w * sparse.identity(n_ctrl)
        if n_ctrl > 1:
            diff = sparse.diags([-np.ones(n_ctrl - 1), np.ones(n_ctrl - 1)], [0, 1],
                                shape=(n_ctrl - 1, n_ctrl))
            p_ctrl = p_ctrl + self.config.opt_curvature_rate_w * (diff.T @ diff)

        p = 2.0 * sparse.block_diag([p_state, p_ctrl])
        return sparse.triu(p, format='csc')

    # ------------------------------------------------------------------
    # Dynamics
    # ------------------------------------------------------------------

    @staticmethod
    def dynamics(ref_k: float, seg_s: float) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Discrete error dynamics of one segment.

        Args:
            ref_k: Reference curvature at the segment start
            seg_s: Segment length

        Returns:
            Tuple (A, B, C) of shapes (2, 2), (2,), (2,)
        """
        matrix_a = np.array([[1.0, seg_s],
                             [-ref_k ** 2 * seg_s, 1.0]])
        matrix_b = np.array([0.0, seg_s])
        matrix_c = np.array([0.0, -ref_k * seg_s])
        return matrix_a, matrix_b, matrix_c

    # ------------------------------------------------------------------
    # Constraints
    # ------------------------------------------------------------------

    def constraints(self, reference_path: ReferencePath,
                    vehicle_state: VehicleState,
                    terminal: TerminalConstraint = None,
                    horizon: Optional[int] = None
                    ) -> Tuple[sparse.csc_matrix, np.ndarray, np.ndarray]:
        """
        Stack all constraints as lower <= A x <= upper.

        Rows, in order: initial state (2), dynamics (2 per segment),
        corridor (one per covering circle for samples 1..N-1), curvature
        limits (one per segment), terminal pins (0, 1 or 2).

        Args:
            reference_path: Discretized reference with corridor bounds
            vehicle_state: Provides the initial error
            terminal: Optional terminal constraint
            horizon: Use only the first `horizon` samples (default: all)

        Returns:
            Tuple (A, lower, upper)
        """
        n = reference_path.size if horizon is None else horizon
        if n < 2 or n > reference_path.size:
            raise ValueError(f"Invalid horizon {n} for a reference of size {reference_path.size}")
        if len(reference_path.lower) != reference_path.size:
            raise ValueError("Reference path bounds have not been computed")

        rows: List[int] = []
        cols: List[int] = []
        vals: List[float] = []
        lower: List[float] = []
        upper: List[float] = []

        def add_row(entries, lb, ub):
            row = len(lower)
            for col, val in entries:
                rows.append(row)
                cols.append(col)
                vals.append(val)
            lower.append(lb)
            upper.append(ub)

        # Initial state.
        e0, psi0 = vehicle_state.initial_error()
        add_row([(state_index(0), 1.0)], e0, e0)
        add_row([(state_index(0) + 1, 1.0)], psi0, psi0)

        # Dynamics: x_{i+1} - A x_i - B u_i = C.
        for i in range(n - 1):
            seg_s = float(reference_path.s[i + 1] - reference_path.s[i])
            matrix_a, matrix_b, matrix_c = self.dynamics(float(reference_path.k[i]), seg_s)
            e_i, e_next, u_i = state_index(i), state_index(i + 1), control_index(n, i)
            for r in range(2):
                entries = [(e_next + r, 1.0),
                           (e_i, -matrix_a[r, 0]),
                           (e_i + 1, -matrix_a[r, 1])]
                if matrix_b[r] != 0.0:
                    entries.append((u_i, -matrix_b[r]))
                add_row(entries, matrix_c[r], matrix_c[r])

        # Corridor: every covering circle stays inside the clearance bounds.
        radius = self.config.circle_radius
        offsets = self.config.circle_offsets_from_rear_axle
        for i in range(1, n):
            s_i = float(reference_path.s[i])
            k_i = float(reference_path.k[i])
            for offset in offsets:
                lb, ub = reference_path.bounds_at(s_i + offset)
                drift = 0.5 * k_i * offset ** 2
                add_row([(state_index(i), 1.0), (state_index(i) + 1, offset)],
                        lb + radius + drift, ub - radius + drift)

        # Curvature limit from the maximum steering angle.
        max_k = self.config.max_curvature
        for i in range(n - 1):
            add_row([(control_index(n, i), 1.0)], -max_k, max_k)

        # Terminal pins.
        if terminal is not None:
            end_heading = float(reference_path.heading[n - 1])
            psi_index = state_index(n - 1) + 1
            if isinstance(terminal, HeadingConstraint):
                psi_end = normalize_angle(terminal.target_heading - end_heading)
                add_row([(psi_index, 1.0)],
                        psi_end - terminal.tolerance, psi_end + terminal.tolerance)
            elif isinstance(terminal, HeadingOffsetConstraint):
                psi_end = normalize_angle(terminal.target_heading - end_heading)
                add_row([(psi_index, 1.0)],
                        psi_end - terminal.heading_tolerance, psi_end + terminal.heading_tolerance)
                add_row([(state_index(n - 1), 1.0)],
                        terminal.target_offset - terminal.offset_tolerance,
                        terminal.target_offset + terminal.offset_tolerance)
            else:
                raise TypeError(f"Unknown terminal constraint: {terminal!r}")

        matrix = sparse.coo_matrix((vals, (rows, cols)),
                                   shape=(len(lower), num_variables(n))).tocsc()
        return matrix, np.array(lower), np.array(upper)
