"""
Reference path representation.

The reference path owns the smoothed curve as two arc-length parameterized
cubic splines x(s), y(s), the discretized samples used by the QP, and the
lateral clearance bounds of each sample.
"""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np
from scipy.interpolate import CubicSpline

from ..exceptions import InputError
from .geometry import (cumulative_arc_length, remove_duplicates,
                       spline_curvature, spline_heading)
from .grid_map import Map
from .state import State

logger = logging.getLogger(__name__)


class ReferencePath:
    """
    Smoothed reference curve with its discretization and corridor.

    Attributes:
        x_spline: x(s) interpolant
        y_spline: y(s) interpolant
        length: Usable arc length of the curve
        s, k, heading, x, y: Sample arrays of equal size
        lower, upper: Signed lateral clearance bounds per sample
        abnormal_bounds: (state, lower, upper) of samples with an empty corridor
    """

    def __init__(self):
        self.clear()

    def clear(self):
        """Drop the curve, the samples and the bounds."""
        self.x_spline: Optional[CubicSpline] = None
        self.y_spline: Optional[CubicSpline] = None
        self.length = 0.0
        self.s = np.zeros(0)
        self.k = np.zeros(0)
        self.heading = np.zeros(0)
        self.x = np.zeros(0)
        self.y = np.zeros(0)
        self.lower = np.zeros(0)
        self.upper = np.zeros(0)
        self.abnormal_bounds: List[Tuple[State, float, float]] = []

    def __len__(self) -> int:
        return len(self.s)

    @property
    def size(self) -> int:
        return len(self.s)

    def is_empty(self) -> bool:
        return self.x_spline is None or self.length <= 0

    # ------------------------------------------------------------------
    # Continuous curve
    # ------------------------------------------------------------------

    def set_spline(self, x_spline: CubicSpline, y_spline: CubicSpline, length: float):
        """Set the continuous curve, valid on [0, length]."""
        self.x_spline = x_spline
        self.y_spline = y_spline
        self.length = float(length)

    def set_length(self, length: float):
        """Truncate (or restore) the usable length of the curve."""
        max_length = float(self.x_spline.x[-1]) if self.x_spline is not None else 0.0
        self.length = float(min(max(length, 0.0), max_length))

    def x_at(self, s):
        return self.x_spline(s)

    def y_at(self, s):
        return self.y_spline(s)

    def state_at(self, s: float) -> State:
        """Pose of the continuous curve at arc length s."""
        return State(x=float(self.x_spline(s)),
                     y=float(self.y_spline(s)),
                     heading=float(spline_heading(self.x_spline, self.y_spline, s)),
                     curvature=float(spline_curvature(self.x_spline, self.y_spline, s)),
                     arc_length=float(s))

    # ------------------------------------------------------------------
    # Discretization
    # ------------------------------------------------------------------

    def build_reference_from_spline(self, delta_s_smaller: float, delta_s_larger: float,
                                    fine_section_length: float = 10.0):
        """
        Sample the curve, finer near its start.

        Samples inside the first `fine_section_length` meters are spaced by
        `delta_s_smaller`, the rest by `delta_s_larger`. The last sample is
        always placed at the end of the curve.

        Args:
            delta_s_smaller: Step near the start
            delta_s_larger: Step for the remainder
            fine_section_length: Length of the finely sampled section
        """
        if delta_s_smaller <= 0 or delta_s_larger <= 0:
            raise ValueError("Sampling steps must be positive")
        if self.is_empty():
            raise InputError("Cannot sample an empty reference curve")

        samples = [0.0]
        step = delta_s_smaller
        while True:
            step = delta_s_smaller if samples[-1] < fine_section_length else delta_s_larger
            next_s = samples[-1] + step
            if next_s >= self.length:
                break
            samples.append(next_s)

        # Merge a short tail into the terminal sample.
        if len(samples) > 1 and self.length - samples[-1] < 0.5 * step:
            samples[-1] = self.length
        else:
            samples.append(self.length)

        self.s = np.array(samples)
        self.update_limits()

    def set_reference(self, reference_states: Sequence[State]):
        """
        Use already aligned states directly as the samples.

        Args:
            reference_states: Poses of the reference, in driving order

        Raises:
            InputError: If fewer than two distinct positions are given
        """
        xs = np.array([p.x for p in reference_states], dtype=float)
        ys = np.array([p.y for p in reference_states], dtype=float)
        if len(xs) < 2:
            raise InputError("At least two reference states are required")
        xs, ys = remove_duplicates(xs, ys)
        if len(xs) < 2:
            raise InputError("Reference states collapse to a single point")

        s = cumulative_arc_length(xs, ys)
        self.set_spline(CubicSpline(s, xs), CubicSpline(s, ys), s[-1])
        self.s = s
        self.update_limits()

    def update_limits(self):
        """Refresh position, heading and curvature of every sample from the curve."""
        self.x = np.asarray(self.x_spline(self.s), dtype=float)
        self.y = np.asarray(self.y_spline(self.s), dtype=float)
        self.heading = np.asarray(spline_heading(self.x_spline, self.y_spline, self.s), dtype=float)
        self.k = np.asarray(spline_curvature(self.x_spline, self.y_spline, self.s), dtype=float)

    def update_bounds(self, grid_map: Map, max_clearance: float = 5.0):
        """
        Query the corridor of every sample from the map.

        Samples whose corridor is empty are recorded in `abnormal_bounds`.
        """
        self.abnormal_bounds = []
        lower = np.zeros(self.size)
        upper = np.zeros(self.size)
        for i, state in enumerate(self.states()):
            lower[i], upper[i] = grid_map.clearance(state, max_clearance)
            if not lower[i] < upper[i]:
                self.abnormal_bounds.append((state, lower[i], upper[i]))
        self.lower = lower
        self.upper = upper
        if self.abnormal_bounds:
            logger.warning(f"{len(self.abnormal_bounds)} reference samples have an empty corridor")

    def set_bounds(self, lower: Sequence[float], upper: Sequence[float]):
        """Set the corridor directly, one (lower, upper) pair per sample."""
        lower = np.asarray(lower, dtype=float)
        upper = np.asarray(upper, dtype=float)
        if lower.shape != self.s.shape or upper.shape != self.s.shape:
            raise ValueError(f"Bounds must have {self.size} entries")
        self.lower = lower
        self.upper = upper
        self.abnormal_bounds = [(self.sample_state(i), lower[i], upper[i])
                                for i in range(self.size) if not lower[i] < upper[i]]

    def bounds_at(self, s: float) -> Tuple[float, float]:
        """Corridor at arc length s, linearly interpolated and clamped at the ends."""
        return (float(np.interp(s, self.s, self.lower)),
                float(np.interp(s, self.s, self.upper)))

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def sample_state(self, i: int) -> State:
        return State(x=float(self.x[i]), y=float(self.y[i]),
                     heading=float(self.heading[i]), curvature=float(self.k[i]),
                     arc_length=float(self.s[i]))

    def states(self) -> List[State]:
        """Samples as State objects."""
        return [self.sample_state(i) for i in range(self.size)]

    def boundary_states(self) -> Tuple[List[State], List[State]]:
        """
        Left and right corridor boundaries in world coordinates.

        Returns:
            Tuple of (left_bound, right_bound) lists
        """
        nx = -np.sin(self.heading)
        ny = np.cos(self.heading)
        left = [State(x=float(self.x[i] + self.upper[i] * nx[i]),
                      y=float(self.y[i] + self.upper[i] * ny[i]),
                      heading=float(self.heading[i]), arc_length=float(self.s[i]))
                for i in range(len(self.lower))]
        right = [State(x=float(self.x[i] + self.lower[i] * nx[i]),
                       y=float(self.y[i] + self.lower[i] * ny[i]),
                       heading=float(self.heading[i]), arc_length=float(self.s[i]))
                 for i in range(len(self.lower))]
        return left, right

    def __repr__(self) -> str:
        return f"ReferencePath(length={self.length:.2f}m, samples={self.size})"
