"""
Output path construction.

Turns the QP solution into States, either one per optimized sample (raw
mode) or re-interpolated at a fixed spacing (densified mode), and validates
every output point against the collision checker.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
from scipy.interpolate import CubicSpline

from ..models.config import Config
from ..models.geometry import (cumulative_arc_length, distance, normalize_angle,
                               spline_curvature, spline_heading)
from ..models.reference_path import ReferencePath
from ..models.state import State
from .qp_formulator import control_index, state_index

logger = logging.getLogger(__name__)


@dataclass
class OutputResult:
    """
    Outcome of output construction.

    Attributes:
        path: Output states (possibly truncated)
        success: False if truncation left less than the minimum usable length
        truncated: True if a collision cut the path
        collision_s: Arc length of the first colliding point, if any
    """
    path: List[State] = field(default_factory=list)
    success: bool = True
    truncated: bool = False
    collision_s: Optional[float] = None

    @property
    def length(self) -> float:
        return self.path[-1].arc_length if self.path else 0.0


class OutputBuilder:
    """
    Builds the final path from optimized samples.

    Attributes:
        config: Output policy
        collision_checker: Object with is_state_collision_free(state) -> bool
        x_spline, y_spline: Interpolants fitted in the last densified build
    """

    def __init__(self, config: Config, collision_checker=None):
        self.config = config
        self.collision_checker = collision_checker
        self.x_spline: Optional[CubicSpline] = None
        self.y_spline: Optional[CubicSpline] = None

    @staticmethod
    def states_from_solution(solution: np.ndarray, reference_path: ReferencePath,
                             horizon: Optional[int] = None) -> List[State]:
        """
        Convert a QP solution into world-frame States.

        The lateral error is applied along the reference normal, the heading
        error is added to the reference heading. The last sample repeats
        the last curvature input.

        Args:
            solution: QP decision vector
            reference_path: Reference the errors are measured against
            horizon: Number of samples in the solution (default: all)

        Returns:
            One State per sample, arc length set to the reference arc length
        """
        n = reference_path.size if horizon is None else horizon
        states = []
        for i in range(n):
            e = solution[state_index(i)]
            psi = solution[state_index(i) + 1]
            k = solution[control_index(n, min(i, n - 2))]
            heading = reference_path.heading[i]
            states.append(State(x=float(reference_path.x[i] - e * math.sin(heading)),
                                y=float(reference_path.y[i] + e * math.cos(heading)),
                                heading=normalize_angle(float(heading + psi)),
                                curvature=float(k),
                                arc_length=float(reference_path.s[i])))
        return states

    def build(self, states: List[State]) -> OutputResult:
        """Build the output with the configured policy."""
        if self.config.raw_output:
            return self.build_raw(states)
        return self.build_densified(states, self.config.output_spacing)

    def build_raw(self, states: List[State]) -> OutputResult:
        """
        Output the optimized samples directly.

        Arc length is the accumulated Euclidean distance between points.
        """
        path: List[State] = []
        s = 0.0
        for i, state in enumerate(states):
            if i > 0:
                s += distance(states[i - 1], state)
            state = State(state.x, state.y, state.heading, state.curvature, s)
            if not self._is_collision_free(state):
                return self._truncate(path, s)
            path.append(state)
        logger.info("Output raw result.")
        return OutputResult(path=path)

    def build_densified(self, states: List[State], delta_s: float) -> OutputResult:
        """
        Re-interpolate the optimized samples at a fixed spacing.

        Fits x(s) and y(s) over the samples (s is the accumulated distance)
        and resamples them every `delta_s`, always ending on the last sample.
        Heading and curvature come from the interpolants.
        """
        if delta_s <= 0:
            raise ValueError(f"Output spacing must be positive, got {delta_s}")
        result_x = np.array([p.x for p in states], dtype=float)
        result_y = np.array([p.y for p in states], dtype=float)
        result_s = cumulative_arc_length(result_x, result_y)
        keep = np.concatenate(([True], np.diff(result_s) > 1e-9))
        result_x, result_y, result_s = result_x[keep], result_y[keep], result_s[keep]
        if len(result_s) < 2:
            return self.build_raw(states[:1])

        self.x_spline = CubicSpline(result_s, result_x)
        self.y_spline = CubicSpline(result_s, result_y)

        sample_s = np.arange(0.0, result_s[-1], delta_s)
        if result_s[-1] - sample_s[-1] > 1e-6:
            sample_s = np.append(sample_s, result_s[-1])
        headings = spline_heading(self.x_spline, self.y_spline, sample_s)
        curvatures = spline_curvature(self.x_spline, self.y_spline, sample_s)

        path: List[State] = []
        for tmp_s, heading, k in zip(sample_s, headings, curvatures):
            state = State(x=float(self.x_spline(tmp_s)),
                          y=float(self.y_spline(tmp_s)),
                          heading=normalize_angle(float(heading)),
                          curvature=float(k),
                          arc_length=float(tmp_s))
            if not self._is_collision_free(state):
                return self._truncate(path, float(tmp_s))
            path.append(state)
        logger.info("Output densified result.")
        return OutputResult(path=path)

    def _is_collision_free(self, state: State) -> bool:
        if not self.config.enable_collision_check or self.collision_checker is None:
            return True
        return self.collision_checker.is_state_collision_free(state)

    def _truncate(self, path: List[State], collision_s: float) -> OutputResult:
        length = path[-1].arc_length if path else 0.0
        success = bool(path) and length >= self.config.min_truncated_length
        logger.warning(f"Collision check failed at {collision_s:.2f}m, "
                       f"path truncated to {length:.2f}m.")
        return OutputResult(path=path, success=success, truncated=True,
                            collision_s=collision_s)
