"""
Reference path smoothing module.

Converts the coarse point sequence from a search-based planner into a
continuous curve, parameterized by arc length, that starts at the point
of the reference closest to the vehicle.
"""

import logging
import math
import numpy as np
from typing import List, Optional, Sequence, Tuple
from scipy.interpolate import CubicSpline, splprep, splev

from ..models.config import Config
from ..models.geometry import cumulative_arc_length, remove_duplicates
from ..models.grid_map import Map
from ..models.reference_path import ReferencePath
from ..models.state import State

logger = logging.getLogger(__name__)


def _project_to_segment(point: Tuple[float, float],
                        p1: Tuple[float, float],
                        p2: Tuple[float, float]) -> Tuple[float, float, float]:
    """Closest point on a segment; returns (x, y, distance)."""
    px, py = point
    x1, y1 = p1
    x2, y2 = p2
    dx, dy = x2 - x1, y2 - y1
    if dx == 0 and dy == 0:
        return x1, y1, math.hypot(px - x1, py - y1)
    t = max(0.0, min(1.0, ((px - x1) * dx + (py - y1) * dy) / (dx * dx + dy * dy)))
    closest_x = x1 + t * dx
    closest_y = y1 + t * dy
    return closest_x, closest_y, math.hypot(px - closest_x, py - closest_y)


class ReferenceSmoother:
    """
    Smooths a raw reference point sequence into a ReferencePath curve.

    The point sequence is first trimmed so that it starts at the projection
    of the vehicle onto it, then fitted with a smoothing B-spline and
    re-parameterized by arc length with two cubic splines x(s), y(s).
    """

    def __init__(self, points: Sequence[State], start_state: State,
                 grid_map: Optional[Map] = None,
                 config: Optional[Config] = None,
                 sample_step: float = 0.1):
        """
        Initialize reference smoother.

        Args:
            points: Raw reference points, in driving order
            start_state: Vehicle start pose
            grid_map: Optional map; the curve is cut where it leaves the map
            config: Optimizer configuration (smoothing factor)
            sample_step: Arc-length step of the dense re-sampling
        """
        self.points = list(points)
        self.start_state = start_state
        self.grid_map = grid_map
        self.config = config or Config()
        self.sample_step = sample_step
        self.search_result: List[List[float]] = []

    def solve(self, reference_path: ReferencePath) -> Tuple[bool, List[State]]:
        """
        Smooth the reference and store the curve in `reference_path`.

        Args:
            reference_path: Destination of the continuous curve

        Returns:
            Tuple (ok, smoothed_path): whether smoothing succeeded and the
            densely sampled smoothed curve for display
        """
        if len(self.points) < 2:
            logger.warning("Reference smoothing needs at least two points")
            return False, []

        x = np.array([p.x for p in self.points], dtype=float)
        y = np.array([p.y for p in self.points], dtype=float)
        x, y = remove_duplicates(x, y)
        if len(x) < 2:
            logger.warning("Reference points collapse to a single position")
            return False, []

        x, y = self._trim_to_start(x, y)
        self.search_result = [[float(px), float(py)] for px, py in zip(x, y)]
        if len(x) < 2:
            logger.warning("Vehicle projects onto the end of the reference")
            return False, []

        try:
            dense_x, dense_y = self._fit_spline(x, y)
        except ValueError as e:
            logger.warning(f"Reference spline fitting failed: {e}")
            return False, []

        dense_x, dense_y = self._clip_to_map(dense_x, dense_y)
        dense_x, dense_y = remove_duplicates(dense_x, dense_y)
        if len(dense_x) < 2:
            logger.warning("Smoothed reference is degenerate")
            return False, []

        s = cumulative_arc_length(dense_x, dense_y)
        x_s = CubicSpline(s, dense_x)
        y_s = CubicSpline(s, dense_y)
        reference_path.set_spline(x_s, y_s, s[-1])

        smoothed_path = [reference_path.state_at(tmp_s) for tmp_s in s]
        logger.info(f"Reference smoothing succeeded. Length: {s[-1]:.2f} m")
        return True, smoothed_path

    def _trim_to_start(self, x: np.ndarray, y: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Drop the part of the reference behind the vehicle.

        The projection of the vehicle onto the closest segment becomes the
        first point of the reference.
        """
        start = (self.start_state.x, self.start_state.y)
        best_index = 0
        best = None
        for i in range(len(x) - 1):
            projection = _project_to_segment(start, (x[i], y[i]), (x[i + 1], y[i + 1]))
            if best is None or projection[2] < best[2]:
                best = projection
                best_index = i

        new_x = np.concatenate(([best[0]], x[best_index + 1:]))
        new_y = np.concatenate(([best[1]], y[best_index + 1:]))
        return remove_duplicates(new_x, new_y)

    def _fit_spline(self, x: np.ndarray, y: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Fit a smoothing B-spline and sample it densely."""
        distances = cumulative_arc_length(x, y)
        total_length = distances[-1]
        num_points = max(2, int(math.ceil(total_length / self.sample_step)) + 1)

        if len(x) < 4:
            # Too few points for a cubic fit; interpolate the polyline.
            u_new = np.linspace(0, total_length, num_points)
            return np.interp(u_new, distances, x), np.interp(u_new, distances, y)

        tck, u = splprep(
            [x, y],
            u=distances / total_length,
            s=self.config.smoothing_factor * len(x),
            k=3
        )
        u_new = np.linspace(0, 1, num_points)
        x_new, y_new = splev(u_new, tck)
        x_new = np.asarray(x_new)
        y_new = np.asarray(y_new)

        valid_mask = np.isfinite(x_new) & np.isfinite(y_new)
        return x_new[valid_mask], y_new[valid_mask]

    def _clip_to_map(self, x: np.ndarray, y: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Cut the curve at the first sample outside the map."""
        if self.grid_map is None:
            return x, y
        for i in range(len(x)):
            if not self.grid_map.in_bounds(x[i], y[i]):
                logger.warning(f"Smoothed reference leaves the map after {i} samples")
                return x[:i], y[:i]
        return x, y
