"""
Reference path segmentation.

Aligns the vehicle with the smoothed reference, cuts the reference near the
goal and re-discretizes it for the QP.
"""

import logging
import math

import numpy as np

from ..exceptions import AlignmentError, InputError
from ..models.config import Config
from ..models.geometry import distance, global_to_local, normalize_angle
from ..models.grid_map import Map
from ..models.reference_path import ReferencePath
from ..models.state import State, VehicleState

logger = logging.getLogger(__name__)


class PathSegmenter:
    """
    Re-discretizes a continuous ReferencePath and computes the vehicle's
    initial error terms relative to it.

    Attributes:
        grid_map: Map queried for the corridor of every sample
        config: Optimizer configuration
    """

    def __init__(self, grid_map: Map, config: Config):
        self.grid_map = grid_map
        self.config = config

    def segment(self, reference_path: ReferencePath, vehicle_state: VehicleState) -> int:
        """
        Segment the reference path in place.

        Args:
            reference_path: Reference carrying a continuous curve
            vehicle_state: Receives the initial lateral offset and heading error

        Returns:
            Number of samples of the re-discretized reference

        Raises:
            InputError: If the reference curve is empty or degenerate
            AlignmentError: If the vehicle heading differs too much from the reference
        """
        if reference_path.is_empty():
            raise InputError("Smoothed path is empty!")

        heading_error = self.compute_initial_error(reference_path, vehicle_state)
        if abs(heading_error) > self.config.max_heading_error:
            raise AlignmentError(
                f"Initial epsi is larger than {math.degrees(self.config.max_heading_error):.0f}°, "
                f"quit path optimization!")

        self.truncate_at_goal(reference_path, vehicle_state.end)

        # Intervals are smaller at the beginning unless the vehicle is already aligned.
        delta_s_larger = self.config.larger_spacing
        delta_s_smaller = self.config.delta_s_smaller
        if abs(heading_error) < self.config.small_heading_error:
            delta_s_smaller = delta_s_larger
        reference_path.build_reference_from_spline(delta_s_smaller, delta_s_larger,
                                                   self.config.fine_section_length)
        reference_path.update_bounds(self.grid_map, self.config.max_clearance)

        if reference_path.size < 2 or np.any(np.diff(reference_path.s) <= 0):
            raise InputError(f"Degenerate reference discretization of size {reference_path.size}")

        logger.info(f"Reference path segmentation succeeded. Size: {reference_path.size}")
        return reference_path.size

    def compute_initial_error(self, reference_path: ReferencePath,
                              vehicle_state: VehicleState) -> float:
        """
        Compute and store the initial lateral offset and heading error.

        The smoother starts the curve at the point closest to the vehicle,
        so the distance to the first sample is the lateral offset; its sign
        is the side of the reference the vehicle is on.

        Returns:
            Initial heading error
        """
        first_point = reference_path.state_at(0.0)
        start = vehicle_state.start
        start_local = global_to_local(first_point, start)
        min_distance = distance(start, first_point)
        initial_offset = min_distance if start_local.y >= 0 else -min_distance
        initial_heading_error = normalize_angle(start.heading - first_point.heading)
        vehicle_state.set_init_error(initial_offset, initial_heading_error)
        return initial_heading_error

    def truncate_at_goal(self, reference_path: ReferencePath, goal: State) -> float:
        """
        Cut the reference at the point closest to the goal.

        Only applies when the goal is not already at the end of the curve.
        The search walks backward from the end with a fixed step.

        Returns:
            The usable length after truncation
        """
        length = reference_path.length
        end_distance = math.hypot(goal.x - float(reference_path.x_at(length)),
                                  goal.y - float(reference_path.y_at(length)))
        if end_distance <= self.config.goal_tolerance:
            return length

        search_delta_s = 0.1 if self.config.enable_exact_position else 0.3
        tmp_s = np.arange(length - search_delta_s, 0.0, -search_delta_s)
        if len(tmp_s) == 0:
            return length
        distances = np.hypot(reference_path.x_at(tmp_s) - goal.x,
                             reference_path.y_at(tmp_s) - goal.y)
        best = int(np.argmin(distances))
        if distances[best] < end_distance:
            reference_path.set_length(float(tmp_s[best]))
            logger.info(f"Reference truncated at {reference_path.length:.2f} m "
                        f"(distance to goal {distances[best]:.3f} m)")
        return reference_path.length
