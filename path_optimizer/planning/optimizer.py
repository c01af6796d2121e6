"""
Path optimizer

@Description: Facade of the path optimization pipeline. A coarse reference
from a search-based planner is smoothed, segmented against the occupancy
grid and optimized as a QP over the lateral and heading error of the
vehicle, yielding a curvature-continuous, collision-free path.
"""

import logging
import time
from typing import Callable, List, Optional, Sequence, Tuple

from ..exceptions import InfeasibleQP, InputError, PathOptimizationError, SmoothingFailure
from ..models.collision_checker import CollisionChecker
from ..models.config import Config
from ..models.geometry import curvature_cost, global_to_local
from ..models.grid_map import Map
from ..models.reference_path import ReferencePath
from ..models.state import State, VehicleState
from .output_builder import OutputBuilder, OutputResult
from .qp_formulator import (HeadingConstraint, HeadingOffsetConstraint,
                            QpFormulator, TerminalConstraint)
from .qp_solver import QpSolver
from .reference_smoother import ReferenceSmoother
from .segmenter import PathSegmenter
from .timing import log_stage_time, time_ms, timeit

logger = logging.getLogger(__name__)


class PathOptimizer:
    """
    Optimizes a reference path for a wheeled vehicle.

    One instance holds the map, the vehicle states and the solver of one
    planning problem; it can be solved several times with different
    references.

    Attributes:
        config: Optimizer configuration
        grid_map: Occupancy grid with its distance field
        collision_checker: Validates every output point
        formulator: QP cost and constraint builder
        solver: OSQP adapter
        segmenter: Reference re-discretization
        output_builder: Final path construction
    """

    def __init__(self, start_state: State, end_state: State, grid_map: Map,
                 config: Optional[Config] = None,
                 collision_checker: Optional[CollisionChecker] = None,
                 smoother: Optional[Callable[..., ReferenceSmoother]] = None):
        """
        Initialize path optimizer.

        Args:
            start_state: Vehicle start pose
            end_state: Goal pose
            grid_map: Occupancy grid
            config: Optimizer configuration (default: Config())
            collision_checker: Collision checker (default: circle cover of the vehicle)
            smoother: Factory called as smoother(points, start_state, grid_map, config)
                returning an object with solve(reference_path) and search_result
        """
        self.config = config or Config()
        self.grid_map = grid_map
        self.collision_checker = collision_checker or CollisionChecker(grid_map, self.config)
        self.smoother_factory = smoother or ReferenceSmoother

        self.formulator = QpFormulator(self.config)
        self.solver = QpSolver(self.config, self.formulator)
        self.segmenter = PathSegmenter(grid_map, self.config)
        self.output_builder = OutputBuilder(self.config, self.collision_checker)

        self._vehicle_state = VehicleState(start=start_state, end=end_state)
        self._reference_path = ReferencePath()
        self._smoothed_path: List[State] = []
        self._search_result: List[List[float]] = []
        self._left_bound: List[State] = []
        self._right_bound: List[State] = []
        self._sampling_path_set: List[List[State]] = []
        self._failed_sampling_path_set: List[List[State]] = []
        self._best_sampling_index: Optional[int] = None
        self._last_error: Optional[PathOptimizationError] = None

    # --- PUBLIC API ---

    def solve(self, reference_points: Sequence[State], final_path: List[State]) -> bool:
        """
        Smooth, segment and optimize a reference.

        Args:
            reference_points: Coarse reference, in driving order
            final_path: Output list; replaced in place when a path is produced

        Returns:
            True if a usable path was written to `final_path`

        Raises:
            ValueError: If `final_path` is not a list
        """
        self._check_output(final_path)
        self._last_error = None
        t1 = time.perf_counter()
        try:
            if len(reference_points) == 0:
                raise InputError("Empty input, quit path optimization")

            self._reference_path.clear()
            smoother = self.smoother_factory(reference_points, self._vehicle_state.start,
                                             self.grid_map, self.config)
            ok, smoothed_path = smoother.solve(self._reference_path)
            self._smoothed_path = list(smoothed_path)
            self._search_result = list(smoother.search_result)
            if not ok:
                raise SmoothingFailure("Reference smoothing failed")
            t2 = time.perf_counter()

            self.segmenter.segment(self._reference_path, self._vehicle_state)
            self._update_boundaries()
            t3 = time.perf_counter()

            success = self._optimize(final_path)
            t4 = time.perf_counter()
        except PathOptimizationError as e:
            return self._fail(e)

        if self.config.enable_computation_time_output:
            log_stage_time(t1, t2, "Reference smoothing")
            log_stage_time(t2, t3, "Reference segmentation")
            log_stage_time(t3, t4, "Optimization phase")
            log_stage_time(t1, t4, "All")
        if success:
            logger.info(f"Path optimization SUCCEEDED! Total time cost: {time_ms(t1, t4):.2f} ms")
        return success

    def solve_without_smoothing(self, reference_points: Sequence[State],
                                final_path: List[State]) -> bool:
        """
        Optimize an already smooth reference that starts at the vehicle.

        The initial errors are taken as zero and the given states are used
        directly as the QP samples.

        Args:
            reference_points: Smooth reference, in driving order
            final_path: Output list; replaced in place when a path is produced

        Returns:
            True if a usable path was written to `final_path`
        """
        self._check_output(final_path)
        self._last_error = None
        t1 = time.perf_counter()
        try:
            if len(reference_points) == 0:
                raise InputError("Empty input, quit path optimization")

            self._vehicle_state.set_init_error(0.0, 0.0)
            self._reference_path.clear()
            self._reference_path.set_reference(reference_points)
            self._reference_path.update_bounds(self.grid_map, self.config.max_clearance)
            self._reference_path.update_limits()
            self._update_boundaries()
            success = self._optimize(final_path)
        except PathOptimizationError as e:
            return self._fail(e)

        if success:
            logger.info(f"Path optimization SUCCEEDED! Total time cost: "
                        f"{time_ms(t1, time.perf_counter()):.2f} ms")
        return success

    @timeit
    def sample_paths(self, lon_set: Sequence[float], lat_set: Sequence[float]) -> List[List[State]]:
        """
        Sample candidate paths ending at different lengths and lateral offsets.

        Needs a segmented reference (a previous call to solve()). For every
        length in `lon_set`, clipped to the reference, and every offset in
        `lat_set`, the QP is solved over the prefix of the reference with
        the end heading and end offset pinned.

        Args:
            lon_set: Candidate path lengths (m)
            lat_set: Candidate lateral end offsets (m, positive to the left)

        Returns:
            Collision-free candidate paths; candidates cut by a collision
            are kept in `failed_sampling_path_set`. The one with the least
            integrated curvature is kept as `best_sampling_path`
        """
        self._sampling_path_set = []
        self._failed_sampling_path_set = []
        self._best_sampling_index = None
        reference = self._reference_path
        if reference.size < 2 or len(reference.lower) != reference.size:
            logger.warning("Path sampling needs a segmented reference path")
            return []

        for lon in lon_set:
            target_s = min(float(lon), float(reference.s[-1]))
            horizon = max(2, int((reference.s <= target_s + 1e-9).sum()))
            self._prepare_solver(horizon)
            end_heading = float(reference.heading[horizon - 1])
            for lat in lat_set:
                terminal = HeadingOffsetConstraint(target_heading=end_heading,
                                                   target_offset=float(lat))
                try:
                    result = self._solve_qp(terminal, horizon)
                except InfeasibleQP as e:
                    logger.debug(f"Sample lon={lon} lat={lat} failed: {e}")
                    continue
                if result.success and not result.truncated:
                    self._sampling_path_set.append(result.path)
                else:
                    self._failed_sampling_path_set.append(result.path)

        if self._sampling_path_set:
            costs = [curvature_cost(path) for path in self._sampling_path_set]
            self._best_sampling_index = costs.index(min(costs))

        logger.info(f"Path sampling: {len(self._sampling_path_set)} succeeded, "
                    f"{len(self._failed_sampling_path_set)} failed")
        return list(self._sampling_path_set)

    # --- ACCESSORS ---

    @property
    def smoothed_path(self) -> List[State]:
        return list(self._smoothed_path)

    @property
    def abnormal_bounds(self) -> List[Tuple[State, float, float]]:
        return list(self._reference_path.abnormal_bounds)

    @property
    def search_result(self) -> List[List[float]]:
        return list(self._search_result)

    @property
    def reference_path(self) -> ReferencePath:
        return self._reference_path

    @property
    def vehicle_state(self) -> VehicleState:
        return self._vehicle_state

    @property
    def left_bound(self) -> List[State]:
        return list(self._left_bound)

    @property
    def right_bound(self) -> List[State]:
        return list(self._right_bound)

    @property
    def sampling_path_set(self) -> List[List[State]]:
        return list(self._sampling_path_set)

    @property
    def failed_sampling_path_set(self) -> List[List[State]]:
        return list(self._failed_sampling_path_set)

    @property
    def best_sampling_path(self) -> List[State]:
        """Collision-free sample with the least curvature (empty if there is none)."""
        if self._best_sampling_index is None:
            return []
        return list(self._sampling_path_set[self._best_sampling_index])

    @property
    def last_error(self) -> Optional[PathOptimizationError]:
        """Error of the last failed run (None after a run that produced a path)."""
        return self._last_error

    # --- INTERNALS ---

    @staticmethod
    def _check_output(final_path):
        if not isinstance(final_path, list):
            raise ValueError(f"final_path must be a list, got {type(final_path).__name__}")

    def _fail(self, error: PathOptimizationError) -> bool:
        self._last_error = error
        logger.warning(f"Path optimization FAILED: {error}")
        return False

    def _update_boundaries(self):
        self._left_bound, self._right_bound = self._reference_path.boundary_states()

    def _prepare_solver(self, horizon: int):
        if not self.solver.is_initialized_for(horizon):
            self.solver.reset()
            self.solver.initialize(horizon)

    def _terminal_constraint(self) -> Optional[TerminalConstraint]:
        if not self.config.constraint_end_heading:
            return None
        end = self._vehicle_state.end
        if self.config.enable_exact_position:
            reference_end = self._reference_path.sample_state(self._reference_path.size - 1)
            end_offset = global_to_local(reference_end, end).y
            return HeadingOffsetConstraint(target_heading=end.heading,
                                           target_offset=end_offset,
                                           heading_tolerance=self.config.end_heading_tolerance,
                                           offset_tolerance=self.config.end_offset_tolerance)
        return HeadingConstraint(target_heading=end.heading,
                                 tolerance=self.config.end_heading_tolerance)

    def _solve_qp(self, terminal: Optional[TerminalConstraint], horizon: int) -> OutputResult:
        matrix, lower, upper = self.formulator.constraints(
            self._reference_path, self._vehicle_state, terminal, horizon)
        solution = self.solver.solve(matrix, lower, upper)
        if solution is None:
            raise InfeasibleQP(f"QP solver failed with status '{self.solver.status}'")
        states = self.output_builder.states_from_solution(solution, self._reference_path, horizon)
        return self.output_builder.build(states)

    def _optimize(self, final_path: List[State]) -> bool:
        """Solve the QP over the whole reference and write the output path."""
        horizon = self._reference_path.size
        self._prepare_solver(horizon)
        result = self._solve_qp(self._terminal_constraint(), horizon)
        final_path[:] = result.path
        if not result.success:
            logger.warning(f"Path optimization FAILED: collision at {result.collision_s:.2f} m, "
                           f"collision-free part is only {result.length:.2f} m long")
        return result.success


def optimize_path(points: Sequence[State], start: State, end: State, grid_map: Map,
                  config: Optional[Config] = None) -> Tuple[List[State], bool]:
    """
    Convenience function to optimize a reference path.

    Args:
        points: Coarse reference, in driving order
        start: Vehicle start pose
        end: Goal pose
        grid_map: Occupancy grid
        config: Optimizer configuration

    Returns:
        Tuple of (path, success)
    """
    optimizer = PathOptimizer(start, end, grid_map, config)
    path: List[State] = []
    success = optimizer.solve(points, path)
    return path, success
