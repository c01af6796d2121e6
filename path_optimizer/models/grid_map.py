"""
@Description: Occupancy-grid map with an obstacle distance field. Answers the
obstacle-distance and lateral-clearance queries made while building the
driving corridor and while collision checking.
"""

import math
from typing import Optional, Tuple

import numpy as np
from scipy.ndimage import distance_transform_edt

from .state import State


class Map:
    """
    Occupancy grid with a Euclidean distance field.

    Cell (row, col) covers x in [origin_x + col*res, origin_x + (col+1)*res)
    and y in [origin_y + row*res, origin_y + (row+1)*res). Non-zero cells are
    occupied. The map border counts as an obstacle.

    Attributes:
        grid: Occupancy array of shape (rows, cols)
        resolution: Cell size in meters
        origin: World coordinates of the lower-left grid corner
        distance_field: Distance (m) from each cell to the nearest obstacle
    """

    def __init__(self, grid: np.ndarray, resolution: float = 0.1,
                 origin: Tuple[float, float] = (0.0, 0.0)):
        """
        Initialize the map.

        Args:
            grid: 2D occupancy array, non-zero means occupied
            resolution: Cell size in meters
            origin: (x, y) of the lower-left corner
        """
        grid = np.asarray(grid)
        if grid.ndim != 2 or grid.size == 0:
            raise ValueError(f"Occupancy grid must be a non-empty 2D array, got shape {grid.shape}")
        if resolution <= 0:
            raise ValueError(f"Resolution must be positive, got {resolution}")
        self.grid = grid != 0
        self.resolution = float(resolution)
        self.origin = (float(origin[0]), float(origin[1]))
        self.distance_field = self._compute_distance_field()

    @classmethod
    def empty(cls, width_m: float, height_m: float, resolution: float = 0.1,
              origin: Tuple[float, float] = (0.0, 0.0)) -> "Map":
        """Create an obstacle-free map of the given size."""
        rows = int(math.ceil(height_m / resolution))
        cols = int(math.ceil(width_m / resolution))
        return cls(np.zeros((rows, cols), dtype=np.uint8), resolution, origin)

    def _compute_distance_field(self) -> np.ndarray:
        # Pad with an occupied ring so the border acts as an obstacle.
        padded = np.pad(self.grid, 1, mode='constant', constant_values=True)
        field = distance_transform_edt(~padded) * self.resolution
        return field[1:-1, 1:-1]

    @property
    def shape(self) -> Tuple[int, int]:
        return self.grid.shape

    def _cell(self, x: float, y: float) -> Tuple[int, int]:
        col = int(math.floor((x - self.origin[0]) / self.resolution))
        row = int(math.floor((y - self.origin[1]) / self.resolution))
        return row, col

    def in_bounds(self, x: float, y: float) -> bool:
        """Check whether a point lies inside the grid."""
        row, col = self._cell(x, y)
        return 0 <= row < self.grid.shape[0] and 0 <= col < self.grid.shape[1]

    def is_occupied(self, x: float, y: float) -> bool:
        """Points outside the grid are reported as occupied."""
        if not self.in_bounds(x, y):
            return True
        row, col = self._cell(x, y)
        return bool(self.grid[row, col])

    def obstacle_distance(self, x: float, y: float) -> float:
        """
        Distance from a point to the nearest obstacle or map border.

        Args:
            x: X coordinate in meters
            y: Y coordinate in meters

        Returns:
            Distance in meters, 0 inside obstacles and outside the map
        """
        if not self.in_bounds(x, y):
            return 0.0
        row, col = self._cell(x, y)
        return float(self.distance_field[row, col])

    def clearance(self, state: State, max_distance: float = 5.0) -> Tuple[float, float]:
        """
        Free lateral extent around a pose, measured along its normal.

        Marches along the left and right normals, stepping by the local
        obstacle distance, until an obstacle is reached or max_distance
        is covered.

        Args:
            state: Pose whose heading defines the normal direction
            max_distance: Largest clearance reported on either side

        Returns:
            Tuple (lower, upper): signed offsets, lower <= 0 <= upper.
            Both are 0 if the pose itself is inside an obstacle.
        """
        nx = -math.sin(state.heading)
        ny = math.cos(state.heading)
        upper = self._search_clearance(state.x, state.y, nx, ny, max_distance)
        lower = -self._search_clearance(state.x, state.y, -nx, -ny, max_distance)
        return lower, upper

    def _search_clearance(self, x: float, y: float, dx: float, dy: float,
                          max_distance: float) -> float:
        offset = 0.0
        while offset < max_distance:
            step = self.obstacle_distance(x + offset * dx, y + offset * dy) - self.resolution
            if step < 0.5 * self.resolution:
                break
            offset += min(step, max_distance - offset)
        return min(offset, max_distance)

    # ------------------------------------------------------------------
    # Obstacle editing
    # ------------------------------------------------------------------

    def add_rectangle_obstacle(self, x_min: float, y_min: float,
                               x_max: float, y_max: float):
        """Mark an axis-aligned rectangle as occupied."""
        row0, col0 = self._cell(x_min, y_min)
        row1, col1 = self._cell(x_max, y_max)
        row0, row1 = max(row0, 0), min(row1, self.grid.shape[0] - 1)
        col0, col1 = max(col0, 0), min(col1, self.grid.shape[1] - 1)
        if row0 > row1 or col0 > col1:
            return
        self.grid[row0:row1 + 1, col0:col1 + 1] = True
        self.distance_field = self._compute_distance_field()

    def add_circle_obstacle(self, center: Tuple[float, float], radius: float):
        """Mark a disc as occupied."""
        rows, cols = self.grid.shape
        ys = self.origin[1] + (np.arange(rows) + 0.5) * self.resolution
        xs = self.origin[0] + (np.arange(cols) + 0.5) * self.resolution
        xx, yy = np.meshgrid(xs, ys)
        self.grid |= (xx - center[0])**2 + (yy - center[1])**2 <= radius**2
        self.distance_field = self._compute_distance_field()

    def __repr__(self) -> str:
        rows, cols = self.grid.shape
        return (f"Map({cols * self.resolution:.1f}x{rows * self.resolution:.1f}m, "
                f"resolution={self.resolution}m, "
                f"occupied_cells={int(self.grid.sum())})")
