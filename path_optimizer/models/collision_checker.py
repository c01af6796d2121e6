"""
Collision checking of single vehicle poses against the map.
"""

import math
from typing import List, Tuple

from .config import Config
from .grid_map import Map
from .state import State


class CollisionChecker:
    """
    Tests the vehicle's covering circles against a Map.

    A pose is collision free when the obstacle distance at every circle
    center exceeds the circle radius.
    """

    def __init__(self, grid_map: Map, config: Config):
        self.grid_map = grid_map
        self.config = config

    def circle_centers(self, state: State) -> List[Tuple[float, float]]:
        """Centers of the covering circles for a rear-axle pose."""
        cos_h = math.cos(state.heading)
        sin_h = math.sin(state.heading)
        return [(state.x + offset * cos_h, state.y + offset * sin_h)
                for offset in self.config.circle_offsets_from_rear_axle]

    def is_state_collision_free(self, state: State) -> bool:
        radius = self.config.circle_radius
        for cx, cy in self.circle_centers(state):
            if self.grid_map.obstacle_distance(cx, cy) <= radius:
                return False
        return True
