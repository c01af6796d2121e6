"""
Models module for states, configuration, map and reference path.
"""

from .state import State, VehicleState
from .config import Config, CarType
from .grid_map import Map
from .collision_checker import CollisionChecker
from .reference_path import ReferencePath

__all__ = ['State', 'VehicleState', 'Config', 'CarType', 'Map',
           'CollisionChecker', 'ReferencePath']
