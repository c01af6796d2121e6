"""
Path Optimizer

A Python library for smoothing and QP-based optimization of reference paths
for wheeled vehicles on occupancy grids.
"""

__version__ = "0.1.0"
__license__ = "MIT"

# Import main classes for easy access
from .models.state import State, VehicleState
from .models.config import Config, CarType
from .models.grid_map import Map
from .models.collision_checker import CollisionChecker
from .models.reference_path import ReferencePath
from .planning.optimizer import PathOptimizer, optimize_path
from .planning.qp_formulator import HeadingConstraint, HeadingOffsetConstraint
from .exceptions import (PathOptimizationError, InputError, AlignmentError,
                         SmoothingFailure, InfeasibleQP)

__all__ = [
    'State',
    'VehicleState',
    'Config',
    'CarType',
    'Map',
    'CollisionChecker',
    'ReferencePath',
    'PathOptimizer',
    'optimize_path',
    'HeadingConstraint',
    'HeadingOffsetConstraint',
    'PathOptimizationError',
    'InputError',
    'AlignmentError',
    'SmoothingFailure',
    'InfeasibleQP',
]
