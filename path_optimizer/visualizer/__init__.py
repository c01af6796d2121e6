"""
Visualization module for path optimization results.
"""

from .visualizer import (
    plot_optimization_result,
    plot_curvature_profile
)

__all__ = [
    'plot_optimization_result',
    'plot_curvature_profile',
]
