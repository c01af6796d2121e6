"""
Planning module for reference smoothing and QP path optimization.
"""

from .reference_smoother import ReferenceSmoother
from .segmenter import PathSegmenter
from .qp_formulator import (QpFormulator, HeadingConstraint, HeadingOffsetConstraint,
                            num_variables, state_index, control_index)
from .qp_solver import QpSolver
from .output_builder import OutputBuilder, OutputResult
from .optimizer import PathOptimizer, optimize_path

__all__ = [
    'ReferenceSmoother',
    'PathSegmenter',
    'QpFormulator',
    'HeadingConstraint',
    'HeadingOffsetConstraint',
    'num_variables',
    'state_index',
    'control_index',
    'QpSolver',
    'OutputBuilder',
    'OutputResult',
    'PathOptimizer',
    'optimize_path',
]
