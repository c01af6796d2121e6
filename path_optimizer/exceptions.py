"""
Error taxonomy of the path optimizer.

Every failure of one optimization run is a PathOptimizationError; the
optimizer facade catches these, logs them and reports a boolean result.
"""


class PathOptimizationError(Exception):
    """Base class for failures local to one solve invocation."""


class InputError(PathOptimizationError):
    """Empty or degenerate reference input."""


class AlignmentError(PathOptimizationError):
    """Initial heading error too large for the linearized model."""


class SmoothingFailure(PathOptimizationError):
    """The reference smoother could not produce a usable curve."""


class InfeasibleQP(PathOptimizationError):
    """The QP solver reported infeasibility or failed."""
