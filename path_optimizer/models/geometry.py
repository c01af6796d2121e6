"""
Geometry helpers shared by the optimization pipeline.

This module provides distance, angle and frame-transform functions on
States, plus heading/curvature evaluation of arc-length parameterized
splines.
"""

import math
import numpy as np
from typing import Sequence, Tuple
from scipy.interpolate import CubicSpline
from .state import State


def normalize_angle(angle: float) -> float:
    """
    Normalize an angle to (-pi, pi].

    Angles already in range are returned unchanged, so the function is
    idempotent bit for bit.

    Args:
        angle: Angle in radians, any magnitude

    Returns:
        Equivalent angle in (-pi, pi]
    """
    if -math.pi < angle <= math.pi:
        return angle
    result = math.pi - (math.pi - angle) % (2 * math.pi)
    # The modulo can round up to 2*pi for angles just above pi.
    return math.pi if result <= -math.pi else result


def distance(p1: State, p2: State) -> float:
    """
    Calculate Euclidean distance between two states.

    Args:
        p1: First state
        p2: Second state

    Returns:
        Planar distance
    """
    return math.hypot(p2.x - p1.x, p2.y - p1.y)


def global_to_local(origin: State, target: State) -> State:
    """
    Express `target` in the frame attached to `origin`.

    The local x axis points along the origin heading, y to its left.

    Args:
        origin: Pose defining the local frame
        target: Pose to transform

    Returns:
        Target pose in the local frame (heading relative to origin)
    """
    dx = target.x - origin.x
    dy = target.y - origin.y
    cos_h = math.cos(origin.heading)
    sin_h = math.sin(origin.heading)
    return State(x=dx * cos_h + dy * sin_h,
                 y=-dx * sin_h + dy * cos_h,
                 heading=normalize_angle(target.heading - origin.heading),
                 curvature=target.curvature,
                 arc_length=target.arc_length)


def local_to_global(origin: State, local: State) -> State:
    """Inverse of global_to_local."""
    cos_h = math.cos(origin.heading)
    sin_h = math.sin(origin.heading)
    return State(x=origin.x + local.x * cos_h - local.y * sin_h,
                 y=origin.y + local.x * sin_h + local.y * cos_h,
                 heading=normalize_angle(origin.heading + local.heading),
                 curvature=local.curvature,
                 arc_length=local.arc_length)


def spline_heading(x_s: CubicSpline, y_s: CubicSpline, s) -> np.ndarray:
    """Heading of the curve (x(s), y(s)) at arc length(s) s."""
    heading = np.arctan2(y_s(s, 1), x_s(s, 1))
    # arctan2 gives -pi for a -0.0 numerator; headings live in (-pi, pi].
    return np.where(heading <= -np.pi, np.pi, heading)


def spline_curvature(x_s: CubicSpline, y_s: CubicSpline, s) -> np.ndarray:
    """
    Signed curvature of the curve (x(s), y(s)).

    k = (x'y'' - y'x'') / (x'^2 + y'^2)^1.5
    """
    dx = x_s(s, 1)
    dy = y_s(s, 1)
    ddx = x_s(s, 2)
    ddy = y_s(s, 2)
    denominator = np.power(dx * dx + dy * dy, 1.5)
    denominator = np.where(denominator < 1e-12, 1e-12, denominator)
    return (dx * ddy - dy * ddx) / denominator


def cumulative_arc_length(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Accumulated Euclidean distance along a polyline, starting at 0."""
    s = np.zeros(len(x))
    if len(x) > 1:
        s[1:] = np.cumsum(np.sqrt(np.diff(x)**2 + np.diff(y)**2))
    return s


def remove_duplicates(x: np.ndarray, y: np.ndarray,
                      tolerance: float = 1e-9) -> Tuple[np.ndarray, np.ndarray]:
    """Remove consecutive duplicate points."""
    keep = [0]
    for i in range(1, len(x)):
        if math.hypot(x[i] - x[keep[-1]], y[i] - y[keep[-1]]) > tolerance:
            keep.append(i)
    keep = np.array(keep, dtype=int)
    return np.asarray(x)[keep], np.asarray(y)[keep]


def curvature_cost(path: Sequence[State]) -> float:
    """
    Integrated absolute curvature of a path.

    Each segment contributes |k| of its first point times its length.

    Args:
        path: Path states in driving order

    Returns:
        Sum of |k_i| * ds_i (0 for fewer than two points)
    """
    return sum(abs(p1.curvature) * distance(p1, p2) for p1, p2 in zip(path, path[1:]))
