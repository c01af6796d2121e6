"""
STATE PRIMITIVES

@Description: Plain value types for a planar pose and for the vehicle's
start/end states together with its path-tracking error terms.
"""

from dataclasses import dataclass, field
from typing import Tuple


@dataclass(frozen=True)
class State:
    """
    A vehicle or path pose.

    Attributes:
        x: X position (m)
        y: Y position (m)
        heading: Heading angle in radians, normalized to (-pi, pi]
        curvature: Path curvature at this pose (1/m)
        arc_length: Distance along the path from its start (m)
    """
    x: float = 0.0
    y: float = 0.0
    heading: float = 0.0
    curvature: float = 0.0
    arc_length: float = 0.0

    def __repr__(self) -> str:
        return (f"State(x={self.x:.3f}, y={self.y:.3f}, "
                f"heading={self.heading:.3f}, k={self.curvature:.4f}, "
                f"s={self.arc_length:.3f})")


@dataclass
class VehicleState:
    """
    Start and end states of the vehicle for one optimization run.

    The two error terms describe the vehicle start relative to the first
    sample of the reference path and are the initial condition of the
    error dynamics.

    Attributes:
        start: Vehicle start pose
        end: Goal pose
        initial_lateral_offset: Signed lateral offset (m, positive to the left)
        initial_heading_error: Heading error in (-pi, pi]
    """
    start: State = field(default_factory=State)
    end: State = field(default_factory=State)
    initial_lateral_offset: float = 0.0
    initial_heading_error: float = 0.0

    def set_init_error(self, lateral_offset: float, heading_error: float):
        """Set the initial lateral offset and heading error."""
        self.initial_lateral_offset = lateral_offset
        self.initial_heading_error = heading_error

    def initial_error(self) -> Tuple[float, float]:
        """Return (initial_lateral_offset, initial_heading_error)."""
        return (self.initial_lateral_offset, self.initial_heading_error)
