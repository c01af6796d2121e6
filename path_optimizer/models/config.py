"""
VEHICLE AND OPTIMIZER CONFIGURATION

@Description: This module defines the Config class holding vehicle geometry,
optimization weights, discretization and output policy. The default vehicle
is a mid-size passenger car covered by four circles.
"""

from dataclasses import dataclass, fields
from enum import Enum
import math
from typing import Any, Dict, List, Mapping

import yaml


class CarType(Enum):
    ACKERMANN_STEERING = 0
    SKID_STEERING = 1


@dataclass(frozen=True)
class Config:
    """
    Static parameters of one PathOptimizer instance.

    Poses are expressed at the rear axle center. The footprint is covered
    by four circles placed symmetrically around the vehicle center.

    Attributes:
        car_type: Steering type of the vehicle
        car_width: Vehicle width in meters (default: 2.0 m)
        car_length: Vehicle length in meters (default: 4.9 m)
        wheel_base: Wheelbase in meters (default: 2.85 m)
        rear_axle_to_center: Distance from rear axle to vehicle center (default: 1.45 m)
        max_steer_angle: Maximum front wheel angle in radians (default: 35 deg)
        safety_margin: Extra radius added to the covering circles
        opt_curvature_w: Weight of curvature^2 in the QP cost
        opt_curvature_rate_w: Weight of curvature-rate^2 in the QP cost
        opt_deviation_w: Weight of lateral deviation^2 in the QP cost
        raw_output: Output optimized samples directly instead of densifying
        output_spacing: Spacing of the output path (m)
        enable_collision_check: Re-validate every output point
        min_truncated_length: Shortest usable path after collision truncation
        enable_exact_position: Search the goal on the reference at a finer step
    """

    # --- VEHICLE GEOMETRY ---
    car_type: CarType = CarType.ACKERMANN_STEERING
    car_width: float = 2.0
    car_length: float = 4.9
    wheel_base: float = 2.85
    rear_axle_to_center: float = 1.45
    max_steer_angle: float = 35 * math.pi / 180
    safety_margin: float = 0.0

    # --- OPTIMIZATION WEIGHTS ---
    opt_curvature_w: float = 10.0
    opt_curvature_rate_w: float = 200.0
    opt_deviation_w: float = 0.0

    # --- DISCRETIZATION ---
    delta_s_smaller: float = 0.3
    delta_s_larger: float = 1.0
    fine_section_length: float = 10.0
    small_heading_error: float = 20 * math.pi / 180
    max_heading_error: float = 75 * math.pi / 180
    goal_tolerance: float = 0.001
    max_clearance: float = 5.0

    # --- OUTPUT ---
    raw_output: bool = False
    output_spacing: float = 0.3
    enable_collision_check: bool = True
    min_truncated_length: float = 20.0
    enable_exact_position: bool = False
    constraint_end_heading: bool = False
    end_heading_tolerance: float = 0.0
    end_offset_tolerance: float = 0.0

    # --- REFERENCE SMOOTHING ---
    smoothing_factor: float = 0.1

    # --- SOLVER ---
    solver_max_iter: int = 20000
    solver_eps_abs: float = 1e-3
    solver_eps_rel: float = 1e-3
    solver_polish: bool = True

    # --- DIAGNOSTICS ---
    enable_computation_time_output: bool = False

    def __post_init__(self):
        if self.wheel_base <= 0:
            raise ValueError(f"wheel_base must be positive, got {self.wheel_base}")
        if self.output_spacing <= 0 or self.delta_s_smaller <= 0 or self.delta_s_larger <= 0:
            raise ValueError("Discretization steps must be positive")
        if not 0 < self.max_steer_angle < math.pi / 2:
            raise ValueError(f"max_steer_angle out of range: {self.max_steer_angle}")

    @property
    def circle_radius(self) -> float:
        """
        Radius of each covering circle.

        Each circle covers a quarter of the vehicle length:
        r = sqrt((length / 8)^2 + (width / 2)^2) + safety_margin
        """
        return math.hypot(self.car_length / 8, self.car_width / 2) + self.safety_margin

    @property
    def circle_offsets(self) -> List[float]:
        """Distances d1..d4 from the vehicle center to the circles, rear to front."""
        return [-3 * self.car_length / 8, -self.car_length / 8,
                self.car_length / 8, 3 * self.car_length / 8]

    @property
    def circle_offsets_from_rear_axle(self) -> List[float]:
        """Longitudinal circle positions measured from the rear axle."""
        return [self.rear_axle_to_center + d for d in self.circle_offsets]

    @property
    def max_curvature(self) -> float:
        """Curvature bound implied by the steering limit: tan(delta_max) / L."""
        return math.tan(self.max_steer_angle) / self.wheel_base

    @property
    def larger_spacing(self) -> float:
        """Coarse discretization step: the output spacing in raw mode."""
        return self.output_spacing if self.raw_output else self.delta_s_larger

    @classmethod
    def from_dict(cls, options: Mapping[str, Any]) -> "Config":
        """
        Build a Config from a flat mapping of option names to values.

        Args:
            options: Option names as in the dataclass fields

        Returns:
            New Config

        Raises:
            ValueError: If an option name is unknown
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(options) - known)
        if unknown:
            raise ValueError(f"Unknown configuration options: {', '.join(unknown)}")
        values = dict(options)
        if 'car_type' in values and not isinstance(values['car_type'], CarType):
            car_type = values['car_type']
            values['car_type'] = CarType[car_type] if isinstance(car_type, str) else CarType(car_type)
        return cls(**values)

    @classmethod
    def from_yaml(cls, path: str) -> "Config":
        """Load a flat YAML mapping of options."""
        with open(path, 'r') as f:
            options = yaml.safe_load(f) or {}
        if not isinstance(options, dict):
            raise ValueError(f"Configuration file {path} must contain a mapping")
        return cls.from_dict(options)

    def get_geometry_summary(self) -> Dict[str, float]:
        """
        Get a summary of the derived vehicle geometry.

        Returns:
            Dictionary containing the covering-circle layout and limits
        """
        d1, d2, d3, d4 = self.circle_offsets
        return {
            'circle_radius_m': self.circle_radius,
            'd1_m': d1,
            'd2_m': d2,
            'd3_m': d3,
            'd4_m': d4,
            'max_curvature_per_m': self.max_curvature,
            'min_turn_radius_m': 1.0 / self.max_curvature,
        }

    def __repr__(self) -> str:
        return (f"Config(car={self.car_length}x{self.car_width}m, "
                f"wheel_base={self.wheel_base}m, "
                f"raw_output={self.raw_output}, "
                f"output_spacing={self.output_spacing}m)")
