"""
Shared fixtures for the path optimizer tests.
"""

import numpy as np
import pytest
from scipy.interpolate import CubicSpline

from path_optimizer.models.config import Config
from path_optimizer.models.grid_map import Map
from path_optimizer.models.reference_path import ReferencePath
from path_optimizer.models.state import State


def straight_reference(length: float = 50.0, x0: float = 5.0, y0: float = 20.0,
                       step: float = 1.0) -> ReferencePath:
    """Reference along +x starting at (x0, y0), sampled every `step`."""
    s = np.linspace(0.0, length, int(round(length / step)) + 1)
    reference = ReferencePath()
    reference.set_spline(CubicSpline(s, x0 + s), CubicSpline(s, np.full_like(s, y0)), length)
    reference.build_reference_from_spline(step, step, 0.0)
    return reference


@pytest.fixture
def default_config():
    """Fixture providing the default configuration."""
    return Config()


@pytest.fixture
def open_map():
    """Fixture providing an obstacle-free 80 x 40 m map."""
    return Map.empty(80.0, 40.0, resolution=0.1)


@pytest.fixture
def straight_path():
    """Fixture providing a 50 m straight reference along y = 20."""
    return straight_reference()


@pytest.fixture
def straight_points():
    """Fixture providing coarse reference points from (5, 20) to (55, 20)."""
    return [State(x=float(x), y=20.0) for x in range(5, 60, 5)]


@pytest.fixture
def make_reference():
    """Fixture providing a factory for straight references."""
    return straight_reference
