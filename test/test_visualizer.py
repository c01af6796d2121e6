"""
Smoke tests for the visualization module.

Run with: pytest test/test_visualizer.py
"""

import pytest
import matplotlib
matplotlib.use('Agg')

from path_optimizer.models.state import State
from path_optimizer.visualizer.visualizer import (
    plot_optimization_result,
    plot_curvature_profile
)


@pytest.fixture
def sample_path():
    """Fixture providing a short gently curving path."""
    return [State(x=5.0 + i, y=20.0 + 0.01 * i * i, curvature=0.02, arc_length=float(i))
            for i in range(20)]


class TestPlots:
    """Tests that plots render and save without errors."""

    def test_plot_optimization_result(self, open_map, sample_path, tmp_path):
        """Test the full result plot is written to disk."""
        save_path = tmp_path / "result.png"
        left = [State(p.x, p.y + 2.0) for p in sample_path]
        right = [State(p.x, p.y - 2.0) for p in sample_path]

        plot_optimization_result(open_map, sample_path,
                                 smoothed_path=sample_path,
                                 left_bound=left,
                                 right_bound=right,
                                 abnormal_bounds=[(sample_path[5], 0.0, 0.0)],
                                 sampled_paths=[sample_path[:10]],
                                 search_result=[[5.0, 20.0], [24.0, 23.6]],
                                 circle_radius=1.17,
                                 save_path=str(save_path),
                                 show=False)

        assert save_path.exists()

    def test_plot_empty_result(self, open_map):
        """Test a failed run without a path can still be plotted."""
        plot_optimization_result(open_map, [], show=False)

    def test_plot_curvature_profile(self, sample_path, tmp_path):
        """Test the curvature profile is written to disk."""
        save_path = tmp_path / "curvature.png"

        plot_curvature_profile(sample_path, max_curvature=0.25,
                               save_path=str(save_path), show=False)

        assert save_path.exists()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
