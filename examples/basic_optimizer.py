"""
Basic path optimization example demonstrating the PathOptimizer.

This script shows how to:
1. Build an occupancy grid with obstacles
2. Load an optimizer configuration
3. Optimize a coarse reference path
4. Sample candidate paths around the reference
5. Visualize results
"""

import logging
import math
import os
import sys
sys.path.append('..')

from path_optimizer import Config, Map, PathOptimizer, State
from path_optimizer.visualizer.visualizer import (
    plot_optimization_result, plot_curvature_profile
)


def main():
    """Run the basic path optimization demonstration."""
    logging.basicConfig(level=logging.INFO,
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    print("=" * 70)
    print("PATH OPTIMIZER - Reference Path Optimization Demonstration")
    print("=" * 70)

    # ========================================================================
    # Step 1: Build the Map
    # ========================================================================
    print("\n[1] Building occupancy grid...")

    grid_map = Map.empty(width_m=90.0, height_m=40.0, resolution=0.1)
    grid_map.add_rectangle_obstacle(30.0, 12.0, 40.0, 16.0)
    grid_map.add_circle_obstacle(center=(60.0, 25.5), radius=2.0)

    print(f"    {grid_map}")

    # ========================================================================
    # Step 2: Load Configuration
    # ========================================================================
    print("\n[2] Loading configuration...")

    config_file = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'config.yaml')
    config = Config.from_yaml(config_file) if os.path.exists(config_file) else Config()
    geometry = config.get_geometry_summary()

    print(f"    Covering circle radius: {geometry['circle_radius_m']:.3f} m")
    print(f"    Max curvature: {geometry['max_curvature_per_m']:.4f} 1/m")

    # ========================================================================
    # Step 3: Optimize the Reference
    # ========================================================================
    print("\n[3] Optimizing coarse reference path...")

    start = State(x=5.0, y=19.5, heading=math.radians(5.0))
    end = State(x=85.0, y=20.0, heading=0.0)
    reference = [State(x=float(x), y=20.0 + (1.5 if 30 <= x <= 45 else 0.0))
                 for x in range(0, 90, 5)]

    optimizer = PathOptimizer(start, end, grid_map, config)
    final_path = []
    success = optimizer.solve(reference, final_path)

    print(f"    Success: {success}")
    if final_path:
        print(f"    Path points: {len(final_path)}")
        print(f"    Path length: {final_path[-1].arc_length:.2f} m")
        print(f"    Max |curvature|: {max(abs(p.curvature) for p in final_path):.4f} 1/m")
    if optimizer.abnormal_bounds:
        print(f"    Samples with empty corridor: {len(optimizer.abnormal_bounds)}")

    # ========================================================================
    # Step 4: Sample Candidate Paths
    # ========================================================================
    print("\n[4] Sampling candidate paths...")

    samples = []
    if success:
        samples = optimizer.sample_paths(lon_set=[30.0, 50.0],
                                         lat_set=[-1.0, -0.5, 0.0, 0.5, 1.0])
    print(f"    Collision-free samples: {len(samples)}")
    print(f"    Failed samples: {len(optimizer.failed_sampling_path_set)}")

    # ========================================================================
    # Step 5: Visualize Results
    # ========================================================================
    print("\n[5] Generating visualizations...")

    plot_optimization_result(
        grid_map=grid_map,
        final_path=final_path,
        smoothed_path=optimizer.smoothed_path,
        left_bound=optimizer.left_bound,
        right_bound=optimizer.right_bound,
        abnormal_bounds=optimizer.abnormal_bounds,
        sampled_paths=samples,
        search_result=optimizer.search_result,
        circle_radius=config.circle_radius,
        title="QP Path Optimization",
        save_path="optimized_path.png",
        show=False
    )

    if final_path:
        plot_curvature_profile(
            path=final_path,
            max_curvature=config.max_curvature,
            save_path="curvature_profile.png",
            show=False
        )

    print("\n" + "=" * 70)
    print("Demonstration complete!")
    print("=" * 70)


if __name__ == "__main__":
    main()
