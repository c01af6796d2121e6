"""
Visualization module for path optimization results.

This module provides functions to visualize the occupancy grid, the
reference corridor and the optimized path, and the curvature profile of
a path.
"""

import matplotlib.pyplot as plt
import matplotlib.patches as patches
import numpy as np
from typing import List, Optional, Sequence, Tuple
from ..models.grid_map import Map
from ..models.state import State


def plot_optimization_result(grid_map: Map,
                             final_path: Sequence[State],
                             smoothed_path: Optional[Sequence[State]] = None,
                             left_bound: Optional[Sequence[State]] = None,
                             right_bound: Optional[Sequence[State]] = None,
                             abnormal_bounds: Optional[Sequence[Tuple[State, float, float]]] = None,
                             sampled_paths: Optional[Sequence[Sequence[State]]] = None,
                             search_result: Optional[Sequence[Sequence[float]]] = None,
                             circle_radius: Optional[float] = None,
                             title: str = "Optimized Path",
                             save_path: Optional[str] = None,
                             show: bool = True):
    """
    Visualize the optimized path on the occupancy grid.

    Args:
        grid_map: Occupancy grid
        final_path: Optimized path
        smoothed_path: Optional smoothed reference
        left_bound: Optional left corridor boundary
        right_bound: Optional right corridor boundary
        abnormal_bounds: Optional samples with an empty corridor
        sampled_paths: Optional candidate paths from path sampling
        search_result: Optional raw reference points as [x, y]
        circle_radius: If given, draw the covering circle at the path end
        title: Plot title
        save_path: Optional path to save figure
        show: Whether to display the plot
    """
    fig, ax = plt.subplots(figsize=(12, 8))

    _plot_grid(ax, grid_map)

    if search_result:
        ax.plot([p[0] for p in search_result], [p[1] for p in search_result],
                'r--', alpha=0.5, linewidth=1, label='Raw Reference')

    if smoothed_path:
        ax.plot(*_xy(smoothed_path), 'k-.', linewidth=1, label='Smoothed Reference')

    if left_bound and right_bound:
        _plot_corridor(ax, left_bound, right_bound)

    if abnormal_bounds:
        ax.plot([b[0].x for b in abnormal_bounds], [b[0].y for b in abnormal_bounds],
                'mx', markersize=8, label='Empty Corridor', zorder=5)

    if sampled_paths:
        for i, sample in enumerate(sampled_paths):
            ax.plot(*_xy(sample), color='#A23B72', alpha=0.4, linewidth=1,
                    label='Sampled Paths' if i == 0 else '')

    if final_path:
        path_x, path_y = _xy(final_path)
        ax.plot(path_x, path_y, 'b-', linewidth=2, label='Optimized Path', zorder=4)

        # Mark start and goal
        ax.plot(path_x[0], path_y[0], 'go', markersize=12, label='Start', zorder=6)
        ax.plot(path_x[-1], path_y[-1], 'r^', markersize=12, label='End', zorder=6)

        if circle_radius is not None:
            end = final_path[-1]
            circle = plt.Circle((end.x, end.y), circle_radius, fill=False,
                                edgecolor='blue', linestyle=':')
            ax.add_patch(circle)

    ax.set_xlabel('X Position (m)', fontsize=12)
    ax.set_ylabel('Y Position (m)', fontsize=12)
    ax.set_title(title, fontsize=14, fontweight='bold')
    ax.legend(loc='best')
    ax.grid(True, alpha=0.3)
    ax.set_aspect('equal')

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=300, bbox_inches='tight')
        print(f"Figure saved to {save_path}")

    if show:
        plt.show()
    else:
        plt.close()


def _xy(path: Sequence[State]) -> Tuple[List[float], List[float]]:
    return [p.x for p in path], [p.y for p in path]


def _plot_grid(ax, grid_map: Map):
    """Plot occupied cells in gray."""
    rows, cols = grid_map.shape
    extent = (grid_map.origin[0], grid_map.origin[0] + cols * grid_map.resolution,
              grid_map.origin[1], grid_map.origin[1] + rows * grid_map.resolution)
    ax.imshow(grid_map.grid.astype(float), origin='lower', extent=extent,
              cmap='Greys', vmin=0.0, vmax=1.0, alpha=0.8, zorder=0)


def _plot_corridor(ax, left_bound: Sequence[State], right_bound: Sequence[State]):
    """Plot the corridor as a shaded region between its boundaries."""
    corners = ([(p.x, p.y) for p in left_bound]
               + [(p.x, p.y) for p in reversed(right_bound)])
    corridor = patches.Polygon(corners, alpha=0.2, facecolor='green',
                               edgecolor='green', linewidth=1, label='Corridor')
    ax.add_patch(corridor)


def plot_curvature_profile(path: Sequence[State],
                           max_curvature: Optional[float] = None,
                           title: str = "Curvature Profile",
                           save_path: Optional[str] = None,
                           show: bool = True):
    """
    Plot curvature along the path.

    Args:
        path: Path states
        max_curvature: Optional curvature limit to draw
        title: Plot title
        save_path: Optional save path
        show: Whether to display
    """
    distances = [0.0]
    for i in range(1, len(path)):
        dx = path[i].x - path[i - 1].x
        dy = path[i].y - path[i - 1].y
        distances.append(distances[-1] + np.sqrt(dx**2 + dy**2))
    curvatures = [p.curvature for p in path]

    fig, ax = plt.subplots(figsize=(10, 6))
    ax.plot(distances, curvatures, 'b-', linewidth=2)
    ax.fill_between(distances, curvatures, alpha=0.3)

    if max_curvature is not None:
        ax.axhline(max_curvature, color='r', linestyle='--', linewidth=1, label='Limit')
        ax.axhline(-max_curvature, color='r', linestyle='--', linewidth=1)
        ax.legend(loc='best')

    ax.set_xlabel('Distance Along Path (m)', fontsize=12)
    ax.set_ylabel('Curvature (1/m)', fontsize=12)
    ax.set_title(title, fontsize=14, fontweight='bold')
    ax.grid(True, alpha=0.3)

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=300, bbox_inches='tight')

    if show:
        plt.show()
    else:
        plt.close()
