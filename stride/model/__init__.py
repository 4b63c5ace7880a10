"""Data model classes for the travel-time graph.

- Cell: Grid position (row, col)
- Edge: Directed traversable step with distance, slope and conductance
- PolygonDataset: Waterbody polygons with their CRS
- LeastCostPath: Minimum-time route with travel time
- PathResult: Per-query outcome (path or NoPathError)
- TransitionGraph: Built travel-time graph
"""

from stride.model.cell import Cell
from stride.model.edge import Edge
from stride.model.least_cost_path import (
    LeastCostPath,
    PathResult,
    paths_to_feature_collection,
    write_paths_geojson,
)
from stride.model.polygon_dataset import PolygonDataset

# TransitionGraph depends on stride.core, which depends on model.cell
# Import directly: from stride.model.transition_graph import TransitionGraph

__all__ = [
    "Cell",
    "Edge",
    "PolygonDataset",
    "LeastCostPath",
    "PathResult",
    "paths_to_feature_collection",
    "write_paths_geojson",
]
