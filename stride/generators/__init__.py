"""Graph construction and path solving.

- GraphBuilder: Cost and barrier rasters to a travel-time TransitionGraph
- GraphLifecycle: Unbuilt/built state machine of a builder
- PathSolver: Dijkstra least-cost paths, batches and travel-time matrices
"""

from stride.generators.build_state import GraphLifecycle
from stride.generators.graph_builder import GraphBuilder, build_transition_graph
from stride.generators.path_solver import PathSolver

__all__ = [
    "GraphBuilder",
    "GraphLifecycle",
    "PathSolver",
    "build_transition_graph",
]
