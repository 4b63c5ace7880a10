"""STRIDE - Pedestrian travel-time estimation across terrain.

Turns aligned terrain, vegetation density and roughness rasters plus cliff
and water barriers into a directed travel-time graph, then finds least-cost
paths on it:
- Anisotropic edge speeds from a calibrated Lorentzian walking-speed model
- 16-direction neighbourhood (king and knight moves)
- Dijkstra search with cumulative travel time

Modules:
    core: Grids, slope, barriers, hydrography, walking-speed model
    model: Data structures (Cell, Edge, TransitionGraph, LeastCostPath)
    generators: Graph builder and path solver

Example:
    from stride.core import Grid, get_barriers
    from stride.generators import GraphBuilder, PathSolver
"""
