"""Path Solver - Least-cost paths and travel times on a transition graph.

Uses SciPy's C-optimized Dijkstra (scipy.sparse.csgraph.dijkstra); all edge
weights are positive traversal times, so Dijkstra is exact.

Queries never modify the graph, so independent queries can run
concurrently. Batches are grouped by origin: one search per distinct origin
serves every destination paired with it.
"""

import logging
import math
import time
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Sequence

import numpy as np
from scipy.sparse.csgraph import dijkstra

from stride.constants import SolverConfig
from stride.exceptions import NoPathError
from stride.generators.graph_builder import GraphBuilder
from stride.model.cell import Cell
from stride.model.least_cost_path import LeastCostPath, PathResult
from stride.model.transition_graph import TransitionGraph

logger = logging.getLogger(__name__)

CellLike = Cell | tuple[int, int]


class PathSolver:
    """Answers origin/destination queries against a built graph.

    Example:
        solver = PathSolver(graph)
        path = solver.shortest_path(origin=(0, 0), destination=(40, 25))
        print(f"{path.travel_time_s / 60:.1f} min")
    """

    def __init__(self, graph: TransitionGraph | GraphBuilder) -> None:
        """Initialize with a built graph.

        Args:
            graph: TransitionGraph, or a GraphBuilder that has been built

        Raises:
            GraphNotBuiltError: If given a builder that has not been built.
        """
        if isinstance(graph, GraphBuilder):
            graph = graph.graph
        if not isinstance(graph, TransitionGraph):
            raise TypeError(f"PathSolver needs a TransitionGraph, got {type(graph).__name__}")
        self._graph = graph

    @property
    def graph(self) -> TransitionGraph:
        return self._graph

    def _search(self, origin_index: int) -> tuple[np.ndarray, np.ndarray]:
        """Single-source Dijkstra from one cell (distances, predecessors)."""
        dist, pred = dijkstra(
            csgraph=self._graph.travel_time,
            directed=True,
            indices=origin_index,
            return_predecessors=True,
        )
        return dist, pred

    def _trace(self, origin_index: int, dest_index: int, dist: np.ndarray, pred: np.ndarray) -> LeastCostPath:
        """Rebuild the path to one destination from a search result.

        Raises:
            NoPathError: If the destination was not reached.
        """
        origin = self._graph.cell_of(origin_index)
        destination = self._graph.cell_of(dest_index)
        if np.isinf(dist[dest_index]):
            raise NoPathError(origin, destination)

        path_ids: list[int] = []
        current = dest_index
        while True:
            path_ids.append(current)
            if current == origin_index:
                break
            current = int(pred[current])
            if current == SolverConfig.NO_PREDECESSOR:
                raise NoPathError(origin, destination)
        path_ids.reverse()

        cells = tuple(self._graph.cell_of(i) for i in path_ids)
        grid = self._graph.elevation
        length = sum(
            grid.resolution * math.hypot(b.row - a.row, b.col - a.col) for a, b in zip(cells, cells[1:])
        )
        return LeastCostPath(
            cells=cells,
            coordinates=tuple(grid.cell_center(c.row, c.col) for c in cells),
            travel_time_s=float(dist[dest_index]),
            length=length,
        )

    def shortest_path(self, origin: CellLike, destination: CellLike) -> LeastCostPath:
        """Minimum travel-time path between two cells.

        Args:
            origin: Start cell (Cell or (row, col))
            destination: End cell (Cell or (row, col))

        Returns:
            LeastCostPath with cells, coordinates and travel time.

        Raises:
            ValueError: If a cell is outside the grid.
            NoPathError: If barriers separate origin and destination.
        """
        origin_index = self._graph.index_of(origin)
        dest_index = self._graph.index_of(destination)
        dist, pred = self._search(origin_index)
        path = self._trace(origin_index, dest_index, dist, pred)
        logger.debug(f"Least-cost path {path.origin} -> {path.destination}: {path.travel_time_s:.1f}s")
        return path

    def route(self, origin_xy: tuple[float, float], destination_xy: tuple[float, float]) -> LeastCostPath:
        """Least-cost path between two world coordinates in the grid CRS."""
        grid = self._graph.elevation
        return self.shortest_path(
            origin=grid.cell_at(*origin_xy),
            destination=grid.cell_at(*destination_xy),
        )

    def solve_many(
        self,
        pairs: Iterable[tuple[CellLike, CellLike]],
        workers: int = SolverConfig.DEFAULT_WORKERS,
    ) -> list[PathResult]:
        """Solve a batch of origin/destination queries.

        An unreachable pair yields a PathResult carrying its NoPathError; it
        does not affect the other queries.

        Args:
            pairs: (origin, destination) cell pairs
            workers: Threads used across distinct origins (1 = sequential)

        Returns:
            One PathResult per pair, in input order.

        Raises:
            ValueError: If any cell is outside the grid (checked before searching).
        """
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")

        indexed = [(self._graph.index_of(o), self._graph.index_of(d)) for o, d in pairs]
        by_origin: dict[int, list[tuple[int, int]]] = defaultdict(list)
        for position, (origin_index, dest_index) in enumerate(indexed):
            by_origin[origin_index].append((position, dest_index))

        def solve_origin(origin_index: int) -> list[tuple[int, PathResult]]:
            dist, pred = self._search(origin_index)
            origin = self._graph.cell_of(origin_index)
            solved = []
            for position, dest_index in by_origin[origin_index]:
                destination = self._graph.cell_of(dest_index)
                try:
                    path = self._trace(origin_index, dest_index, dist, pred)
                    solved.append((position, PathResult(origin=origin, destination=destination, path=path)))
                except NoPathError as e:
                    solved.append((position, PathResult(origin=origin, destination=destination, error=e)))
            return solved

        start_time = time.time()
        if workers > 1 and len(by_origin) > 1:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                groups = list(pool.map(solve_origin, by_origin))
        else:
            groups = [solve_origin(origin_index) for origin_index in by_origin]

        results: list[PathResult | None] = [None] * len(indexed)
        for group in groups:
            for position, result in group:
                results[position] = result

        n_unreachable = sum(1 for r in results if r is not None and not r.reachable)
        elapsed = time.time() - start_time
        logger.info(
            f"Solved {len(results)} path queries from {len(by_origin)} origins in {elapsed:.2f}s "
            f"({n_unreachable} unreachable)"
        )
        return results  # type: ignore[return-value]

    def travel_time_matrix(self, origins: Sequence[CellLike], destinations: Sequence[CellLike]) -> np.ndarray:
        """Cumulative travel times from every origin to every destination.

        Args:
            origins: Origin cells
            destinations: Destination cells

        Returns:
            Array of shape (len(origins), len(destinations)); inf where unreachable.
        """
        origin_ids = [self._graph.index_of(o) for o in origins]
        dest_ids = [self._graph.index_of(d) for d in destinations]
        if not origin_ids or not dest_ids:
            return np.empty((len(origin_ids), len(dest_ids)), dtype=np.float64)

        dist = dijkstra(csgraph=self._graph.travel_time, directed=True, indices=origin_ids)
        return np.atleast_2d(dist)[:, dest_ids]
