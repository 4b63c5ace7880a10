"""Graph Builder - Cost and barrier rasters to a directed travel-time graph.

Every cell is linked to up to 16 neighbours: the 8 surrounding cells plus
the 8 knight's-move offsets, which lets paths follow directions closer to
the true bearing than an 8-connected grid allows.

For each directed edge:
1. distance = resolution x (1, sqrt 2 or sqrt 5)
2. slope = atan(delta elevation / distance), in degrees, target minus source
3. speed = Lorentzian walking-speed model with endpoint-mean density/roughness
4. barrier multiplier = 0 if either endpoint is a cliff or water cell, else 1
5. weight = distance / (speed x multiplier), the traversal time in seconds

Edges with a zero multiplier, non-positive speed or missing (NaN) input are
left out of the graph. Each neighbour offset is computed as one vectorized
numpy pass; the 16 passes are independent and may run on a thread pool that
lives only for the duration of one build.

The result is a SciPy CSR matrix wrapped in a TransitionGraph.
"""

import logging
import math
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import numpy as np
from scipy.sparse import csr_matrix

from stride.constants import GraphConfig
from stride.core.conductance import edge_speed, report_degenerate, slope_angle
from stride.core.grid import Grid, check_congruent
from stride.exceptions import GraphNotBuiltError
from stride.generators.build_state import GraphLifecycle
from stride.model.transition_graph import TransitionGraph

logger = logging.getLogger(__name__)

LAYER_NAMES = ("elevation", "density", "roughness", "cliff", "water")


@dataclass(frozen=True)
class DirectionEdges:
    """Edges produced for a single neighbour offset.

    Attributes:
        sources: Flat source cell indices
        targets: Flat target cell indices
        travel_time: Traversal time of each kept edge (s)
        conductance: Speed of each kept edge (ground units/s)
        n_candidates: Neighbour pairs examined for this offset
        n_degenerate: Pairs outside barriers with non-positive modelled speed
    """

    sources: np.ndarray
    targets: np.ndarray
    travel_time: np.ndarray
    conductance: np.ndarray
    n_candidates: int
    n_degenerate: int


def direction_edges(layers: dict[str, np.ndarray], resolution: float, offset: tuple[int, int]) -> DirectionEdges:
    """Compute all edges for one neighbour offset.

    Args:
        layers: Layer name -> float64 array, all of the same shape
        resolution: Cell size in ground units
        offset: (row offset, col offset) from source to target

    Returns:
        DirectionEdges for every traversable pair with this offset.
    """
    dr, dc = offset
    n_rows, n_cols = layers["elevation"].shape

    # Source window such that source + offset stays inside the grid
    r0, r1 = max(0, -dr), n_rows - max(0, dr)
    c0, c1 = max(0, -dc), n_cols - max(0, dc)
    if r0 >= r1 or c0 >= c1:
        empty_i = np.empty(0, dtype=np.int64)
        empty_f = np.empty(0, dtype=np.float64)
        return DirectionEdges(empty_i, empty_i, empty_f, empty_f, n_candidates=0, n_degenerate=0)

    src = (slice(r0, r1), slice(c0, c1))
    tgt = (slice(r0 + dr, r1 + dr), slice(c0 + dc, c1 + dc))

    distance = resolution * math.hypot(dr, dc)
    z = layers["elevation"]
    slope = slope_angle(z[tgt] - z[src], distance)

    speed, degenerate = edge_speed(
        slope_deg=slope,
        density_from=layers["density"][src],
        density_to=layers["density"][tgt],
        roughness_from=layers["roughness"][src],
        roughness_to=layers["roughness"][tgt],
    )

    # NaN barrier cells count as impassable
    cliff = np.nan_to_num(layers["cliff"], nan=0.0)
    water = np.nan_to_num(layers["water"], nan=0.0)
    passable = (cliff[src] != 0) & (cliff[tgt] != 0) & (water[src] != 0) & (water[tgt] != 0)
    conductance = speed * passable.astype(np.float64)

    keep = np.isfinite(conductance) & (conductance > 0)

    cell_ids = np.arange(n_rows * n_cols, dtype=np.int64).reshape(n_rows, n_cols)
    kept_conductance = conductance[keep]
    return DirectionEdges(
        sources=cell_ids[src][keep],
        targets=cell_ids[tgt][keep],
        travel_time=distance / kept_conductance,
        conductance=kept_conductance,
        n_candidates=int(keep.size),
        n_degenerate=int((degenerate & passable).sum()),
    )


class GraphBuilder:
    """Builds the travel-time graph from five congruent rasters.

    Congruence is checked when the builder is created; a mismatch raises
    InputMismatchError before any work is done.

    Example:
        builder = GraphBuilder(elevation=dtm, density=dns, roughness=rgh, cliff=clf, water=wtr, workers=4)
        graph = builder.build()
    """

    def __init__(
        self,
        elevation: Grid,
        density: Grid,
        roughness: Grid,
        cliff: Grid,
        water: Grid,
        workers: int = GraphConfig.DEFAULT_WORKERS,
    ) -> None:
        """Initialize with the input layers.

        Args:
            elevation: Coarse-scale terrain model
            density: Normalized relative vegetation density (0-1)
            roughness: Ground-surface roughness (>= 0)
            cliff: Cliff barrier (0 impassable, 1 passable)
            water: Water barrier (0 impassable, 1 passable)
            workers: Threads used to compute neighbour offsets (1 = sequential)

        Raises:
            InputMismatchError: If the layers are not spatially congruent.
        """
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")

        layers = {
            "elevation": elevation,
            "density": density,
            "roughness": roughness,
            "cliff": cliff,
            "water": water,
        }
        check_congruent(layers)

        self._layers = layers
        self.workers = workers
        self.lifecycle = GraphLifecycle()
        self._graph: TransitionGraph | None = None

    @property
    def layers(self) -> dict[str, Grid]:
        return dict(self._layers)

    @property
    def is_built(self) -> bool:
        return self.lifecycle.is_built

    @property
    def graph(self) -> TransitionGraph:
        """The built graph.

        Raises:
            GraphNotBuiltError: If build() has not been called since the
                builder was created or its layers were replaced.
        """
        if not self.is_built or self._graph is None:
            raise GraphNotBuiltError("Transition graph has not been built; call GraphBuilder.build() first")
        return self._graph

    def replace_layers(self, **layers: Grid) -> None:
        """Swap one or more input layers, invalidating any built graph.

        Args:
            **layers: Layer name (elevation, density, roughness, cliff, water) -> Grid

        Raises:
            ValueError: For unknown layer names.
            InputMismatchError: If the new set of layers is not congruent.
        """
        unknown = set(layers) - set(LAYER_NAMES)
        if unknown:
            raise ValueError(f"Unknown layer(s): {', '.join(sorted(unknown))}")

        candidate = {**self._layers, **layers}
        check_congruent(candidate)
        self._layers = candidate

        if self.is_built:
            self._graph = None
            self.lifecycle.invalidate()

    def build(self) -> TransitionGraph:
        """Materialize the transition graph (cached until layers change).

        Returns:
            TransitionGraph with travel-time edge weights.
        """
        if self.is_built and self._graph is not None:
            return self._graph

        elevation = self._layers["elevation"]
        if elevation.is_geographic:
            logger.warning(
                f"Elevation CRS {elevation.crs} is geographic; edge distances assume resolution "
                f"{elevation.resolution} is in ground units"
            )

        logger.info(f"Building transition graph for {elevation.n_rows}x{elevation.n_cols} grid...")
        start_time = time.time()

        arrays = {name: np.asarray(grid.values, dtype=np.float64) for name, grid in self._layers.items()}
        resolution = elevation.resolution

        def compute(offset: tuple[int, int]) -> DirectionEdges:
            return direction_edges(layers=arrays, resolution=resolution, offset=offset)

        if self.workers > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                parts = list(pool.map(compute, GraphConfig.NEIGHBORS_16))
        else:
            parts = [compute(offset) for offset in GraphConfig.NEIGHBORS_16]

        sources = np.concatenate([p.sources for p in parts])
        targets = np.concatenate([p.targets for p in parts])
        n = elevation.n_cells

        travel_time = csr_matrix(
            (np.concatenate([p.travel_time for p in parts]), (sources, targets)),
            shape=(n, n),
            dtype=np.float64,
        )
        conductance = csr_matrix(
            (np.concatenate([p.conductance for p in parts]), (sources, targets)),
            shape=(n, n),
            dtype=np.float64,
        )

        n_degenerate = sum(p.n_degenerate for p in parts)
        report_degenerate(n_degenerate=n_degenerate, n_edges=sum(p.n_candidates for p in parts))

        self._graph = TransitionGraph(
            travel_time=travel_time,
            conductance=conductance,
            elevation=elevation,
            density=self._layers["density"],
            roughness=self._layers["roughness"],
            n_degenerate=n_degenerate,
        )
        self.lifecycle.materialize()

        elapsed = time.time() - start_time
        logger.info(f"Transition graph built in {elapsed:.2f}s ({self._graph.n_edges} edges, {n} cells)")
        return self._graph

    def __repr__(self) -> str:
        state = "built" if self.is_built else "unbuilt"
        return f"GraphBuilder(shape={self._layers['elevation'].shape}, workers={self.workers}, state={state})"


def build_transition_graph(
    elevation: Grid,
    density: Grid,
    roughness: Grid,
    cliff: Grid,
    water: Grid,
    workers: int = GraphConfig.DEFAULT_WORKERS,
) -> TransitionGraph:
    """One-shot form of GraphBuilder(...).build()."""
    builder = GraphBuilder(
        elevation=elevation,
        density=density,
        roughness=roughness,
        cliff=cliff,
        water=water,
        workers=workers,
    )
    return builder.build()
