"""TransitionGraph - The built, read-only travel-time graph over grid cells.

Nodes are cells, numbered row-major (index = row * n_cols + col). Edge
weights are traversal times in seconds stored in a SciPy CSR matrix, ready
for scipy.sparse.csgraph. Impassable edges are absent.
"""

import math
from dataclasses import dataclass
from typing import Optional

from scipy.sparse import csr_matrix

from stride.core.conductance import damping, slope_angle
from stride.core.grid import Grid
from stride.model.cell import Cell
from stride.model.edge import Edge


@dataclass(frozen=True, eq=False)
class TransitionGraph:
    """Directed weighted graph produced by the graph builder.

    Treat as immutable: it is shared read-only by concurrent path queries.

    Attributes:
        travel_time: (n_cells x n_cells) CSR matrix of edge traversal times (s)
        conductance: (n_cells x n_cells) CSR matrix of edge speeds, same sparsity
        elevation: Elevation grid the graph was built on (georeferencing template)
        density: Vegetation density grid the edges were damped with
        roughness: Roughness grid the edges were damped with
        n_degenerate: Edges dropped because the speed model was non-positive
    """

    travel_time: csr_matrix
    conductance: csr_matrix
    elevation: Grid
    density: Grid
    roughness: Grid
    n_degenerate: int = 0

    @property
    def n_cells(self) -> int:
        return self.elevation.n_cells

    @property
    def n_edges(self) -> int:
        return int(self.travel_time.nnz)

    @property
    def n_cols(self) -> int:
        return self.elevation.n_cols

    def index_of(self, cell: Cell | tuple[int, int]) -> int:
        """Flat node index of a cell.

        Raises:
            ValueError: If the cell is outside the grid.
        """
        cell = Cell.coerce(cell)
        if not self.elevation.contains(cell):
            raise ValueError(f"{cell} is outside the {self.elevation.n_rows}x{self.elevation.n_cols} grid")
        return cell.to_index(self.n_cols)

    def cell_of(self, index: int) -> Cell:
        return Cell.from_index(index, self.n_cols)

    def edge(self, source: Cell | tuple[int, int], target: Cell | tuple[int, int]) -> Optional[Edge]:
        """Edge from source to target, or None if the step is not traversable."""
        i = self.index_of(source)
        j = self.index_of(target)
        travel_time = float(self.travel_time[i, j])
        if travel_time == 0.0:
            return None

        source, target = self.cell_of(i), self.cell_of(j)
        distance = self.elevation.resolution * math.hypot(target.row - source.row, target.col - source.col)
        rise = float(self.elevation.values[target.row, target.col] - self.elevation.values[source.row, source.col])
        dens = (self.density.values[source.row, source.col] + self.density.values[target.row, target.col]) / 2.0
        rgh = (self.roughness.values[source.row, source.col] + self.roughness.values[target.row, target.col]) / 2.0
        return Edge(
            source=source,
            target=target,
            distance=distance,
            slope_deg=slope_angle(rise, distance),
            penalty=float(damping(dens, rgh)),
            conductance=float(self.conductance[i, j]),
        )

    def neighbors(self, cell: Cell | tuple[int, int]) -> list[Edge]:
        """All traversable edges leaving a cell."""
        i = self.index_of(cell)
        start, end = self.travel_time.indptr[i], self.travel_time.indptr[i + 1]
        targets = sorted(int(j) for j in self.travel_time.indices[start:end])
        return [self.edge(self.cell_of(i), self.cell_of(j)) for j in targets]

    def __repr__(self) -> str:
        return (
            f"TransitionGraph(shape={self.elevation.shape}, edges={self.n_edges}, "
            f"degenerate={self.n_degenerate}, crs={self.elevation.crs!r})"
        )
