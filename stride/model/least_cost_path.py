"""LeastCostPath and PathResult - Outcomes of path queries.

A LeastCostPath is the cell sequence of a minimum-time route together with
its total travel time. It exports to a shapely LineString or a GeoJSON
feature carrying the travel time as the "time" property.

PathResult wraps one query of a batch: either a path or the NoPathError
explaining why the destination is unreachable.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional

from shapely.geometry import LineString, mapping

from stride.exceptions import NoPathError
from stride.model.cell import Cell

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeastCostPath:
    """A minimum travel-time route between two cells.

    Attributes:
        cells: Cells from origin to destination (inclusive)
        coordinates: World (x, y) of each cell centre
        travel_time_s: Sum of traversed edge weights in seconds
        length: Sum of step distances in ground units

    Example:
        path = solver.shortest_path(origin=(0, 0), destination=(2, 2))
        print(f"{path.travel_time_s:.0f}s over {len(path.cells)} cells")
    """

    cells: tuple[Cell, ...]
    coordinates: tuple[tuple[float, float], ...]
    travel_time_s: float
    length: float

    def __post_init__(self) -> None:
        if not self.cells:
            raise ValueError("LeastCostPath needs at least one cell")
        if len(self.cells) != len(self.coordinates):
            raise ValueError(f"{len(self.cells)} cells but {len(self.coordinates)} coordinates")

    @property
    def origin(self) -> Cell:
        return self.cells[0]

    @property
    def destination(self) -> Cell:
        return self.cells[-1]

    @property
    def n_steps(self) -> int:
        return len(self.cells) - 1

    def to_linestring(self) -> LineString:
        """Path polyline through cell centres.

        A zero-length path (origin == destination) becomes a degenerate
        two-vertex line at the cell centre.
        """
        coords = list(self.coordinates)
        if len(coords) == 1:
            coords = coords * 2
        return LineString(coords)

    def to_feature(self) -> dict[str, Any]:
        """GeoJSON feature with travel time attached."""
        return {
            "type": "Feature",
            "geometry": mapping(self.to_linestring()),
            "properties": {
                "time": self.travel_time_s,
                "length": self.length,
                "origin_row": self.origin.row,
                "origin_col": self.origin.col,
                "destination_row": self.destination.row,
                "destination_col": self.destination.col,
            },
        }

    def __repr__(self) -> str:
        return (
            f"LeastCostPath({self.origin} -> {self.destination}, steps={self.n_steps}, "
            f"time={self.travel_time_s:.1f}s, length={self.length:.1f})"
        )


@dataclass(frozen=True)
class PathResult:
    """Outcome of one origin/destination query.

    Attributes:
        origin: Query origin
        destination: Query destination
        path: Least-cost path, or None if unreachable
        error: NoPathError when unreachable, else None
    """

    origin: Cell
    destination: Cell
    path: Optional[LeastCostPath] = None
    error: Optional[NoPathError] = None

    @property
    def reachable(self) -> bool:
        return self.path is not None

    @property
    def travel_time_s(self) -> float:
        """Travel time, or infinity if unreachable."""
        return self.path.travel_time_s if self.path is not None else float("inf")

    def unwrap(self) -> LeastCostPath:
        """Return the path or raise the stored NoPathError."""
        if self.path is None:
            raise self.error or NoPathError(self.origin, self.destination)
        return self.path


def paths_to_feature_collection(paths: Iterable[LeastCostPath], crs: Optional[str] = None) -> dict[str, Any]:
    """Bundle paths into a GeoJSON FeatureCollection.

    Coordinates stay in the grid CRS, recorded in a "crs" member when given.
    """
    collection: dict[str, Any] = {
        "type": "FeatureCollection",
        "features": [p.to_feature() for p in paths],
    }
    if crs:
        collection["crs"] = {"type": "name", "properties": {"name": crs}}
    return collection


def write_paths_geojson(
    paths: Iterable[LeastCostPath],
    path: Path | str,
    crs: Optional[str] = None,
    overwrite: bool = False,
) -> Path:
    """Write paths to a GeoJSON file.

    Raises:
        FileExistsError: If the file exists and overwrite is False.
    """
    path = Path(path)
    if path.exists() and not overwrite:
        raise FileExistsError(f"{path} already exists; pass overwrite=True to replace it")

    collection = paths_to_feature_collection(paths, crs=crs)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(collection, f)

    logger.info(f"Wrote {len(collection['features'])} least-cost paths to {path}")
    return path
