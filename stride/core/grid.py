"""Grid model shared by every cost and barrier layer.

A Grid couples a 2-D array with its georeferencing:
- Affine transform (rasterio convention, north-up, square cells)
- Coordinate reference system as an opaque string
- Row/column counts, resolution, origin (top-left corner)

Layers are never resampled here. ``alignment_report`` and ``check_congruent``
only verify that layers already share CRS, extent, shape, origin and
resolution.
"""

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

import numpy as np
import rasterio
from rasterio.crs import CRS
from rasterio.transform import Affine, rowcol, xy

from stride.constants import GraphConfig
from stride.exceptions import InputMismatchError
from stride.model.cell import Cell

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Grid:
    """A georeferenced raster layer.

    The array is copied on construction and made read-only, so a Grid is
    immutable once created.

    Attributes:
        values: 2-D array of cell values (NaN marks nodata in float grids)
        transform: Affine transform mapping (col, row) to world (x, y)
        crs: Coordinate reference system identifier (e.g. "EPSG:26917")
        name: Layer name used in log messages and output files

    Example:
        grid = Grid(values=np.zeros((3, 3)), transform=Affine(10, 0, 0, 0, -10, 30), crs="EPSG:32617")
        grid.resolution  # 10.0
    """

    values: np.ndarray
    transform: Affine
    crs: Optional[str]
    name: str = field(default="")

    def __post_init__(self) -> None:
        values = np.array(self.values, copy=True)
        if values.ndim != 2:
            raise ValueError(f"Grid '{self.name}' must be 2-D, got shape {values.shape}")
        values.setflags(write=False)
        object.__setattr__(self, "values", values)

        t = self.transform
        if t.b != 0 or t.d != 0:
            raise ValueError(f"Grid '{self.name}' has a rotated transform, which is not supported")
        if t.a <= 0 or t.e >= 0:
            raise ValueError(f"Grid '{self.name}' must be north-up with positive cell width")
        if not math.isclose(t.a, -t.e, rel_tol=GraphConfig.CONGRUENCE_RTOL):
            raise ValueError(f"Grid '{self.name}' cells are not square ({t.a} x {-t.e})")

    @classmethod
    def from_file(cls, path: Path | str, name: Optional[str] = None) -> "Grid":
        """Read band 1 of a raster file, converting nodata to NaN.

        Args:
            path: Raster file readable by rasterio
            name: Layer name (defaults to the file stem)

        Returns:
            Grid with float64 values.
        """
        path = Path(path)
        with rasterio.open(path) as src:
            band = src.read(1, masked=True)
            values = band.astype(np.float64).filled(np.nan)
            crs = src.crs.to_string() if src.crs else None
            transform = src.transform
        logger.info(f"Loaded raster {path} (shape: {values.shape}, CRS: {crs})")
        return cls(values=values, transform=transform, crs=crs, name=name or path.stem)

    def to_file(self, path: Path | str, overwrite: bool = False) -> Path:
        """Write the grid as a single-band GeoTIFF.

        Args:
            path: Output file path (.tif)
            overwrite: Replace an existing file

        Returns:
            The written path.

        Raises:
            FileExistsError: If the file exists and overwrite is False.
        """
        path = Path(path)
        if path.exists() and not overwrite:
            raise FileExistsError(f"{path} already exists; pass overwrite=True to replace it")

        nodata = np.nan if np.issubdtype(self.values.dtype, np.floating) else None
        with rasterio.open(
            path,
            "w",
            driver="GTiff",
            height=self.n_rows,
            width=self.n_cols,
            count=1,
            dtype=self.values.dtype.name,
            crs=self.crs,
            transform=self.transform,
            nodata=nodata,
            compress="deflate",
        ) as dst:
            dst.write(self.values, 1)
            if self.name:
                dst.set_band_description(1, self.name)

        logger.info(f"Wrote {self.name or 'grid'} to {path}")
        return path

    def like(self, values: np.ndarray, name: str) -> "Grid":
        """Return a congruent grid carrying new values."""
        if values.shape != self.shape:
            raise ValueError(f"Values shape {values.shape} does not match grid shape {self.shape}")
        return Grid(values=values, transform=self.transform, crs=self.crs, name=name)

    @property
    def shape(self) -> tuple[int, int]:
        return self.values.shape

    @property
    def n_rows(self) -> int:
        return self.values.shape[0]

    @property
    def n_cols(self) -> int:
        return self.values.shape[1]

    @property
    def n_cells(self) -> int:
        return self.values.size

    @property
    def resolution(self) -> float:
        """Cell size in ground units."""
        return float(self.transform.a)

    @property
    def origin(self) -> tuple[float, float]:
        """World coordinate (x, y) of the top-left corner."""
        return float(self.transform.c), float(self.transform.f)

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """Return (west, south, east, north) in grid CRS units."""
        west, north = self.origin
        east = west + self.n_cols * self.resolution
        south = north - self.n_rows * self.resolution
        return west, south, east, north

    @property
    def is_geographic(self) -> bool:
        """True when the CRS is angular (degrees) rather than projected."""
        if not self.crs:
            return False
        return CRS.from_user_input(self.crs).is_geographic

    def cell_center(self, row: int, col: int) -> tuple[float, float]:
        """World coordinate (x, y) of a cell centre."""
        x, y = xy(self.transform, row, col, offset="center")
        return float(x), float(y)

    def cell_at(self, x: float, y: float) -> Cell:
        """Cell containing a world coordinate.

        Raises:
            ValueError: If the coordinate is outside the grid extent.
        """
        row, col = rowcol(self.transform, x, y, op=np.floor)
        row, col = int(row), int(col)
        if not self.contains(Cell(row=row, col=col)):
            raise ValueError(f"Coordinate ({x}, {y}) is outside grid '{self.name}' bounds {self.bounds}")
        return Cell(row=row, col=col)

    def contains(self, cell: Cell) -> bool:
        return 0 <= cell.row < self.n_rows and 0 <= cell.col < self.n_cols

    def __repr__(self) -> str:
        return (
            f"Grid(name={self.name!r}, shape={self.shape}, resolution={self.resolution}, "
            f"origin={self.origin}, crs={self.crs!r})"
        )


@dataclass(frozen=True)
class AlignmentReport:
    """Outcome of comparing the spatial properties of several grids.

    Attributes:
        matches: Property name -> True if every grid agrees with the first
    """

    matches: dict[str, bool]

    @property
    def mismatches(self) -> list[str]:
        return [prop for prop, ok in self.matches.items() if not ok]

    @property
    def is_congruent(self) -> bool:
        return not self.mismatches


def _close(a: float, b: float) -> bool:
    return math.isclose(a, b, rel_tol=GraphConfig.CONGRUENCE_RTOL, abs_tol=1e-9)


def alignment_report(grids: Mapping[str, Grid]) -> AlignmentReport:
    """Compare CRS, extent, shape, origin and resolution across grids.

    The first grid is the reference. Each property is logged as MATCH or
    DO NOT MATCH; nothing is resampled.

    Args:
        grids: Layer name -> Grid

    Returns:
        AlignmentReport with one entry per property.
    """
    if not grids:
        raise ValueError("alignment_report needs at least one grid")

    for name, grid in grids.items():
        west, south, east, north = grid.bounds
        logger.info(
            f"{name}: CRS={grid.crs}, extent=({west}, {south}, {east}, {north}), "
            f"nrow={grid.n_rows}, ncol={grid.n_cols}, origin={grid.origin}, resolution={grid.resolution}"
        )

    ref, *others = grids.values()
    matches = {
        "crs": all(g.crs == ref.crs for g in others),
        "extent": all(all(_close(a, b) for a, b in zip(g.bounds, ref.bounds)) for g in others),
        "nrow": all(g.n_rows == ref.n_rows for g in others),
        "ncol": all(g.n_cols == ref.n_cols for g in others),
        "origin": all(all(_close(a, b) for a, b in zip(g.origin, ref.origin)) for g in others),
        "resolution": all(_close(g.resolution, ref.resolution) for g in others),
    }

    for prop, ok in matches.items():
        logger.info(f"{prop}: {'MATCH' if ok else 'DO NOT MATCH'}")

    return AlignmentReport(matches=matches)


def check_congruent(grids: Mapping[str, Grid]) -> None:
    """Raise if the grids are not spatially congruent.

    Raises:
        InputMismatchError: Naming every property that differs.
    """
    report = alignment_report(grids)
    if not report.is_congruent:
        raise InputMismatchError(report.mismatches, detail=f"layers: {', '.join(grids)}")
