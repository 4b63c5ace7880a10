"""Barrier rasters: cells a pedestrian cannot enter.

Two barriers are produced, both congruent with the elevation grid:
- cliff: slope >= 45 degrees (Horn slope of the coarse terrain model)
- water: cells whose centre falls inside a waterbody polygon

Cells are coded 0 (impassable) or 1 (passable) so they can be combined
multiplicatively with edge conductance.

Waterbody polygons are either supplied by the caller or fetched from a
WaterbodySource (NHD by default). A failed fetch propagates as
BarrierSourceError; it is never treated as "no water".
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np
from rasterio.features import rasterize
from rasterio.warp import transform_geom

from stride.constants import BarrierConfig
from stride.core.grid import Grid
from stride.core.hydrography import NHDWaterbodySource, WaterbodySource
from stride.core.terrain_analyzer import TerrainAnalyzer
from stride.model.polygon_dataset import PolygonDataset

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BarrierLayers:
    """Cliff and water barrier grids.

    Attributes:
        cliff: 0 where slope >= the cliff threshold, else 1
        water: 0 inside waterbodies, else 1
    """

    cliff: Grid
    water: Grid


def cliff_barrier(elevation: Grid, threshold_deg: float = BarrierConfig.CLIFF_SLOPE_DEG) -> Grid:
    """Mark cells steeper than the threshold as impassable.

    Args:
        elevation: Coarse-scale terrain model
        threshold_deg: Slopes at or above this angle are cliffs

    Returns:
        uint8 grid named "cliff".
    """
    slope = TerrainAnalyzer.slope_degrees(elevation)
    steep = np.nan_to_num(slope.values, nan=0.0) >= threshold_deg
    cliff = np.where(steep, BarrierConfig.IMPASSABLE, BarrierConfig.PASSABLE).astype(np.uint8)

    logger.info(f"Cliff barrier: {int(steep.sum())} of {elevation.n_cells} cells at or above {threshold_deg} deg")
    return elevation.like(values=cliff, name=BarrierConfig.CLIFF_NAME)


def water_barrier(
    elevation: Grid,
    waterbodies: Optional[PolygonDataset] = None,
    source: Optional[WaterbodySource] = None,
) -> Grid:
    """Rasterize waterbody polygons onto the elevation grid.

    Args:
        elevation: Grid whose shape, transform and CRS the output copies
        waterbodies: Polygons to burn; fetched from ``source`` when None
        source: Polygon supplier used when ``waterbodies`` is None
            (defaults to NHDWaterbodySource)

    Returns:
        uint8 grid named "water".

    Raises:
        BarrierSourceError: If polygons must be fetched and the fetch fails.
    """
    if waterbodies is None:
        source = source or NHDWaterbodySource()
        waterbodies = source.fetch(elevation)
    elif len(waterbodies) == 0:
        logger.warning("Supplied waterbody dataset is empty; water barrier will be fully passable")

    shapes = waterbodies.as_mappings()
    if elevation.crs and waterbodies.crs != elevation.crs:
        shapes = [transform_geom(waterbodies.crs, elevation.crs, geom) for geom in shapes]

    if shapes:
        water = rasterize(
            [(geom, BarrierConfig.IMPASSABLE) for geom in shapes],
            out_shape=elevation.shape,
            transform=elevation.transform,
            fill=BarrierConfig.PASSABLE,
            dtype="uint8",
        )
    else:
        water = np.full(elevation.shape, BarrierConfig.PASSABLE, dtype=np.uint8)

    n_water = int((water == BarrierConfig.IMPASSABLE).sum())
    logger.info(f"Water barrier: {n_water} of {elevation.n_cells} cells inside {len(waterbodies)} waterbodies")
    return elevation.like(values=water, name=BarrierConfig.WATER_NAME)


def get_barriers(
    elevation: Grid,
    waterbodies: Optional[PolygonDataset] = None,
    source: Optional[WaterbodySource] = None,
    out_file_cliff: Optional[Path | str] = None,
    out_file_water: Optional[Path | str] = None,
    overwrite: bool = False,
) -> BarrierLayers:
    """Build both barrier grids, optionally writing them to GeoTIFF.

    Run this after the cost layers have been checked for alignment: the
    barriers inherit the elevation grid's georeferencing, so they align with
    any layer that aligns with the elevation grid.

    Args:
        elevation: Coarse-scale terrain model
        waterbodies: Waterbody polygons (fetched from ``source`` when None)
        source: Polygon supplier (defaults to NHDWaterbodySource)
        out_file_cliff: Optional output path for the cliff raster
        out_file_water: Optional output path for the water raster
        overwrite: Replace existing output files

    Returns:
        BarrierLayers with cliff and water grids.
    """
    cliff = cliff_barrier(elevation)
    water = water_barrier(elevation, waterbodies=waterbodies, source=source)

    if out_file_cliff is not None:
        cliff.to_file(out_file_cliff, overwrite=overwrite)
    if out_file_water is not None:
        water.to_file(out_file_water, overwrite=overwrite)

    return BarrierLayers(cliff=cliff, water=water)
