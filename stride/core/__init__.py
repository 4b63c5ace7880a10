"""Core raster processing: grids, slope, barriers and the speed model.

- Grid: Georeferenced raster layer with congruence checks
- TerrainAnalyzer: Horn slope of an elevation grid
- GeoCalculator: Great-circle distances for hydrography queries
- NHDWaterbodySource: Waterbody polygons from the USGS NHD
- get_barriers: Cliff and water barrier grids
- conductance: Lorentzian walking-speed model (import the module directly)
"""

from stride.core.barriers import (
    BarrierLayers,
    cliff_barrier,
    get_barriers,
    water_barrier,
)
from stride.core.geo_calculator import GeoCalculator
from stride.core.grid import (
    AlignmentReport,
    Grid,
    alignment_report,
    check_congruent,
)
from stride.core.hydrography import NHDWaterbodySource, WaterbodySource
from stride.core.terrain_analyzer import TerrainAnalyzer

__all__ = [
    # Grid
    "Grid",
    "AlignmentReport",
    "alignment_report",
    "check_congruent",
    # Geodesy
    "GeoCalculator",
    # Terrain
    "TerrainAnalyzer",
    # Barriers
    "BarrierLayers",
    "cliff_barrier",
    "water_barrier",
    "get_barriers",
    # Hydrography
    "WaterbodySource",
    "NHDWaterbodySource",
]
