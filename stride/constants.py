"""Configuration constants for STRIDE.

All model parameters are centralized here.

Classes:
    SpeedModelConfig: Calibrated Lorentzian walking-speed constants
    GraphConfig: Neighbourhood and build parameters for the transition graph
    BarrierConfig: Cliff threshold and barrier cell codes
    HydrographyConfig: National Hydrography Dataset query parameters
    SolverConfig: Least-cost path solver parameters
"""

from math import sqrt


class SpeedModelConfig:
    """Empirically fit constants of the walking-speed model.

    speed(s, dens, rgh) = c / (pi * b * (1 + ((s - a) / b)^2)) / (d * dens + e * rgh + 1)

    These are calibration results, not tuning knobs.
    """

    A = -2.320  # Slope (deg) of peak speed - a slight downhill grade
    B = 26.315  # Half-width of the Lorentzian (deg)
    C = 147.362  # Scale of the Lorentzian
    D = 15.265  # Vegetation density damping
    E = 16.505  # Roughness damping


class GraphConfig:
    """Transition graph construction parameters."""

    # 8 king moves followed by 8 knight moves (row offset, col offset)
    NEIGHBORS_16 = [
        (-1, -1),
        (-1, 0),
        (-1, 1),
        (0, -1),
        (0, 1),
        (1, -1),
        (1, 0),
        (1, 1),
        (-2, -1),
        (-2, 1),
        (-1, -2),
        (-1, 2),
        (1, -2),
        (1, 2),
        (2, -1),
        (2, 1),
    ]
    assert len(set(NEIGHBORS_16)) == 16

    # Step lengths in cells for each offset class
    ORTHOGONAL_STEP = 1.0
    DIAGONAL_STEP = sqrt(2.0)
    KNIGHT_STEP = sqrt(5.0)

    DEFAULT_WORKERS = 1  # Sequential unless the caller asks for threads

    # Relative tolerance when comparing resolutions and origins of layers
    CONGRUENCE_RTOL = 1e-9


class BarrierConfig:
    """Barrier raster parameters."""

    CLIFF_SLOPE_DEG = 45.0  # Slopes at or above this are impassable

    PASSABLE = 1
    IMPASSABLE = 0

    CLIFF_NAME = "cliff"
    WATER_NAME = "water"


class HydrographyConfig:
    """USGS National Hydrography Dataset (NHD) query parameters."""

    NHD_MAPSERVER_URL = "https://hydro.nationalmap.gov/arcgis/rest/services/nhd/MapServer"
    # Layer 12: Waterbody - Large Scale
    WATERBODY_LAYER = 12
    QUERY_CRS = "EPSG:4326"
    TIMEOUT_S = 60

    # Results come back in pages while the server flags exceededTransferLimit
    PAGE_SIZE = 1000
    MAX_PAGES = 50

    # NHD covers the US and its territories (min_lon, min_lat, max_lon, max_lat)
    COVERAGE_BOUNDS = (-179.5, 13.0, -64.0, 71.5)


class SolverConfig:
    """Least-cost path solver parameters."""

    DEFAULT_WORKERS = 1

    # scipy.sparse.csgraph marks "no predecessor" with this value
    NO_PREDECESSOR = -9999
