"""Shared pytest fixtures for stride tests.

Provides a synthetic grid factory and reusable layer sets.

COORDINATE SYSTEM:
    Grids use UTM zone 17N (EPSG:32617) around x=500000, y=4401000, which sits
    in West Virginia, inside NHD coverage. Cell size is 10 m unless a test
    needs otherwise, so distances are easy to check by hand.
"""

from typing import Callable, Optional

import numpy as np
import pytest
from rasterio.transform import from_origin

from stride.core.grid import Grid

UTM_17N = "EPSG:32617"
ORIGIN_X = 500_000.0
ORIGIN_Y = 4_401_000.0


def make_grid(
    values: np.ndarray | list,
    name: str = "",
    resolution: float = 10.0,
    origin: tuple[float, float] = (ORIGIN_X, ORIGIN_Y),
    crs: Optional[str] = UTM_17N,
) -> Grid:
    """Build a north-up Grid from an array with a top-left origin."""
    transform = from_origin(origin[0], origin[1], resolution, resolution)
    return Grid(values=np.asarray(values, dtype=np.float64), transform=transform, crs=crs, name=name)


def make_layers(
    elevation: np.ndarray,
    density: float | np.ndarray = 0.0,
    roughness: float | np.ndarray = 0.0,
    cliff: float | np.ndarray = 1.0,
    water: float | np.ndarray = 1.0,
    resolution: float = 10.0,
) -> dict[str, Grid]:
    """Congruent layer set; scalars are broadcast over the elevation shape."""
    elevation = np.asarray(elevation, dtype=np.float64)

    def full(value: float | np.ndarray) -> np.ndarray:
        return np.broadcast_to(np.asarray(value, dtype=np.float64), elevation.shape)

    return {
        "elevation": make_grid(elevation, name="elevation", resolution=resolution),
        "density": make_grid(full(density), name="density", resolution=resolution),
        "roughness": make_grid(full(roughness), name="roughness", resolution=resolution),
        "cliff": make_grid(full(cliff), name="cliff", resolution=resolution),
        "water": make_grid(full(water), name="water", resolution=resolution),
    }


@pytest.fixture
def grid_factory() -> Callable[..., Grid]:
    return make_grid


@pytest.fixture
def layers_factory() -> Callable[..., dict[str, Grid]]:
    return make_layers


@pytest.fixture
def flat_3x3_layers() -> dict[str, Grid]:
    """3x3 flat grid, no vegetation, no roughness, no barriers, 10 m cells."""
    return make_layers(elevation=np.zeros((3, 3)))


@pytest.fixture
def flat_5x5_layers() -> dict[str, Grid]:
    """5x5 flat grid with uniform density 0.2 and roughness 0.1."""
    return make_layers(elevation=np.zeros((5, 5)), density=0.2, roughness=0.1)
