"""Terrain slope analysis on a gridded elevation model.

Slope is estimated with Horn's (1981) third-order finite difference, which
weights the four orthogonal neighbours twice as heavily as the diagonals:

    dz/dx = ((c + 2f + i) - (a + 2d + g)) / (8 * res)
    dz/dy = ((g + 2h + i) - (a + 2b + c)) / (8 * res)

with the 3x3 window laid out as

    a b c
    d e f
    g h i

Border cells reuse their nearest interior values (edge replication) so that
every cell receives a slope.
"""

import logging

import numpy as np

from stride.core.grid import Grid

logger = logging.getLogger(__name__)


class TerrainAnalyzer:
    """Per-cell slope of an elevation grid.

    Example:
        slope = TerrainAnalyzer.slope_degrees(dtm)
        steep = slope.values >= 45
    """

    @staticmethod
    def gradients(elevation: Grid) -> tuple[np.ndarray, np.ndarray]:
        """Horn gradients (dz/dx, dz/dy) in elevation units per ground unit."""
        z = np.pad(np.asarray(elevation.values, dtype=np.float64), 1, mode="edge")
        a, b, c = z[:-2, :-2], z[:-2, 1:-1], z[:-2, 2:]
        d, f = z[1:-1, :-2], z[1:-1, 2:]
        g, h, i = z[2:, :-2], z[2:, 1:-1], z[2:, 2:]

        res = elevation.resolution
        dz_dx = ((c + 2 * f + i) - (a + 2 * d + g)) / (8 * res)
        dz_dy = ((g + 2 * h + i) - (a + 2 * b + c)) / (8 * res)
        return dz_dx, dz_dy

    @staticmethod
    def slope_degrees(elevation: Grid) -> Grid:
        """Slope angle of every cell in degrees (0 = flat, 90 = vertical).

        Args:
            elevation: Elevation grid

        Returns:
            Congruent grid named "slope". NaN where any window cell is NaN.
        """
        dz_dx, dz_dy = TerrainAnalyzer.gradients(elevation)
        slope = np.degrees(np.arctan(np.hypot(dz_dx, dz_dy)))
        logger.debug(f"Slope computed for {elevation.name or 'elevation'} (shape: {slope.shape})")
        return elevation.like(values=slope, name="slope")
