"""Great-circle distances for sizing the hydrography query.

The NHD service takes a point and a buffer radius in metres, so a projected
study area is summarised as its WGS84 centroid plus the distance to its
furthest corner. A spherical Earth (R = 6,371 km) is accurate enough for
a buffer that only has to enclose the grid.
"""

from math import asin, cos, radians, sin, sqrt
from typing import Iterable

EARTH_RADIUS_M = 6_371_000


class GeoCalculator:
    """Spherical-Earth distances. Inputs in decimal degrees, outputs in metres."""

    @staticmethod
    def haversine_distance_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
        """Great-circle distance between two WGS84 points.

        Args:
            lat1, lon1: First point (decimal degrees)
            lat2, lon2: Second point (decimal degrees)

        Returns:
            Distance in meters.
        """
        phi1, phi2 = radians(lat1), radians(lat2)
        half_chord = sin((phi2 - phi1) / 2) ** 2 + cos(phi1) * cos(phi2) * sin(radians(lon2 - lon1) / 2) ** 2
        return 2 * EARTH_RADIUS_M * asin(sqrt(min(1.0, half_chord)))

    @staticmethod
    def max_distance_m(lon: float, lat: float, points: Iterable[tuple[float, float]]) -> float:
        """Largest great-circle distance from a centre to any of the points.

        Args:
            lon: Longitude of the centre
            lat: Latitude of the centre
            points: (lon, lat) pairs, e.g. the corners of a bounding box

        Returns:
            Distance in meters (0.0 for no points).
        """
        return max(
            (GeoCalculator.haversine_distance_m(lat1=lat, lon1=lon, lat2=p_lat, lon2=p_lon) for p_lon, p_lat in points),
            default=0.0,
        )
