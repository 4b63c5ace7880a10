"""Waterbody polygon retrieval for the water barrier raster.

Provides the WaterbodySource interface and its default implementation,
a query against the USGS National Hydrography Dataset (NHD) MapServer:
- Study-area extent reprojected to WGS84
- Query centred on the extent's centroid
- Buffer radius = furthest extent corner from the centroid
- Paged results (resultOffset) while the server reports a truncated page
- Bounded request timeout; every failure surfaces as BarrierSourceError

NHD data are only available for the United States.

Service: https://hydro.nationalmap.gov/arcgis/rest/services/nhd/MapServer
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Optional

import requests
from rasterio.warp import transform
from shapely.geometry import Polygon

from stride.constants import HydrographyConfig
from stride.core.geo_calculator import GeoCalculator
from stride.core.grid import Grid
from stride.exceptions import BarrierSourceError
from stride.model.polygon_dataset import PolygonDataset

logger = logging.getLogger(__name__)


class WaterbodySource(ABC):
    """Supplier of waterbody polygons covering a grid's extent."""

    @abstractmethod
    def fetch(self, grid: Grid) -> PolygonDataset:
        """Return polygons covering the grid.

        Raises:
            BarrierSourceError: If polygons cannot be obtained.
        """


def query_area(grid: Grid) -> tuple[float, float, float]:
    """Centre and radius of a circle in WGS84 enclosing the grid extent.

    Args:
        grid: Grid with a CRS

    Returns:
        Tuple (lon, lat, radius_m).
    """
    if not grid.crs:
        raise BarrierSourceError(f"Grid '{grid.name}' has no CRS; cannot locate it for a hydrography query")

    west, south, east, north = grid.bounds
    corners_x = [west, east, east, west]
    corners_y = [south, south, north, north]
    if grid.crs != HydrographyConfig.QUERY_CRS:
        lons, lats = transform(grid.crs, HydrographyConfig.QUERY_CRS, corners_x, corners_y)
    else:
        lons, lats = corners_x, corners_y

    corners = list(zip(lons, lats))
    centroid = Polygon(corners).centroid
    radius_m = GeoCalculator.max_distance_m(lon=centroid.x, lat=centroid.y, points=corners)
    return centroid.x, centroid.y, radius_m


class NHDWaterbodySource(WaterbodySource):
    """Waterbody polygons from the NHD MapServer REST API.

    Example:
        source = NHDWaterbodySource(timeout_s=30)
        polygons = source.fetch(dtm)
    """

    def __init__(
        self,
        url: str = HydrographyConfig.NHD_MAPSERVER_URL,
        layer: int = HydrographyConfig.WATERBODY_LAYER,
        timeout_s: float = HydrographyConfig.TIMEOUT_S,
        page_size: int = HydrographyConfig.PAGE_SIZE,
        max_pages: int = HydrographyConfig.MAX_PAGES,
    ) -> None:
        self.url = url
        self.layer = layer
        self.timeout_s = timeout_s
        self.page_size = page_size
        self.max_pages = max_pages

    @staticmethod
    def in_coverage(lon: float, lat: float) -> bool:
        min_lon, min_lat, max_lon, max_lat = HydrographyConfig.COVERAGE_BOUNDS
        return min_lon <= lon <= max_lon and min_lat <= lat <= max_lat

    def _query_page(self, query_url: str, params: dict[str, Any]) -> dict[str, Any]:
        """One request to the MapServer query endpoint, validated as a JSON object."""
        try:
            response = requests.get(query_url, params=params, timeout=self.timeout_s)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            raise BarrierSourceError(f"NHD waterbody query failed: {e}") from e
        except ValueError as e:
            raise BarrierSourceError(f"NHD waterbody query returned invalid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise BarrierSourceError(
                f"NHD waterbody query returned {type(payload).__name__} instead of a GeoJSON object"
            )

        error: Optional[dict] = payload.get("error")
        if error:
            raise BarrierSourceError(f"NHD service error {error.get('code')}: {error.get('message')}")
        return payload

    def fetch(self, grid: Grid) -> PolygonDataset:
        lon, lat, radius_m = query_area(grid)
        if not self.in_coverage(lon=lon, lat=lat):
            raise BarrierSourceError(
                f"Study area centred at ({lon:.4f}, {lat:.4f}) is outside NHD coverage; supply waterbody polygons"
            )

        params: dict[str, Any] = {
            "geometry": f"{lon},{lat}",
            "geometryType": "esriGeometryPoint",
            "inSR": "4326",
            "outSR": "4326",
            "distance": radius_m,
            "units": "esriSRUnit_Meter",
            "spatialRel": "esriSpatialRelIntersects",
            "outFields": "*",
            "returnGeometry": "true",
            "resultRecordCount": self.page_size,
            "f": "geojson",
        }
        query_url = f"{self.url}/{self.layer}/query"
        logger.info(f"Querying NHD waterbodies within {radius_m:.0f}m of ({lon:.5f}, {lat:.5f})...")
        start_time = time.time()

        features: list[dict[str, Any]] = []
        for page in range(self.max_pages):
            payload = self._query_page(query_url, params={**params, "resultOffset": len(features)})
            page_features = payload.get("features")
            if not isinstance(page_features, list):
                raise BarrierSourceError("NHD waterbody response is not GeoJSON: missing 'features'")
            features.extend(page_features)

            if not payload.get("exceededTransferLimit"):
                break
            if not page_features:
                raise BarrierSourceError("NHD reported more waterbodies but returned an empty page")
            logger.debug(f"NHD page {page + 1}: {len(features)} features so far, more available")
        else:
            raise BarrierSourceError(
                f"NHD waterbody query still truncated after {self.max_pages} pages ({len(features)} features); "
                f"supply waterbody polygons"
            )

        try:
            dataset = PolygonDataset.from_geojson(
                data={"type": "FeatureCollection", "features": features},
                crs=HydrographyConfig.QUERY_CRS,
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise BarrierSourceError(f"NHD waterbody response is not GeoJSON: {e}") from e

        if len(dataset) == 0:
            raise BarrierSourceError(
                f"NHD returned no waterbody polygons within {radius_m:.0f}m of ({lon:.5f}, {lat:.5f})"
            )

        elapsed = time.time() - start_time
        logger.info(f"Retrieved {len(dataset)} NHD waterbodies in {elapsed:.2f}s")
        return dataset
