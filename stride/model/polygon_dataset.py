"""PolygonDataset - Vector waterbody polygons with their reference frame."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping

from shapely.geometry import mapping, shape
from shapely.geometry.base import BaseGeometry

logger = logging.getLogger(__name__)

POLYGONAL_TYPES = ("Polygon", "MultiPolygon")

# RFC 7946 GeoJSON is always WGS84 longitude/latitude
GEOJSON_CRS = "EPSG:4326"


@dataclass(frozen=True)
class PolygonDataset:
    """A set of polygons in one coordinate reference system.

    Non-polygonal and empty geometries are dropped on construction.

    Attributes:
        geometries: Shapely Polygon/MultiPolygon geometries
        crs: Coordinate reference system identifier of the coordinates
    """

    geometries: tuple[BaseGeometry, ...]
    crs: str

    def __post_init__(self) -> None:
        kept = tuple(g for g in self.geometries if g is not None and not g.is_empty and g.geom_type in POLYGONAL_TYPES)
        dropped = len(self.geometries) - len(kept)
        if dropped:
            logger.warning(f"Dropped {dropped} empty or non-polygonal geometries from waterbody dataset")
        object.__setattr__(self, "geometries", kept)

    @classmethod
    def from_geometries(cls, geometries: Iterable[BaseGeometry], crs: str) -> "PolygonDataset":
        return cls(geometries=tuple(geometries), crs=crs)

    @classmethod
    def from_geojson(cls, data: Mapping[str, Any], crs: str = GEOJSON_CRS) -> "PolygonDataset":
        """Build from a GeoJSON FeatureCollection, Feature or bare geometry.

        Args:
            data: Parsed GeoJSON object
            crs: CRS of the coordinates (GeoJSON default is EPSG:4326)
        """
        kind = data.get("type")
        if kind == "FeatureCollection":
            geoms = [shape(f["geometry"]) for f in data.get("features", []) if f.get("geometry")]
        elif kind == "Feature":
            geoms = [shape(data["geometry"])] if data.get("geometry") else []
        elif kind is not None:
            geoms = [shape(data)]
        else:
            raise ValueError("Not a GeoJSON object: missing 'type'")
        return cls(geometries=tuple(geoms), crs=crs)

    @classmethod
    def from_file(cls, path: Path | str, crs: str = GEOJSON_CRS) -> "PolygonDataset":
        """Read polygons from a GeoJSON file."""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        dataset = cls.from_geojson(data=data, crs=crs)
        logger.info(f"Loaded {len(dataset)} waterbody polygons from {path}")
        return dataset

    def as_mappings(self) -> list[dict[str, Any]]:
        """GeoJSON-like geometry mappings (input format for rasterio)."""
        return [mapping(g) for g in self.geometries]

    def __len__(self) -> int:
        return len(self.geometries)
