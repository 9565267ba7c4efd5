"""
Data Ingestion - Geometry Normalizer.

============================================================
RESPONSIBILITY
============================================================
Turns the free-form ``location`` string of an attestation into a
canonical (longitude, latitude) pair.

- Accepts GeoJSON geometries, Features and FeatureCollections
- Accepts "a,b" coordinate strings in either order
- Never raises; an unusable location yields None

============================================================
RESOLUTION ORDER
============================================================
1. JSON parse. For a recognised geometry take the first coordinate
   pair at the geometry's nesting depth:
     Point                              depth 0
     LineString, MultiPoint             depth 1
     Polygon, MultiLineString           depth 2
     MultiPolygon                       depth 3
   A Feature is unwrapped to its geometry; a FeatureCollection to the
   geometry of its first feature. Pairs are ordered [lon, lat, alt?].
2. Range check: |lat| <= 90 and |lon| <= 180, both present. Zero
   values are rejected unless ``allow_zero_coordinates`` is set.
3. Comma split into exactly two numbers. First as (lat, lon); if out
   of range, as (lon, lat).
4. Otherwise None.

============================================================
"""

import json
import logging
import math
from typing import Any, Optional

from core.constants import MAX_LATITUDE, MAX_LONGITUDE


logger = logging.getLogger(__name__)


Coordinates = tuple[float, float]


# Nesting depth of the first position within each geometry type
GEOMETRY_DEPTHS = {
    "Point": 0,
    "LineString": 1,
    "MultiPoint": 1,
    "Polygon": 2,
    "MultiLineString": 2,
    "MultiPolygon": 3,
}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _in_range(longitude: float, latitude: float) -> bool:
    return abs(latitude) <= MAX_LATITUDE and abs(longitude) <= MAX_LONGITUDE


class GeometryNormalizer:
    """
    Extracts a representative coordinate pair from a location string.

    Pure and stateless apart from the zero-coordinate policy.
    """

    def __init__(self, allow_zero_coordinates: bool = False) -> None:
        self._allow_zero_coordinates = allow_zero_coordinates

    @property
    def allow_zero_coordinates(self) -> bool:
        """Whether a 0 longitude or latitude from GeoJSON is accepted."""
        return self._allow_zero_coordinates

    def normalize(self, raw_location: Optional[str]) -> Optional[Coordinates]:
        """
        Resolve ``raw_location`` to (longitude, latitude).

        Returns:
            The pair, or None when no usable coordinates were found
        """
        if not raw_location or not isinstance(raw_location, str):
            return None

        coords = self._from_geojson(raw_location)
        if coords is not None:
            return coords

        return self._from_pair_string(raw_location)

    # ─────────────────────────────────────────────────────────────
    # GeoJSON
    # ─────────────────────────────────────────────────────────────

    def _from_geojson(self, raw_location: str) -> Optional[Coordinates]:
        try:
            parsed = json.loads(raw_location)
        except ValueError:
            return None

        geometry = self._unwrap(parsed)
        if geometry is None:
            return None

        position = self._first_position(geometry)
        if position is None:
            return None

        longitude, latitude = position[0], position[1]
        if self._valid_geojson_pair(longitude, latitude):
            return (float(longitude), float(latitude))

        logger.warning(f"Invalid GeoJSON coordinates: [{longitude}, {latitude}]")
        return None

    @staticmethod
    def _unwrap(parsed: Any) -> Optional[dict]:
        if not isinstance(parsed, dict):
            return None

        kind = parsed.get("type")
        if kind == "Feature":
            geometry = parsed.get("geometry")
        elif kind == "FeatureCollection":
            features = parsed.get("features")
            if not isinstance(features, list) or not features:
                return None
            first = features[0]
            geometry = first.get("geometry") if isinstance(first, dict) else None
        else:
            geometry = parsed

        if not isinstance(geometry, dict) or geometry.get("type") not in GEOMETRY_DEPTHS:
            return None
        return geometry

    @staticmethod
    def _first_position(geometry: dict) -> Optional[list]:
        position = geometry.get("coordinates")
        for _ in range(GEOMETRY_DEPTHS[geometry["type"]]):
            if not isinstance(position, list) or not position:
                return None
            position = position[0]

        if not isinstance(position, list) or len(position) < 2:
            return None
        return position

    def _valid_geojson_pair(self, longitude: Any, latitude: Any) -> bool:
        if not (_is_number(longitude) and _is_number(latitude)):
            return False
        if not self._allow_zero_coordinates and (longitude == 0 or latitude == 0):
            return False
        return _in_range(longitude, latitude)

    # ─────────────────────────────────────────────────────────────
    # "a,b" strings
    # ─────────────────────────────────────────────────────────────

    @staticmethod
    def _from_pair_string(raw_location: str) -> Optional[Coordinates]:
        parts = raw_location.split(",")
        if len(parts) != 2:
            return None

        try:
            first = float(parts[0].strip())
            second = float(parts[1].strip())
        except ValueError:
            return None

        if math.isnan(first) or math.isnan(second):
            return None

        # Latitude-first is the common convention
        if abs(first) <= MAX_LATITUDE and abs(second) <= MAX_LONGITUDE:
            return (second, first)
        if abs(second) <= MAX_LATITUDE and abs(first) <= MAX_LONGITUDE:
            return (first, second)

        logger.warning(f"Coordinate values out of range in '{raw_location}'")
        return None


_default_normalizer = GeometryNormalizer()


def normalize(raw_location: Optional[str]) -> Optional[Coordinates]:
    """Resolve a location string with the default (zero-rejecting) policy."""
    return _default_normalizer.normalize(raw_location)
