"""
Serialize decorated feature rows -> GeoJSON FeatureCollection.

Used when outputFormat=application/json is requested.

Coordinates are [x, y] (Web Mercator) unless EPSG:4326 was requested, in
which case they are [longitude, latitude]. Properties carry every column
except geom, as strings, plus a GmlID matching the GML output.
"""

from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from .values import to_text


def serialize(features: Iterable[Mapping[str, Any]], srs_name: Optional[str] = None) -> dict:
    """Convert feature rows to a GeoJSON FeatureCollection."""
    srs = srs_name.value if isinstance(srs_name, Enum) else srs_name

    return {
        "type": "FeatureCollection",
        "features": [_feature(feature, srs) for feature in features],
    }


def _feature(feature: Mapping[str, Any], srs: Optional[str]) -> dict:
    properties = {"GmlID": f"Point.{feature['id']}"}
    for key, value in feature.items():
        if key == "geom":
            continue
        properties[key] = to_text(value)

    if srs == "EPSG:4326":
        coordinates = [feature["longitude"], feature["latitude"]]
    else:
        coordinates = [feature["x"], feature["y"]]

    return {
        "type": "Feature",
        "geometry": {
            "type": "Point",
            "coordinates": coordinates,
        },
        "properties": properties,
    }
