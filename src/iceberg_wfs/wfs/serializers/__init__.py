"""GetFeature response serializers."""

from . import geojson, gml

__all__ = ["geojson", "gml"]
