"""
GetFeature KVP parameter resolution.

WFS key names are case-insensitive, so the raw mapping is upper-cased
before lookup. Everything the query layer needs ends up in a frozen
FeatureQueryFilter; anything malformed raises a WfsError which the app
renders as an ows:ExceptionReport.
"""

import re
from typing import Mapping, Optional

from iceberg_wfs.query.models import FeatureQueryFilter, OutputFormat, SrsName

from .errors import (
    InvalidParameterValue,
    MissingParameterValue,
    OperationNotSupported,
)

_JSON_FORMATS = {
    "application/json",
    "application/geo+json",
    "application/vnd.geo+json",
    "json",
    "geojson",
}

_GML_FORMATS = {
    "application/gml+xml;version=3.2",
    "application/gml+xml",
    "text/xml;subtype=gml/3.2",
    "text/xml;subtype=gml/3.2.1",
    "text/xml",
    "application/xml",
    "gml32",
    "gml3",
    "gml",
}

_SRS_PATTERNS = (
    re.compile(r"^EPSG:(\d+)$", re.IGNORECASE),
    re.compile(r"^urn:(?:x-)?ogc:def:crs:EPSG:(?:[\d.]*:)?(\d+)$", re.IGNORECASE),
    re.compile(r"^https?://www\.opengis\.net/def/crs/EPSG/0/(\d+)$", re.IGNORECASE),
)

_SUPPORTED_SRS = {
    4326: SrsName.EPSG_4326,
    3857: SrsName.EPSG_3857,
}


def normalize_params(params: Mapping[str, str]) -> dict[str, str]:
    """Upper-case KVP keys. The first occurrence of a key wins."""
    normalized = {}
    for key, value in params.items():
        normalized.setdefault(key.upper(), value)
    return normalized


def parse_get_feature_params(params: Mapping[str, str]) -> FeatureQueryFilter:
    """Validate raw GetFeature KVP parameters into a FeatureQueryFilter."""
    p = normalize_params(params)

    service = p.get("SERVICE")
    if service and service.upper() != "WFS":
        raise InvalidParameterValue(
            f"Unsupported service '{service}', only 'WFS' is available.",
            locator="service",
        )

    version = p.get("VERSION")
    if version and not version.startswith("2.0"):
        raise InvalidParameterValue(
            f"WFS version '{version}' is not supported, use 2.0.0.",
            locator="version",
        )

    request = p.get("REQUEST")
    if not request:
        raise MissingParameterValue(
            "Missing required 'request' parameter.", locator="request"
        )
    if request.lower() != "getfeature":
        raise OperationNotSupported(
            f"'{request}' is not implemented, only GetFeature is supported.",
            locator="request",
        )

    return FeatureQueryFilter(
        type_names=_parse_type_names(p.get("TYPENAMES") or p.get("TYPENAME")),
        bbox=_parse_bbox(p.get("BBOX")),
        count=_parse_count(p.get("COUNT") or p.get("MAXFEATURES")),
        output_format=_parse_output_format(p.get("OUTPUTFORMAT")),
        srs_name=_parse_srs_name(p.get("SRSNAME")),
    )


def _parse_type_names(value: Optional[str]) -> tuple[str, ...]:
    if not value:
        raise MissingParameterValue(
            "Missing required 'typeNames' parameter.", locator="typeNames"
        )
    type_names = []
    for name in value.split(","):
        name = name.strip()
        if ":" in name:
            name = name.split(":", 1)[1]
        if not name:
            raise InvalidParameterValue(
                f"Empty type name in '{value}'.", locator="typeNames"
            )
        type_names.append(name)
    return tuple(type_names)


def _parse_bbox(value: Optional[str]):
    """Parse 'xmin,ymin,xmax,ymax[,crs]'. A trailing CRS token is ignored."""
    if not value:
        return None
    parts = [part.strip() for part in value.split(",")]
    if len(parts) == 5:
        parts = parts[:4]
    if len(parts) != 4:
        raise InvalidParameterValue(
            "bbox must contain 4 numbers and an optional CRS.", locator="bbox"
        )
    try:
        xmin, ymin, xmax, ymax = (float(part) for part in parts)
    except ValueError:
        raise InvalidParameterValue(
            f"Invalid bbox value '{value}'.", locator="bbox"
        ) from None
    if xmin > xmax or ymin > ymax:
        raise InvalidParameterValue(
            "bbox minimum exceeds maximum.", locator="bbox"
        )
    return xmin, ymin, xmax, ymax


def _parse_count(value: Optional[str]) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        count = int(value)
    except ValueError:
        raise InvalidParameterValue(
            f"count must be a positive integer, got '{value}'.", locator="count"
        ) from None
    if count < 1:
        raise InvalidParameterValue(
            f"count must be a positive integer, got '{value}'.", locator="count"
        )
    return count


def _parse_output_format(value: Optional[str]) -> OutputFormat:
    if not value:
        return OutputFormat.GML
    fmt = value.replace(" ", "").lower()
    if fmt in _JSON_FORMATS:
        return OutputFormat.GEOJSON
    if fmt in _GML_FORMATS:
        return OutputFormat.GML
    raise InvalidParameterValue(
        f"Unsupported outputFormat '{value}'.", locator="outputFormat"
    )


def _parse_srs_name(value: Optional[str]) -> Optional[SrsName]:
    if not value:
        return None
    for pattern in _SRS_PATTERNS:
        match = pattern.match(value.strip())
        if match:
            srs = _SUPPORTED_SRS.get(int(match.group(1)))
            if srs is not None:
                return srs
            break
    raise InvalidParameterValue(
        f"Unsupported srsName '{value}', use EPSG:4326 or EPSG:3857.",
        locator="srsName",
    )
