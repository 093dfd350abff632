"""
Serialize decorated feature rows -> WFS 2.0 FeatureCollection (GML 3.2).

Each row becomes a wfs:member holding an element named after its
featureset. Columns become string-valued child elements, except geom,
which is encoded as a gml:Point in the requested CRS:

- EPSG:3857 (default): srsName urn:ogc:def:crs:EPSG::3857, pos "x y"
- EPSG:4326:           srsName urn:ogc:def:crs:EPSG::4326, pos "lat lon"

The CRS is resolved before any element is created and the whole document
is built in memory, so an unsupported CRS never produces partial output.
"""

from enum import Enum
from typing import AbstractSet, Any, Mapping, Optional, Sequence

from lxml import etree

from ..errors import UnsupportedCRSError
from .values import to_text

WFS_NS = "http://www.opengis.net/wfs/2.0"
GML_NS = "http://www.opengis.net/gml/3.2"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"

NAMESPACES = {
    "wfs": WFS_NS,
    "gml": GML_NS,
    "xsi": XSI_NS,
}

_WFS_SCHEMA_LOCATION = (
    "http://www.opengis.net/wfs/2.0 http://schemas.opengis.net/wfs/2.0/wfs.xsd"
)

# srsName -> (URN, (first, second) columns of gml:pos)
_POINT_ENCODINGS = {
    "EPSG:3857": ("urn:ogc:def:crs:EPSG::3857", ("x", "y")),
    "EPSG:4326": ("urn:ogc:def:crs:EPSG::4326", ("latitude", "longitude")),
}


def _point_encoding(srs_name):
    srs = srs_name.value if isinstance(srs_name, Enum) else srs_name
    if srs is None:
        srs = "EPSG:3857"
    try:
        return _POINT_ENCODINGS[srs]
    except KeyError:
        raise UnsupportedCRSError(srs_name) from None


def _wfs(tag: str) -> etree.QName:
    return etree.QName(WFS_NS, tag)


def _gml(tag: str) -> etree.QName:
    return etree.QName(GML_NS, tag)


def serialize(
    features: Sequence[Mapping[str, Any]],
    number_matched: int,
    srs_name: Optional[str] = None,
    excluded_columns: AbstractSet[str] = frozenset(),
) -> bytes:
    """Build a pretty-printed wfs:FeatureCollection document."""
    srs_urn, pos_columns = _point_encoding(srs_name)

    collection = etree.Element(_wfs("FeatureCollection"), nsmap=NAMESPACES)
    collection.set(etree.QName(XSI_NS, "schemaLocation"), _WFS_SCHEMA_LOCATION)
    collection.set("numberReturned", str(len(features)))
    collection.set("numberMatched", str(number_matched))

    for feature in features:
        member = etree.SubElement(collection, _wfs("member"))
        element = etree.SubElement(member, feature["featureset"])
        element.set(_gml("id"), f"Point.{feature['id']}")

        for key, value in feature.items():
            if key in excluded_columns:
                continue
            child = etree.SubElement(element, key)
            if key == "geom":
                _append_point(child, feature, srs_urn, pos_columns)
            else:
                child.text = to_text(value)

    return etree.tostring(
        collection, pretty_print=True, xml_declaration=True, encoding="UTF-8"
    )


def _append_point(parent, feature, srs_urn: str, pos_columns) -> None:
    point = etree.SubElement(parent, _gml("Point"))
    point.set("srsName", srs_urn)
    point.set("srsDimension", "2")
    point.set(_gml("id"), f"GmlPoint.{feature['id']}")
    first, second = pos_columns
    pos = etree.SubElement(point, _gml("pos"))
    pos.text = f"{feature[first]} {feature[second]}"
