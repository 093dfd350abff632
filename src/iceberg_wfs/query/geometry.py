"""
Geometry and featureset preparation utilities.

Handles:
- Geometry / id column detection on Arrow schemas
- WKB -> representative point decoding
- Coordinate transformation to WGS84 and Web Mercator
- Normalizing an Iceberg scan into the unified feature row layout
"""

import logging
import re
from functools import lru_cache

import pyarrow as pa
import pyarrow.compute as pc
import pyproj
from shapely import wkb

logger = logging.getLogger(__name__)

GEOGRAPHIC_SRID = 4326
PROJECTED_SRID = 3857

# Columns every featureset row carries, in view order. Attribute columns follow.
REQUIRED_COLUMNS = ("id", "featureset", "x", "y", "latitude", "longitude", "geom")

FEATURE_SCHEMA = pa.schema(
    [
        ("id", pa.string()),
        ("featureset", pa.string()),
        ("x", pa.float64()),
        ("y", pa.float64()),
        ("latitude", pa.float64()),
        ("longitude", pa.float64()),
        ("geom", pa.large_binary()),
    ]
)

_GEOMETRY_NAMES = {"geom", "geometry", "wkb_geometry", "shape", "location"}
_ID_NAMES = {"id", "objectid", "fid", "gid", "ogc_fid"}

# Featureset and attribute names become GML element names.
_XML_NAME_RE = re.compile(r"^[^\W\d][\w.\-]*$")


@lru_cache(maxsize=None)
def _transformer(from_srid: int, to_srid: int) -> pyproj.Transformer:
    return pyproj.Transformer.from_crs(
        f"EPSG:{from_srid}", f"EPSG:{to_srid}", always_xy=True
    )


def transform_point(x: float, y: float, from_srid: int, to_srid: int):
    """Reproject a single coordinate pair using pyproj."""
    if from_srid == to_srid:
        return x, y
    return _transformer(from_srid, to_srid).transform(x, y)


def wkb_to_point(wkb_bytes: bytes):
    """Decode WKB and return (x, y) of its representative point.

    Points are returned as-is; other geometry types are reduced to
    their centroid.
    """
    geom = wkb.loads(wkb_bytes)
    if geom.is_empty:
        return None
    if geom.geom_type != "Point":
        geom = geom.centroid
    return geom.x, geom.y


def detect_geometry_column(schema: pa.Schema) -> str:
    """Find the geometry column in an Arrow schema.

    Looks for a binary column with a well known name first, then falls
    back to the first binary column.
    """
    for field in schema:
        if field.name.lower() in _GEOMETRY_NAMES and _is_binary_type(field.type):
            return field.name

    for field in schema:
        if _is_binary_type(field.type):
            return field.name

    raise ValueError("No binary geometry column found")


def detect_id_column(schema: pa.Schema) -> str:
    """Find the feature identifier column in an Arrow schema."""
    for field in schema:
        if field.name.lower() in _ID_NAMES:
            return field.name
    for field in schema:
        if pa.types.is_integer(field.type):
            return field.name
    raise ValueError("No id column found")


def _is_binary_type(arrow_type) -> bool:
    return (
        pa.types.is_binary(arrow_type)
        or pa.types.is_large_binary(arrow_type)
        or pa.types.is_fixed_size_binary(arrow_type)
    )


def is_xml_name(name: str) -> bool:
    """True if name can be used as an unprefixed XML element name."""
    return bool(_XML_NAME_RE.match(name))


def prepare_featureset(
    featureset: str,
    arrow_table: pa.Table,
    source_srid: int = GEOGRAPHIC_SRID,
) -> pa.Table:
    """
    Convert a raw Iceberg scan into the unified feature row layout.

    The result starts with the REQUIRED_COLUMNS (id as string, the
    featureset name, Web Mercator x/y, WGS84 latitude/longitude and the
    original WKB as geom) followed by the table's remaining attribute
    columns. Rows without a usable geometry or id are dropped, as are
    attribute columns whose names are not valid XML element names.

    Raises ValueError when the table cannot be served: the featureset
    name is not a valid XML element name, or no geometry or id column
    can be found.
    """
    if not is_xml_name(featureset):
        raise ValueError(f"Featureset name {featureset!r} is not a valid XML name")
    geom_col = detect_geometry_column(arrow_table.schema)
    id_col = detect_id_column(arrow_table.schema)

    keep = []
    xs, ys, lats, lons = [], [], [], []
    ids = arrow_table.column(id_col).to_pylist()
    for i, wkb_bytes in enumerate(arrow_table.column(geom_col).to_pylist()):
        if ids[i] is None:
            continue
        point = wkb_to_point(wkb_bytes) if wkb_bytes else None
        if point is None:
            continue
        lon, lat = transform_point(*point, source_srid, GEOGRAPHIC_SRID)
        x, y = transform_point(*point, source_srid, PROJECTED_SRID)
        keep.append(i)
        xs.append(x)
        ys.append(y)
        lats.append(lat)
        lons.append(lon)

    skipped = arrow_table.num_rows - len(keep)
    if skipped:
        logger.warning(
            "Featureset %s: skipped %d rows without geometry or id",
            featureset,
            skipped,
        )
        arrow_table = arrow_table.take(pa.array(keep, type=pa.int64()))

    n = arrow_table.num_rows
    columns = {
        "id": pc.cast(arrow_table.column(id_col), pa.string()),
        "featureset": pa.array([featureset] * n, type=pa.string()),
        "x": pa.array(xs, type=pa.float64()),
        "y": pa.array(ys, type=pa.float64()),
        "latitude": pa.array(lats, type=pa.float64()),
        "longitude": pa.array(lons, type=pa.float64()),
        "geom": pc.cast(arrow_table.column(geom_col), pa.large_binary()),
    }

    for name in arrow_table.column_names:
        if name in (geom_col, id_col) or name in columns:
            continue
        if not is_xml_name(name):
            logger.warning(
                "Featureset %s: dropped column %r, not a valid XML name",
                featureset,
                name,
            )
            continue
        columns[name] = arrow_table.column(name)

    return pa.table(columns)
