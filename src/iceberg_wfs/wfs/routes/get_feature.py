"""
WFS GetFeature route.

WFS clients send KVP parameters via:
- GET with URL query parameters
- POST with application/x-www-form-urlencoded body

Both are handled. _get_query_params() merges both sources.
"""

import json
import logging

from fastapi import APIRouter, Request, Response

from iceberg_wfs.config import get_settings
from iceberg_wfs.query.datasource import get_current_data_source
from iceberg_wfs.query.engine import query_features
from iceberg_wfs.query.models import OutputFormat

from ..features import decorate_features
from ..params import parse_get_feature_params
from ..serializers import geojson, gml

logger = logging.getLogger(__name__)
router = APIRouter()


async def _get_query_params(request: Request) -> dict:
    """Merge query string and form body params.

    Query string params take precedence over form body.
    """
    params = dict(request.query_params)

    if request.method == "POST":
        content_type = request.headers.get("content-type", "")
        if "form" in content_type or "urlencoded" in content_type:
            form_data = await request.form()
            for key, value in form_data.items():
                if key not in params:
                    params[key] = value

    return params


def _base_url(request: Request) -> str:
    """Derive the public base URL from the request.

    Behind a reverse proxy, use X-Forwarded-Host and X-Forwarded-Proto
    to reconstruct the external URL. root_path carries the proxy prefix.
    """
    host = request.headers.get("x-forwarded-host") or request.headers.get("host", "localhost")
    proto = request.headers.get("x-forwarded-proto", request.url.scheme)
    root = request.scope.get("root_path", "")
    return f"{proto}://{host}{root}"


@router.get("/wfs")
@router.post("/wfs")
async def wfs_get_feature(request: Request):
    """
    GetFeature — the only WFS operation served.

    Validates the KVP parameters, refreshes the data source, runs the
    fetch (and, for capped requests, total count) queries and encodes the
    rows as GeoJSON or GML.
    """
    query_filter = parse_get_feature_params(await _get_query_params(request))

    data_source = get_current_data_source()
    await data_source.refresh(False)

    result = await query_features(data_source, query_filter)
    features = decorate_features(_base_url(request), result.features)

    if query_filter.output_format == OutputFormat.GEOJSON:
        document = geojson.serialize(features, query_filter.srs_name)
        return Response(
            content=json.dumps(document, indent=2),
            media_type="application/json",
        )

    xml = gml.serialize(
        features,
        result.number_matched,
        srs_name=query_filter.srs_name,
        excluded_columns=get_settings().excluded_columns,
    )
    return Response(content=xml, media_type="text/xml")
