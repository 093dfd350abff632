"""
Pydantic models shared by the query layer and the WFS endpoint.
These models represent query semantics, not wire formats.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class OutputFormat(str, Enum):
    GEOJSON = "GEOJSON"
    GML = "GML"


class SrsName(str, Enum):
    EPSG_4326 = "EPSG:4326"
    EPSG_3857 = "EPSG:3857"


class FeatureQueryFilter(BaseModel):
    """Validated GetFeature filter. Built once per request, never mutated."""

    model_config = {"frozen": True}

    type_names: tuple[str, ...] = Field(min_length=1)
    bbox: Optional[tuple[float, float, float, float]] = None
    count: Optional[int] = Field(default=None, gt=0)
    output_format: OutputFormat = OutputFormat.GML
    srs_name: Optional[SrsName] = None  # None behaves as EPSG:3857


class FeatureQuery(BaseModel):
    """A parameterized SQL statement plus its named parameter bindings."""

    sql: str
    params: dict[str, Any] = {}


class QueryPlan(BaseModel):
    """The fetch query and the matching total-count query for one filter."""

    fetch: FeatureQuery
    total: FeatureQuery
    needs_total: bool = False


class QueryResult(BaseModel):
    """Rows returned for a request plus the total number of matches."""

    features: list[dict[str, Any]] = []
    number_matched: int = 0

    @property
    def number_returned(self) -> int:
        return len(self.features)
