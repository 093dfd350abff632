"""Feature query layer — data source, query builder and execution."""

from .builder import build_feature_queries
from .catalog import get_catalog, list_featuresets, load_featureset_table
from .datasource import (
    IcebergDataSource,
    get_current_data_source,
    reset_current_data_source,
    set_current_data_source,
)
from .engine import query_features
from .models import (
    FeatureQuery,
    FeatureQueryFilter,
    OutputFormat,
    QueryPlan,
    QueryResult,
    SrsName,
)

__all__ = [
    "build_feature_queries",
    "get_catalog",
    "load_featureset_table",
    "list_featuresets",
    "IcebergDataSource",
    "get_current_data_source",
    "set_current_data_source",
    "reset_current_data_source",
    "query_features",
    "FeatureQuery",
    "FeatureQueryFilter",
    "OutputFormat",
    "QueryPlan",
    "QueryResult",
    "SrsName",
]
