"""
Core query execution. Builds the fetch/total queries for a filter and
runs them against the data source.

The total-count query only runs when a count limit was applied. Without
a limit every match is returned, so numberMatched is the fetched row
count and a second scan would be redundant.
"""

import logging

from .builder import build_feature_queries
from .models import FeatureQueryFilter, QueryResult

logger = logging.getLogger(__name__)


async def query_features(data_source, query_filter: FeatureQueryFilter) -> QueryResult:
    """Fetch the rows matching a filter and count all matches."""
    plan = build_feature_queries(query_filter)

    features = await data_source.query_feature_package(
        plan.fetch.sql, plan.fetch.params
    )

    if plan.needs_total:
        rows = await data_source.query_feature_package(
            plan.total.sql, plan.total.params
        )
        number_matched = rows[0]["count"]
    else:
        number_matched = len(features)

    logger.debug(
        "typeNames=%s returned=%d matched=%d",
        ",".join(query_filter.type_names),
        len(features),
        number_matched,
    )
    return QueryResult(features=features, number_matched=number_matched)
