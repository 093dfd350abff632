"""
Translate a FeatureQueryFilter into DuckDB SQL against the unified
``all_features`` view.

Values are never spliced into SQL text. Every type name, bbox bound and
the row limit is bound to a named ``$slot`` and passed separately, so
the fetch and total queries can be handed to the data source as
(sql, params) pairs.
"""

from .models import FeatureQuery, FeatureQueryFilter, QueryPlan

FEATURE_VIEW = "all_features"

# (column, operator, bbox index) for xmin, ymin, xmax, ymax
_BBOX_PREDICATES = (
    ("x", ">", 0),
    ("y", ">", 1),
    ("x", "<", 2),
    ("y", "<", 3),
)


def build_feature_queries(query_filter: FeatureQueryFilter) -> QueryPlan:
    """
    Build the fetch and total-count queries for a filter.

    The fetch query selects every column and carries the LIMIT when a
    count was requested. The total query shares the same predicates but
    has no LIMIT, and its parameters never include the count slot.
    """
    params = {}
    predicates = []

    type_slots = []
    for i, type_name in enumerate(query_filter.type_names):
        params[f"param{i}"] = type_name
        type_slots.append(f"$param{i}")
    predicates.append(f"featureset IN ({', '.join(type_slots)})")

    if query_filter.bbox is not None:
        for i, bound in enumerate(query_filter.bbox):
            params[f"bbox{i}"] = bound
        for column, op, index in _BBOX_PREDICATES:
            predicates.append(f"{column} {op} $bbox{index}")

    where_sql = " AND ".join(predicates)

    fetch_sql = f"SELECT * FROM {FEATURE_VIEW} WHERE {where_sql}"
    fetch_params = dict(params)
    if query_filter.count is not None:
        fetch_sql += " LIMIT $count"
        fetch_params["count"] = query_filter.count

    total_sql = f"SELECT COUNT(*) AS count FROM {FEATURE_VIEW} WHERE {where_sql}"

    return QueryPlan(
        fetch=FeatureQuery(sql=fetch_sql, params=fetch_params),
        total=FeatureQuery(sql=total_sql, params=dict(params)),
        needs_total=query_filter.count is not None,
    )
