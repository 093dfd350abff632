"""
Refreshable feature data source.

Every table of one Iceberg namespace is a featureset. Tables are scanned
into Arrow, normalized by prepare_featureset and registered in an
in-process DuckDB connection, where a single ``all_features`` view unions
them by column name. Queries from the WFS endpoint only ever touch that
view.
"""

import logging
import threading
import time
from typing import Any, Optional

import duckdb
from fastapi.concurrency import run_in_threadpool

from iceberg_wfs.config import get_settings

from .builder import FEATURE_VIEW
from .catalog import list_featuresets, load_featureset_table
from .geometry import FEATURE_SCHEMA, GEOGRAPHIC_SRID, prepare_featureset

logger = logging.getLogger(__name__)

_EMPTY_RELATION = "featureset__empty"
_UNSEEN = object()

_current = None


def _relation_name(featureset: str) -> str:
    return f"featureset_{featureset}"


def _quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


class IcebergDataSource:
    """Serves the featuresets of an Iceberg namespace through DuckDB."""

    def __init__(
        self,
        namespace: str,
        refresh_interval: float = 30.0,
        source_srid: int = GEOGRAPHIC_SRID,
    ):
        self.namespace = namespace
        self.refresh_interval = refresh_interval
        self.source_srid = source_srid

        self._conn = duckdb.connect()
        self._lock = threading.Lock()
        self._snapshots: dict[str, Optional[int]] = {}
        self._columns: dict[str, frozenset[str]] = {}
        # Tables that cannot be served, by the snapshot that was rejected
        self._rejected: dict[str, Optional[int]] = {}
        self._last_refresh: Optional[float] = None

        self._conn.register(_EMPTY_RELATION, FEATURE_SCHEMA.empty_table())
        self._rebuild_view()

    @property
    def featuresets(self) -> list[str]:
        return sorted(self._snapshots)

    async def refresh(self, force_full: bool = False) -> None:
        """Make sure the view reflects the latest table snapshots."""
        await run_in_threadpool(self.refresh_sync, force_full)

    async def query_feature_package(
        self, sql: str, params: dict[str, Any]
    ) -> list[dict[str, Any]]:
        """Run a parameterized query against the feature view."""
        return await run_in_threadpool(self.query_sync, sql, params)

    def refresh_sync(self, force_full: bool = False) -> bool:
        """
        Re-scan featuresets whose snapshot changed since the last refresh.

        Non-forced refreshes are skipped while the previous one is younger
        than refresh_interval. With force_full every table is re-scanned.
        Tables that cannot be served as featuresets are logged and left
        out until their snapshot changes. Returns True when the view was
        rebuilt.
        """
        with self._lock:
            now = time.monotonic()
            if (
                not force_full
                and self._last_refresh is not None
                and now - self._last_refresh < self.refresh_interval
            ):
                return False
            self._last_refresh = now

            table_names = list_featuresets(self.namespace)
            changed = False

            for removed in set(self._snapshots) - set(table_names):
                self._forget(removed)
                logger.info("Featureset %s removed", removed)
                changed = True
            for removed in set(self._rejected) - set(table_names):
                del self._rejected[removed]

            for name in table_names:
                table = load_featureset_table(self.namespace, name)
                snapshot = table.current_snapshot()
                snapshot_id = snapshot.snapshot_id if snapshot else None
                if not force_full and (
                    self._snapshots.get(name, _UNSEEN) == snapshot_id
                    or self._rejected.get(name, _UNSEEN) == snapshot_id
                ):
                    continue

                start = time.perf_counter()
                try:
                    features = prepare_featureset(
                        name, table.scan().to_arrow(), self.source_srid
                    )
                except ValueError as e:
                    logger.warning("Skipping table %s.%s: %s", self.namespace, name, e)
                    self._rejected[name] = snapshot_id
                    if name in self._snapshots:
                        self._forget(name)
                        changed = True
                    continue

                self._rejected.pop(name, None)
                self._conn.register(_relation_name(name), features)
                self._snapshots[name] = snapshot_id
                self._columns[name] = frozenset(features.column_names)
                changed = True
                logger.info(
                    "Loaded featureset %s (snapshot %s, %d rows, %.2fs)",
                    name,
                    snapshot_id,
                    features.num_rows,
                    time.perf_counter() - start,
                )

            if changed:
                self._rebuild_view()
            return changed

    def query_sync(self, sql: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        """Execute a query and return rows as column -> value mappings.

        NULL values of columns the row's featureset does not define are
        left out; the view pads them in from other featuresets.
        """
        with self._lock:
            result = self._conn.execute(sql, params or None).fetch_arrow_table()
            columns = dict(self._columns)
        rows = []
        for row in result.to_pylist():
            defined = columns.get(row.get("featureset"), frozenset())
            rows.append(
                {
                    key: value
                    for key, value in row.items()
                    if value is not None or key in defined
                }
            )
        return rows

    def close(self):
        with self._lock:
            self._conn.close()

    def _forget(self, name: str):
        self._conn.unregister(_relation_name(name))
        del self._snapshots[name]
        del self._columns[name]

    def _rebuild_view(self):
        relations = [_EMPTY_RELATION] + [
            _relation_name(name) for name in sorted(self._snapshots)
        ]
        union_sql = "\nUNION ALL BY NAME\n".join(
            f"SELECT * FROM {_quote(relation)}" for relation in relations
        )
        self._conn.execute(
            f"CREATE OR REPLACE TEMP VIEW {FEATURE_VIEW} AS\n{union_sql}"
        )


def get_current_data_source() -> IcebergDataSource:
    """Singleton data source built from the service settings."""
    global _current
    if _current is None:
        settings = get_settings()
        _current = IcebergDataSource(
            settings.namespace,
            refresh_interval=settings.refresh_interval,
            source_srid=settings.source_srid,
        )
    return _current


def set_current_data_source(data_source: IcebergDataSource):
    """Override the data source (used for testing)."""
    global _current
    _current = data_source


def reset_current_data_source():
    """Close and forget the singleton data source (used for testing)."""
    global _current
    if _current is not None:
        _current.close()
    _current = None
