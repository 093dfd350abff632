"""Tests for the Iceberg-backed feature data source."""

import math

import duckdb
import pyarrow as pa
import pytest
from shapely import wkb as wkb_mod

from iceberg_wfs.query.builder import build_feature_queries
from iceberg_wfs.query.datasource import IcebergDataSource
from iceberg_wfs.query.geometry import REQUIRED_COLUMNS
from iceberg_wfs.query.models import FeatureQueryFilter

from conftest import PARKS_TOTAL, TREES_TOTAL, point_wkb

EARTH_RADIUS = 6378137.0


def _mercator(lon, lat):
    x = EARTH_RADIUS * math.radians(lon)
    y = EARTH_RADIUS * math.log(math.tan(math.pi / 4 + math.radians(lat) / 2))
    return x, y


def _stations(n, start=0):
    return pa.table(
        {
            "id": pa.array(range(start, start + n), type=pa.int64()),
            "code": pa.array([f"ST{i}" for i in range(start, start + n)]),
            "geom": pa.array(
                [point_wkb(5.0 + i * 0.01, 50.0) for i in range(n)],
                type=pa.large_binary(),
            ),
        }
    )


def _lookup():
    return pa.table({"code": pa.array(["ST0", "ST1"]), "label": pa.array(["North", "South"])})


def _create(catalog, identifier, table):
    catalog.create_table(identifier, schema=table.schema).append(table)


class TestRefresh:
    """Test featureset loading and snapshot tracking."""

    def test_loads_every_table(self, data_source):
        assert data_source.featuresets == ["parks", "trees"]

    def test_unchanged_snapshots_skip_rebuild(self, data_source):
        assert data_source.refresh_sync() is False

    def test_force_full_rebuilds(self, data_source):
        assert data_source.refresh_sync(force_full=True) is True

    def test_refresh_interval_throttles(self):
        source = IcebergDataSource("wfs_test", refresh_interval=3600)
        try:
            assert source.refresh_sync() is True
            assert source.refresh_sync() is False
            assert source.refresh_sync(force_full=True) is True
        finally:
            source.close()

    def test_empty_namespace_has_empty_view(self, iceberg_catalog):
        iceberg_catalog.create_namespace("empty_ns")
        source = IcebergDataSource("empty_ns", refresh_interval=0)
        try:
            source.refresh_sync()
            assert source.featuresets == []
            rows = source.query_sync("SELECT COUNT(*) AS count FROM all_features", {})
            assert rows == [{"count": 0}]
        finally:
            source.close()

    def test_appended_rows_are_picked_up(self, iceberg_catalog):
        iceberg_catalog.create_namespace("append_ns")
        table = iceberg_catalog.create_table(
            "append_ns.stations", schema=_stations(1).schema
        )
        table.append(_stations(3))

        source = IcebergDataSource("append_ns", refresh_interval=0)
        try:
            source.refresh_sync()
            count_sql = "SELECT COUNT(*) AS count FROM all_features"
            assert source.query_sync(count_sql, {}) == [{"count": 3}]

            iceberg_catalog.load_table("append_ns.stations").append(_stations(2, start=3))
            assert source.refresh_sync() is True
            assert source.query_sync(count_sql, {}) == [{"count": 5}]
        finally:
            source.close()

    def test_dropped_tables_disappear(self, iceberg_catalog):
        iceberg_catalog.create_namespace("drop_ns")
        for name in ("stations", "depots"):
            table = iceberg_catalog.create_table(
                f"drop_ns.{name}", schema=_stations(1).schema
            )
            table.append(_stations(2))

        source = IcebergDataSource("drop_ns", refresh_interval=0)
        try:
            source.refresh_sync()
            assert source.featuresets == ["depots", "stations"]

            iceberg_catalog.drop_table("drop_ns.depots")
            assert source.refresh_sync() is True
            assert source.featuresets == ["stations"]
            rows = source.query_sync(
                "SELECT DISTINCT featureset FROM all_features", {}
            )
            assert rows == [{"featureset": "stations"}]
        finally:
            source.close()

    def test_unservable_tables_are_left_out(self, iceberg_catalog):
        iceberg_catalog.create_namespace("mixed_ns")
        _create(iceberg_catalog, "mixed_ns.stations", _stations(3))
        _create(iceberg_catalog, "mixed_ns.lookup", _lookup())
        _create(iceberg_catalog, "mixed_ns.2024_stations", _stations(2))

        source = IcebergDataSource("mixed_ns", refresh_interval=0)
        try:
            assert source.refresh_sync() is True
            assert source.featuresets == ["stations"]
            rows = source.query_sync(
                "SELECT DISTINCT featureset FROM all_features", {}
            )
            assert rows == [{"featureset": "stations"}]
            # rejected snapshots are not scanned again
            assert source.refresh_sync() is False
        finally:
            source.close()

    def test_table_that_becomes_unservable_is_removed(self, iceberg_catalog):
        iceberg_catalog.create_namespace("broken_ns")
        _create(iceberg_catalog, "broken_ns.stations", _stations(2))

        source = IcebergDataSource("broken_ns", refresh_interval=0)
        try:
            source.refresh_sync()
            assert source.featuresets == ["stations"]

            iceberg_catalog.drop_table("broken_ns.stations")
            _create(iceberg_catalog, "broken_ns.stations", _lookup())
            assert source.refresh_sync() is True
            assert source.featuresets == []
        finally:
            source.close()


class TestRows:
    """Test the unified feature row layout."""

    def _rows(self, data_source, type_name):
        plan = build_feature_queries(FeatureQueryFilter(type_names=(type_name,)))
        return data_source.query_sync(plan.fetch.sql, plan.fetch.params)

    def test_required_columns(self, data_source):
        for row in self._rows(data_source, "parks") + self._rows(data_source, "trees"):
            for column in REQUIRED_COLUMNS:
                assert column in row

    def test_row_counts(self, data_source):
        assert len(self._rows(data_source, "parks")) == PARKS_TOTAL
        assert len(self._rows(data_source, "trees")) == TREES_TOTAL

    def test_id_is_string(self, data_source):
        ids = sorted(int(row["id"]) for row in self._rows(data_source, "trees"))
        assert ids == list(range(100, 100 + TREES_TOTAL))
        assert all(isinstance(row["id"], str) for row in self._rows(data_source, "trees"))

    def test_coordinates(self, data_source):
        row = next(r for r in self._rows(data_source, "parks") if r["id"] == "1")
        assert row["longitude"] == pytest.approx(0.000005)
        assert row["latitude"] == pytest.approx(0.000005)
        x, y = _mercator(0.000005, 0.000005)
        assert row["x"] == pytest.approx(x, rel=1e-6)
        assert row["y"] == pytest.approx(y, rel=1e-6)

    def test_geom_is_original_wkb(self, data_source):
        row = next(r for r in self._rows(data_source, "parks") if r["id"] == "1")
        point = wkb_mod.loads(row["geom"])
        assert point.x == pytest.approx(0.000005)

    def test_other_featureset_columns_absent(self, data_source):
        tree = self._rows(data_source, "trees")[0]
        park = self._rows(data_source, "parks")[0]
        assert "name" not in tree
        assert "species" in tree
        assert "species" not in park
        assert park["name"].startswith("Park ")

    def test_unused_parameter_is_rejected(self, data_source):
        plan = build_feature_queries(
            FeatureQueryFilter(type_names=("parks",), count=5)
        )
        with pytest.raises(duckdb.Error):
            data_source.query_sync(plan.total.sql, plan.fetch.params)

    def test_own_null_attributes_are_kept(self, iceberg_catalog):
        iceberg_catalog.create_namespace("nulls_ns")
        stations = _stations(2).set_column(
            1, "code", pa.array(["ST0", None], type=pa.string())
        )
        depots = _stations(1, start=10).append_column(
            "capacity", pa.array([40], type=pa.int64())
        )
        _create(iceberg_catalog, "nulls_ns.stations", stations)
        _create(iceberg_catalog, "nulls_ns.depots", depots)

        source = IcebergDataSource("nulls_ns", refresh_interval=0)
        try:
            source.refresh_sync()
            plan = build_feature_queries(FeatureQueryFilter(type_names=("stations",)))
            rows = {
                row["id"]: row
                for row in source.query_sync(plan.fetch.sql, plan.fetch.params)
            }
            assert rows["1"]["code"] is None
            assert rows["0"]["code"] == "ST0"
            assert "capacity" not in rows["1"]
        finally:
            source.close()
