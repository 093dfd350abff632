"""
Shared test fixtures.

Creates a SQLite-backed Iceberg catalog with two point featuresets:

- wfs_test.parks: 15 parks, 12 of them inside the Web Mercator box
  (0, 0, 10, 10)
- wfs_test.trees: 20 trees, 4 of them inside the same box
"""

import pyarrow as pa
import pytest
from pyiceberg.catalog.sql import SqlCatalog
from shapely import wkb as wkb_mod
from shapely.geometry import Point

NAMESPACE = "wfs_test"

PARKS_IN_BBOX = 12
PARKS_TOTAL = 15
TREES_IN_BBOX = 4
TREES_TOTAL = 20


@pytest.fixture(scope="session")
def warehouse_path(tmp_path_factory):
    """Create a temporary warehouse directory."""
    return str(tmp_path_factory.mktemp("warehouse"))


@pytest.fixture(scope="session")
def iceberg_catalog(warehouse_path):
    """Create a temporary SQLite-backed Iceberg catalog with test data."""
    catalog = SqlCatalog(
        "test",
        **{
            "uri": f"sqlite:///{warehouse_path}/catalog.db",
            "warehouse": f"file://{warehouse_path}",
        },
    )
    catalog.create_namespace(NAMESPACE)

    _create_parks_table(catalog)
    _create_trees_table(catalog)

    return catalog


@pytest.fixture(autouse=True)
def setup_catalog(iceberg_catalog):
    """Point the service at the test catalog with refresh throttling off."""
    from iceberg_wfs.config import WfsSettings, reset_settings, set_settings
    from iceberg_wfs.query.catalog import reset_catalog, set_catalog
    from iceberg_wfs.query.datasource import reset_current_data_source

    set_catalog(iceberg_catalog)
    set_settings(WfsSettings(namespace=NAMESPACE, refresh_interval=0.0))
    reset_current_data_source()
    yield
    reset_current_data_source()
    reset_settings()
    reset_catalog()


@pytest.fixture
def data_source():
    """A fresh, refreshed data source over the test namespace."""
    from iceberg_wfs.query.datasource import IcebergDataSource

    source = IcebergDataSource(NAMESPACE, refresh_interval=0.0)
    source.refresh_sync(force_full=True)
    yield source
    source.close()


@pytest.fixture
def client():
    """Create a FastAPI test client."""
    from fastapi.testclient import TestClient

    from iceberg_wfs.wfs.app import app

    return TestClient(app)


def point_wkb(lon, lat) -> bytes:
    return wkb_mod.dumps(Point(lon, lat))


def _create_parks_table(catalog):
    """Create wfs_test.parks, lon/lat close to (0, 0) for the first 12."""
    lonlats = [(i * 0.000005, i * 0.000005) for i in range(1, PARKS_IN_BBOX + 1)]
    lonlats += [(1.0 + i * 0.1, 1.0 + i * 0.1) for i in range(PARKS_TOTAL - PARKS_IN_BBOX)]

    n = len(lonlats)
    table = pa.table(
        {
            "objectid": pa.array(range(1, n + 1), type=pa.int64()),
            "name": pa.array([f"Park {i}" for i in range(1, n + 1)]),
            "area_sqm": pa.array([1000.0 + i for i in range(n)], type=pa.float64()),
            "geometry": pa.array(
                [point_wkb(lon, lat) for lon, lat in lonlats],
                type=pa.large_binary(),
            ),
        }
    )

    catalog.create_table(f"{NAMESPACE}.parks", schema=table.schema)
    catalog.load_table(f"{NAMESPACE}.parks").append(table)


def _create_trees_table(catalog):
    """Create wfs_test.trees with a different attribute schema."""
    lonlats = [(k * 0.00001, k * 0.00001) for k in range(1, TREES_IN_BBOX + 1)]
    lonlats += [(10.0 + i * 0.01, 45.0 + i * 0.01) for i in range(TREES_TOTAL - TREES_IN_BBOX)]

    n = len(lonlats)
    table = pa.table(
        {
            "fid": pa.array(range(100, 100 + n), type=pa.int64()),
            "species": pa.array(["oak" if i % 2 else "birch" for i in range(n)]),
            "is_protected": pa.array([i % 3 == 0 for i in range(n)]),
            "location": pa.array(
                [point_wkb(lon, lat) for lon, lat in lonlats],
                type=pa.large_binary(),
            ),
        }
    )

    catalog.create_table(f"{NAMESPACE}.trees", schema=table.schema)
    catalog.load_table(f"{NAMESPACE}.trees").append(table)
