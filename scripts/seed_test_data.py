#!/usr/bin/env python3
"""
Create sample featureset tables for development.

Usage:
    python scripts/seed_test_data.py [NAMESPACE]

Set ICEBERG_CATALOG_CONFIG to point to catalog.yml. The namespace
defaults to WFS_NAMESPACE (or "default").
"""

import os
import random
import sys

import pyarrow as pa
from pyiceberg.exceptions import NamespaceAlreadyExistsError, NoSuchTableError
from shapely import wkb as wkb_mod
from shapely.geometry import Point

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from iceberg_wfs.query.catalog import get_catalog


def _replace_table(catalog, full_name, table):
    try:
        catalog.drop_table(full_name)
    except NoSuchTableError:
        pass
    catalog.create_table(full_name, schema=table.schema)
    catalog.load_table(full_name).append(table)


def seed_parks(catalog, namespace, table_name="parks"):
    """Create a table of park locations around Amsterdam."""
    random.seed(42)
    n = 200

    table = pa.table(
        {
            "objectid": pa.array(range(1, n + 1), type=pa.int64()),
            "name": pa.array([f"Park {i}" for i in range(1, n + 1)]),
            "area_sqm": pa.array(
                [random.uniform(500, 250000) for _ in range(n)],
                type=pa.float64(),
            ),
            "has_playground": pa.array([random.random() < 0.4 for _ in range(n)]),
            "geometry": pa.array(
                [
                    wkb_mod.dumps(
                        Point(random.uniform(4.75, 5.05), random.uniform(52.30, 52.43))
                    )
                    for _ in range(n)
                ],
                type=pa.large_binary(),
            ),
        }
    )

    full_name = f"{namespace}.{table_name}"
    _replace_table(catalog, full_name, table)
    print(f"Created {full_name} with {n} parks")


def seed_trees(catalog, namespace, table_name="trees"):
    """Create a table of street trees around Amsterdam."""
    random.seed(43)
    n = 2000

    table = pa.table(
        {
            "fid": pa.array(range(n), type=pa.int64()),
            "species": pa.array(
                [random.choice(["Ulmus", "Tilia", "Platanus", "Fraxinus"]) for _ in range(n)]
            ),
            "height_m": pa.array(
                [random.uniform(2, 30) for _ in range(n)], type=pa.float64()
            ),
            "location": pa.array(
                [
                    wkb_mod.dumps(
                        Point(random.uniform(4.75, 5.05), random.uniform(52.30, 52.43))
                    )
                    for _ in range(n)
                ],
                type=pa.large_binary(),
            ),
        }
    )

    full_name = f"{namespace}.{table_name}"
    _replace_table(catalog, full_name, table)
    print(f"Created {full_name} with {n} trees")


def main():
    namespace = (
        sys.argv[1] if len(sys.argv) > 1 else os.environ.get("WFS_NAMESPACE", "default")
    )
    catalog = get_catalog()
    try:
        catalog.create_namespace(namespace)
    except NamespaceAlreadyExistsError:
        pass

    seed_parks(catalog, namespace)
    seed_trees(catalog, namespace)
    print("Seed data complete!")


if __name__ == "__main__":
    main()
