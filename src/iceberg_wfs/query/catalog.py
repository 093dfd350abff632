"""
Iceberg catalog access for the feature data source.

The catalog is described by a YAML file (WfsSettings.catalog_config) with
a single ``catalog:`` mapping handed to pyiceberg's load_catalog, so any
catalog type PyIceberg supports (REST, SQL, Glue, Hive) can back the
service. ``${VAR}`` placeholders anywhere in that mapping are replaced
with environment variables; unset variables are left untouched.
"""

import logging
import os
import re

import yaml
from pyiceberg.catalog import Catalog, load_catalog
from pyiceberg.exceptions import NoSuchNamespaceError
from pyiceberg.table import Table

from iceberg_wfs.config import get_settings

logger = logging.getLogger(__name__)

_ENV_RE = re.compile(r"\$\{(\w+)\}")

_catalog = None


def _interpolate(value):
    if isinstance(value, str):
        return _ENV_RE.sub(lambda m: os.environ.get(m.group(1), m.group(0)), value)
    if isinstance(value, dict):
        return {k: _interpolate(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate(v) for v in value]
    return value


def read_catalog_config(path: str) -> dict:
    """Read the ``catalog:`` mapping of a YAML file with env vars resolved."""
    with open(path) as f:
        config = yaml.safe_load(f) or {}
    if not isinstance(config.get("catalog"), dict):
        raise ValueError(f"{path}: missing 'catalog' mapping")
    return _interpolate(config["catalog"])


def get_catalog() -> Catalog:
    """Singleton catalog built from the configured YAML file."""
    global _catalog
    if _catalog is None:
        path = get_settings().catalog_config
        properties = read_catalog_config(path)
        _catalog = load_catalog(**properties)
        logger.info(
            "Loaded Iceberg catalog %s (%s) from %s",
            properties.get("name", "default"),
            properties.get("type", "rest"),
            path,
        )
    return _catalog


def set_catalog(catalog: Catalog):
    """Override the catalog instance (used for testing)."""
    global _catalog
    _catalog = catalog


def reset_catalog():
    """Forget the singleton catalog (used for testing)."""
    global _catalog
    _catalog = None


def load_featureset_table(namespace: str, featureset: str) -> Table:
    return get_catalog().load_table((namespace, featureset))


def list_featuresets(namespace: str) -> list[str]:
    """Names of the tables in a namespace; a missing namespace has none."""
    try:
        identifiers = get_catalog().list_tables(namespace)
    except NoSuchNamespaceError:
        logger.warning("Namespace %s does not exist, serving no featuresets", namespace)
        return []
    return sorted(identifier[-1] for identifier in identifiers)
