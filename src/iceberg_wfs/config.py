"""
Service settings read from the environment.

    WFS_NAMESPACE          Iceberg namespace whose tables are served as featuresets
    WFS_EXCLUDED_COLUMNS   comma-separated columns never echoed as GML properties
    WFS_REFRESH_INTERVAL   seconds between non-forced data source refreshes
    WFS_SOURCE_SRID        EPSG code of the stored geometries
    ICEBERG_CATALOG_CONFIG path of the catalog YAML file
    ROOT_PATH              reverse proxy prefix
"""

import os

from pydantic import BaseModel

DEFAULT_EXCLUDED_COLUMNS = frozenset({"id", "featureset"})

_settings = None


class WfsSettings(BaseModel):
    """Runtime configuration for the WFS service."""

    namespace: str = "default"
    excluded_columns: frozenset[str] = DEFAULT_EXCLUDED_COLUMNS
    refresh_interval: float = 30.0
    source_srid: int = 4326
    catalog_config: str = "config/catalog.yml"
    root_path: str = ""

    @classmethod
    def from_env(cls) -> "WfsSettings":
        excluded = os.environ.get("WFS_EXCLUDED_COLUMNS")
        if excluded is None:
            excluded_columns = DEFAULT_EXCLUDED_COLUMNS
        else:
            excluded_columns = frozenset(
                c.strip() for c in excluded.split(",") if c.strip()
            )
        return cls(
            namespace=os.environ.get("WFS_NAMESPACE", "default"),
            excluded_columns=excluded_columns,
            refresh_interval=float(os.environ.get("WFS_REFRESH_INTERVAL", "30")),
            source_srid=int(os.environ.get("WFS_SOURCE_SRID", "4326")),
            catalog_config=os.environ.get(
                "ICEBERG_CATALOG_CONFIG", "config/catalog.yml"
            ),
            root_path=os.environ.get("ROOT_PATH", ""),
        )


def get_settings() -> WfsSettings:
    """Singleton settings instance."""
    global _settings
    if _settings is None:
        _settings = WfsSettings.from_env()
    return _settings


def set_settings(settings: WfsSettings):
    """Override the settings (used for testing)."""
    global _settings
    _settings = settings


def reset_settings():
    """Reset the singleton settings (used for testing)."""
    global _settings
    _settings = None
