"""Attach derived URLs to feature rows before serialization."""

from typing import Any, Iterable, Mapping


def viewer_url(server_url: str, latitude, longitude) -> str:
    return f"{server_url}/viewer#camera={latitude},{longitude},18.00z"


def decorate_feature(server_url: str, feature: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of a row with viewerUrl set.

    viewerUrl comes first; a feature that defines its own viewerUrl keeps it.
    """
    return {
        "viewerUrl": viewer_url(
            server_url, feature.get("latitude"), feature.get("longitude")
        ),
        **feature,
    }


def decorate_features(
    server_url: str, features: Iterable[Mapping[str, Any]]
) -> list[dict[str, Any]]:
    return [decorate_feature(server_url, feature) for feature in features]
