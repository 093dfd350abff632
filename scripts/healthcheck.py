#!/usr/bin/env python3
"""
Health check script for container health probes.

Usage:
    python scripts/healthcheck.py [TYPENAME]

Issues a one-feature GetFeature request against the local WFS endpoint.
Exits 0 on success, 1 on failure.
"""

import sys
import urllib.error
import urllib.parse
import urllib.request


def check_wfs(type_name, host="localhost", port=8001):
    """Check the WFS endpoint answers a capped GetFeature request."""
    query = urllib.parse.urlencode(
        {
            "SERVICE": "WFS",
            "VERSION": "2.0.0",
            "REQUEST": "GetFeature",
            "TYPENAMES": type_name,
            "COUNT": "1",
        }
    )
    try:
        url = f"http://{host}:{port}/wfs?{query}"
        req = urllib.request.urlopen(url, timeout=5)
        return req.status == 200
    except (urllib.error.URLError, OSError):
        return False


def main():
    type_name = sys.argv[1] if len(sys.argv) > 1 else "parks"

    if check_wfs(type_name):
        print(f"wfs ({type_name}): healthy")
        sys.exit(0)
    else:
        print(f"wfs ({type_name}): unhealthy", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
