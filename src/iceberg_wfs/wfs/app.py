"""
FastAPI application serving OGC WFS 2.0 GetFeature.

Endpoints:
- /wfs?SERVICE=WFS&VERSION=2.0.0&REQUEST=GetFeature&TYPENAMES=...

Each typeName maps to a table (featureset) in the configured Iceberg
namespace.
"""

import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import Response

from iceberg_wfs.config import get_settings

from .errors import WfsError
from .routes import get_feature

logger = logging.getLogger(__name__)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app = FastAPI(
    title="Iceberg WFS",
    description="OGC WFS 2.0 GetFeature backed by Apache Iceberg",
    root_path=get_settings().root_path,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=1000)


@app.middleware("http")
async def log_request_timing(request: Request, call_next):
    """Log request timing for performance monitoring."""
    start = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - start
    path = request.url.path
    if path.endswith("/wfs") or elapsed > 1.0:
        logger.info(
            "%s %s → %d (%.2fs, %s bytes)",
            request.method,
            request.url,
            response.status_code,
            elapsed,
            response.headers.get("content-length", "?"),
        )
    return response


@app.exception_handler(WfsError)
async def wfs_error_handler(request: Request, exc: WfsError):
    """Render WFS errors as an ows:ExceptionReport."""
    if exc.status_code >= 500:
        logger.error("GetFeature failed: %s", exc.message, exc_info=exc)
    else:
        logger.info("Rejected WFS request (%s): %s", exc.code, exc.message)
    return Response(
        content=exc.to_xml(),
        status_code=exc.status_code,
        media_type="text/xml",
    )


app.include_router(get_feature.router)
