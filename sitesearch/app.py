"""FastAPI service for the site's hybrid search."""

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict

import httpx
import structlog
from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.staticfiles import StaticFiles
from prometheus_client import generate_latest
from pydantic import BaseModel

from .config import settings
from .observability.context import RequestContextMiddleware
from .observability.metrics import REQUEST_COUNT, REQUEST_DURATION
from .routes import search as search_router
from .routes import search_index as search_index_router

# Configure structured logging
logging.basicConfig(format="%(message)s", level=settings.log_level.upper())

structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

VERSION = "0.1.0"

app = FastAPI(
    title="Site Search API",
    description="Hybrid search over CMS content and pre-built static pages",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(RequestContextMiddleware)

app.include_router(search_index_router.router)
app.include_router(search_router.router)

# Pre-built static page index, when one has been generated locally
if settings.static_index_dir and Path(settings.static_index_dir).is_dir():
    app.mount(
        settings.static_index_path.rstrip("/"),
        StaticFiles(directory=settings.static_index_dir),
        name="static-index",
    )


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    timestamp: str
    version: str
    services: Dict[str, str]


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """Middleware to collect Prometheus metrics."""
    start_time = asyncio.get_event_loop().time()

    response = await call_next(request)

    duration = asyncio.get_event_loop().time() - start_time

    REQUEST_COUNT.labels(
        method=request.method,
        endpoint=request.url.path,
        status_code=response.status_code,
    ).inc()

    REQUEST_DURATION.labels(
        method=request.method,
        endpoint=request.url.path,
    ).observe(duration)

    return response


@app.on_event("startup")
async def startup_event():
    logger.info(
        "Starting Site Search API",
        version=VERSION,
        site_base_url=settings.site_base_url,
        static_index_dir=settings.static_index_dir,
    )


@app.on_event("shutdown")
async def shutdown_event():
    await search_router.close_shared_session()
    logger.info("Closed shared search session")


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint: CMS reachability and static index presence."""
    services = {}

    async with httpx.AsyncClient(timeout=5.0) as client:
        try:
            resp = await client.get(f"{settings.directus_url.rstrip('/')}/server/ping")
            services["cms"] = "healthy" if resp.is_success else "unhealthy"
        except Exception:
            services["cms"] = "unhealthy"

        entry_url = f"{settings.site_base_url.rstrip('/')}{settings.static_index_path}entry.json"
        try:
            resp = await client.head(entry_url)
            services["static_index"] = "healthy" if resp.is_success else "not_built"
        except Exception:
            services["static_index"] = "unhealthy"

    return HealthResponse(
        status="healthy" if all(s == "healthy" for s in services.values()) else "degraded",
        timestamp=datetime.utcnow().isoformat(),
        version=VERSION,
        services=services,
    )


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    if not settings.enable_metrics:
        raise HTTPException(status_code=404, detail="Metrics disabled")

    return Response(
        content=generate_latest(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Site Search API",
        "version": VERSION,
        "docs": "/docs",
        "health": "/health",
        "metrics": "/metrics" if settings.enable_metrics else None,
        "endpoints": {
            "search_index": settings.search_index_path,
            "search": "/api/search",
            "results": "/search/results",
            "live": "/ws/search",
        },
    }


def main() -> None:
    import uvicorn

    uvicorn.run(
        "sitesearch.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
