"""pixelcount server - main entry point.

This is the only module that knows about concrete implementations.
``create_app`` wires the store, identity resolver, recorder and aggregation
engine together and builds the route table explicitly.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from pixelcount import __version__
from pixelcount.api.aggregates import create_aggregates_router
from pixelcount.api.beacon import create_beacon_router
from pixelcount.api.dashboard import create_dashboard_router
from pixelcount.api.monitoring import create_monitoring_router
from pixelcount.config import AppConfig, load_config
from pixelcount.core.aggregation import AggregationEngine
from pixelcount.core.identity import IdentityResolver
from pixelcount.core.recorder import HitRecorder
from pixelcount.storage.base import HitStore, HitStoreError
from pixelcount.storage.sql_storage import SqlHitStore

log = structlog.get_logger()


_RENDERERS = {
    "json": lambda: [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()],
    "console": lambda: [structlog.dev.ConsoleRenderer()],
}


def _setup_logging(config: AppConfig) -> None:
    """Apply the configured renderer and minimum level to structlog.

    Raises ValueError for an unknown format or level, so a typo in
    config.yaml fails at startup instead of silently logging everything.
    """
    fmt = config.logging.format
    if fmt not in _RENDERERS:
        raise ValueError(f"unknown log format {fmt!r}, expected one of {sorted(_RENDERERS)}")
    level = logging.getLevelName(config.logging.level.upper())
    if not isinstance(level, int):
        raise ValueError(f"unknown log level {config.logging.level!r}")

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            *_RENDERERS[fmt](),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
    )


async def _log_request(request: Request, call_next):
    """Log one line per request, like an access log."""
    started = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - started) * 1000
    log.info("request_handled",
             remote=request.client.host if request.client else "-",
             method=request.method,
             path=request.url.path,
             status=response.status_code,
             duration_ms=round(duration_ms, 2))
    return response


async def _store_error_handler(request: Request, exc: HitStoreError) -> JSONResponse:
    log.error("store_query_failed", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=503, content={"error": "analytics store unavailable"})


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    config: AppConfig = app.state.config
    store = app.state.store

    log.info("server_starting", env=config.server.env)
    if isinstance(store, SqlHitStore):
        await store.create_schema()
    log.info("server_started", host=config.server.host, port=config.server.port)

    yield

    if isinstance(store, SqlHitStore):
        await store.dispose()
    log.info("server_stopped")


def create_app(config: AppConfig | None = None, store: HitStore | None = None) -> FastAPI:
    """Build the application.

    ``store`` defaults to a SqlHitStore on ``config.storage.url``; tests pass
    their own.
    """
    if config is None:
        config = load_config()
    _setup_logging(config)

    if store is None:
        store = SqlHitStore(config.storage.url, echo=config.storage.echo)
    timeout = config.storage.timeout_seconds

    app = FastAPI(
        title="pixelcount",
        description="Tracking-pixel web analytics",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.store = store
    app.state.identity_resolver = IdentityResolver()
    app.state.recorder = HitRecorder(store, timeout_seconds=timeout)
    app.state.aggregation = AggregationEngine(store, timeout_seconds=timeout)

    app.middleware("http")(_log_request)
    app.add_exception_handler(HitStoreError, _store_error_handler)

    # Order matters: the dashboard router holds the per-client catch-all.
    app.include_router(create_beacon_router())
    app.include_router(create_aggregates_router())
    app.include_router(create_monitoring_router())
    app.include_router(create_dashboard_router())
    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    config = load_config()
    uvicorn.run(create_app(config), host=config.server.host, port=config.server.port)


if __name__ == "__main__":
    run()
