"""Health check endpoint."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from pixelcount import __version__
from pixelcount.storage.base import HitStoreError

log = structlog.get_logger()


def create_monitoring_router() -> APIRouter:
    router = APIRouter(prefix="/api/v1")

    @router.get("/health")
    async def health(request: Request) -> JSONResponse:
        """Basic health check, including a store round trip."""
        config = request.app.state.config
        try:
            await request.app.state.store.ping()
        except HitStoreError:
            log.warning("health_check_failed", exc_info=True)
            return JSONResponse(
                status_code=503,
                content={"status": "error", "version": __version__, "storage_reachable": False},
            )
        return JSONResponse(content={
            "status": "ok",
            "version": __version__,
            "env": config.server.env,
            "storage_reachable": True,
        })

    return router
