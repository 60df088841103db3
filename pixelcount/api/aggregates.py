"""Per-client aggregate JSON endpoints used by the dashboard."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse


def create_aggregates_router() -> APIRouter:
    router = APIRouter()

    @router.get("/client/{client_id}/uniques")
    async def uniques(request: Request, client_id: str) -> JSONResponse:
        count = await request.app.state.aggregation.uniques(client_id)
        return JSONResponse(content={"uniques": count})

    @router.get("/client/{client_id}/referers")
    async def referers(request: Request, client_id: str) -> JSONResponse:
        """Top referers, most frequent first. Direct traffic appears as "(direct)"."""
        top = await request.app.state.aggregation.top_referers(client_id)
        return JSONResponse(content=[sc.to_dict() for sc in top])

    @router.get("/client/{client_id}/pages")
    async def pages(request: Request, client_id: str) -> JSONResponse:
        top = await request.app.state.aggregation.top_pages(client_id)
        return JSONResponse(content=[sc.to_dict() for sc in top])

    return router
