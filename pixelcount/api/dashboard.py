"""Dashboard pages and the embeddable tracker script.

Uses Jinja2 templates for rendering; the dashboard itself pulls its numbers
from the aggregate JSON endpoints in the browser.
"""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse, HTMLResponse, PlainTextResponse
from fastapi.templating import Jinja2Templates

_PACKAGE_DIR = Path(__file__).parent.parent
EXAMPLE_CLIENT_ID = "example"


def create_dashboard_router() -> APIRouter:
    """Create dashboard router with Jinja2 templates.

    Must be included after the other per-client routers: its catch-all
    ``/client/{client_id}/{action}`` route answers anything they do not.
    """
    router = APIRouter()
    templates = Jinja2Templates(directory=str(_PACKAGE_DIR / "templates"))
    tracker_script = _PACKAGE_DIR / "static" / "scripts" / "tracker.js"

    @router.get("/scripts/tracker.js")
    async def tracker_js() -> FileResponse:
        return FileResponse(tracker_script, media_type="application/javascript")

    @router.get("/example/", response_class=HTMLResponse)
    async def example(request: Request) -> HTMLResponse:
        """Demo page that embeds the tracker."""
        return templates.TemplateResponse(
            request, "example.html", {"client_id": EXAMPLE_CLIENT_ID},
        )

    @router.get("/client/{client_id}/dash", response_class=HTMLResponse)
    async def dash(request: Request, client_id: str) -> HTMLResponse:
        return templates.TemplateResponse(request, "dash.html", {"client_id": client_id})

    @router.get("/client/{client_id}/{action}")
    async def unknown_action(client_id: str, action: str) -> PlainTextResponse:
        return PlainTextResponse("Not Found", status_code=404)

    return router
