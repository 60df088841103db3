"""Beacon endpoint: records a pageview and returns a tracking pixel.

The response is the same 1x1 GIF whether or not the hit was stored.
"""

from __future__ import annotations

from fastapi import APIRouter, Request, Response

# 1x1 transparent gif
TRACKER_GIF = (
    b"GIF89a"
    b"\x01\x00\x01\x00"
    b"\x80\x00\x00"
    b"\x00\x00\x00"
    b"\xff\xff\xff"
    b"\x21\xf9\x04\x01\x00\x00\x00\x00"
    b"\x2c\x00\x00\x00\x00\x01\x00\x01\x00\x00"
    b"\x02\x01\x44\x00"
    b"\x3b"
)


def create_beacon_router() -> APIRouter:
    router = APIRouter()

    @router.get("/client/{client_id}/tracker.gif")
    async def tracker(request: Request, client_id: str, page: str = "", referer: str = "") -> Response:
        """Record a hit for ``client_id``, issuing an identity cookie on first contact."""
        resolver = request.app.state.identity_resolver
        recorder = request.app.state.recorder

        identity = resolver.resolve(request.cookies.get(resolver.cookie_name))
        await recorder.record(client_id, identity.user_id, page, referer)

        response = Response(content=TRACKER_GIF, media_type="image/gif")
        if identity.is_new:
            response.set_cookie(**resolver.cookie_params(identity))
        return response

    return router
