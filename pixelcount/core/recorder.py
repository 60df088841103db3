"""Hit recorder - builds a Hit from a beacon request and persists it.

Recording never raises. A tracking pixel that errors breaks the embedding
page, so every storage failure is logged here and reported only through the
boolean return value.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from pixelcount.core.models import DIRECT_REFERER, Hit

if TYPE_CHECKING:
    from pixelcount.storage.base import HitStore

log = structlog.get_logger()


def normalize_referer(referer: str | None) -> str:
    return referer or DIRECT_REFERER


class HitRecorder:
    """Persists hits, swallowing and logging any storage failure."""

    def __init__(self, store: HitStore, timeout_seconds: float | None = None) -> None:
        self._store = store
        self._timeout = timeout_seconds

    async def record(self, client_id: str, user_id: str, page: str, referer: str | None) -> bool:
        """Store one hit. Returns False if the store rejected it."""
        hit = Hit(
            client_id=client_id,
            user_id=user_id,
            page=page or "",
            referer=normalize_referer(referer),
        )
        try:
            await asyncio.wait_for(self._store.insert(hit), timeout=self._timeout)
        except Exception:
            log.error("hit_record_failed", component="recorder",
                      client_id=client_id, user=user_id[:8], exc_info=True)
            return False
        return True
