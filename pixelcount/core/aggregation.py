"""Read-side aggregations over stored hits.

Unlike recording, every failure here propagates as HitStoreError so the
caller can tell "no data" apart from "could not read data".
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, TypeVar

from pixelcount.storage.base import GroupField, HitStoreError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Iterable

    from pixelcount.core.models import StringCount
    from pixelcount.storage.base import HitStore

T = TypeVar("T")

TOP_N = 10


def rank(counts: Iterable[StringCount], limit: int = TOP_N) -> list[StringCount]:
    """Sort by count descending, ties broken by value ascending, then truncate."""
    ordered = sorted(counts, key=lambda sc: (-sc.count, sc.value))
    return ordered[:limit]


class AggregationEngine:
    """Uniques, top referers and top pages for a single client."""

    def __init__(self, store: HitStore, timeout_seconds: float | None = None) -> None:
        self._store = store
        self._timeout = timeout_seconds

    async def _query(self, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise HitStoreError(f"query timed out after {self._timeout}s") from exc

    async def uniques(self, client_id: str) -> int:
        return await self._query(self._store.count_distinct_users(client_id))

    async def top_referers(self, client_id: str) -> list[StringCount]:
        counts = await self._query(self._store.group_by_count(client_id, GroupField.REFERER))
        return rank(counts)

    async def top_pages(self, client_id: str) -> list[StringCount]:
        counts = await self._query(self._store.group_by_count(client_id, GroupField.PAGE))
        return rank(counts)
