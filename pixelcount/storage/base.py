"""Storage interface (port) for persisting and querying hits."""

from __future__ import annotations

import enum
from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from pixelcount.core.models import Hit, StringCount


class GroupField(str, enum.Enum):
    """Hit fields that can be grouped and counted."""
    REFERER = "referer"
    PAGE = "page"


class HitStoreError(Exception):
    """Raised when the store cannot complete a read or write."""


class HitStore(Protocol):
    """Port: append-only hit storage with per-client aggregate queries."""

    async def insert(self, hit: Hit) -> None: ...

    async def count_distinct_users(self, client_id: str) -> int: ...

    async def group_by_count(self, client_id: str, field: GroupField) -> list[StringCount]: ...

    async def ping(self) -> None: ...
