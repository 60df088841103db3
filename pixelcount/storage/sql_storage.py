"""SQL storage implementation.

Hits live in a single append-only ``hits`` table accessed through an async
SQLAlchemy engine. Any async driver works; the default is sqlite via
aiosqlite, and postgresql+asyncpg is the production choice.

Each public method is exactly one round trip to the database.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import (
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    distinct,
    func,
    insert,
    select,
    text,
)
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from pixelcount.core.models import StringCount
from pixelcount.storage.base import GroupField, HitStoreError

if TYPE_CHECKING:
    from pixelcount.core.models import Hit

log = structlog.get_logger()

metadata = MetaData()

hits_table = Table(
    "hits",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("client_id", String(255), nullable=False),
    Column("user_id", String(255), nullable=False),
    Column("page", String, nullable=False, default=""),
    Column("referer", String, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Index("ix_hits_client_user", "client_id", "user_id"),
    Index("ix_hits_client_referer", "client_id", "referer"),
    Index("ix_hits_client_page", "client_id", "page"),
)


class SqlHitStore:
    """HitStore backed by a relational database."""

    def __init__(self, url: str, *, echo: bool = False, engine: AsyncEngine | None = None) -> None:
        self._url = make_url(url)
        self._engine = engine or create_async_engine(self._url, echo=echo)

    def _ensure_sqlite_dir(self) -> None:
        """Create the parent directory of a file-backed sqlite database."""
        if self._url.get_backend_name() != "sqlite":
            return
        database = self._url.database
        if database and database != ":memory:":
            Path(database).parent.mkdir(parents=True, exist_ok=True)

    async def create_schema(self) -> None:
        """Create the hits table and its indexes if missing."""
        self._ensure_sqlite_dir()
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(metadata.create_all)
        except (SQLAlchemyError, OSError) as exc:
            raise HitStoreError(f"schema creation failed: {exc}") from exc
        log.info("hit_store_ready", backend=self._url.get_backend_name())

    async def dispose(self) -> None:
        await self._engine.dispose()

    async def insert(self, hit: Hit) -> None:
        """Append a single hit."""
        stmt = insert(hits_table).values(
            client_id=hit.client_id,
            user_id=hit.user_id,
            page=hit.page,
            referer=hit.referer,
        )
        try:
            async with self._engine.begin() as conn:
                await conn.execute(stmt)
        except (SQLAlchemyError, OSError) as exc:
            raise HitStoreError(f"insert failed: {exc}") from exc
        log.debug("hit_written", client_id=hit.client_id, user=hit.user_id[:8])

    async def count_distinct_users(self, client_id: str) -> int:
        stmt = (
            select(func.count(distinct(hits_table.c.user_id)))
            .where(hits_table.c.client_id == client_id)
        )
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(stmt)
                return int(result.scalar_one())
        except (SQLAlchemyError, OSError) as exc:
            raise HitStoreError(f"count_distinct_users failed: {exc}") from exc

    async def group_by_count(self, client_id: str, field: GroupField) -> list[StringCount]:
        """Count hits per distinct value of ``field``. Unsorted, uncapped."""
        column = hits_table.c[GroupField(field).value]
        stmt = (
            select(column, func.count().label("count"))
            .where(hits_table.c.client_id == client_id)
            .group_by(column)
        )
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(stmt)
                rows = result.all()
        except (SQLAlchemyError, OSError) as exc:
            raise HitStoreError(f"group_by_count({field}) failed: {exc}") from exc
        return [StringCount(value=row[0], count=int(row[1])) for row in rows]

    async def ping(self) -> None:
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as exc:
            raise HitStoreError(f"ping failed: {exc}") from exc
