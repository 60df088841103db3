"""Shared test fixtures."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from pixelcount.config import AppConfig
from pixelcount.main import create_app
from pixelcount.storage.base import HitStoreError
from pixelcount.storage.sql_storage import SqlHitStore


class FailingHitStore:
    """A store that rejects every operation."""

    def __init__(self) -> None:
        self.insert_calls = 0

    async def insert(self, hit) -> None:
        self.insert_calls += 1
        raise HitStoreError("database is down")

    async def count_distinct_users(self, client_id: str) -> int:
        raise HitStoreError("database is down")

    async def group_by_count(self, client_id: str, field):
        raise HitStoreError("database is down")

    async def ping(self) -> None:
        raise HitStoreError("database is down")


@pytest.fixture
def config(tmp_path) -> AppConfig:
    """Default config pointed at a per-test sqlite database."""
    config = AppConfig()
    config.storage.url = f"sqlite+aiosqlite:///{tmp_path / 'data' / 'hits.db'}"
    config.logging.level = "warning"
    return config


@pytest.fixture
async def store(config):
    store = SqlHitStore(config.storage.url)
    await store.create_schema()
    yield store
    await store.dispose()


@pytest.fixture
async def client(config, store):
    app = create_app(config, store=store)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
async def failing_client(config):
    app = create_app(config, store=FailingHitStore())
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
