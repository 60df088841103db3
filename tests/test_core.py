"""Tests for identity resolution, hit recording and aggregation."""

from __future__ import annotations

import asyncio
import uuid

import pytest
from structlog.testing import capture_logs

from pixelcount.core.aggregation import AggregationEngine, rank
from pixelcount.core.identity import IDENTITY_COOKIE_EXPIRES, IdentityResolver
from pixelcount.core.models import DIRECT_REFERER, StringCount
from pixelcount.core.recorder import HitRecorder, normalize_referer
from pixelcount.storage.base import GroupField, HitStoreError

from tests.conftest import FailingHitStore


class SlowHitStore:
    """A store whose every operation hangs."""

    async def insert(self, hit) -> None:
        await asyncio.sleep(10)

    async def count_distinct_users(self, client_id: str) -> int:
        await asyncio.sleep(10)
        return 0

    async def group_by_count(self, client_id: str, field):
        await asyncio.sleep(10)
        return []


class StaticHitStore:
    """Returns fixed group counts."""

    def __init__(self, counts: list[StringCount]) -> None:
        self.counts = counts
        self.fields: list[GroupField] = []

    async def group_by_count(self, client_id: str, field):
        self.fields.append(field)
        return list(self.counts)


# -- identity --

def test_existing_token_is_reused_verbatim():
    resolver = IdentityResolver()
    identity = resolver.resolve("not-even-a-uuid")
    assert identity.user_id == "not-even-a-uuid"
    assert identity.is_new is False


@pytest.mark.parametrize("token", [None, ""])
def test_missing_token_gets_new_uuid4(token):
    identity = IdentityResolver().resolve(token)
    assert identity.is_new is True
    assert uuid.UUID(identity.user_id).version == 4


def test_new_identities_are_unique():
    resolver = IdentityResolver()
    ids = {resolver.resolve(None).user_id for _ in range(100)}
    assert len(ids) == 100


def test_cookie_params():
    resolver = IdentityResolver()
    identity = resolver.resolve(None)
    params = resolver.cookie_params(identity)
    assert params["key"] == "sts"
    assert params["value"] == identity.user_id
    assert params["path"] == "/"
    assert params["expires"] == IDENTITY_COOKIE_EXPIRES
    assert params["samesite"] is None
    assert IDENTITY_COOKIE_EXPIRES.year == 3000


# -- recorder --

def test_normalize_referer():
    assert normalize_referer("") == DIRECT_REFERER
    assert normalize_referer(None) == DIRECT_REFERER
    assert normalize_referer("http://x.example/?q=1") == "http://x.example/?q=1"


@pytest.mark.asyncio
async def test_record_normalizes_referer(store):
    recorder = HitRecorder(store)
    assert await recorder.record("site.example", "u1", "/a", "") is True
    assert await recorder.record("site.example", "u2", "/a", "http://ref.example/") is True

    referers = await store.group_by_count("site.example", GroupField.REFERER)
    assert sorted(referers, key=lambda sc: sc.value) == [
        StringCount(DIRECT_REFERER, 1),
        StringCount("http://ref.example/", 1),
    ]


@pytest.mark.asyncio
async def test_record_swallows_store_failure():
    failing = FailingHitStore()
    recorder = HitRecorder(failing)

    with capture_logs() as cap_logs:
        result = await recorder.record("site.example", "u1", "/a", "")

    assert result is False
    assert failing.insert_calls == 1
    errors = [e for e in cap_logs if e["event"] == "hit_record_failed"]
    assert len(errors) == 1
    assert errors[0]["log_level"] == "error"
    assert errors[0]["component"] == "recorder"


@pytest.mark.asyncio
async def test_record_swallows_timeout():
    recorder = HitRecorder(SlowHitStore(), timeout_seconds=0.05)
    assert await recorder.record("site.example", "u1", "/a", "") is False


# -- aggregation --

def test_rank_sorts_descending_and_truncates():
    counts = [StringCount(f"v{i}", i) for i in range(1, 12)]
    ranked = rank(counts)
    assert len(ranked) == 10
    assert [sc.count for sc in ranked] == list(range(11, 1, -1))
    assert StringCount("v1", 1) not in ranked


def test_rank_breaks_ties_by_value():
    counts = [
        StringCount("b", 2),
        StringCount("c", 5),
        StringCount("a", 2),
        StringCount("d", 2),
    ]
    assert rank(counts) == [
        StringCount("c", 5),
        StringCount("a", 2),
        StringCount("b", 2),
        StringCount("d", 2),
    ]
    assert rank(list(reversed(counts))) == rank(counts)


def test_rank_empty():
    assert rank([]) == []


@pytest.mark.asyncio
async def test_top_referers_and_pages_group_on_their_field():
    fake = StaticHitStore([StringCount("x", 1), StringCount("y", 3)])
    engine = AggregationEngine(fake)

    assert await engine.top_referers("site.example") == [StringCount("y", 3), StringCount("x", 1)]
    assert await engine.top_pages("site.example") == [StringCount("y", 3), StringCount("x", 1)]
    assert fake.fields == [GroupField.REFERER, GroupField.PAGE]


@pytest.mark.asyncio
async def test_uniques_counts_identities_once(store):
    recorder = HitRecorder(store)
    engine = AggregationEngine(store)
    for user in range(5):
        for _ in range(6):
            await recorder.record("andrewvos.com", f"user{user}", "/", "")

    assert await engine.uniques("andrewvos.com") == 5
    assert await engine.uniques("someone-else.com") == 0


@pytest.mark.asyncio
async def test_aggregation_propagates_store_failure():
    engine = AggregationEngine(FailingHitStore())
    with pytest.raises(HitStoreError):
        await engine.uniques("site.example")
    with pytest.raises(HitStoreError):
        await engine.top_referers("site.example")
    with pytest.raises(HitStoreError):
        await engine.top_pages("site.example")


@pytest.mark.asyncio
async def test_aggregation_timeout_is_store_error():
    engine = AggregationEngine(SlowHitStore(), timeout_seconds=0.05)
    with pytest.raises(HitStoreError):
        await engine.uniques("site.example")
