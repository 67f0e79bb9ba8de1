"""
ListingCache tests — page keys, hit/miss accounting, board invalidation
and graceful degradation, against a mocked Redis client.
"""
import json
from unittest.mock import AsyncMock, MagicMock

import pytest
import redis.asyncio as redis

from boardapi.cache import ListingCache


def _fake_redis(keys: list[str] | None = None) -> MagicMock:
    client = MagicMock()
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock()
    client.delete = AsyncMock()

    async def scan_iter(match: str):
        for key in keys or []:
            yield key

    client.scan_iter = MagicMock(side_effect=scan_iter)
    return client


def test_page_key_is_scoped_by_board():
    assert ListingCache.page_key(3, "latest:10") == "boards:3:articles:latest:10"


@pytest.mark.asyncio
async def test_disabled_cache_misses_and_skips_writes():
    listing = ListingCache()
    assert await listing.get_page(1, "latest:10") is None
    await listing.store_page(1, "latest:10", [{"id": 1}])
    await listing.invalidate_board(1)
    assert listing.stats == {"enabled": False, "hits": 0, "misses": 1, "hit_rate": 0.0}


@pytest.mark.asyncio
async def test_page_round_trip_counts_hits():
    listing = ListingCache()
    listing._redis = _fake_redis()
    items = [{"id": 2, "title": "Hello"}]

    await listing.store_page(1, "latest:10", items, ttl=60)
    listing._redis.set.assert_awaited_once_with(
        "boards:1:articles:latest:10", json.dumps(items), ex=60
    )

    listing._redis.get.return_value = json.dumps(items)
    assert await listing.get_page(1, "latest:10") == items
    assert listing.stats["hits"] == 1


@pytest.mark.asyncio
async def test_redis_errors_degrade_to_miss():
    listing = ListingCache()
    listing._redis = _fake_redis()
    listing._redis.get.side_effect = redis.ConnectionError("gone")
    listing._redis.set.side_effect = redis.ConnectionError("gone")

    assert await listing.get_page(1, "latest:10") is None
    await listing.store_page(1, "latest:10", [])
    assert listing.stats["misses"] == 1


@pytest.mark.asyncio
async def test_invalidate_board_drops_only_that_board():
    listing = ListingCache()
    listing._redis = _fake_redis(["boards:1:articles:latest:10", "boards:1:articles:before:7:10"])

    await listing.invalidate_board(1)

    listing._redis.scan_iter.assert_called_once_with(match="boards:1:articles:*")
    listing._redis.delete.assert_awaited_once_with(
        "boards:1:articles:latest:10", "boards:1:articles:before:7:10"
    )


@pytest.mark.asyncio
async def test_invalidate_board_without_cached_pages():
    listing = ListingCache()
    listing._redis = _fake_redis([])
    await listing.invalidate_board(5)
    listing._redis.delete.assert_not_awaited()
