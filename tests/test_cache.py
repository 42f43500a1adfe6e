"""Occupied-dates cache helpers. Redis is always mocked."""

from __future__ import annotations

from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

from redis.exceptions import ConnectionError as RedisConnectionError

from app import cache
from app.cache import (
    OCCUPIED_TTL,
    close_redis,
    get_occupied_cache,
    invalidate_occupied_cache,
    occupied_key,
    set_occupied_cache,
)
from app.schemas import BookedRange

from .factories import PROPERTY_ID

RANGES = [BookedRange(check_in=date(2025, 10, 15), check_out=date(2025, 10, 18))]
RANGES_JSON = '[{"check_in":"2025-10-15","check_out":"2025-10-18"}]'


def _redis(**methods) -> MagicMock:
    mock = MagicMock()
    for name, value in methods.items():
        setattr(mock, name, value)
    return mock


def test_key_is_per_property():
    assert occupied_key(PROPERTY_ID) == f"occupied:{PROPERTY_ID}"


class TestGetOccupiedCache:
    async def test_hit_returns_booked_ranges(self):
        redis = _redis(get=AsyncMock(return_value=RANGES_JSON))
        with patch("app.cache.get_redis", return_value=redis):
            assert await get_occupied_cache(PROPERTY_ID) == RANGES
        redis.get.assert_awaited_once_with(f"occupied:{PROPERTY_ID}")

    async def test_empty_list_is_a_hit(self):
        redis = _redis(get=AsyncMock(return_value="[]"))
        with patch("app.cache.get_redis", return_value=redis):
            assert await get_occupied_cache(PROPERTY_ID) == []

    async def test_miss_returns_none(self):
        redis = _redis(get=AsyncMock(return_value=None))
        with patch("app.cache.get_redis", return_value=redis):
            assert await get_occupied_cache(PROPERTY_ID) is None

    async def test_unreadable_entry_is_a_miss(self):
        redis = _redis(get=AsyncMock(return_value='[{"from":"2025-10-15"}]'))
        with patch("app.cache.get_redis", return_value=redis):
            assert await get_occupied_cache(PROPERTY_ID) is None

    async def test_redis_failure_is_a_miss(self):
        redis = _redis(get=AsyncMock(side_effect=RedisConnectionError("down")))
        with patch("app.cache.get_redis", return_value=redis):
            assert await get_occupied_cache(PROPERTY_ID) is None


class TestSetOccupiedCache:
    async def test_sets_json_with_ttl(self):
        redis = _redis(setex=AsyncMock())
        with patch("app.cache.get_redis", return_value=redis):
            await set_occupied_cache(PROPERTY_ID, RANGES)
        key, ttl, payload = redis.setex.await_args.args
        assert key == f"occupied:{PROPERTY_ID}"
        assert ttl == OCCUPIED_TTL
        assert payload == RANGES_JSON.encode()

    async def test_redis_failure_is_swallowed(self):
        redis = _redis(setex=AsyncMock(side_effect=RedisConnectionError("down")))
        with patch("app.cache.get_redis", return_value=redis):
            await set_occupied_cache(PROPERTY_ID, RANGES)


class TestInvalidateOccupiedCache:
    async def test_deletes_key(self):
        redis = _redis(delete=AsyncMock())
        with patch("app.cache.get_redis", return_value=redis):
            await invalidate_occupied_cache(PROPERTY_ID)
        redis.delete.assert_awaited_once_with(f"occupied:{PROPERTY_ID}")

    async def test_redis_failure_is_swallowed(self):
        redis = _redis(delete=AsyncMock(side_effect=RedisConnectionError("down")))
        with patch("app.cache.get_redis", return_value=redis):
            await invalidate_occupied_cache(PROPERTY_ID)


class TestRedisLifecycle:
    def test_get_redis_is_lazy_singleton(self):
        with patch.object(cache, "_redis", None):
            first = cache.get_redis()
            assert cache.get_redis() is first

    async def test_close_redis_resets_client(self):
        client = _redis(aclose=AsyncMock())
        with patch.object(cache, "_redis", client):
            await close_redis()
            assert cache._redis is None
        client.aclose.assert_awaited_once()

    async def test_close_redis_without_client_is_noop(self):
        with patch.object(cache, "_redis", None):
            await close_redis()
            assert cache._redis is None
