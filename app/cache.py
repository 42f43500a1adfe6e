"""
Read-through cache of a property's occupied date ranges.

Redis is an optimisation only: every failure is logged and reported as a
miss, so callers fall back to the database.
"""

from uuid import UUID

from loguru import logger
from pydantic import TypeAdapter, ValidationError
from redis.asyncio import Redis

from app.schemas import BookedRange
from app.settings import REDIS_URL

OCCUPIED_TTL = 60  # seconds; every admission and status change also invalidates

_ranges_adapter = TypeAdapter(list[BookedRange])
_redis: Redis | None = None


def get_redis() -> Redis:
    global _redis
    if _redis is None:
        _redis = Redis.from_url(REDIS_URL, decode_responses=True)
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None


def occupied_key(property_id: UUID) -> str:
    return f"occupied:{property_id}"


async def get_occupied_cache(property_id: UUID) -> list[BookedRange] | None:
    try:
        raw = await get_redis().get(occupied_key(property_id))
    except Exception:
        logger.warning("Redis read failed for property {}", property_id, exc_info=True)
        return None
    if raw is None:
        return None
    try:
        return _ranges_adapter.validate_json(raw)
    except ValidationError:
        # stale shape from an older deploy; treat as a miss and let it be rewritten
        logger.warning("Discarding unreadable occupied ranges for property {}", property_id)
        return None


async def set_occupied_cache(property_id: UUID, ranges: list[BookedRange]) -> None:
    try:
        await get_redis().setex(
            occupied_key(property_id), OCCUPIED_TTL, _ranges_adapter.dump_json(ranges)
        )
    except Exception:
        logger.warning("Redis write failed for property {}", property_id, exc_info=True)


async def invalidate_occupied_cache(property_id: UUID) -> None:
    try:
        await get_redis().delete(occupied_key(property_id))
    except Exception:
        logger.warning(
            "Redis invalidate failed for property {}", property_id, exc_info=True
        )
