"""
Redis cache for a resource's occupied slots.

Calendar views only. Admission and the live availability check always read
the database, so a stale or missing entry can never admit a conflicting booking.
"""

from uuid import UUID

from loguru import logger
from pydantic import TypeAdapter
from redis.asyncio import Redis

from app.schemas import ReservationSlot
from app.settings import REDIS_URL

_redis: Redis | None = None
SLOTS_TTL = 60  # 1 minute

_slots_adapter = TypeAdapter(list[ReservationSlot])


def get_redis() -> Redis:
    global _redis
    if _redis is None:
        _redis = Redis.from_url(REDIS_URL, decode_responses=True)
    return _redis


def _slots_key(resource_id: UUID) -> str:
    return f"reservation-slots:{resource_id}"


async def get_slots_cache(resource_id: UUID) -> list[ReservationSlot] | None:
    try:
        data = await get_redis().get(_slots_key(resource_id))
        return _slots_adapter.validate_json(data) if data else None
    except Exception:
        logger.warning("Redis get failed, skipping slots cache", exc_info=True)
        return None


async def set_slots_cache(resource_id: UUID, slots: list[ReservationSlot]) -> None:
    # An empty calendar is the cheapest read and the likeliest to change.
    if not slots:
        logger.debug("No occupied slots for resource_id={}, not cached", resource_id)
        return
    try:
        await get_redis().setex(
            _slots_key(resource_id), SLOTS_TTL, _slots_adapter.dump_json(slots)
        )
    except Exception:
        logger.warning("Redis set failed, skipping slots cache", exc_info=True)


async def invalidate_slots_cache(resource_id: UUID) -> None:
    try:
        await get_redis().delete(_slots_key(resource_id))
    except Exception:
        logger.warning("Redis invalidate failed for slots cache", exc_info=True)


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None
