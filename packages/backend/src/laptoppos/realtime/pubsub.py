"""Redis pub/sub — relays data_update events between server processes.

Learn: Each API process only knows the sockets it accepted itself. When a
write happens in process A, the tab connected to process B still has to
hear about it, so writers PUBLISH to one Redis channel and every process
runs relay_to_hub() which re-broadcasts into its local hub.

Redis pub/sub is fire-and-forget. If no one is listening, the message
is lost. That's fine here: a missed update only means one view shows
stale data until its next refetch.

Channel: laptoppos:events (LAPTOPPOS_REDIS_CHANNEL)
"""

import asyncio
import json
from typing import Any, Optional

import redis.asyncio as aioredis
import structlog

from laptoppos.config import settings
from laptoppos.realtime.hub import RealtimeHub

logger = structlog.get_logger()

# Global Redis connection pool (initialized in lifespan)
_redis: Optional[aioredis.Redis] = None


async def init_redis() -> aioredis.Redis:
    """Initialize the Redis connection pool."""
    global _redis
    _redis = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    # Verify connection
    await _redis.ping()
    return _redis


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def get_redis() -> aioredis.Redis:
    """Get the Redis connection (must be initialized first)."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis


def redis_ready() -> bool:
    return _redis is not None


async def publish_data_update(tenant_id: Optional[str], event: dict[str, Any]) -> None:
    """Publish a data_update for `tenant_id` (None = all tenants)."""
    r = get_redis()
    payload = json.dumps({"tenant_id": tenant_id, "event": event}, default=str)
    await r.publish(settings.redis_channel, payload)


async def relay_to_hub(hub: RealtimeHub) -> None:
    """Forward every published event into the local hub until cancelled."""
    pubsub = get_redis().pubsub()
    await pubsub.subscribe(settings.redis_channel)
    logger.info("realtime.relay_started", channel=settings.redis_channel)
    try:
        async for message in pubsub.listen():
            if message["type"] != "message":
                continue
            try:
                envelope = json.loads(message["data"])
            except (json.JSONDecodeError, TypeError) as e:
                logger.warning("realtime.relay_bad_payload", error=str(e))
                continue

            event = envelope.get("event") if isinstance(envelope, dict) else None
            if not isinstance(event, dict):
                logger.warning("realtime.relay_bad_payload", error="expected {tenant_id, event} object")
                continue
            tenant_id = envelope.get("tenant_id")
            if tenant_id is not None and not isinstance(tenant_id, str):
                tenant_id = str(tenant_id)

            await hub.broadcast_to_tenant(tenant_id, event)
    except asyncio.CancelledError:
        pass
    finally:
        await pubsub.unsubscribe(settings.redis_channel)
        await pubsub.aclose()
