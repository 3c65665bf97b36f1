from __future__ import annotations

import json
import os
from contextlib import suppress
from datetime import datetime
from typing import Any, AsyncIterator
from uuid import UUID

import redis.asyncio as redis

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
_redis = None

async def get_redis():
    global _redis
    if _redis is None:
        if os.getenv("TESTING") == "1":
            from fakeredis import aioredis
            _redis = aioredis.FakeRedis()
        else:
            _redis = redis.from_url(REDIS_URL)
    return _redis


def _json_default(value: Any) -> Any:
    # purpose: convert datetime and uuid values for event payloads
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    return value


def _serialize_event(event: dict[str, Any]) -> str:
    return json.dumps(event, default=_json_default)


def user_channel(user_id: str | UUID) -> str:
    return f"user:{user_id}"


async def publish_user_event(user_id: str | UUID, event: dict[str, Any]) -> None:
    """Broadcast a notification lifecycle event to the user's channel."""

    r = await get_redis()
    await r.publish(user_channel(user_id), _serialize_event(event))


async def subscribe_user(user_id: str | UUID):
    """Open a pub/sub subscription on the user's channel."""

    r = await get_redis()
    subscription = r.pubsub()
    await subscription.subscribe(user_channel(user_id))
    return subscription


async def iter_user_events(subscription) -> AsyncIterator[str]:
    """Yield messages from an open subscription until the consumer stops."""

    try:
        async for message in subscription.listen():
            if message.get("type") != "message":
                continue
            data = message.get("data")
            if isinstance(data, bytes):
                yield data.decode()
            else:
                yield str(data)
    finally:
        with suppress(Exception):
            await subscription.unsubscribe()
        with suppress(AttributeError):
            await subscription.close()
