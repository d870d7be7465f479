"""Redis Pub/Sub publish side of the change feed."""
from __future__ import annotations

from typing import Any

import redis.asyncio as aioredis

from idea_pilot.infrastructure.bus.serializer import serialize_event


class RedisPubSubPublisher:
    """Implements application.ports.bus.EventPublisher."""

    def __init__(self, redis: aioredis.Redis) -> None:
        self._redis = redis

    async def publish(self, channel: str, event_type: str, data: dict[str, Any]) -> None:
        await self._redis.publish(channel, serialize_event(event_type, data))
