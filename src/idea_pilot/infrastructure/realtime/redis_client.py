"""Realtime client on Redis Pub/Sub."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from idea_pilot.infrastructure.bus.serializer import deserialize_event, serialize_event
from idea_pilot.infrastructure.realtime.topics import broadcast_topic, change_topic
from idea_pilot.realtime.channel import (
    BroadcastHandler,
    ChannelStatus,
    InsertHandler,
    StatusHandler,
)
from idea_pilot.realtime.exceptions import (
    ChannelClosedError,
    RealtimeError,
    SubscriptionError,
    SubscriptionTimeout,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class _InsertBinding:
    topic: str
    table: str
    handler: InsertHandler


class RedisChannel:
    """Named channel over one Pub/Sub connection.

    INSERT listeners map to change topics, broadcast listeners to the channel's
    own broadcast topic. ``subscribe`` waits for a confirmation of every topic.
    """

    def __init__(self, redis: aioredis.Redis, name: str, *, topic_prefix: str) -> None:
        self.name = name
        self._redis = redis
        self._prefix = topic_prefix
        self._inserts: list[_InsertBinding] = []
        self._broadcasts: dict[str, list[BroadcastHandler]] = {}
        self._status_handlers: list[StatusHandler] = []
        self._pubsub: Any = None
        self._task: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def broadcast_topic(self) -> str:
        return broadcast_topic(self._prefix, self.name)

    @property
    def topics(self) -> list[str]:
        topics = {b.topic for b in self._inserts}
        if self._broadcasts:
            topics.add(self.broadcast_topic)
        return sorted(topics)

    def on_insert(
        self,
        table: str,
        handler: InsertHandler,
        *,
        conversation_id: UUID | None = None,
    ) -> None:
        topic = change_topic(self._prefix, table, conversation_id)
        self._inserts.append(_InsertBinding(topic=topic, table=table, handler=handler))

    def on_broadcast(self, event: str, handler: BroadcastHandler) -> None:
        self._broadcasts.setdefault(event, []).append(handler)

    def on_status(self, handler: StatusHandler) -> None:
        self._status_handlers.append(handler)

    async def subscribe(self, timeout: float) -> None:
        if self._closed:
            raise ChannelClosedError(f"Channel {self.name} is closed")
        if self._pubsub is not None:
            raise SubscriptionError(f"Channel {self.name} is already subscribed")
        topics = self.topics
        if not topics:
            raise SubscriptionError(f"Channel {self.name} has no listeners")

        pubsub = self._redis.pubsub()
        self._pubsub = pubsub
        try:
            await asyncio.wait_for(self._handshake(pubsub, topics), timeout)
        except TimeoutError as exc:
            await self._discard_pubsub()
            error = SubscriptionTimeout(f"Channel {self.name} not confirmed within {timeout:.1f}s")
            await self._emit(ChannelStatus.TIMED_OUT, error)
            raise error from exc
        except RedisError as exc:
            await self._discard_pubsub()
            error = SubscriptionError(f"Channel {self.name} rejected: {exc}")
            await self._emit(ChannelStatus.CHANNEL_ERROR, error)
            raise error from exc

        self._task = asyncio.create_task(self._listen(pubsub), name=f"realtime-channel-{self.name}")
        logger.debug("Channel %s subscribed to %s", self.name, topics)
        await self._emit(ChannelStatus.SUBSCRIBED, None)

    async def send_broadcast(self, event: str, payload: dict[str, Any]) -> None:
        if self._closed:
            raise ChannelClosedError(f"Channel {self.name} is closed")
        try:
            await self._redis.publish(self.broadcast_topic, serialize_event(event, payload))
        except RedisError as exc:
            raise RealtimeError(f"Broadcast on {self.name} failed: {exc}") from exc

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self._discard_pubsub()
        await self._emit(ChannelStatus.CLOSED, None)

    async def _handshake(self, pubsub: Any, topics: list[str]) -> None:
        await pubsub.subscribe(*topics)
        pending = set(topics)
        while pending:
            message = await pubsub.get_message(timeout=1.0)
            if message is None:
                continue
            if message["type"] == "subscribe":
                pending.discard(_text(message["channel"]))

    async def _listen(self, pubsub: Any) -> None:
        try:
            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                await self._dispatch(_text(message["channel"]), message["data"])
        except asyncio.CancelledError:
            raise
        except RedisError as exc:
            logger.warning("Channel %s lost its connection: %s", self.name, exc)
            await self._emit(ChannelStatus.CHANNEL_ERROR, SubscriptionError(str(exc)))

    async def _dispatch(self, topic: str, raw: str | bytes) -> None:
        try:
            event, data = deserialize_event(raw)
        except (ValueError, KeyError, TypeError):
            logger.warning("Undecodable message on %s", topic)
            return

        if topic == self.broadcast_topic:
            for handler in list(self._broadcasts.get(event, [])):
                try:
                    await handler(event, data)
                except Exception:
                    logger.exception("Broadcast handler failed on %s", self.name)
            return

        if event != "INSERT":
            return
        table = data.get("table")
        record = data.get("record") or {}
        for binding in list(self._inserts):
            if binding.topic != topic or binding.table != table:
                continue
            try:
                await binding.handler(record)
            except Exception:
                logger.exception("Insert handler failed on %s", self.name)

    async def _emit(self, status: ChannelStatus, error: Exception | None) -> None:
        for handler in list(self._status_handlers):
            try:
                await handler(status, error)
            except Exception:
                logger.exception("Status handler failed on %s", self.name)

    async def _discard_pubsub(self) -> None:
        pubsub, self._pubsub = self._pubsub, None
        if pubsub is None:
            return
        try:
            await pubsub.unsubscribe()
            await pubsub.aclose()
        except RedisError:
            logger.debug("Error closing pubsub of %s", self.name, exc_info=True)


class RedisRealtimeClient:
    """Process-wide realtime client; channels share its Redis pool."""

    def __init__(self, redis: aioredis.Redis, *, topic_prefix: str = "realtime") -> None:
        self._redis = redis
        self._prefix = topic_prefix
        self._channels: dict[str, RedisChannel] = {}

    @property
    def channels(self) -> list[RedisChannel]:
        return list(self._channels.values())

    def channel(self, name: str) -> RedisChannel:
        channel = RedisChannel(self._redis, name, topic_prefix=self._prefix)
        self._channels[name] = channel
        return channel

    async def remove_channel(self, channel: RedisChannel) -> None:
        self._channels.pop(channel.name, None)
        await channel.close()

    async def ping(self) -> bool:
        return bool(await self._redis.ping())

    async def close(self) -> None:
        for channel in list(self._channels.values()):
            await self.remove_channel(channel)
        logger.info("Realtime client closed")


def _text(value: str | bytes) -> str:
    return value.decode() if isinstance(value, bytes) else value
