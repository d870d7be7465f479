"""Per-scope INSERT subscriptions with retry and race-safe disposal."""
from __future__ import annotations

import asyncio
import logging
import uuid
from enum import StrEnum
from typing import Any, Awaitable, Callable
from uuid import UUID

from idea_pilot.application.dto.records import record_to_community, record_to_private
from idea_pilot.domain.entities.message import CommunityMessage, PrivateMessage
from idea_pilot.domain.entities.profile import Profile
from idea_pilot.domain.value_objects.enums import ChangeTable, ScopeKind
from idea_pilot.domain.value_objects.scope import Scope
from idea_pilot.realtime.backoff import RetryPolicy
from idea_pilot.realtime.channel import Channel, ChannelStatus, RealtimeClient
from idea_pilot.realtime.exceptions import SubscriptionError

logger = logging.getLogger(__name__)

Message = CommunityMessage | PrivateMessage
MessageHandler = Callable[[Message], Awaitable[None]]
FailureHandler = Callable[[Exception], Awaitable[None]]
ReadyHandler = Callable[[], Awaitable[None]]
ProfileLookup = Callable[[UUID], Awaitable[Profile | None]]
Sleep = Callable[[float], Awaitable[None]]


class SubscriptionStatus(StrEnum):
    PENDING = "pending"
    SUBSCRIBED = "subscribed"
    RETRYING = "retrying"
    FAILED = "failed"
    CLOSED = "closed"


def channel_name(scope: Scope) -> str:
    suffix = uuid.uuid4().hex[:12]
    if scope.kind == ScopeKind.COMMUNITY:
        return f"{ChangeTable.COMMUNITY_MESSAGES}_{suffix}"
    return f"{ChangeTable.PRIVATE_MESSAGES}_{scope.conversation_id}_{suffix}"


class Subscription:
    """Handle for one realtime subscription.

    ``start()`` opens a channel for the scope and retries rejected handshakes
    with ``policy``. When the retries are exhausted ``on_failure`` receives the
    last error. ``on_ready`` runs every time a handshake is confirmed, including
    reconnects. ``close()`` is idempotent; once it was called no handler runs
    again, including deliveries whose profile lookup was still in flight.
    """

    def __init__(
        self,
        client: RealtimeClient,
        scope: Scope,
        on_message: MessageHandler,
        *,
        lookup_profile: ProfileLookup,
        policy: RetryPolicy | None = None,
        subscribe_timeout: float = 10.0,
        on_failure: FailureHandler | None = None,
        on_ready: ReadyHandler | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.scope = scope
        self.status = SubscriptionStatus.PENDING
        self.attempts = 0
        self.error: Exception | None = None
        self._client = client
        self._on_message = on_message
        self._lookup_profile = lookup_profile
        self._policy = policy or RetryPolicy()
        self._subscribe_timeout = subscribe_timeout
        self._on_failure = on_failure
        self._on_ready = on_ready
        self._sleep = sleep
        self._channel: Channel | None = None
        self._task: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        if self._closed:
            raise SubscriptionError("Subscription is closed")
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._run(), name=f"realtime-sub-{self.scope.key}")

    async def wait(self) -> SubscriptionStatus:
        """Wait until the current connect cycle settles."""
        if self._task is not None:
            await asyncio.shield(self._task)
        return self.status

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.status = SubscriptionStatus.CLOSED
        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self._release_channel()
        logger.debug("Subscription %s closed", self.scope.key)

    async def _run(self) -> None:
        retry = 0
        while not self._closed:
            self.attempts += 1
            channel = self._open_channel()
            self._channel = channel
            try:
                await channel.subscribe(self._subscribe_timeout)
            except SubscriptionError as exc:
                self.error = exc
                await self._release_channel()
                if self._closed:
                    return
                if retry >= self._policy.max_retries:
                    self.status = SubscriptionStatus.FAILED
                    logger.error(
                        "Subscription %s failed after %d attempts: %s",
                        self.scope.key, self.attempts, exc,
                    )
                    if self._on_failure is not None:
                        await self._on_failure(exc)
                    return
                delay = self._policy.delay_for(retry)
                retry += 1
                self.status = SubscriptionStatus.RETRYING
                logger.warning(
                    "Subscription %s rejected (%s), retry %d/%d in %.1fs",
                    self.scope.key, exc, retry, self._policy.max_retries, delay,
                )
                await self._sleep(delay)
                continue

            if self._closed:
                return
            self.status = SubscriptionStatus.SUBSCRIBED
            self.error = None
            logger.info("Subscription %s ready on %s", self.scope.key, channel.name)
            if self._on_ready is not None:
                await self._on_ready()
            return

    def _open_channel(self) -> Channel:
        channel = self._client.channel(channel_name(self.scope))
        if self.scope.kind == ScopeKind.COMMUNITY:
            channel.on_insert(ChangeTable.COMMUNITY_MESSAGES, self._handle_record)
        else:
            channel.on_insert(
                ChangeTable.PRIVATE_MESSAGES,
                self._handle_record,
                conversation_id=self.scope.conversation_id,
            )
        channel.on_status(self._handle_status)
        return channel

    async def _handle_status(self, status: ChannelStatus, error: Exception | None) -> None:
        if self._closed or self.status != SubscriptionStatus.SUBSCRIBED:
            return
        if status not in (ChannelStatus.CHANNEL_ERROR, ChannelStatus.TIMED_OUT):
            return
        logger.warning("Subscription %s lost its channel (%s), reconnecting", self.scope.key, status)
        self.error = error or SubscriptionError(str(status))
        self.status = SubscriptionStatus.RETRYING
        self._task = asyncio.create_task(self._reconnect(), name=f"realtime-sub-{self.scope.key}")

    async def _reconnect(self) -> None:
        await self._release_channel()
        await self._run()

    async def _handle_record(self, record: dict[str, Any]) -> None:
        if self._closed:
            return
        if not record.get("id"):
            logger.warning("Ignoring change record without id on %s", self.scope.key)
            return

        author_field = "user_id" if self.scope.kind == ScopeKind.COMMUNITY else "sender_id"
        profile: Profile | None = None
        author_id = record.get(author_field)
        if author_id:
            try:
                profile = await self._lookup_profile(UUID(str(author_id)))
            except Exception:
                logger.warning(
                    "Profile lookup failed for %s, delivering raw record",
                    author_id, exc_info=True,
                )
        if self._closed:
            return

        try:
            if self.scope.kind == ScopeKind.COMMUNITY:
                message: Message = record_to_community(record, author=profile)
            else:
                message = record_to_private(record, sender=profile)
        except (KeyError, TypeError, ValueError):
            logger.warning("Malformed change record on %s: %r", self.scope.key, record)
            return
        await self._on_message(message)

    async def _release_channel(self) -> None:
        channel, self._channel = self._channel, None
        if channel is not None:
            await self._remove(channel)

    async def _remove(self, channel: Channel) -> None:
        try:
            await self._client.remove_channel(channel)
        except Exception:
            logger.warning("Failed to remove channel %s", channel.name, exc_info=True)
