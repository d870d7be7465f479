"""One chat view: timeline, push subscription, health monitor and polling."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import TracebackType
from typing import Awaitable, Callable, Protocol, Self
from uuid import UUID

from idea_pilot.config import Settings
from idea_pilot.domain.entities.profile import Profile
from idea_pilot.domain.value_objects.enums import HealthState
from idea_pilot.domain.value_objects.scope import Scope
from idea_pilot.realtime.backoff import RetryPolicy
from idea_pilot.realtime.channel import RealtimeClient
from idea_pilot.realtime.health import UNAVAILABLE_WARNING, HealthMonitor, HealthProber
from idea_pilot.realtime.polling import PollingFallback
from idea_pilot.realtime.state import ConnectionHealth, HealthListener
from idea_pilot.realtime.subscriptions import Message, Subscription, SubscriptionStatus
from idea_pilot.realtime.timeline import MessageTimeline

logger = logging.getLogger(__name__)

MessagesListener = Callable[[list[Message]], Awaitable[None]]


class MessageSource(Protocol):
    """Storage side of a chat view."""

    scope: Scope

    async def fetch_recent(self, limit: int) -> list[Message]: ...

    async def send(self, content: str) -> Message: ...

    async def lookup_profile(self, user_id: UUID) -> Profile | None: ...

    async def acknowledge(self, messages: list[Message]) -> None:
        """Called with every batch that was new to the view."""
        ...


@dataclass(frozen=True, slots=True)
class RealtimeOptions:
    subscribe_timeout: float = 10.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    probe_timeout: float = 7.0
    probe_broadcast_delay: float = 1.0
    probe_interval: float = 30.0
    poll_interval: float = 5.0
    poll_page_size: int = 10
    poll_max_failures: int = 5
    initial_page_size: int = 50

    @classmethod
    def from_settings(cls, settings: Settings) -> RealtimeOptions:
        return cls(
            subscribe_timeout=settings.REALTIME_SUBSCRIBE_TIMEOUT,
            retry=RetryPolicy.from_settings(settings),
            probe_timeout=settings.REALTIME_PROBE_TIMEOUT,
            probe_broadcast_delay=settings.REALTIME_PROBE_BROADCAST_DELAY,
            probe_interval=settings.REALTIME_PROBE_INTERVAL,
            poll_interval=settings.REALTIME_POLL_INTERVAL,
            poll_page_size=settings.REALTIME_POLL_PAGE_SIZE,
            poll_max_failures=settings.REALTIME_POLL_MAX_FAILURES,
            initial_page_size=settings.CHAT_INITIAL_PAGE_SIZE,
        )


class ChatSession:
    """Keeps one scope's message list current.

    Push deliveries, polled pages, the initial load and local echoes of sent
    messages all pass through ``_deliver``, which merges into the timeline and
    reports only the messages that were new. Polling runs while health is
    degraded and stops when it is healthy again. Recovery and every confirmed
    handshake trigger one catch-up fetch, so nothing stored in between is lost.
    """

    def __init__(
        self,
        client: RealtimeClient,
        source: MessageSource,
        *,
        on_messages: MessagesListener,
        on_health: HealthListener | None = None,
        options: RealtimeOptions | None = None,
    ) -> None:
        self.options = options or RealtimeOptions()
        self.source = source
        self.timeline: MessageTimeline[Message] = MessageTimeline()
        self.health = ConnectionHealth()
        self._on_messages = on_messages
        self._on_health = on_health
        self._closed = False
        self._opened = False

        self.subscription = Subscription(
            client,
            source.scope,
            self._deliver_one,
            lookup_profile=source.lookup_profile,
            policy=self.options.retry,
            subscribe_timeout=self.options.subscribe_timeout,
            on_failure=self._subscription_failed,
            on_ready=self._catch_up,
        )
        self.monitor = HealthMonitor(
            HealthProber(
                client,
                timeout=self.options.probe_timeout,
                broadcast_delay=self.options.probe_broadcast_delay,
            ),
            self.health,
            interval=self.options.probe_interval,
        )
        self.poller: PollingFallback[Message] = PollingFallback(
            source.fetch_recent,
            self._deliver,
            lambda: self.timeline.latest_at,
            interval=self.options.poll_interval,
            page_size=self.options.poll_page_size,
            max_failures=self.options.poll_max_failures,
        )
        self._remove_health_listener = self.health.add_listener(self._health_changed)

    @property
    def scope(self) -> Scope:
        return self.source.scope

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def messages(self) -> list[Message]:
        return self.timeline.messages

    async def open(self) -> list[Message]:
        """Load the latest page, then start push delivery and health checks."""
        if self._opened:
            return self.timeline.messages
        self._opened = True
        initial = await self.source.fetch_recent(self.options.initial_page_size)
        fresh = self.timeline.merge(initial)
        if fresh:
            await self._acknowledge(fresh)
        self.subscription.start()
        self.monitor.start()
        return self.timeline.messages

    async def send(self, content: str) -> Message:
        """Store a message and echo it locally. Errors reach the caller."""
        message = await self.source.send(content)
        await self._deliver([message])
        return message

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._remove_health_listener()
        await self.subscription.close()
        await self.monitor.stop()
        await self.poller.stop()
        logger.debug("Chat session %s closed", self.scope.key)

    async def __aenter__(self) -> Self:
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def _deliver_one(self, message: Message) -> None:
        await self._deliver([message])

    async def _deliver(self, messages: list[Message]) -> None:
        if self._closed:
            return
        fresh = self.timeline.merge(messages)
        if not fresh:
            return
        await self._acknowledge(fresh)
        await self._on_messages(fresh)

    async def _acknowledge(self, messages: list[Message]) -> None:
        try:
            await self.source.acknowledge(messages)
        except Exception:
            logger.warning("Acknowledging messages on %s failed", self.scope.key, exc_info=True)

    async def _subscription_failed(self, exc: Exception) -> None:
        if self._closed:
            return
        await self.health.mark_degraded(UNAVAILABLE_WARNING)

    async def _catch_up(self) -> None:
        """Fetch what was stored while no path was delivering."""
        if self._closed or not self._opened:
            return
        await self.poller.poll_once(self.options.initial_page_size)

    async def _health_changed(self, state: HealthState, warning: str | None) -> None:
        if self._closed:
            return
        if state == HealthState.DEGRADED:
            self.poller.start()
        elif state == HealthState.HEALTHY:
            await self.poller.stop()
            await self._catch_up()
            if self.subscription.status == SubscriptionStatus.FAILED:
                self.subscription.start()
        if self._on_health is not None:
            await self._on_health(state, warning)
