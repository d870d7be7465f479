"""Transport-neutral view of a realtime client and its channels."""
from __future__ import annotations

from enum import StrEnum
from typing import Any, Awaitable, Callable, Protocol
from uuid import UUID


class ChannelStatus(StrEnum):
    SUBSCRIBED = "SUBSCRIBED"
    CHANNEL_ERROR = "CHANNEL_ERROR"
    TIMED_OUT = "TIMED_OUT"
    CLOSED = "CLOSED"


InsertHandler = Callable[[dict[str, Any]], Awaitable[None]]
BroadcastHandler = Callable[[str, dict[str, Any]], Awaitable[None]]
StatusHandler = Callable[[ChannelStatus, Exception | None], Awaitable[None]]


class Channel(Protocol):
    name: str

    def on_insert(
        self,
        table: str,
        handler: InsertHandler,
        *,
        conversation_id: UUID | None = None,
    ) -> None: ...

    def on_broadcast(self, event: str, handler: BroadcastHandler) -> None: ...

    def on_status(self, handler: StatusHandler) -> None: ...

    async def subscribe(self, timeout: float) -> None:
        """Complete the handshake or raise SubscriptionError / SubscriptionTimeout."""
        ...

    async def send_broadcast(self, event: str, payload: dict[str, Any]) -> None: ...

    async def close(self) -> None: ...


class RealtimeClient(Protocol):
    """Process-wide connection; one per application, shared by reference."""

    def channel(self, name: str) -> Channel: ...

    async def remove_channel(self, channel: Channel) -> None: ...

    async def close(self) -> None: ...
