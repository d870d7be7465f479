"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

import pytest

from idea_pilot.application.dto.principal import Principal
from idea_pilot.application.exceptions import ConflictError
from idea_pilot.application.repositories.outbox import OutboxRecord
from idea_pilot.domain.entities.conversation import Conversation
from idea_pilot.domain.entities.message import CommunityMessage, PrivateMessage
from idea_pilot.domain.entities.profile import Profile
from idea_pilot.realtime.channel import (
    BroadcastHandler,
    ChannelStatus,
    InsertHandler,
    StatusHandler,
)
from idea_pilot.realtime.exceptions import SubscriptionError, SubscriptionTimeout

ALICE_ID = UUID("00000000-0000-4000-8000-00000000a11c")
BOB_ID = UUID("00000000-0000-4000-8000-000000000b0b")
CAROL_ID = UUID("00000000-0000-4000-8000-0000000ca201")

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def alice() -> Principal:
    return Principal(user_id=ALICE_ID, email="alice@example.com")


@pytest.fixture
def bob() -> Principal:
    return Principal(user_id=BOB_ID, email="bob@example.com")


def make_profile(user_id: UUID, name: str | None = None) -> Profile:
    return Profile(id=user_id, full_name=name, avatar_url=None, email=f"{user_id.hex[:6]}@example.com")


def make_conversation(
    participant1: UUID = ALICE_ID,
    participant2: UUID = BOB_ID,
    *,
    conversation_id: UUID | None = None,
    updated_at: datetime = T0,
) -> Conversation:
    return Conversation(
        id=conversation_id or uuid.uuid4(),
        participant1_id=participant1,
        participant2_id=participant2,
        created_at=T0,
        updated_at=updated_at,
    )


def make_community_message(
    *,
    user_id: UUID = ALICE_ID,
    content: str = "hello",
    seconds: float = 0,
    message_id: UUID | None = None,
) -> CommunityMessage:
    ts = T0 + timedelta(seconds=seconds)
    return CommunityMessage(
        id=message_id or uuid.uuid4(),
        user_id=user_id,
        content=content,
        created_at=ts,
        updated_at=ts,
    )


def make_private_message(
    conversation_id: UUID,
    *,
    sender_id: UUID = ALICE_ID,
    content: str = "hello",
    seconds: float = 0,
    is_read: bool = False,
) -> PrivateMessage:
    return PrivateMessage(
        id=uuid.uuid4(),
        conversation_id=conversation_id,
        sender_id=sender_id,
        content=content,
        created_at=T0 + timedelta(seconds=seconds),
        is_read=is_read,
    )


# -- repositories ------------------------------------------------------------


@dataclass
class FakeProfileReader:
    _profiles: dict[UUID, Profile] = field(default_factory=dict)
    fail: bool = False

    def add(self, *profiles: Profile) -> None:
        for p in profiles:
            self._profiles[p.id] = p

    async def get_by_id(self, user_id: UUID) -> Profile | None:
        if self.fail:
            raise RuntimeError("profile lookup failed")
        return self._profiles.get(user_id)

    async def get_many(self, user_ids: Any) -> dict[UUID, Profile]:
        return {uid: self._profiles[uid] for uid in set(user_ids) if uid in self._profiles}

    async def list_all(self) -> list[Profile]:
        return sorted(self._profiles.values(), key=lambda p: p.full_name or "")


@dataclass
class FakeCommunityReader:
    _messages: list[CommunityMessage] = field(default_factory=list)

    async def list_recent(self, *, limit: int = 50, offset: int = 0) -> list[CommunityMessage]:
        newest = sorted(self._messages, key=lambda m: m.created_at, reverse=True)
        return newest[offset:offset + limit]


@dataclass
class FakeCommunityWriter:
    _reader: FakeCommunityReader

    async def create(self, message: CommunityMessage) -> CommunityMessage:
        self._reader._messages.append(message)
        return message


@dataclass
class FakeConversationReader:
    _store: dict[UUID, Conversation] = field(default_factory=dict)

    def add(self, *conversations: Conversation) -> None:
        for c in conversations:
            self._store[c.id] = c

    async def get_by_id(self, conversation_id: UUID) -> Conversation | None:
        return self._store.get(conversation_id)

    async def find_between(self, user_a: UUID, user_b: UUID) -> Conversation | None:
        for c in self._store.values():
            if {c.participant1_id, c.participant2_id} == {user_a, user_b}:
                return c
        return None

    async def list_for_user(self, user_id: UUID) -> list[Conversation]:
        mine = [c for c in self._store.values() if c.has_participant(user_id)]
        return sorted(mine, key=lambda c: c.updated_at, reverse=True)


@dataclass
class FakeConversationWriter:
    _reader: FakeConversationReader
    race_winner: Conversation | None = None
    touched: list[tuple[UUID, datetime]] = field(default_factory=list)

    async def create(self, conversation: Conversation) -> Conversation:
        if self.race_winner is not None:
            # a concurrent request committed the same pair first
            self._reader.add(self.race_winner)
            raise ConflictError("Conversation already exists")
        for c in self._reader._store.values():
            if {c.participant1_id, c.participant2_id} == {
                conversation.participant1_id, conversation.participant2_id,
            }:
                raise ConflictError("Conversation already exists")
        self._reader.add(conversation)
        return conversation

    async def touch_updated_at(self, conversation_id: UUID, ts: datetime) -> None:
        self.touched.append((conversation_id, ts))
        conv = self._reader._store.get(conversation_id)
        if conv is not None:
            self._reader._store[conversation_id] = replace(conv, updated_at=ts)


@dataclass
class FakePrivateMessageReader:
    _messages: list[PrivateMessage] = field(default_factory=list)
    _conversations: FakeConversationReader | None = None

    async def list_messages(
        self, conversation_id: UUID, *, limit: int = 50, offset: int = 0,
    ) -> list[PrivateMessage]:
        mine = [m for m in self._messages if m.conversation_id == conversation_id]
        newest = sorted(mine, key=lambda m: m.created_at, reverse=True)
        return newest[offset:offset + limit]

    async def count_unread_for(self, user_id: UUID) -> int:
        assert self._conversations is not None
        own = {c.id for c in await self._conversations.list_for_user(user_id)}
        return sum(
            1 for m in self._messages
            if m.conversation_id in own and m.sender_id != user_id and not m.is_read
        )


@dataclass
class FakePrivateMessageWriter:
    _reader: FakePrivateMessageReader

    async def create(self, message: PrivateMessage) -> PrivateMessage:
        self._reader._messages.append(message)
        return message

    async def mark_read(self, conversation_id: UUID, sender_id: UUID) -> int:
        updated = 0
        for i, m in enumerate(self._reader._messages):
            if m.conversation_id == conversation_id and m.sender_id == sender_id and not m.is_read:
                self._reader._messages[i] = replace(m, is_read=True)
                updated += 1
        return updated


@dataclass
class FakeOutboxWriter:
    _records: list[dict[str, Any]] = field(default_factory=list)

    async def add(self, event_type: str, payload: dict[str, Any]) -> None:
        self._records.append({"event_type": event_type, "payload": payload})

    async def fetch_pending(self, batch_size: int) -> list[OutboxRecord]:
        return [
            OutboxRecord(id=i, event_type=r["event_type"], payload=r["payload"], attempts=0)
            for i, r in enumerate(self._records[:batch_size], start=1)
        ]

    async def mark_sent(self, ids: list[int]) -> None:
        pass

    async def mark_failed(self, record_id: int, next_retry_at: datetime) -> None:
        pass


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""
    profiles: FakeProfileReader = field(default_factory=FakeProfileReader)
    community: FakeCommunityReader = field(default_factory=FakeCommunityReader)
    community_w: FakeCommunityWriter | None = None
    conversations: FakeConversationReader = field(default_factory=FakeConversationReader)
    conversations_w: FakeConversationWriter | None = None
    messages: FakePrivateMessageReader = field(default_factory=FakePrivateMessageReader)
    messages_w: FakePrivateMessageWriter | None = None
    outbox: FakeOutboxWriter = field(default_factory=FakeOutboxWriter)
    _committed: bool = False
    _rolled_back: bool = False

    def __post_init__(self) -> None:
        if self.community_w is None:
            self.community_w = FakeCommunityWriter(self.community)
        if self.conversations_w is None:
            self.conversations_w = FakeConversationWriter(self.conversations)
        if self.messages_w is None:
            self.messages_w = FakePrivateMessageWriter(self.messages)
        self.messages._conversations = self.conversations

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self._committed = True

    async def rollback(self) -> None:
        self._rolled_back = True

    async def __aenter__(self) -> FakeUoW:
        return self

    async def __aexit__(self, *exc: object) -> None:
        return None


# -- realtime ----------------------------------------------------------------


@dataclass
class FakeChannel:
    name: str
    client: FakeRealtimeClient
    inserts: list[tuple[str, UUID | None, InsertHandler]] = field(default_factory=list)
    broadcasts: dict[str, list[BroadcastHandler]] = field(default_factory=dict)
    statuses: list[StatusHandler] = field(default_factory=list)
    subscribed: bool = False
    closed: bool = False

    def on_insert(self, table: str, handler: InsertHandler, *, conversation_id: UUID | None = None) -> None:
        self.inserts.append((table, conversation_id, handler))

    def on_broadcast(self, event: str, handler: BroadcastHandler) -> None:
        self.broadcasts.setdefault(event, []).append(handler)

    def on_status(self, handler: StatusHandler) -> None:
        self.statuses.append(handler)

    async def subscribe(self, timeout: float) -> None:
        self.client.subscribe_calls += 1
        errors = self.client.probe_errors if self.name.startswith("status_check_") else self.client.subscribe_errors
        if errors:
            error = errors.pop(0)
            status = ChannelStatus.TIMED_OUT if isinstance(error, SubscriptionTimeout) else ChannelStatus.CHANNEL_ERROR
            await self.emit_status(status, error)
            raise error
        if self.client.hang_subscribe:
            await asyncio.sleep(timeout)
            raise SubscriptionTimeout("handshake timed out")
        self.subscribed = True
        await self.emit_status(ChannelStatus.SUBSCRIBED, None)

    async def send_broadcast(self, event: str, payload: dict[str, Any]) -> None:
        self.client.broadcasts_sent.append((self.name, event))
        if self.client.channel_error_on_broadcast:
            await self.emit_status(ChannelStatus.CHANNEL_ERROR, SubscriptionError("socket closed"))
            return
        if not self.client.echo_broadcasts:
            return
        for handler in list(self.broadcasts.get(event, [])):
            await handler(event, payload)

    async def close(self) -> None:
        self.closed = True

    async def emit_status(self, status: ChannelStatus, error: Exception | None) -> None:
        for handler in list(self.statuses):
            await handler(status, error)


@dataclass
class FakeRealtimeClient:
    """In-memory transport; ``emit_insert`` plays the role of the change feed."""
    subscribe_errors: list[Exception] = field(default_factory=list)
    probe_errors: list[Exception] = field(default_factory=list)
    hang_subscribe: bool = False
    echo_broadcasts: bool = True
    channel_error_on_broadcast: bool = False
    channels: dict[str, FakeChannel] = field(default_factory=dict)
    created: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    broadcasts_sent: list[tuple[str, str]] = field(default_factory=list)
    subscribe_calls: int = 0

    def channel(self, name: str) -> FakeChannel:
        ch = FakeChannel(name=name, client=self)
        self.channels[name] = ch
        self.created.append(name)
        return ch

    async def remove_channel(self, channel: FakeChannel) -> None:
        self.channels.pop(channel.name, None)
        self.removed.append(channel.name)
        await channel.close()

    async def close(self) -> None:
        for ch in list(self.channels.values()):
            await self.remove_channel(ch)

    async def emit_insert(self, table: str, record: dict[str, Any]) -> None:
        for ch in list(self.channels.values()):
            if not ch.subscribed or ch.closed:
                continue
            for ch_table, conversation_id, handler in list(ch.inserts):
                if ch_table != table:
                    continue
                if conversation_id is not None and str(conversation_id) != str(record.get("conversation_id")):
                    continue
                await handler(record)


async def wait_until(predicate: Any, timeout: float = 2.0) -> None:
    """Poll ``predicate`` until it is truthy, yielding to the event loop."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)
