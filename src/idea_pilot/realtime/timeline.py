from __future__ import annotations

from datetime import datetime
from typing import Generic, Iterable
from uuid import UUID

from idea_pilot.realtime.merge import M, merge_messages


class MessageTimeline(Generic[M]):
    """Ordered, duplicate-free message list owned by one chat view."""

    def __init__(self, messages: Iterable[M] = ()) -> None:
        self._messages: list[M] = merge_messages([], messages)
        self._ids: set[UUID] = {m.id for m in self._messages}

    @property
    def messages(self) -> list[M]:
        return list(self._messages)

    @property
    def latest_at(self) -> datetime | None:
        return self._messages[-1].created_at if self._messages else None

    def __len__(self) -> int:
        return len(self._messages)

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._ids

    def merge(self, incoming: Iterable[M]) -> list[M]:
        """Merge ``incoming`` and return only the messages that were new."""
        fresh: list[M] = []
        for message in incoming:
            if message.id in self._ids:
                continue
            self._ids.add(message.id)
            fresh.append(message)
        if fresh:
            self._messages = merge_messages(self._messages, fresh)
        return merge_messages([], fresh)
