from __future__ import annotations

from typing import Protocol
from uuid import UUID

from idea_pilot.domain.entities.message import PrivateMessage


class PrivateMessageReader(Protocol):
    async def list_messages(
        self,
        conversation_id: UUID,
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> list[PrivateMessage]:
        """Newest first, with sender profiles."""
        ...

    async def count_unread_for(self, user_id: UUID) -> int:
        """Unread messages sent by others in conversations ``user_id`` takes part in."""
        ...


class PrivateMessageWriter(Protocol):
    async def create(self, message: PrivateMessage) -> PrivateMessage: ...

    async def mark_read(self, conversation_id: UUID, sender_id: UUID) -> int:
        """Flag unread messages of ``sender_id`` in the conversation as read. Return count."""
        ...
