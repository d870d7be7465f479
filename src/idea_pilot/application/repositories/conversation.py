from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from idea_pilot.domain.entities.conversation import Conversation


class ConversationReader(Protocol):
    async def get_by_id(self, conversation_id: UUID) -> Conversation | None: ...

    async def find_between(self, user_a: UUID, user_b: UUID) -> Conversation | None:
        """Find the conversation of two users regardless of participant order."""
        ...

    async def list_for_user(self, user_id: UUID) -> list[Conversation]:
        """Conversations with both participant profiles, newest ``updated_at`` first."""
        ...


class ConversationWriter(Protocol):
    async def create(self, conversation: Conversation) -> Conversation:
        """Insert. Raise ConflictError if the participant pair already has a conversation."""
        ...

    async def touch_updated_at(self, conversation_id: UUID, ts: datetime) -> None: ...
