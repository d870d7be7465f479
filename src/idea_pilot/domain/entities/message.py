from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from idea_pilot.domain.entities.profile import Profile


@dataclass(frozen=True, slots=True)
class CommunityMessage:
    id: UUID
    user_id: UUID
    content: str
    created_at: datetime
    updated_at: datetime
    author: Profile | None = None


@dataclass(frozen=True, slots=True)
class PrivateMessage:
    id: UUID
    conversation_id: UUID
    sender_id: UUID
    content: str
    created_at: datetime
    is_read: bool = False
    sender: Profile | None = None
