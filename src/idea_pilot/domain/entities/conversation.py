from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from idea_pilot.domain.entities.profile import Profile


@dataclass(frozen=True, slots=True)
class Conversation:
    id: UUID
    participant1_id: UUID
    participant2_id: UUID
    created_at: datetime
    updated_at: datetime
    participant1: Profile | None = None
    participant2: Profile | None = None

    def has_participant(self, user_id: UUID) -> bool:
        return user_id in (self.participant1_id, self.participant2_id)

    def other_participant(self, user_id: UUID) -> UUID:
        """Return the id of the participant that is not ``user_id``."""
        if self.participant1_id == user_id:
            return self.participant2_id
        return self.participant1_id
