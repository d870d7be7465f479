from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Profile:
    id: UUID
    full_name: str | None
    avatar_url: str | None
    email: str | None

    @property
    def display_name(self) -> str:
        return self.full_name or self.email or "Unknown User"
