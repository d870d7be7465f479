from __future__ import annotations

from typing import Iterable, Protocol
from uuid import UUID

from idea_pilot.domain.entities.profile import Profile


class ProfileReader(Protocol):
    async def get_by_id(self, user_id: UUID) -> Profile | None: ...

    async def get_many(self, user_ids: Iterable[UUID]) -> dict[UUID, Profile]:
        """Return the profiles that exist, keyed by id. Missing ids are absent."""
        ...

    async def list_all(self) -> list[Profile]: ...
