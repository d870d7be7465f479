from __future__ import annotations

from typing import Protocol

from idea_pilot.domain.entities.message import CommunityMessage


class CommunityMessageReader(Protocol):
    async def list_recent(self, *, limit: int = 50, offset: int = 0) -> list[CommunityMessage]:
        """Newest first."""
        ...


class CommunityMessageWriter(Protocol):
    async def create(self, message: CommunityMessage) -> CommunityMessage: ...
