"""Message sources backed by the chat services, one session per call."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from idea_pilot.application.dto.message import PageDTO
from idea_pilot.application.dto.principal import Principal
from idea_pilot.domain.entities.message import CommunityMessage, PrivateMessage
from idea_pilot.domain.entities.profile import Profile
from idea_pilot.domain.value_objects.scope import Scope
from idea_pilot.infrastructure.db.uow import SqlAlchemyUoW
from idea_pilot.services import community_service, message_service, read_state_service

logger = logging.getLogger(__name__)

UoWFactory = Callable[[], Any]


def uow_factory(session_maker: async_sessionmaker[AsyncSession]) -> UoWFactory:
    @asynccontextmanager
    async def _open() -> AsyncIterator[SqlAlchemyUoW]:
        async with session_maker() as session:
            async with SqlAlchemyUoW(session) as uow:
                yield uow

    return _open


class _ServiceSource:
    def __init__(self, principal: Principal, open_uow: UoWFactory) -> None:
        self.principal = principal
        self._open_uow = open_uow

    async def lookup_profile(self, user_id: UUID) -> Profile | None:
        async with self._open_uow() as uow:
            return await uow.profiles.get_by_id(user_id)


class CommunityMessageSource(_ServiceSource):
    def __init__(self, principal: Principal, open_uow: UoWFactory) -> None:
        super().__init__(principal, open_uow)
        self.scope = Scope.community()

    async def fetch_recent(self, limit: int) -> list[CommunityMessage]:
        async with self._open_uow() as uow:
            return await community_service.list_community_messages(PageDTO(limit=limit), uow)

    async def send(self, content: str) -> CommunityMessage:
        async with self._open_uow() as uow:
            return await community_service.send_community_message(self.principal, content, uow)

    async def acknowledge(self, messages: list[Any]) -> None:
        return None


class PrivateMessageSource(_ServiceSource):
    """A conversation seen by one participant; incoming messages get marked read."""

    def __init__(self, principal: Principal, conversation_id: UUID, open_uow: UoWFactory) -> None:
        super().__init__(principal, open_uow)
        self.scope = Scope.conversation(conversation_id)
        self.conversation_id = conversation_id

    async def fetch_recent(self, limit: int) -> list[PrivateMessage]:
        async with self._open_uow() as uow:
            return await message_service.list_private_messages(
                self.conversation_id, self.principal, PageDTO(limit=limit), uow,
            )

    async def send(self, content: str) -> PrivateMessage:
        async with self._open_uow() as uow:
            return await message_service.send_private_message(
                self.conversation_id, self.principal, content, uow,
            )

    async def acknowledge(self, messages: list[Any]) -> None:
        if not any(m.sender_id != self.principal.user_id and not m.is_read for m in messages):
            return
        async with self._open_uow() as uow:
            await read_state_service.mark_messages_as_read(
                self.conversation_id, self.principal, uow,
            )
