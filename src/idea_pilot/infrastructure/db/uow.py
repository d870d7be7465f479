from __future__ import annotations

from types import TracebackType
from typing import Self

from sqlalchemy.ext.asyncio import AsyncSession

from idea_pilot.infrastructure.db.repositories.community import (
    CommunityMessageReaderRepo,
    CommunityMessageWriterRepo,
)
from idea_pilot.infrastructure.db.repositories.conversation import (
    ConversationReaderRepo,
    ConversationWriterRepo,
)
from idea_pilot.infrastructure.db.repositories.message import (
    PrivateMessageReaderRepo,
    PrivateMessageWriterRepo,
)
from idea_pilot.infrastructure.db.repositories.outbox import OutboxWriterRepo
from idea_pilot.infrastructure.db.repositories.profile import ProfileReaderRepo


class SqlAlchemyUoW:
    """Unit of work over one AsyncSession shared by every repository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self.profiles = ProfileReaderRepo(session)
        self.community = CommunityMessageReaderRepo(session)
        self.community_w = CommunityMessageWriterRepo(session)
        self.conversations = ConversationReaderRepo(session)
        self.conversations_w = ConversationWriterRepo(session)
        self.messages = PrivateMessageReaderRepo(session)
        self.messages_w = PrivateMessageWriterRepo(session)
        self.outbox = OutboxWriterRepo(session)

    async def flush(self) -> None:
        await self._session.flush()

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            await self.rollback()
