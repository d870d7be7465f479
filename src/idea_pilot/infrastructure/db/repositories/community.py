from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from idea_pilot.domain.entities.message import CommunityMessage
from idea_pilot.infrastructure.db.mappers import message as mapper
from idea_pilot.infrastructure.db.models.community_message import CommunityMessageModel


class CommunityMessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_recent(self, *, limit: int = 50, offset: int = 0) -> list[CommunityMessage]:
        stmt = (
            select(CommunityMessageModel)
            .order_by(CommunityMessageModel.created_at.desc(), CommunityMessageModel.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [mapper.community_to_entity(m) for m in result.scalars().all()]


class CommunityMessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, message: CommunityMessage) -> CommunityMessage:
        model = mapper.community_to_model(message)
        self._session.add(model)
        await self._session.flush()
        return mapper.community_to_entity(model)
