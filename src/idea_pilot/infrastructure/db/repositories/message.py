from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from idea_pilot.domain.entities.message import PrivateMessage
from idea_pilot.infrastructure.db.mappers import message as mapper
from idea_pilot.infrastructure.db.models.conversation import ConversationModel
from idea_pilot.infrastructure.db.models.private_message import PrivateMessageModel


class PrivateMessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_messages(
        self,
        conversation_id: UUID,
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> list[PrivateMessage]:
        stmt = (
            select(PrivateMessageModel)
            .where(PrivateMessageModel.conversation_id == conversation_id)
            .order_by(PrivateMessageModel.created_at.desc(), PrivateMessageModel.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [mapper.private_to_entity(m) for m in result.scalars().all()]

    async def count_unread_for(self, user_id: UUID) -> int:
        own_conversations = select(ConversationModel.id).where(
            or_(
                ConversationModel.participant1_id == user_id,
                ConversationModel.participant2_id == user_id,
            )
        )
        stmt = select(func.count(PrivateMessageModel.id)).where(
            PrivateMessageModel.conversation_id.in_(own_conversations),
            PrivateMessageModel.sender_id != user_id,
            PrivateMessageModel.is_read.is_(False),
        )
        result = await self._session.execute(stmt)
        return int(result.scalar_one())


class PrivateMessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, message: PrivateMessage) -> PrivateMessage:
        model = mapper.private_to_model(message)
        self._session.add(model)
        await self._session.flush()
        return mapper.private_to_entity(model)

    async def mark_read(self, conversation_id: UUID, sender_id: UUID) -> int:
        stmt = (
            update(PrivateMessageModel)
            .where(
                PrivateMessageModel.conversation_id == conversation_id,
                PrivateMessageModel.sender_id == sender_id,
                PrivateMessageModel.is_read.is_(False),
            )
            .values(is_read=True)
        )
        result = await self._session.execute(stmt)
        return result.rowcount or 0
