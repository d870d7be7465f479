from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import and_, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from idea_pilot.application.exceptions import ConflictError
from idea_pilot.domain.entities.conversation import Conversation
from idea_pilot.infrastructure.db.mappers import conversation as mapper
from idea_pilot.infrastructure.db.models.conversation import PAIR_INDEX_NAME, ConversationModel


class ConversationReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, conversation_id: UUID) -> Conversation | None:
        result = await self._session.get(ConversationModel, conversation_id)
        return mapper.model_to_entity(result) if result else None

    async def find_between(self, user_a: UUID, user_b: UUID) -> Conversation | None:
        stmt = (
            select(ConversationModel)
            .where(
                or_(
                    and_(
                        ConversationModel.participant1_id == user_a,
                        ConversationModel.participant2_id == user_b,
                    ),
                    and_(
                        ConversationModel.participant1_id == user_b,
                        ConversationModel.participant2_id == user_a,
                    ),
                )
            )
            .order_by(ConversationModel.created_at.asc())
            .limit(1)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def list_for_user(self, user_id: UUID) -> list[Conversation]:
        stmt = (
            select(ConversationModel)
            .where(
                or_(
                    ConversationModel.participant1_id == user_id,
                    ConversationModel.participant2_id == user_id,
                )
            )
            .order_by(ConversationModel.updated_at.desc(), ConversationModel.id)
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class ConversationWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, conversation: Conversation) -> Conversation:
        model = mapper.entity_to_model(conversation)
        self._session.add(model)
        try:
            await self._session.flush()
        except IntegrityError as exc:
            if PAIR_INDEX_NAME in str(exc.orig):
                raise ConflictError("Conversation already exists") from exc
            raise
        return mapper.model_to_entity(model)

    async def touch_updated_at(self, conversation_id: UUID, ts: datetime) -> None:
        stmt = (
            update(ConversationModel)
            .where(ConversationModel.id == conversation_id)
            .values(updated_at=ts)
        )
        await self._session.execute(stmt)
