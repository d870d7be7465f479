from __future__ import annotations

from typing import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from idea_pilot.domain.entities.profile import Profile
from idea_pilot.infrastructure.db.mappers import profile as mapper
from idea_pilot.infrastructure.db.models.profile import ProfileModel


class ProfileReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, user_id: UUID) -> Profile | None:
        result = await self._session.get(ProfileModel, user_id)
        return mapper.model_to_entity(result) if result else None

    async def get_many(self, user_ids: Iterable[UUID]) -> dict[UUID, Profile]:
        ids = list(set(user_ids))
        if not ids:
            return {}
        stmt = select(ProfileModel).where(ProfileModel.id.in_(ids))
        result = await self._session.execute(stmt)
        return {m.id: mapper.model_to_entity(m) for m in result.scalars().all()}

    async def list_all(self) -> list[Profile]:
        stmt = select(ProfileModel).order_by(ProfileModel.full_name.asc().nullslast())
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]
