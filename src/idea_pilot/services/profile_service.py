from __future__ import annotations

from idea_pilot.application.uow import UnitOfWork
from idea_pilot.domain.entities.profile import Profile


async def list_users(uow: UnitOfWork) -> list[Profile]:
    return await uow.profiles.list_all()
