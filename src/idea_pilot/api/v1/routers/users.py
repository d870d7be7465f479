from __future__ import annotations

from fastapi import APIRouter

from idea_pilot.api.deps import CurrentPrincipal, UoWDep
from idea_pilot.api.v1.schemas.profile import ProfileResponse
from idea_pilot.services import profile_service

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("", response_model=list[ProfileResponse])
async def list_users(_principal: CurrentPrincipal, uow: UoWDep) -> list[ProfileResponse]:
    users = await profile_service.list_users(uow)
    return [ProfileResponse.model_validate(u) for u in users]
