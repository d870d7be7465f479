from __future__ import annotations

from fastapi import APIRouter, Query, status

from idea_pilot.api.deps import CurrentPrincipal, UoWDep
from idea_pilot.api.v1.schemas.message import CommunityMessageResponse, SendMessageRequest
from idea_pilot.application.dto.message import PageDTO
from idea_pilot.services import community_service

router = APIRouter(prefix="/api/v1/community/messages", tags=["community"])


@router.get("", response_model=list[CommunityMessageResponse])
async def list_messages(
    _principal: CurrentPrincipal,
    uow: UoWDep,
    limit: int = Query(50, ge=1, le=100),
    page: int = Query(0, ge=0),
) -> list[CommunityMessageResponse]:
    msgs = await community_service.list_community_messages(PageDTO(limit=limit, page=page), uow)
    return [CommunityMessageResponse.model_validate(m) for m in msgs]


@router.post("", response_model=CommunityMessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    body: SendMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> CommunityMessageResponse:
    msg = await community_service.send_community_message(principal, body.content, uow)
    return CommunityMessageResponse.model_validate(msg)
