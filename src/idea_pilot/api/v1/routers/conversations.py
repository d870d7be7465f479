from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query, Response, status

from idea_pilot.api.deps import CurrentPrincipal, UoWDep
from idea_pilot.api.v1.schemas.conversation import (
    ConversationResponse,
    StartConversationRequest,
    StartConversationResponse,
)
from idea_pilot.api.v1.schemas.message import (
    MarkReadResponse,
    PrivateMessageResponse,
    SendMessageRequest,
    UnreadCountResponse,
)
from idea_pilot.application.dto.message import PageDTO
from idea_pilot.services import conversation_service, message_service, read_state_service

router = APIRouter(prefix="/api/v1/chat/conversations", tags=["conversations"])


@router.post("", response_model=StartConversationResponse)
async def start_conversation(
    body: StartConversationRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    response: Response,
) -> StartConversationResponse:
    conv, created = await conversation_service.get_or_create_conversation(
        principal, body.other_user_id, uow,
    )
    if created:
        response.status_code = status.HTTP_201_CREATED
    return StartConversationResponse(
        conversation=ConversationResponse.model_validate(conv),
        created=created,
    )


@router.get("", response_model=list[ConversationResponse])
async def list_conversations(
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> list[ConversationResponse]:
    convs = await conversation_service.list_user_conversations(principal, uow)
    return [ConversationResponse.model_validate(c) for c in convs]


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(principal: CurrentPrincipal, uow: UoWDep) -> UnreadCountResponse:
    return UnreadCountResponse(count=await read_state_service.unread_count(principal, uow))


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ConversationResponse:
    conv = await conversation_service.get_conversation(conversation_id, principal, uow)
    return ConversationResponse.model_validate(conv)


@router.get("/{conversation_id}/messages", response_model=list[PrivateMessageResponse])
async def list_messages(
    conversation_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
    limit: int = Query(50, ge=1, le=100),
    page: int = Query(0, ge=0),
) -> list[PrivateMessageResponse]:
    msgs = await message_service.list_private_messages(
        conversation_id, principal, PageDTO(limit=limit, page=page), uow,
    )
    return [PrivateMessageResponse.model_validate(m) for m in msgs]


@router.post(
    "/{conversation_id}/messages",
    response_model=PrivateMessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    conversation_id: UUID,
    body: SendMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> PrivateMessageResponse:
    msg = await message_service.send_private_message(
        conversation_id, principal, body.content, uow,
    )
    return PrivateMessageResponse.model_validate(msg)


@router.post("/{conversation_id}/read", response_model=MarkReadResponse)
async def mark_read(
    conversation_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> MarkReadResponse:
    updated = await read_state_service.mark_messages_as_read(conversation_id, principal, uow)
    return MarkReadResponse(updated=updated)
