from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from idea_pilot.api.v1.schemas.profile import ProfileResponse


class SendMessageRequest(BaseModel):
    content: str = Field(min_length=1, max_length=4000)


class CommunityMessageResponse(BaseModel):
    id: UUID
    user_id: UUID
    content: str
    created_at: datetime
    updated_at: datetime
    author: ProfileResponse | None = None

    model_config = {"from_attributes": True}


class PrivateMessageResponse(BaseModel):
    id: UUID
    conversation_id: UUID
    sender_id: UUID
    content: str
    created_at: datetime
    is_read: bool
    sender: ProfileResponse | None = None

    model_config = {"from_attributes": True}


class MarkReadResponse(BaseModel):
    updated: int


class UnreadCountResponse(BaseModel):
    count: int
