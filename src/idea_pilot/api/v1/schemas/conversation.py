from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from idea_pilot.api.v1.schemas.profile import ProfileResponse


class StartConversationRequest(BaseModel):
    other_user_id: UUID


class ConversationResponse(BaseModel):
    id: UUID
    participant1_id: UUID
    participant2_id: UUID
    participant1: ProfileResponse | None = None
    participant2: ProfileResponse | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class StartConversationResponse(BaseModel):
    conversation: ConversationResponse
    created: bool
