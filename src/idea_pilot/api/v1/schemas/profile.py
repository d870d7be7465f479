from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel


class ProfileResponse(BaseModel):
    id: UUID
    full_name: str | None
    avatar_url: str | None
    email: str | None
    display_name: str

    model_config = {"from_attributes": True}
