"""Documents of the local notes store, saved with camelCase keys."""
from __future__ import annotations

import secrets
import string
import time
from datetime import datetime, timezone
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_HIGHLIGHT_COLOR = "#fbbf24"

_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_id(kind: str) -> str:
    """``<kind>_<epoch millis>_<9 random chars>``."""
    millis = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{kind}_{millis}_{suffix}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NoteType(StrEnum):
    GENERAL = "general"
    MILESTONE = "milestone"
    RESOURCE = "resource"
    CODE = "code"


class HighlightTarget(StrEnum):
    MILESTONE = "milestone"
    RESOURCE = "resource"
    DESCRIPTION = "description"


class BookmarkType(StrEnum):
    MILESTONE = "milestone"
    RESOURCE = "resource"
    TOOL = "tool"
    CODE = "code"


class _Document(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProjectNote(_Document):
    id: str = Field(default_factory=lambda: new_id("note"))
    project_id: str
    project_title: str
    type: NoteType
    target_id: str | None = None
    content: str
    is_highlighted: bool = False
    is_bookmarked: bool = False
    tags: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class NoteHighlight(_Document):
    id: str = Field(default_factory=lambda: new_id("highlight"))
    project_id: str
    target_type: HighlightTarget
    target_id: str
    text: str
    start_offset: int
    end_offset: int
    color: str = DEFAULT_HIGHLIGHT_COLOR
    note: str | None = None
    created_at: datetime = Field(default_factory=utcnow)


class ProjectBookmark(_Document):
    id: str = Field(default_factory=lambda: new_id("bookmark"))
    project_id: str
    type: BookmarkType
    target_id: str
    title: str
    description: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
