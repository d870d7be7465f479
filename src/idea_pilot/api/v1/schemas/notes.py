from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from idea_pilot.notes.models import (
    DEFAULT_HIGHLIGHT_COLOR,
    BookmarkType,
    HighlightTarget,
    NoteHighlight,
    NoteType,
    ProjectBookmark,
    ProjectNote,
)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NotebookResponse(_CamelModel):
    project_id: str
    notes: list[ProjectNote]
    highlights: list[NoteHighlight]
    bookmarks: list[ProjectBookmark]


class CreateNoteRequest(_CamelModel):
    project_title: str
    type: NoteType
    content: str = Field(min_length=1)
    target_id: str | None = None
    tags: list[str] = Field(default_factory=list)


class UpdateNoteRequest(_CamelModel):
    content: str | None = None
    tags: list[str] | None = None
    is_highlighted: bool | None = None
    is_bookmarked: bool | None = None


class CreateHighlightRequest(_CamelModel):
    target_type: HighlightTarget
    target_id: str
    text: str = Field(min_length=1)
    start_offset: int = Field(ge=0)
    end_offset: int = Field(ge=0)
    color: str = DEFAULT_HIGHLIGHT_COLOR
    note: str | None = None


class CreateBookmarkRequest(_CamelModel):
    type: BookmarkType
    target_id: str
    title: str
    description: str | None = None


class MilestonesResponse(_CamelModel):
    project_title: str
    completed: list[int]


class MentorSessionResponse(_CamelModel):
    user_id: str | None
    project_id: str | None


class MentorSessionRequest(_CamelModel):
    user_id: str | None = None
    project_id: str | None = None
