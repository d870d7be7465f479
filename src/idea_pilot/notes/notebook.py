"""Per-project notes, highlights and bookmarks."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from idea_pilot.notes.models import (
    DEFAULT_HIGHLIGHT_COLOR,
    BookmarkType,
    HighlightTarget,
    NoteHighlight,
    NoteType,
    ProjectBookmark,
    ProjectNote,
    utcnow,
)
from idea_pilot.notes.store import NotesStore

logger = logging.getLogger(__name__)

D = TypeVar("D", bound=BaseModel)


def notes_key(project_id: str) -> str:
    return f"project_notes_{project_id}"


def highlights_key(project_id: str) -> str:
    return f"project_highlights_{project_id}"


def bookmarks_key(project_id: str) -> str:
    return f"project_bookmarks_{project_id}"


class ProjectNotebook:
    def __init__(self, store: NotesStore, project_id: str, project_title: str) -> None:
        self.store = store
        self.project_id = project_id
        self.project_title = project_title
        self.notes: list[ProjectNote] = []
        self.highlights: list[NoteHighlight] = []
        self.bookmarks: list[ProjectBookmark] = []

    @classmethod
    async def load(cls, store: NotesStore, project_id: str, project_title: str = "") -> ProjectNotebook:
        book = cls(store, project_id, project_title)
        book.notes = await book._load(notes_key(project_id), ProjectNote)
        book.highlights = await book._load(highlights_key(project_id), NoteHighlight)
        book.bookmarks = await book._load(bookmarks_key(project_id), ProjectBookmark)
        return book

    async def _load(self, key: str, model: type[D]) -> list[D]:
        raw = await self.store.get(key)
        if raw is None:
            return []
        try:
            return TypeAdapter(list[model]).validate_python(raw)  # type: ignore[valid-type]
        except ValidationError:
            logger.warning("Discarding malformed %s", key)
            return []

    async def _save(self, key: str, items: list[Any]) -> None:
        await self.store.set(key, [item.model_dump(mode="json", by_alias=True) for item in items])

    # -- notes ---------------------------------------------------------

    async def add_note(
        self,
        type: NoteType | str,
        content: str,
        target_id: str | None = None,
        tags: list[str] | None = None,
    ) -> ProjectNote:
        note = ProjectNote(
            project_id=self.project_id,
            project_title=self.project_title,
            type=NoteType(type),
            target_id=target_id,
            content=content,
            tags=list(tags or []),
        )
        self.notes = [*self.notes, note]
        await self._save(notes_key(self.project_id), self.notes)
        return note

    async def update_note(self, note_id: str, **changes: Any) -> ProjectNote | None:
        updated: ProjectNote | None = None
        notes = []
        for note in self.notes:
            if note.id == note_id:
                note = note.model_copy(update={**changes, "updated_at": utcnow()})
                updated = note
            notes.append(note)
        if updated is None:
            return None
        self.notes = notes
        await self._save(notes_key(self.project_id), self.notes)
        return updated

    async def delete_note(self, note_id: str) -> None:
        self.notes = [n for n in self.notes if n.id != note_id]
        await self._save(notes_key(self.project_id), self.notes)

    def notes_for(self, type: str | None = None, target_id: str | None = None) -> list[ProjectNote]:
        return [
            n for n in self.notes
            if (not type or n.type == type) and (not target_id or n.target_id == target_id)
        ]

    # -- highlights ----------------------------------------------------

    async def add_highlight(
        self,
        target_type: HighlightTarget | str,
        target_id: str,
        text: str,
        start_offset: int,
        end_offset: int,
        color: str = DEFAULT_HIGHLIGHT_COLOR,
        note: str | None = None,
    ) -> NoteHighlight:
        highlight = NoteHighlight(
            project_id=self.project_id,
            target_type=HighlightTarget(target_type),
            target_id=target_id,
            text=text,
            start_offset=start_offset,
            end_offset=end_offset,
            color=color,
            note=note,
        )
        self.highlights = [*self.highlights, highlight]
        await self._save(highlights_key(self.project_id), self.highlights)
        return highlight

    async def remove_highlight(self, highlight_id: str) -> None:
        self.highlights = [h for h in self.highlights if h.id != highlight_id]
        await self._save(highlights_key(self.project_id), self.highlights)

    def highlights_for(self, target_type: str, target_id: str) -> list[NoteHighlight]:
        return [
            h for h in self.highlights
            if h.target_type == target_type and h.target_id == target_id
        ]

    # -- bookmarks -----------------------------------------------------

    async def add_bookmark(
        self,
        type: BookmarkType | str,
        target_id: str,
        title: str,
        description: str | None = None,
    ) -> ProjectBookmark:
        bookmark = ProjectBookmark(
            project_id=self.project_id,
            type=BookmarkType(type),
            target_id=target_id,
            title=title,
            description=description,
        )
        self.bookmarks = [*self.bookmarks, bookmark]
        await self._save(bookmarks_key(self.project_id), self.bookmarks)
        return bookmark

    async def remove_bookmark(self, bookmark_id: str) -> None:
        self.bookmarks = [b for b in self.bookmarks if b.id != bookmark_id]
        await self._save(bookmarks_key(self.project_id), self.bookmarks)

    def is_bookmarked(self, type: str, target_id: str) -> bool:
        return any(b.type == type and b.target_id == target_id for b in self.bookmarks)

    # -- export --------------------------------------------------------

    def export_markdown(self, exported_at: datetime | None = None) -> str:
        exported_at = exported_at or utcnow()
        lines = [f"# {self.project_title} - Notes & Annotations", ""]
        lines += [f"**Exported:** {exported_at:%Y-%m-%d}", ""]

        general = self.notes_for(NoteType.GENERAL)
        if general:
            lines += ["## 📝 General Notes", ""]
            for note in general:
                lines += [f"### {note.created_at:%Y-%m-%d}", note.content, ""]
                if note.tags:
                    lines += ["**Tags:** " + ", ".join(f"#{tag}" for tag in note.tags), ""]

        milestone = self.notes_for(NoteType.MILESTONE)
        if milestone:
            lines += ["## 🎯 Milestone Notes", ""]
            for note in milestone:
                lines += [f"### Milestone {note.target_id}", note.content, ""]

        resource = self.notes_for(NoteType.RESOURCE)
        if resource:
            lines += ["## 📚 Resource Notes", ""]
            for note in resource:
                lines += ["### Resource Note", note.content, ""]

        if self.bookmarks:
            lines += ["## 🔖 Bookmarks", ""]
            for bookmark in self.bookmarks:
                lines.append(f"- **{bookmark.title}** ({bookmark.type})")
                if bookmark.description:
                    lines.append(f"  {bookmark.description}")
            lines.append("")

        if self.highlights:
            lines += ["## ✨ Highlights", ""]
            for highlight in self.highlights:
                lines.append(f'- "{highlight.text}"')
                if highlight.note:
                    lines.append(f"  *Note: {highlight.note}*")

        return "\n".join(lines) + "\n"
