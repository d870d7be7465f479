"""Per-user notes, highlights, bookmarks, milestones and mentor-chat ids."""
from __future__ import annotations

from urllib.parse import quote

from fastapi import APIRouter, Query, Response, status
from fastapi.responses import PlainTextResponse

from idea_pilot.api.deps import NotesStoreDep
from idea_pilot.api.v1.schemas.notes import (
    CreateBookmarkRequest,
    CreateHighlightRequest,
    CreateNoteRequest,
    MentorSessionRequest,
    MentorSessionResponse,
    MilestonesResponse,
    NotebookResponse,
    UpdateNoteRequest,
)
from idea_pilot.application.exceptions import NotFoundError
from idea_pilot.notes.milestones import MilestoneTracker
from idea_pilot.notes.models import NoteHighlight, ProjectBookmark, ProjectNote
from idea_pilot.notes.notebook import ProjectNotebook
from idea_pilot.notes.sessions import MentorSessions

router = APIRouter(prefix="/api/v1/notes", tags=["notes"])


def content_disposition(filename: str) -> str:
    """Attachment header value that survives any filename."""
    quoted = quote(filename)
    if quoted == filename:
        return f'attachment; filename="{filename}"'
    fallback = "".join(c if c.isascii() and c.isprintable() and c not in '"\\' else "_" for c in filename)
    return f"attachment; filename=\"{fallback}\"; filename*=utf-8''{quoted}"


@router.get("/projects/{project_id}", response_model=NotebookResponse)
async def get_notebook(project_id: str, store: NotesStoreDep) -> NotebookResponse:
    book = await ProjectNotebook.load(store, project_id)
    return NotebookResponse(
        project_id=project_id,
        notes=book.notes,
        highlights=book.highlights,
        bookmarks=book.bookmarks,
    )


@router.post(
    "/projects/{project_id}/notes",
    response_model=ProjectNote,
    status_code=status.HTTP_201_CREATED,
)
async def add_note(project_id: str, body: CreateNoteRequest, store: NotesStoreDep) -> ProjectNote:
    book = await ProjectNotebook.load(store, project_id, body.project_title)
    return await book.add_note(body.type, body.content, target_id=body.target_id, tags=body.tags)


@router.patch(
    "/projects/{project_id}/notes/{note_id}",
    response_model=ProjectNote,
)
async def update_note(
    project_id: str,
    note_id: str,
    body: UpdateNoteRequest,
    store: NotesStoreDep,
) -> ProjectNote:
    book = await ProjectNotebook.load(store, project_id)
    note = await book.update_note(note_id, **body.model_dump(exclude_none=True))
    if note is None:
        raise NotFoundError("Note not found")
    return note


@router.delete("/projects/{project_id}/notes/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(project_id: str, note_id: str, store: NotesStoreDep) -> Response:
    book = await ProjectNotebook.load(store, project_id)
    await book.delete_note(note_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/projects/{project_id}/highlights",
    response_model=NoteHighlight,
    status_code=status.HTTP_201_CREATED,
)
async def add_highlight(
    project_id: str,
    body: CreateHighlightRequest,
    store: NotesStoreDep,
) -> NoteHighlight:
    book = await ProjectNotebook.load(store, project_id)
    return await book.add_highlight(**body.model_dump())


@router.delete(
    "/projects/{project_id}/highlights/{highlight_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def remove_highlight(project_id: str, highlight_id: str, store: NotesStoreDep) -> Response:
    book = await ProjectNotebook.load(store, project_id)
    await book.remove_highlight(highlight_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/projects/{project_id}/bookmarks",
    response_model=ProjectBookmark,
    status_code=status.HTTP_201_CREATED,
)
async def add_bookmark(
    project_id: str,
    body: CreateBookmarkRequest,
    store: NotesStoreDep,
) -> ProjectBookmark:
    book = await ProjectNotebook.load(store, project_id)
    return await book.add_bookmark(**body.model_dump())


@router.delete(
    "/projects/{project_id}/bookmarks/{bookmark_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def remove_bookmark(project_id: str, bookmark_id: str, store: NotesStoreDep) -> Response:
    book = await ProjectNotebook.load(store, project_id)
    await book.remove_bookmark(bookmark_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/projects/{project_id}/export", response_class=PlainTextResponse)
async def export_notes(
    project_id: str,
    store: NotesStoreDep,
    title: str = Query(..., min_length=1),
) -> PlainTextResponse:
    book = await ProjectNotebook.load(store, project_id, title)
    filename = f"{title.replace(' ', '_')}_notes.md"
    return PlainTextResponse(
        book.export_markdown(),
        media_type="text/markdown",
        headers={"Content-Disposition": content_disposition(filename)},
    )


@router.get("/milestones", response_model=MilestonesResponse)
async def get_milestones(
    store: NotesStoreDep,
    title: str = Query(..., min_length=1),
    count: int = Query(..., ge=0, le=200),
) -> MilestonesResponse:
    tracker = MilestoneTracker(store, title)
    return MilestonesResponse(project_title=title, completed=await tracker.completed(range(count)))


@router.put("/milestones/{index}", status_code=status.HTTP_204_NO_CONTENT)
async def complete_milestone(
    index: int,
    store: NotesStoreDep,
    title: str = Query(..., min_length=1),
) -> Response:
    await MilestoneTracker(store, title).mark_completed(index)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/milestones/{index}", status_code=status.HTTP_204_NO_CONTENT)
async def reset_milestone(
    index: int,
    store: NotesStoreDep,
    title: str = Query(..., min_length=1),
) -> Response:
    await MilestoneTracker(store, title).reset(index)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


async def _session_response(sessions: MentorSessions, title: str | None) -> MentorSessionResponse:
    return MentorSessionResponse(
        user_id=await sessions.user_id(),
        project_id=await sessions.project_id(title),
    )


@router.get("/mentor-session", response_model=MentorSessionResponse)
async def get_mentor_session(
    store: NotesStoreDep,
    title: str | None = Query(None),
) -> MentorSessionResponse:
    return await _session_response(MentorSessions(store), title)


@router.put("/mentor-session", response_model=MentorSessionResponse)
async def save_mentor_session(
    body: MentorSessionRequest,
    store: NotesStoreDep,
    title: str | None = Query(None),
) -> MentorSessionResponse:
    sessions = MentorSessions(store)
    if body.user_id:
        await sessions.set_user_id(body.user_id)
    if body.project_id:
        await sessions.set_project_id(title, body.project_id)
    return await _session_response(sessions, title)
