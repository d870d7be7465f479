from __future__ import annotations

from idea_pilot.notes.store import NotesStore

USER_ID_KEY = "mentor_chat_user_id"
PROJECT_ID_PREFIX = "mentor_chat_project_id_"
DEFAULT_TITLE = "default"


class MentorSessions:
    """Mentor-chat identifiers remembered between runs."""

    def __init__(self, store: NotesStore) -> None:
        self.store = store

    async def user_id(self) -> str | None:
        return await self.store.get(USER_ID_KEY)

    async def set_user_id(self, user_id: str) -> None:
        await self.store.set(USER_ID_KEY, user_id)

    async def project_id(self, project_title: str | None) -> str | None:
        return await self.store.get(PROJECT_ID_PREFIX + (project_title or DEFAULT_TITLE))

    async def set_project_id(self, project_title: str | None, project_id: str) -> None:
        await self.store.set(PROJECT_ID_PREFIX + (project_title or DEFAULT_TITLE), project_id)

    async def project_ids(self) -> dict[str, str]:
        """Project id per project title, for every stored session."""
        sessions = {}
        for key in await self.store.keys(PROJECT_ID_PREFIX):
            value = await self.store.get(key)
            if value:
                sessions[key[len(PROJECT_ID_PREFIX):]] = value
        return sessions

    async def active_sessions(self) -> list[str]:
        return list(await self.project_ids())
