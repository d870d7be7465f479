from __future__ import annotations

from typing import Iterable

from idea_pilot.notes.store import NotesStore

COMPLETED = "completed"


def milestone_key(project_title: str, index: int) -> str:
    return f"milestone_{project_title}_{index}"


class MilestoneTracker:
    """Completion flags of one project's milestones, keyed by project title."""

    def __init__(self, store: NotesStore, project_title: str) -> None:
        self.store = store
        self.project_title = project_title

    async def is_completed(self, index: int) -> bool:
        return await self.store.get(milestone_key(self.project_title, index)) == COMPLETED

    async def mark_completed(self, index: int) -> None:
        await self.store.set(milestone_key(self.project_title, index), COMPLETED)

    async def reset(self, index: int) -> None:
        await self.store.delete(milestone_key(self.project_title, index))

    async def completed(self, indexes: Iterable[int]) -> list[int]:
        return [i for i in indexes if await self.is_completed(i)]
