from __future__ import annotations

from datetime import datetime
from itertools import chain
from operator import attrgetter
from typing import Any, Iterable, Protocol, TypeVar
from uuid import UUID


class TimelineItem(Protocol):
    @property
    def id(self) -> UUID: ...

    @property
    def created_at(self) -> datetime: ...


M = TypeVar("M", bound=TimelineItem)


def merge_messages(current: Iterable[M], incoming: Iterable[M]) -> list[M]:
    """Union of both inputs by ``id``, ascending by ``created_at``.

    The first occurrence of an id wins. The sort is stable, so messages with
    equal timestamps keep their arrival order and merging is idempotent.
    """
    seen: set[Any] = set()
    merged: list[M] = []
    for message in chain(current, incoming):
        if message.id in seen:
            continue
        seen.add(message.id)
        merged.append(message)
    merged.sort(key=attrgetter("created_at"))
    return merged


def newer_than(messages: Iterable[M], latest: datetime | None) -> list[M]:
    if latest is None:
        return list(messages)
    return [m for m in messages if m.created_at > latest]
