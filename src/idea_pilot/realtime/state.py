from __future__ import annotations

import logging
from typing import Awaitable, Callable

from idea_pilot.domain.value_objects.enums import HealthState

logger = logging.getLogger(__name__)

HealthListener = Callable[[HealthState, str | None], Awaitable[None]]


class ConnectionHealth:
    """Tri-state realtime health of one chat view.

    Listeners are notified on transitions only. A healthy transition clears
    the warning; while degraded, the first warning is kept.
    """

    def __init__(self) -> None:
        self._state = HealthState.UNKNOWN
        self._warning: str | None = None
        self._listeners: list[HealthListener] = []

    @property
    def state(self) -> HealthState:
        return self._state

    @property
    def warning(self) -> str | None:
        return self._warning

    @property
    def degraded(self) -> bool:
        return self._state == HealthState.DEGRADED

    def add_listener(self, listener: HealthListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def mark_healthy(self) -> None:
        await self._transition(HealthState.HEALTHY, None)

    async def mark_degraded(self, warning: str) -> None:
        await self._transition(HealthState.DEGRADED, warning)

    async def _transition(self, state: HealthState, warning: str | None) -> None:
        if state == self._state:
            return
        logger.info("Realtime health %s -> %s", self._state, state)
        self._state = state
        self._warning = warning
        for listener in list(self._listeners):
            await listener(state, warning)
