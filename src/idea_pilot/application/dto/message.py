from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class PageDTO:
    limit: int = 50
    page: int = 0

    @property
    def offset(self) -> int:
        return self.page * self.limit
