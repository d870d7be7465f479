from __future__ import annotations

from dataclasses import dataclass

from idea_pilot.config import Settings


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Capped exponential backoff: ``min(base * 2**retry, cap)``."""

    base_delay: float = 1.0
    max_delay: float = 30.0
    max_retries: int = 5

    def delay_for(self, retry: int) -> float:
        return min(self.base_delay * (2 ** retry), self.max_delay)

    def delays(self) -> list[float]:
        return [self.delay_for(n) for n in range(self.max_retries)]

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryPolicy:
        return cls(
            base_delay=settings.REALTIME_RETRY_BASE_SECONDS,
            max_delay=settings.REALTIME_RETRY_MAX_SECONDS,
            max_retries=settings.REALTIME_RETRY_MAX_ATTEMPTS,
        )
