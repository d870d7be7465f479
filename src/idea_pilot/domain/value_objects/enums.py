from __future__ import annotations

from enum import StrEnum


class ScopeKind(StrEnum):
    COMMUNITY = "community"
    CONVERSATION = "conversation"


class ChangeTable(StrEnum):
    COMMUNITY_MESSAGES = "community_messages"
    PRIVATE_MESSAGES = "private_messages"


class HealthState(StrEnum):
    UNKNOWN = "unknown"
    HEALTHY = "healthy"
    DEGRADED = "degraded"
