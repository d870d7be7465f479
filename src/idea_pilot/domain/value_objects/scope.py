from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from idea_pilot.domain.value_objects.enums import ScopeKind


@dataclass(frozen=True, slots=True)
class Scope:
    """Audience of a chat stream: the community feed or one conversation."""

    kind: ScopeKind
    conversation_id: UUID | None = None

    @classmethod
    def community(cls) -> Scope:
        return cls(kind=ScopeKind.COMMUNITY)

    @classmethod
    def conversation(cls, conversation_id: UUID) -> Scope:
        return cls(kind=ScopeKind.CONVERSATION, conversation_id=conversation_id)

    @property
    def key(self) -> str:
        if self.kind == ScopeKind.COMMUNITY:
            return ScopeKind.COMMUNITY.value
        return f"{ScopeKind.CONVERSATION.value}:{self.conversation_id}"
