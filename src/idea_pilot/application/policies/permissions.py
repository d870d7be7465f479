from __future__ import annotations

from idea_pilot.application.dto.principal import Principal
from idea_pilot.application.exceptions import ForbiddenError, NotFoundError
from idea_pilot.domain.entities.conversation import Conversation


def assert_conversation_access(
    principal: Principal,
    conversation: Conversation | None,
) -> Conversation:
    """Raise if conversation doesn't exist or principal is not one of its two participants."""
    if conversation is None:
        raise NotFoundError("Conversation not found")

    if not conversation.has_participant(principal.user_id):
        raise ForbiddenError("Not a participant of this conversation")

    return conversation
