from __future__ import annotations

import logging
import uuid

from idea_pilot.application.dto.principal import Principal
from idea_pilot.application.policies.permissions import assert_conversation_access
from idea_pilot.application.uow import UnitOfWork

logger = logging.getLogger(__name__)


async def mark_messages_as_read(
    conversation_id: uuid.UUID,
    principal: Principal,
    uow: UnitOfWork,
) -> int:
    """Mark the other participant's unread messages as read.

    The caller's own messages keep their flag. Returns the number of rows changed.
    """
    conversation = await uow.conversations.get_by_id(conversation_id)
    conversation = assert_conversation_access(principal, conversation)
    other_id = conversation.other_participant(principal.user_id)
    updated = await uow.messages_w.mark_read(conversation_id, other_id)
    await uow.commit()
    if updated:
        logger.debug("Marked %d messages read in %s", updated, conversation_id)
    return updated


async def unread_count(principal: Principal, uow: UnitOfWork) -> int:
    return await uow.messages.count_unread_for(principal.user_id)
