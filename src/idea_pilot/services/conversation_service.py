from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from idea_pilot.application.dto.principal import Principal
from idea_pilot.application.exceptions import ConflictError, NotFoundError, ValidationError
from idea_pilot.application.policies.permissions import assert_conversation_access
from idea_pilot.application.uow import UnitOfWork
from idea_pilot.domain.entities.conversation import Conversation

logger = logging.getLogger(__name__)


async def get_or_create_conversation(
    principal: Principal,
    other_user_id: uuid.UUID,
    uow: UnitOfWork,
) -> tuple[Conversation, bool]:
    """Return the conversation between the caller and ``other_user_id``, creating it if needed.

    Lookup matches either participant order. A new conversation always puts the
    caller in ``participant1``. When a concurrent request inserted the same pair
    first, the unique index rejects our insert and the winner's row is returned.

    Returns (conversation, created).
    """
    if other_user_id == principal.user_id:
        raise ValidationError("Cannot start a conversation with yourself")

    existing = await uow.conversations.find_between(principal.user_id, other_user_id)
    if existing is not None:
        return existing, False

    if await uow.profiles.get_by_id(other_user_id) is None:
        raise NotFoundError("User not found")

    now = datetime.now(timezone.utc)
    conversation = Conversation(
        id=uuid.uuid4(),
        participant1_id=principal.user_id,
        participant2_id=other_user_id,
        created_at=now,
        updated_at=now,
    )
    try:
        conversation = await uow.conversations_w.create(conversation)
    except ConflictError:
        await uow.rollback()
        existing = await uow.conversations.find_between(principal.user_id, other_user_id)
        if existing is None:
            raise
        logger.info(
            "Conversation between %s and %s created concurrently, using %s",
            principal.user_id, other_user_id, existing.id,
        )
        return existing, False

    await uow.commit()
    logger.info("Created conversation %s", conversation.id)
    return conversation, True


async def list_user_conversations(
    principal: Principal,
    uow: UnitOfWork,
) -> list[Conversation]:
    return await uow.conversations.list_for_user(principal.user_id)


async def get_conversation(
    conversation_id: uuid.UUID,
    principal: Principal,
    uow: UnitOfWork,
) -> Conversation:
    conversation = await uow.conversations.get_by_id(conversation_id)
    return assert_conversation_access(principal, conversation)
