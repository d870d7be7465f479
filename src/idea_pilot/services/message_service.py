from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from idea_pilot.application.dto.message import PageDTO
from idea_pilot.application.dto.principal import Principal
from idea_pilot.application.dto.records import private_to_record
from idea_pilot.application.exceptions import ValidationError
from idea_pilot.application.policies.permissions import assert_conversation_access
from idea_pilot.application.uow import UnitOfWork
from idea_pilot.domain.entities.message import PrivateMessage
from idea_pilot.domain.value_objects.enums import ChangeTable

logger = logging.getLogger(__name__)


async def send_private_message(
    conversation_id: uuid.UUID,
    principal: Principal,
    content: str,
    uow: UnitOfWork,
) -> PrivateMessage:
    """Store a private message and queue its change record for realtime delivery."""
    content = content.strip()
    if not content:
        raise ValidationError("Message content must not be empty")

    conversation = await uow.conversations.get_by_id(conversation_id)
    assert_conversation_access(principal, conversation)

    now = datetime.now(timezone.utc)
    msg = PrivateMessage(
        id=uuid.uuid4(),
        conversation_id=conversation_id,
        sender_id=principal.user_id,
        content=content,
        created_at=now,
        is_read=False,
    )
    msg = await uow.messages_w.create(msg)
    await uow.conversations_w.touch_updated_at(conversation_id, msg.created_at)
    await uow.outbox.add(
        "INSERT",
        {"table": ChangeTable.PRIVATE_MESSAGES.value, "record": private_to_record(msg)},
    )
    await uow.commit()

    sender = await uow.profiles.get_by_id(principal.user_id)
    logger.debug("Private message %s stored in %s", msg.id, conversation_id)
    return PrivateMessage(
        id=msg.id,
        conversation_id=msg.conversation_id,
        sender_id=msg.sender_id,
        content=msg.content,
        created_at=msg.created_at,
        is_read=msg.is_read,
        sender=sender,
    )


async def list_private_messages(
    conversation_id: uuid.UUID,
    principal: Principal,
    page: PageDTO,
    uow: UnitOfWork,
) -> list[PrivateMessage]:
    """Newest page first, as stored. Views sort ascending for display."""
    conversation = await uow.conversations.get_by_id(conversation_id)
    assert_conversation_access(principal, conversation)
    return await uow.messages.list_messages(
        conversation_id, limit=page.limit, offset=page.offset,
    )
