from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from idea_pilot.application.dto.message import PageDTO
from idea_pilot.application.dto.principal import Principal
from idea_pilot.application.dto.records import community_to_record
from idea_pilot.application.exceptions import ValidationError
from idea_pilot.application.uow import UnitOfWork
from idea_pilot.domain.entities.message import CommunityMessage
from idea_pilot.domain.value_objects.enums import ChangeTable

logger = logging.getLogger(__name__)


async def list_community_messages(page: PageDTO, uow: UnitOfWork) -> list[CommunityMessage]:
    """Newest page first, with author profiles where they exist."""
    messages = await uow.community.list_recent(limit=page.limit, offset=page.offset)
    if not messages:
        return []
    profiles = await uow.profiles.get_many({m.user_id for m in messages})
    return [
        CommunityMessage(
            id=m.id,
            user_id=m.user_id,
            content=m.content,
            created_at=m.created_at,
            updated_at=m.updated_at,
            author=profiles.get(m.user_id),
        )
        for m in messages
    ]


async def send_community_message(
    principal: Principal,
    content: str,
    uow: UnitOfWork,
) -> CommunityMessage:
    content = content.strip()
    if not content:
        raise ValidationError("Message content must not be empty")

    author = await uow.profiles.get_by_id(principal.user_id)
    if author is None:
        logger.warning("User %s has no profile, sending without one", principal.user_id)

    now = datetime.now(timezone.utc)
    msg = CommunityMessage(
        id=uuid.uuid4(),
        user_id=principal.user_id,
        content=content,
        created_at=now,
        updated_at=now,
    )
    msg = await uow.community_w.create(msg)
    await uow.outbox.add(
        "INSERT",
        {"table": ChangeTable.COMMUNITY_MESSAGES.value, "record": community_to_record(msg)},
    )
    await uow.commit()
    return CommunityMessage(
        id=msg.id,
        user_id=msg.user_id,
        content=msg.content,
        created_at=msg.created_at,
        updated_at=msg.updated_at,
        author=author,
    )
