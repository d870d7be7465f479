"""Plain-dict row records as they travel on the change feed."""
from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from idea_pilot.domain.entities.message import CommunityMessage, PrivateMessage
from idea_pilot.domain.entities.profile import Profile


def community_to_record(message: CommunityMessage) -> dict[str, Any]:
    return {
        "id": str(message.id),
        "user_id": str(message.user_id),
        "content": message.content,
        "created_at": message.created_at.isoformat(),
        "updated_at": message.updated_at.isoformat(),
    }


def private_to_record(message: PrivateMessage) -> dict[str, Any]:
    return {
        "id": str(message.id),
        "conversation_id": str(message.conversation_id),
        "sender_id": str(message.sender_id),
        "content": message.content,
        "created_at": message.created_at.isoformat(),
        "is_read": message.is_read,
    }


def _ts(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def record_to_community(
    record: dict[str, Any], author: Profile | None = None,
) -> CommunityMessage:
    created_at = _ts(record["created_at"])
    return CommunityMessage(
        id=UUID(str(record["id"])),
        user_id=UUID(str(record["user_id"])),
        content=record.get("content") or "",
        created_at=created_at,
        updated_at=_ts(record["updated_at"]) if record.get("updated_at") else created_at,
        author=author,
    )


def record_to_private(
    record: dict[str, Any], sender: Profile | None = None,
) -> PrivateMessage:
    return PrivateMessage(
        id=UUID(str(record["id"])),
        conversation_id=UUID(str(record["conversation_id"])),
        sender_id=UUID(str(record["sender_id"])),
        content=record.get("content") or "",
        created_at=_ts(record["created_at"]),
        is_read=bool(record.get("is_read", False)),
        sender=sender,
    )
