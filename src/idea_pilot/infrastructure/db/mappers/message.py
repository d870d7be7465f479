from __future__ import annotations

from sqlalchemy import inspect

from idea_pilot.domain.entities.message import CommunityMessage, PrivateMessage
from idea_pilot.infrastructure.db.mappers import profile as profile_mapper
from idea_pilot.infrastructure.db.models.community_message import CommunityMessageModel
from idea_pilot.infrastructure.db.models.private_message import PrivateMessageModel


def community_to_entity(model: CommunityMessageModel) -> CommunityMessage:
    return CommunityMessage(
        id=model.id,
        user_id=model.user_id,
        content=model.content,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def community_to_model(entity: CommunityMessage) -> CommunityMessageModel:
    return CommunityMessageModel(
        id=entity.id,
        user_id=entity.user_id,
        content=entity.content,
        created_at=entity.created_at,
        updated_at=entity.updated_at,
    )


def private_to_entity(model: PrivateMessageModel) -> PrivateMessage:
    sender = None
    if "sender" not in inspect(model).unloaded:
        sender = profile_mapper.maybe_entity(model.sender)
    return PrivateMessage(
        id=model.id,
        conversation_id=model.conversation_id,
        sender_id=model.sender_id,
        content=model.content,
        created_at=model.created_at,
        is_read=model.is_read,
        sender=sender,
    )


def private_to_model(entity: PrivateMessage) -> PrivateMessageModel:
    return PrivateMessageModel(
        id=entity.id,
        conversation_id=entity.conversation_id,
        sender_id=entity.sender_id,
        content=entity.content,
        created_at=entity.created_at,
        is_read=entity.is_read,
    )
