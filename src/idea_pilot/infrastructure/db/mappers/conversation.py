from __future__ import annotations

from sqlalchemy import inspect

from idea_pilot.domain.entities.conversation import Conversation
from idea_pilot.infrastructure.db.mappers import profile as profile_mapper
from idea_pilot.infrastructure.db.models.conversation import ConversationModel


def model_to_entity(model: ConversationModel) -> Conversation:
    unloaded = inspect(model).unloaded
    return Conversation(
        id=model.id,
        participant1_id=model.participant1_id,
        participant2_id=model.participant2_id,
        created_at=model.created_at,
        updated_at=model.updated_at,
        participant1=(
            None if "participant1" in unloaded
            else profile_mapper.maybe_entity(model.participant1)
        ),
        participant2=(
            None if "participant2" in unloaded
            else profile_mapper.maybe_entity(model.participant2)
        ),
    )


def entity_to_model(entity: Conversation) -> ConversationModel:
    return ConversationModel(
        id=entity.id,
        participant1_id=entity.participant1_id,
        participant2_id=entity.participant2_id,
        created_at=entity.created_at,
        updated_at=entity.updated_at,
    )
