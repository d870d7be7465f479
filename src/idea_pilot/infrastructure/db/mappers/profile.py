from __future__ import annotations

from idea_pilot.domain.entities.profile import Profile
from idea_pilot.infrastructure.db.models.profile import ProfileModel


def model_to_entity(model: ProfileModel) -> Profile:
    return Profile(
        id=model.id,
        full_name=model.full_name,
        avatar_url=model.avatar_url,
        email=model.email,
    )


def maybe_entity(model: ProfileModel | None) -> Profile | None:
    return model_to_entity(model) if model is not None else None
