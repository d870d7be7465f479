from __future__ import annotations

from typing import Any
from uuid import UUID

import jwt

from idea_pilot.application.dto.principal import Principal


def principal_from_claims(payload: dict[str, Any]) -> Principal:
    """Build the caller from session-token claims; ``sub`` is the profile id."""
    try:
        user_id = UUID(str(payload["sub"]))
    except (KeyError, ValueError) as exc:
        raise jwt.InvalidTokenError("Token subject is not a user id") from exc
    return Principal(user_id=user_id, email=payload.get("email"))
