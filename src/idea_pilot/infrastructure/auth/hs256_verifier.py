from __future__ import annotations

import jwt

from idea_pilot.application.dto.principal import Principal
from idea_pilot.infrastructure.auth.claims import principal_from_claims


class HS256Verifier:
    """Verify session JWTs signed with the auth provider's shared secret."""

    def __init__(self, secret: str, algorithm: str = "HS256", audience: str | None = None) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._audience = audience

    async def verify(self, token: str) -> Principal:
        payload = jwt.decode(
            token,
            self._secret,
            algorithms=[self._algorithm],
            audience=self._audience,
            options={"verify_aud": self._audience is not None},
        )
        return principal_from_claims(payload)
