"""FastAPI dependency injection helpers."""
from __future__ import annotations

from pathlib import Path
from typing import Annotated, AsyncIterator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from idea_pilot.application.dto.principal import Principal
from idea_pilot.application.ports.auth import TokenVerifier
from idea_pilot.config import settings
from idea_pilot.infrastructure.auth.hs256_verifier import HS256Verifier
from idea_pilot.infrastructure.auth.jwks_verifier import JWKSVerifier
from idea_pilot.infrastructure.backend.client import AIBackendClient
from idea_pilot.infrastructure.db.session import AsyncSessionLocal
from idea_pilot.infrastructure.db.uow import SqlAlchemyUoW
from idea_pilot.notes.store import NotesStore

_bearer_scheme = HTTPBearer()


async def get_uow() -> AsyncIterator[SqlAlchemyUoW]:
    async with AsyncSessionLocal() as session:
        uow = SqlAlchemyUoW(session)
        try:
            yield uow
        finally:
            await session.close()


UoWDep = Annotated[SqlAlchemyUoW, Depends(get_uow)]


def _get_verifier() -> TokenVerifier:
    if settings.JWT_VERIFY_MODE == "jwks":
        assert settings.JWKS_URL, "JWKS_URL must be set when JWT_VERIFY_MODE=jwks"
        return JWKSVerifier(settings.JWKS_URL, audience=settings.JWT_AUDIENCE)
    return HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM, audience=settings.JWT_AUDIENCE)


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = _get_verifier()
    return _verifier


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
) -> Principal:
    verifier = get_verifier()
    try:
        return await verifier.verify(credentials.credentials)
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


def get_backend(request: Request) -> AIBackendClient:
    return request.app.state.backend


BackendDep = Annotated[AIBackendClient, Depends(get_backend)]


def get_notes_store(principal: CurrentPrincipal) -> NotesStore:
    return NotesStore(Path(settings.NOTES_DIR) / str(principal.user_id))


NotesStoreDep = Annotated[NotesStore, Depends(get_notes_store)]
