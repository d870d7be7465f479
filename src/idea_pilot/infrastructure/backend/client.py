"""HTTP client for the external AI backend."""
from __future__ import annotations

import logging
from typing import Any

import httpx

from idea_pilot.application.exceptions import BackendUnavailableError, InvalidBackendResponseError

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 500
CONNECT_FAILURE = "Failed to connect to backend server"


def preview(text: str, limit: int = PREVIEW_CHARS) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


class AIBackendClient:
    """Thin JSON relay; the backend owns all generation logic."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 60.0,
        verify: bool = False,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            verify=verify,
            transport=transport,
        )

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Any = None,
        failure: str = CONNECT_FAILURE,
    ) -> httpx.Response:
        try:
            response = await self._http.request(method, path, json=json, params=params)
        except httpx.HTTPError as exc:
            logger.error("AI backend %s %s failed: %s", method, path, exc)
            raise BackendUnavailableError(str(exc) or type(exc).__name__, error=failure) from exc
        logger.info("AI backend %s %s -> %d", method, path, response.status_code)
        return response

    async def request_json(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Any = None,
        failure: str = CONNECT_FAILURE,
    ) -> tuple[int, Any]:
        """Return ``(status, parsed body)``; a non-JSON body raises InvalidBackendResponseError."""
        response = await self.request(method, path, json=json, params=params, failure=failure)
        return response.status_code, self.decode(response)

    @staticmethod
    def decode(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            logger.error(
                "AI backend %s returned non-JSON (status %d)",
                response.request.url.path, response.status_code,
            )
            raise InvalidBackendResponseError(
                preview(response.text), status_code=response.status_code,
            ) from exc

    async def aclose(self) -> None:
        await self._http.aclose()
