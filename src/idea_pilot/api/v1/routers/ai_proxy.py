"""JSON relay routes to the AI backend."""
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Query, Request, Response
from fastapi.responses import JSONResponse

from idea_pilot.api.deps import BackendDep
from idea_pilot.infrastructure.backend.client import CONNECT_FAILURE, AIBackendClient

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["ai-proxy"])

NO_STORE = {"Cache-Control": "no-store, max-age=0"}


async def _json_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        logger.debug("No body or invalid JSON on %s, forwarding {}", request.url.path)
        return {}


def _relay(status_code: int, data: Any) -> JSONResponse:
    return JSONResponse(content=data, status_code=status_code, headers=NO_STORE)


def _bad_request(error: str) -> JSONResponse:
    return JSONResponse(content={"error": error}, status_code=400, headers=NO_STORE)


async def _post(
    request: Request,
    backend: AIBackendClient,
    path: str,
    failure: str = CONNECT_FAILURE,
) -> JSONResponse:
    status_code, data = await backend.request_json(
        "POST", path, json=await _json_body(request), failure=failure,
    )
    return _relay(status_code, data)


@router.post("/generate-project")
async def generate_project(request: Request, backend: BackendDep) -> JSONResponse:
    return await _post(request, backend, "/api/generate-project")


@router.post("/regenerate-project")
async def regenerate_project(request: Request, backend: BackendDep) -> JSONResponse:
    return await _post(request, backend, "/api/regenerate-project")


@router.post("/mentor-chat")
async def mentor_chat(request: Request, backend: BackendDep) -> JSONResponse:
    return await _post(request, backend, "/api/mentor-chat", "Failed to get AI mentor response")


@router.get("/mentor-chat/history")
async def mentor_chat_history(
    backend: BackendDep,
    user_id: str | None = Query(None, alias="userId"),
    project_id: str | None = Query(None, alias="projectId"),
) -> JSONResponse:
    if not user_id or not project_id:
        return _bad_request("userId and projectId are required")
    status_code, data = await backend.request_json(
        "GET",
        "/mentor-chat/history",
        params={"userId": user_id, "projectId": project_id},
        failure="Failed to get chat history",
    )
    return _relay(status_code, data)


@router.post("/mentor-chat/clear")
async def mentor_chat_clear(request: Request, backend: BackendDep) -> JSONResponse:
    body = await _json_body(request)
    if not isinstance(body, dict) or not body.get("userId") or not body.get("projectId"):
        return _bad_request("userId and projectId are required")
    status_code, data = await backend.request_json(
        "POST", "/mentor-chat/clear", json=body, failure="Failed to clear chat history",
    )
    return _relay(status_code, data)


@router.post("/save-project")
async def save_project(request: Request, backend: BackendDep) -> JSONResponse:
    return await _post(request, backend, "/api/save-project")


@router.get("/user-projects/{user_id}")
async def user_projects(user_id: str, backend: BackendDep) -> JSONResponse:
    status_code, data = await backend.request_json(
        "GET", f"/user-projects/{user_id}", failure="Failed to fetch projects",
    )
    return _relay(status_code, data)


@router.get("/enhanced-resources/{project_id}")
async def enhanced_resources(project_id: str, backend: BackendDep) -> JSONResponse:
    response = await backend.request("GET", f"/api/enhanced-resources/{project_id}")
    if response.status_code == 404:
        return JSONResponse(
            content={"error": "Enhanced resources not found"}, status_code=404, headers=NO_STORE,
        )
    return _relay(response.status_code, backend.decode(response))


@router.post("/process-resources")
async def process_resources(request: Request, backend: BackendDep) -> JSONResponse:
    return await _post(request, backend, "/api/process-resources")


@router.api_route("/proxy/{path:path}", methods=["GET", "POST", "PUT", "DELETE"])
async def proxy(path: str, request: Request, backend: BackendDep) -> Response:
    """Forward any backend path; non-JSON bodies pass through with their content type."""
    body = None
    if request.method not in ("GET", "HEAD"):
        body = await _json_body(request)
    response = await backend.request(
        request.method, f"/{path}", json=body, params=list(request.query_params.multi_items()),
    )
    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        return _relay(response.status_code, backend.decode(response))
    return Response(
        content=response.content,
        status_code=response.status_code,
        media_type=content_type or "text/plain",
        headers=NO_STORE,
    )
