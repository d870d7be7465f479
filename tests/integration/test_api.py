"""Integration smoke tests for REST API (using mocked UoW and AI backend via dependency override)."""
from __future__ import annotations

import json
import uuid

import httpx
import jwt
import pytest
from fastapi.testclient import TestClient

from idea_pilot.api.deps import get_backend, get_uow
from idea_pilot.app import create_app
from idea_pilot.config import settings
from idea_pilot.infrastructure.backend.client import AIBackendClient
from tests.conftest import (
    ALICE_ID,
    BOB_ID,
    CAROL_ID,
    FakeUoW,
    make_community_message,
    make_conversation,
    make_private_message,
    make_profile,
)


def _make_token(sub: uuid.UUID = ALICE_ID, audience: str = "authenticated") -> str:
    return jwt.encode(
        {"sub": str(sub), "aud": audience, "role": "authenticated", "email": "a@example.com"},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )


def _auth(sub: uuid.UUID = ALICE_ID) -> dict[str, str]:
    return {"Authorization": f"Bearer {_make_token(sub)}"}


class BackendStub:
    """Records forwarded requests and answers with a queued response."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.response = httpx.Response(200, json={"ok": True})
        self.error: Exception | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def app_with_uow():
    app = create_app()
    uow = FakeUoW()
    uow.profiles.add(make_profile(ALICE_ID, "Alice"), make_profile(BOB_ID, "Bob"))

    async def _override():
        yield uow

    app.dependency_overrides[get_uow] = _override
    return app, uow


@pytest.fixture
def client(app_with_uow):
    app, _ = app_with_uow
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def uow(app_with_uow):
    _, uow = app_with_uow
    return uow


@pytest.fixture
def backend(app_with_uow):
    app, _ = app_with_uow
    stub = BackendStub()
    relay = AIBackendClient("http://backend.test", transport=httpx.MockTransport(stub))
    app.dependency_overrides[get_backend] = lambda: relay
    return stub


# -- health & auth -----------------------------------------------------------


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_request_id_is_echoed(client):
    resp = client.get("/healthz", headers={"X-Request-ID": "abc123"})
    assert resp.headers["X-Request-ID"] == "abc123"


def test_missing_token_rejected(client):
    resp = client.get("/api/v1/chat/conversations")
    assert resp.status_code in (401, 403)


def test_wrong_audience_rejected(client):
    token = _make_token(audience="someone-else")
    resp = client.get("/api/v1/chat/conversations", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


def test_non_uuid_subject_rejected(client):
    token = jwt.encode({"sub": "42", "aud": "authenticated"}, settings.JWT_SECRET, algorithm="HS256")
    resp = client.get("/api/v1/users", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


# -- users & community -------------------------------------------------------


def test_list_users(client):
    resp = client.get("/api/v1/users", headers=_auth())
    assert resp.status_code == 200
    assert [u["display_name"] for u in resp.json()] == ["Alice", "Bob"]


def test_community_messages(client, uow):
    uow.community._messages.append(make_community_message(user_id=BOB_ID, content="welcome"))

    sent = client.post("/api/v1/community/messages", json={"content": "hi"}, headers=_auth())
    listed = client.get("/api/v1/community/messages", headers=_auth())

    assert sent.status_code == 201
    assert sent.json()["author"]["full_name"] == "Alice"
    assert listed.status_code == 200
    assert {m["content"] for m in listed.json()} == {"welcome", "hi"}


def test_community_blank_message_rejected(client):
    resp = client.post("/api/v1/community/messages", json={"content": "   "}, headers=_auth())
    assert resp.status_code == 422


# -- conversations -----------------------------------------------------------


def test_start_conversation_then_reuse(client):
    first = client.post(
        "/api/v1/chat/conversations", json={"other_user_id": str(BOB_ID)}, headers=_auth(),
    )
    second = client.post(
        "/api/v1/chat/conversations", json={"other_user_id": str(ALICE_ID)}, headers=_auth(BOB_ID),
    )

    assert first.status_code == 201
    assert first.json()["created"] is True
    assert first.json()["conversation"]["participant1_id"] == str(ALICE_ID)
    assert second.status_code == 200
    assert second.json()["created"] is False
    assert second.json()["conversation"]["id"] == first.json()["conversation"]["id"]


def test_start_conversation_with_self(client):
    resp = client.post(
        "/api/v1/chat/conversations", json={"other_user_id": str(ALICE_ID)}, headers=_auth(),
    )
    assert resp.status_code == 422


def test_list_conversations_empty(client):
    resp = client.get("/api/v1/chat/conversations", headers=_auth())
    assert resp.status_code == 200
    assert resp.json() == []


def test_send_and_list_private_messages(client, uow):
    conv = make_conversation(ALICE_ID, BOB_ID)
    uow.conversations.add(conv)

    sent = client.post(
        f"/api/v1/chat/conversations/{conv.id}/messages",
        json={"content": "hello"},
        headers=_auth(),
    )
    listed = client.get(f"/api/v1/chat/conversations/{conv.id}/messages", headers=_auth(BOB_ID))

    assert sent.status_code == 201
    assert sent.json()["is_read"] is False
    assert listed.status_code == 200
    assert [m["content"] for m in listed.json()] == ["hello"]
    assert uow.outbox._records[0]["payload"]["table"] == "private_messages"


def test_conversation_forbidden_for_outsider(client, uow):
    conv = make_conversation(ALICE_ID, BOB_ID)
    uow.conversations.add(conv)

    resp = client.get(f"/api/v1/chat/conversations/{conv.id}", headers=_auth(CAROL_ID))
    assert resp.status_code == 403


def test_unknown_conversation(client):
    resp = client.get(f"/api/v1/chat/conversations/{uuid.uuid4()}", headers=_auth())
    assert resp.status_code == 404


def test_mark_read_and_unread_count(client, uow):
    conv = make_conversation(ALICE_ID, BOB_ID)
    uow.conversations.add(conv)
    uow.messages._messages.extend([
        make_private_message(conv.id, sender_id=BOB_ID, content="1"),
        make_private_message(conv.id, sender_id=BOB_ID, content="2", seconds=1),
        make_private_message(conv.id, sender_id=ALICE_ID, content="3", seconds=2),
    ])

    before = client.get("/api/v1/chat/conversations/unread-count", headers=_auth())
    marked = client.post(f"/api/v1/chat/conversations/{conv.id}/read", headers=_auth())
    after = client.get("/api/v1/chat/conversations/unread-count", headers=_auth())

    assert before.json() == {"count": 2}
    assert marked.json() == {"updated": 2}
    assert after.json() == {"count": 0}


# -- AI backend proxy --------------------------------------------------------


def test_generate_project_relays_json(client, backend):
    backend.response = httpx.Response(201, json={"project": {"title": "Todo"}})

    resp = client.post("/api/generate-project", json={"idea": "todo app"})

    assert resp.status_code == 201
    assert resp.json() == {"project": {"title": "Todo"}}
    assert resp.headers["Cache-Control"] == "no-store, max-age=0"
    forwarded = backend.requests[0]
    assert forwarded.method == "POST"
    assert forwarded.url.path == "/api/generate-project"
    assert json.loads(forwarded.content) == {"idea": "todo app"}


def test_invalid_request_json_forwarded_as_empty_object(client, backend):
    resp = client.post(
        "/api/save-project", content=b"not json", headers={"Content-Type": "application/json"},
    )

    assert resp.status_code == 200
    assert json.loads(backend.requests[0].content) == {}


def test_upstream_error_status_is_preserved(client, backend):
    backend.response = httpx.Response(500, json={"error": "model overloaded"})

    resp = client.post("/api/mentor-chat", json={"message": "help"})

    assert resp.status_code == 500
    assert resp.json() == {"error": "model overloaded"}


def test_non_json_upstream_becomes_502(client, backend):
    backend.response = httpx.Response(
        503, text="<html>" + "x" * 600 + "</html>", headers={"Content-Type": "text/html"},
    )

    resp = client.post("/api/regenerate-project", json={})

    assert resp.status_code == 502
    body = resp.json()
    assert body["error"] == "Invalid JSON response from backend"
    assert body["status_code"] == 503
    assert body["details"].startswith("<html>")
    assert body["details"].endswith("...")
    assert len(body["details"]) == 503
    assert resp.headers["Cache-Control"] == "no-store, max-age=0"


def test_transport_failure_becomes_502(client, backend):
    backend.error = httpx.ConnectError("connection refused")

    resp = client.post("/api/process-resources", json={})

    assert resp.status_code == 502
    assert resp.json()["error"] == "Failed to connect to backend server"
    assert "connection refused" in resp.json()["details"]


def test_mentor_chat_failure_message(client, backend):
    backend.error = httpx.ReadTimeout("timed out")

    resp = client.post("/api/mentor-chat", json={"message": "hi"})

    assert resp.status_code == 502
    assert resp.json()["error"] == "Failed to get AI mentor response"


def test_history_requires_both_ids(client, backend):
    resp = client.get("/api/mentor-chat/history", params={"userId": "u1"})

    assert resp.status_code == 400
    assert resp.json() == {"error": "userId and projectId are required"}
    assert backend.requests == []


def test_history_forwards_query(client, backend):
    backend.response = httpx.Response(200, json={"messages": []})

    resp = client.get("/api/mentor-chat/history", params={"userId": "u1", "projectId": "p1"})

    assert resp.status_code == 200
    forwarded = backend.requests[0]
    assert forwarded.url.path == "/mentor-chat/history"
    assert forwarded.url.params["userId"] == "u1"
    assert forwarded.url.params["projectId"] == "p1"


def test_clear_requires_both_ids(client, backend):
    resp = client.post("/api/mentor-chat/clear", json={"userId": "u1"})

    assert resp.status_code == 400
    assert backend.requests == []


def test_clear_forwards_body(client, backend):
    resp = client.post("/api/mentor-chat/clear", json={"userId": "u1", "projectId": "p1"})

    assert resp.status_code == 200
    assert backend.requests[0].url.path == "/mentor-chat/clear"


def test_user_projects(client, backend):
    backend.response = httpx.Response(200, json=[{"id": "p1"}])

    resp = client.get("/api/user-projects/u1")

    assert resp.json() == [{"id": "p1"}]
    assert backend.requests[0].url.path == "/user-projects/u1"


def test_enhanced_resources_not_found(client, backend):
    backend.response = httpx.Response(404, text="missing")

    resp = client.get("/api/enhanced-resources/p1")

    assert resp.status_code == 404
    assert resp.json() == {"error": "Enhanced resources not found"}
    assert backend.requests[0].url.path == "/api/enhanced-resources/p1"


def test_catch_all_proxy_json(client, backend):
    backend.response = httpx.Response(200, json={"items": [1, 2]})

    resp = client.put("/api/proxy/api/projects/p1", params={"force": "1"}, json={"title": "New"})

    assert resp.json() == {"items": [1, 2]}
    forwarded = backend.requests[0]
    assert forwarded.method == "PUT"
    assert forwarded.url.path == "/api/projects/p1"
    assert forwarded.url.params["force"] == "1"


def test_catch_all_proxy_passes_non_json_through(client, backend):
    backend.response = httpx.Response(200, text="# README", headers={"Content-Type": "text/markdown"})

    resp = client.get("/api/proxy/files/readme")

    assert resp.status_code == 200
    assert resp.text == "# README"
    assert resp.headers["Content-Type"].startswith("text/markdown")
    assert backend.requests[0].method == "GET"


# -- notes -------------------------------------------------------------------


@pytest.fixture
def notes_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "NOTES_DIR", str(tmp_path))
    return tmp_path


def test_notes_crud_and_export(client, notes_dir):
    created = client.post(
        "/api/v1/notes/projects/p1/notes",
        json={"projectTitle": "Todo App", "type": "general", "content": "plan", "tags": ["mvp"]},
        headers=_auth(),
    )
    bookmark = client.post(
        "/api/v1/notes/projects/p1/bookmarks",
        json={"type": "resource", "targetId": "r1", "title": "Docs"},
        headers=_auth(),
    )
    book = client.get("/api/v1/notes/projects/p1", headers=_auth())
    other_user = client.get("/api/v1/notes/projects/p1", headers=_auth(BOB_ID))
    export = client.get("/api/v1/notes/projects/p1/export", params={"title": "Todo App"}, headers=_auth())

    assert created.status_code == 201
    assert created.json()["projectTitle"] == "Todo App"
    assert bookmark.status_code == 201
    assert [n["content"] for n in book.json()["notes"]] == ["plan"]
    assert book.json()["bookmarks"][0]["targetId"] == "r1"
    assert other_user.json()["notes"] == []
    assert export.status_code == 200
    assert export.text.startswith("# Todo App - Notes & Annotations")
    assert "#mvp" in export.text
    assert 'filename="Todo_App_notes.md"' in export.headers["Content-Disposition"]


def test_export_with_non_latin_title(client, notes_dir):
    resp = client.get(
        "/api/v1/notes/projects/p1/export", params={"title": "智能 机器人"}, headers=_auth(),
    )

    assert resp.status_code == 200
    assert resp.text.startswith("# 智能 机器人 - Notes & Annotations")
    disposition = resp.headers["Content-Disposition"]
    assert "filename*=utf-8''%E6%99%BA%E8%83%BD_%E6%9C%BA%E5%99%A8%E4%BA%BA_notes.md" in disposition
    assert 'filename="' + "_" * 7 + 'notes.md"' in disposition


def test_export_title_with_quote_keeps_header_intact(client, notes_dir):
    resp = client.get(
        "/api/v1/notes/projects/p1/export", params={"title": 'My "App"'}, headers=_auth(),
    )

    assert resp.status_code == 200
    disposition = resp.headers["Content-Disposition"]
    assert 'filename="My__App__notes.md"' in disposition
    assert "filename*=utf-8''My_%22App%22_notes.md" in disposition


def test_milestones_with_long_title(client, notes_dir):
    title = "机器人" * 30

    put = client.put("/api/v1/notes/milestones/0", params={"title": title}, headers=_auth())
    saved = client.put(
        "/api/v1/notes/mentor-session",
        params={"title": title},
        json={"projectId": "proj_long"},
        headers=_auth(),
    )
    resp = client.get("/api/v1/notes/milestones", params={"title": title, "count": 2}, headers=_auth())

    assert put.status_code == 204
    assert saved.json()["projectId"] == "proj_long"
    assert resp.json()["completed"] == [0]


def test_update_missing_note(client, notes_dir):
    resp = client.patch(
        "/api/v1/notes/projects/p1/notes/note_nope", json={"content": "x"}, headers=_auth(),
    )
    assert resp.status_code == 404


def test_milestones(client, notes_dir):
    client.put("/api/v1/notes/milestones/1", params={"title": "Todo App"}, headers=_auth())
    client.put("/api/v1/notes/milestones/3", params={"title": "Todo App"}, headers=_auth())
    client.delete("/api/v1/notes/milestones/3", params={"title": "Todo App"}, headers=_auth())

    resp = client.get(
        "/api/v1/notes/milestones", params={"title": "Todo App", "count": 5}, headers=_auth(),
    )

    assert resp.json() == {"projectTitle": "Todo App", "completed": [1]}


def test_mentor_session(client, notes_dir):
    saved = client.put(
        "/api/v1/notes/mentor-session",
        params={"title": "Todo App"},
        json={"userId": "user_1", "projectId": "proj_1"},
        headers=_auth(),
    )
    default = client.get("/api/v1/notes/mentor-session", headers=_auth())

    assert saved.json() == {"userId": "user_1", "projectId": "proj_1"}
    assert default.json() == {"userId": "user_1", "projectId": None}
