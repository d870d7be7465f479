from __future__ import annotations

import asyncio
import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from idea_pilot.api.deps import get_verifier
from idea_pilot.api.v1.schemas.message import CommunityMessageResponse, PrivateMessageResponse
from idea_pilot.application.dto.principal import Principal
from idea_pilot.application.exceptions import AppError
from idea_pilot.config import settings
from idea_pilot.domain.entities.message import CommunityMessage
from idea_pilot.domain.value_objects.enums import HealthState, ScopeKind
from idea_pilot.domain.value_objects.scope import Scope
from idea_pilot.infrastructure.realtime.sources import (
    CommunityMessageSource,
    PrivateMessageSource,
    UoWFactory,
)
from idea_pilot.infrastructure.ws.manager import ConnectionManager
from idea_pilot.infrastructure.ws.protocol import WsInbound
from idea_pilot.realtime.session import ChatSession, MessageSource, RealtimeOptions
from idea_pilot.realtime.subscriptions import Message
from idea_pilot.services import read_state_service

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])

manager = ConnectionManager()


def get_manager() -> ConnectionManager:
    return manager


async def _authenticate(token: str) -> Principal | None:
    try:
        verifier = get_verifier()
        return await verifier.verify(token)
    except Exception:
        logger.debug("WS auth failed", exc_info=True)
        return None


@router.websocket("/ws/chat")
async def ws_chat(
    websocket: WebSocket,
    token: str = Query(...),
) -> None:
    principal = await _authenticate(token)
    if principal is None:
        await websocket.close(code=4001, reason="Authentication failed")
        return

    pkey = principal.principal_key
    await manager.connect(websocket, pkey)

    heartbeat_task = asyncio.create_task(
        _heartbeat(websocket), name=f"ws-heartbeat-{pkey}",
    )
    try:
        await _read_loop(websocket, principal)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %s", pkey)
    finally:
        heartbeat_task.cancel()
        try:
            await heartbeat_task
        except asyncio.CancelledError:
            pass
        await manager.disconnect(websocket)


async def _heartbeat(ws: WebSocket) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    while True:
        await asyncio.sleep(interval)
        if not await manager.send(ws, "pong", {}):
            return


def message_data(message: Message) -> dict[str, Any]:
    if isinstance(message, CommunityMessage):
        return CommunityMessageResponse.model_validate(message).model_dump(mode="json")
    return PrivateMessageResponse.model_validate(message).model_dump(mode="json")


def parse_scope(data: dict[str, Any]) -> Scope:
    kind = ScopeKind(data.get("scope", ScopeKind.COMMUNITY))
    if kind == ScopeKind.COMMUNITY:
        return Scope.community()
    return Scope.conversation(UUID(str(data["conversation_id"])))


def _source_for(scope: Scope, principal: Principal, open_uow: UoWFactory) -> MessageSource:
    if scope.kind == ScopeKind.COMMUNITY:
        return CommunityMessageSource(principal, open_uow)
    assert scope.conversation_id is not None
    return PrivateMessageSource(principal, scope.conversation_id, open_uow)


async def _error(ws: WebSocket, code: str, **extra: Any) -> None:
    await manager.send(ws, "error", {"code": code, **extra})


async def _read_loop(ws: WebSocket, principal: Principal) -> None:
    while True:
        raw = await ws.receive_text()
        try:
            msg = WsInbound.model_validate_json(raw)
        except Exception:
            await _error(ws, "invalid_payload")
            continue

        if msg.type == "ping":
            await manager.send(ws, "pong", {})

        elif msg.type == "join":
            await _handle_join(ws, principal, msg.data)

        elif msg.type == "leave":
            await _handle_leave(ws, msg.data)

        elif msg.type == "message.send":
            await _handle_send(ws, msg.data)

        elif msg.type == "mark_read":
            await _handle_mark_read(ws, principal, msg.data)

        else:
            await _error(ws, "unknown_type", type=msg.type)


async def _handle_join(ws: WebSocket, principal: Principal, data: dict[str, Any]) -> None:
    try:
        scope = parse_scope(data)
    except (KeyError, ValueError) as exc:
        await _error(ws, "invalid_data", detail=str(exc))
        return

    session = manager.session(ws, scope.key)
    if session is None:
        async def on_messages(messages: list[Message]) -> None:
            for message in messages:
                await manager.send(
                    ws, "message.created", {"scope": scope.key, "message": message_data(message)},
                )

        async def on_health(state: HealthState, warning: str | None) -> None:
            await manager.send(
                ws, "connection.status", {"scope": scope.key, "state": state, "warning": warning},
            )

        session = ChatSession(
            ws.app.state.realtime,
            _source_for(scope, principal, ws.app.state.open_uow),
            on_messages=on_messages,
            on_health=on_health,
            options=RealtimeOptions.from_settings(settings),
        )
        try:
            await session.open()
        except AppError as exc:
            await session.close()
            await _error(ws, "join_failed", scope=scope.key, detail=exc.detail)
            return
        except Exception as exc:
            logger.exception("Joining %s failed", scope.key)
            await session.close()
            await _error(ws, "join_failed", scope=scope.key, detail=str(exc))
            return
        manager.add_session(ws, session)

    await manager.send(
        ws,
        "messages.snapshot",
        {"scope": scope.key, "messages": [message_data(m) for m in session.messages]},
    )


async def _handle_leave(ws: WebSocket, data: dict[str, Any]) -> None:
    try:
        scope = parse_scope(data)
    except (KeyError, ValueError) as exc:
        await _error(ws, "invalid_data", detail=str(exc))
        return
    await manager.remove_session(ws, scope.key)


async def _handle_send(ws: WebSocket, data: dict[str, Any]) -> None:
    try:
        scope = parse_scope(data)
        body = str(data["body"])
    except (KeyError, ValueError) as exc:
        await _error(ws, "invalid_data", detail=str(exc))
        return

    session = manager.session(ws, scope.key)
    if session is None:
        await _error(ws, "not_joined", scope=scope.key)
        return
    try:
        await session.send(body)
    except AppError as exc:
        await _error(ws, "send_failed", scope=scope.key, detail=exc.detail)
    except Exception as exc:
        logger.exception("Sending on %s failed", scope.key)
        await _error(ws, "send_failed", scope=scope.key, detail=str(exc))


async def _handle_mark_read(ws: WebSocket, principal: Principal, data: dict[str, Any]) -> None:
    try:
        conversation_id = UUID(str(data["conversation_id"]))
    except (KeyError, ValueError) as exc:
        await _error(ws, "invalid_data", detail=str(exc))
        return

    async with ws.app.state.open_uow() as uow:
        try:
            await read_state_service.mark_messages_as_read(conversation_id, principal, uow)
        except AppError as exc:
            await _error(ws, "mark_read_failed", detail=exc.detail)
