"""WebSocket endpoint — the real-time transport for notification pushes.

Each client connects to /ws (optionally /ws?userId=42). The handler:
1. Registers the connection with the app's ConnectionRegistry
2. Joins the user's room on a {"type": "join", "userId": ...} message
   (or straight away when userId is in the query string)
3. Answers pings, reports malformed or binary messages without hanging up
4. Unregisters the connection on disconnect, however it happens

Pushes themselves never originate here: the NotificationBus writes to the
session registered below.
"""

import json

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from beacon.events.types import ERROR, JOIN, JOINED, PING, PONG
from beacon.realtime.registry import ConnectionRegistry, Session
from beacon.storage.notification_store import normalize_user_id

logger = structlog.get_logger()
router = APIRouter()


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket):
    """Long-lived connection — one per browser tab or device."""
    registry: ConnectionRegistry = websocket.app.state.registry

    await websocket.accept()
    connection_id = registry.on_connect(websocket)
    session = registry.get(connection_id)

    try:
        initial_user = websocket.query_params.get("userId", "").strip()
        if initial_user:
            await _join(registry, session, initial_user)

        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            data = message.get("text")
            if data is None:
                await _error(session, "Message must be JSON text")
                continue
            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                await _error(session, "Message must be JSON")
                continue
            if not isinstance(msg, dict):
                await _error(session, "Message must be a JSON object")
                continue

            kind = msg.get("type")
            if kind == JOIN:
                user_id = msg.get("userId")
                if not normalize_user_id(user_id):
                    await _error(session, "join requires userId")
                    continue
                await _join(registry, session, user_id)
            elif kind == PING:
                await session.send({"event": PONG})
            else:
                await _error(session, f"Unknown message type: {kind!r}")
    except WebSocketDisconnect:
        pass
    finally:
        registry.on_disconnect(connection_id)
        if websocket.client_state == WebSocketState.CONNECTED:
            await websocket.close()


async def _join(registry: ConnectionRegistry, session: Session, user_id) -> None:
    if registry.join(session.connection_id, user_id):
        await session.send({"event": JOINED, "data": {"userId": session.user_id}})


async def _error(session: Session, detail: str) -> None:
    await session.send({"event": ERROR, "data": {"detail": detail}})
