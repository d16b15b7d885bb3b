"""Connection registry — which live connection belongs to which user.

Each WebSocket connection becomes a Session. A session starts unjoined and
receives nothing; a "join" signal puts it in exactly one room, keyed by
user id. Re-joining moves it. Disconnecting removes it from its room for
good.

The registry is in-memory and process-local. One instance is owned by the
running app and handed to the bus and the WebSocket handler; nothing else
mutates membership.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

import structlog

from beacon.storage.notification_store import normalize_user_id

logger = structlog.get_logger()


class Transport(Protocol):
    """Anything we can push a JSON payload to (a Starlette WebSocket fits)."""

    async def send_json(self, data: Any) -> None: ...


@dataclass
class Session:
    """One live connection's registration."""

    connection_id: str
    transport: Transport
    user_id: Optional[str] = None
    _send_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    async def send(self, payload: dict) -> None:
        """Push one payload. Writes to a transport never interleave."""
        async with self._send_lock:
            await self.transport.send_json(payload)


class ConnectionRegistry:
    """Sessions by connection id, and rooms of connection ids by user id."""

    def __init__(self):
        self._sessions: dict[str, Session] = {}
        self._rooms: dict[str, set[str]] = {}

    def on_connect(self, transport: Transport) -> str:
        """Register a new, unjoined session and return its connection id."""
        connection_id = uuid.uuid4().hex
        self._sessions[connection_id] = Session(
            connection_id=connection_id, transport=transport
        )
        logger.info("registry.connected", connection_id=connection_id)
        return connection_id

    def join(self, connection_id: str, user_id: Any) -> bool:
        """Put a session in user_id's room, leaving any previous room.

        Returns False when the connection is already gone; that is a normal
        race with disconnect, not an error.
        """
        session = self._sessions.get(connection_id)
        if session is None:
            logger.info("registry.join_unknown_connection", connection_id=connection_id)
            return False

        uid = normalize_user_id(user_id)
        if not uid:
            raise ValueError("userId is required to join")

        if session.user_id is not None and session.user_id != uid:
            self._leave_room(session)
        session.user_id = uid
        self._rooms.setdefault(uid, set()).add(connection_id)
        logger.info("registry.joined", connection_id=connection_id, user_id=uid)
        return True

    def on_disconnect(self, connection_id: str) -> None:
        """Forget a session. Calling it twice is harmless."""
        session = self._sessions.pop(connection_id, None)
        if session is None:
            return
        self._leave_room(session)
        logger.info(
            "registry.disconnected",
            connection_id=connection_id,
            user_id=session.user_id,
        )

    def members_of(self, user_id: Any) -> frozenset[str]:
        """Snapshot of the connection ids currently joined as user_id."""
        return frozenset(self._rooms.get(normalize_user_id(user_id), ()))

    def get(self, connection_id: str) -> Optional[Session]:
        return self._sessions.get(connection_id)

    def stats(self) -> dict[str, int]:
        return {"connections": len(self._sessions), "rooms": len(self._rooms)}

    def _leave_room(self, session: Session) -> None:
        room = self._rooms.get(session.user_id)
        if room is None:
            return
        room.discard(session.connection_id)
        if not room:
            del self._rooms[session.user_id]
