"""Real-time event names.

Centralizing event names as constants prevents typos and makes it easy to
discover every message that crosses the WebSocket.
"""

# ─── Server → client ─────────────────────────────────────

NOTIFICATION = "notification"
JOINED = "joined"
PONG = "pong"
ERROR = "error"

# ─── Client → server ─────────────────────────────────────

JOIN = "join"
PING = "ping"
