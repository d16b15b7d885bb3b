"""Notification bus — in-process fanout of stored notifications.

Fire-and-forget: publish() pushes the record to every session currently in
the user's room and returns. Nothing is queued or retried, so a session
that joins after publish never sees the record (clients catch up through
the list endpoint). Sends to different sessions run concurrently and each
is bounded by a timeout; one dead or slow connection never delays or fails
the others, and never fails the caller.
"""

import asyncio

import structlog

from beacon.db.models import Notification
from beacon.events.types import NOTIFICATION
from beacon.realtime.registry import ConnectionRegistry, Session
from beacon.schemas.notification import serialize_notification

logger = structlog.get_logger()


class NotificationBus:
    """Pushes notifications to the live sessions of their target user."""

    def __init__(self, registry: ConnectionRegistry, push_timeout: float = 2.0):
        self.registry = registry
        self.push_timeout = push_timeout

    async def publish(self, notification: Notification) -> int:
        """Deliver to every session joined as notification.user_id.

        Membership is read once, at call time. Returns how many sessions
        the push reached.
        """
        members = self.registry.members_of(notification.user_id)
        if not members:
            logger.debug(
                "bus.no_subscribers",
                notification_id=notification.id,
                user_id=notification.user_id,
            )
            return 0

        envelope = {"event": NOTIFICATION, "data": serialize_notification(notification)}
        sessions = [
            s for s in (self.registry.get(cid) for cid in members) if s is not None
        ]
        results = await asyncio.gather(
            *(self._deliver(session, envelope) for session in sessions)
        )
        delivered = sum(results)
        logger.info(
            "bus.published",
            notification_id=notification.id,
            user_id=notification.user_id,
            sessions=len(sessions),
            delivered=delivered,
        )
        return delivered

    async def _deliver(self, session: Session, envelope: dict) -> bool:
        try:
            await asyncio.wait_for(session.send(envelope), timeout=self.push_timeout)
        except Exception as e:
            logger.warning(
                "bus.delivery_failed",
                connection_id=session.connection_id,
                user_id=session.user_id,
                notification_id=envelope["data"]["id"],
                error=repr(e),
            )
            return False
        return True
