"""Dispatch coordinator — persist, then publish.

This is the one place where the write path and the real-time path meet:
1. Validate the request (before touching the store)
2. Persist through NotificationStore → canonical id + created_at
3. Publish the stored record through NotificationBus
4. Return the same record to the caller

Publishing only ever happens after a successful write, so a client can
always fetch through the list endpoint anything it was pushed. The read
path never touches the bus.
"""

from typing import Any

import structlog

from beacon.db.models import Notification
from beacon.errors import StorageError, ValidationError
from beacon.realtime.bus import NotificationBus
from beacon.schemas.notification import NotificationPage, NotificationRead, Pagination
from beacon.storage.notification_store import NotificationStore, validate_fields

logger = structlog.get_logger()


class DispatchCoordinator:
    """Sequences store writes and bus fanout. Holds no state of its own."""

    def __init__(self, store: NotificationStore, bus: NotificationBus):
        self.store = store
        self.bus = bus

    async def create_and_dispatch(
        self, user_id: Any, type: Any, message: Any
    ) -> Notification:
        """Store a notification and push it to the user's live sessions.

        Raises ValidationError or StorageError; in both cases nothing is
        published.
        """
        try:
            user_id, type, message = validate_fields(user_id, type, message)
        except ValidationError as e:
            logger.info("notification.rejected", reason=str(e))
            raise

        try:
            notification = await self.store.create(user_id, type, message)
        except StorageError as e:
            logger.error("notification.create_failed", user_id=user_id, error=str(e))
            raise

        logger.info(
            "notification.created",
            id=notification.id,
            user_id=notification.user_id,
            type=notification.type,
        )
        await self.bus.publish(notification)
        return notification

    async def get_page(
        self, user_id: Any, page: Any = None, limit: Any = None
    ) -> NotificationPage:
        """One page of a user's notifications, newest first, with the total."""
        result = await self.store.list(user_id, page, limit)
        return NotificationPage(
            notifications=[NotificationRead.model_validate(n) for n in result.items],
            pagination=Pagination(
                page=result.page, limit=result.limit, total=result.total
            ),
        )
