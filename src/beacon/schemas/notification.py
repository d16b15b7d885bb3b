"""Pydantic schemas for notifications.

These define the wire contract shared by the HTTP API and the WebSocket
push: JSON keys are camelCase (userId, isRead, createdAt) while the Python
side keeps snake_case attributes.
"""

from datetime import datetime
from typing import Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from beacon.db.models import Notification


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ─── Create (client → platform) ─────────────────────────


class NotificationCreate(_CamelModel):
    """Create a notification for one user.

    All three fields are required. Emptiness is checked by the dispatch
    coordinator so that "missing" and "blank" fail the same way.
    """
    user_id: Union[int, str] = Field(..., description="Addressed user (opaque key)")
    type: str = Field(..., description="Short tag, e.g. like, comment, follow")
    message: str = Field(..., description="Free-form notification text")


# ─── Read (platform → client) ───────────────────────────


class NotificationRead(_CamelModel):
    """A stored notification, exactly as pushed and listed."""
    id: int
    user_id: str
    type: str
    message: str
    is_read: bool
    created_at: datetime


class NotificationCreated(NotificationRead):
    """Create response: the stored record plus a success flag."""
    success: bool = True


class Pagination(BaseModel):
    page: int
    limit: int
    total: int


class NotificationPage(BaseModel):
    """List response: one page of notifications, newest first."""
    notifications: list[NotificationRead]
    pagination: Pagination


def serialize_notification(notification: Notification) -> dict:
    """JSON-ready dict of a stored notification, camelCase keys."""
    return NotificationRead.model_validate(notification).model_dump(
        mode="json", by_alias=True
    )
