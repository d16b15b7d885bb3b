"""Durable notification storage."""

from beacon.storage.notification_store import NotificationStore, Page

__all__ = ["NotificationStore", "Page"]
