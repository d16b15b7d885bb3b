"""Beacon — per-user notifications with real-time delivery.

A notification is stored first, then pushed over WebSocket to every live
session of the user it is addressed to. History is served newest-first
from the store.
"""

__version__ = "0.1.0"
