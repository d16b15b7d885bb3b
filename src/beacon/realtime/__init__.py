"""Real-time infrastructure — connection registry, fanout bus, WebSocket.

Notifications flow one way:
1. DispatchCoordinator stores a notification, then hands it to the bus
2. The bus asks the registry who is joined as that user right now
3. Each of those sessions gets the record over its own WebSocket

Everything here is in-process. A client that was not connected at publish
time catches up through the list endpoint.
"""
