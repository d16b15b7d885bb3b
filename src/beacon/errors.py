"""Error taxonomy shared by the store, the coordinator and the routers."""


class BeaconError(Exception):
    """Base class for notification-dispatch errors."""


class ValidationError(BeaconError):
    """A required field (userId, type, message) is missing or empty."""


class StorageError(BeaconError):
    """The notification store failed or timed out on create/list."""
