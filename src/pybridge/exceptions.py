"""Custom exception hierarchy for pybridge."""

from __future__ import annotations


class BridgeError(Exception):
    """Base exception for all pybridge errors."""


class BridgeConfigError(BridgeError):
    """Invalid or missing configuration."""


class BridgeValidationError(BridgeError, ValueError):
    """A value cannot be stored (non-JSON property, unknown filter field, ...)."""


class BridgeStorageError(BridgeError):
    """The persistence engine failed an insert or find.

    Raised by the storage layer and surfaced unchanged through
    :class:`pybridge.store.RoomBridgeStore`.  The store never retries.
    """

    def __init__(self, message: str, *, operation: str = "") -> None:
        self.operation = operation
        super().__init__(message)


class RequestAlreadySettledError(BridgeError):
    """A request was resolved or rejected more than once."""

    def __init__(self, message: str, *, request_id: str = "") -> None:
        self.request_id = request_id
        super().__init__(message)
