"""
Application-level exceptions.

The API layer maps these onto the {"success": false, "error": ...} JSON contract;
the monitor logs them at cycle and transaction boundaries.
"""

from __future__ import annotations


class BootyError(Exception):
    """Base class for all domain errors raised by backend_booty."""


class RpcError(BootyError):
    """Ledger JSON-RPC transport failure or RPC-level error response."""


class DeliveryError(BootyError):
    """Webhook envelope could not be delivered (transport error or non-2xx status)."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DatabaseNotReady(BootyError):
    """Persistence layer has not been initialized."""

    def __init__(self, message: str = "Database not ready") -> None:
        super().__init__(message)


class RecordNotFound(BootyError):
    """No stored record exists for the given key."""

    def __init__(self, collection: str, key: str) -> None:
        super().__init__(f"No record {key} in {collection}")
        self.collection = collection
        self.key = key


class InvalidStatus(BootyError):
    """Status value is not one of the domain's allowed values."""


class InvalidStatusTransition(BootyError):
    """Requested status change is not allowed from the record's current status."""

    def __init__(self, current: str, requested: str) -> None:
        super().__init__(f"Invalid status transition: {current} -> {requested}")
        self.current = current
        self.requested = requested


class Unauthorized(BootyError):
    """Webhook request carried a missing or wrong Authorization header."""

    def __init__(self, message: str = "Unauthorized - invalid authorization header") -> None:
        super().__init__(message)
