"""Domain errors raised by the store and lifecycle modules.

The FastAPI app maps each class to an HTTP status (see ``main.py``); other
callers can catch ``ResidentResolveError`` to handle all of them at once.
"""

from typing import Optional


class ResidentResolveError(Exception):
    """Base class for all domain errors."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidTransition(ResidentResolveError):
    """A lifecycle operation was attempted from a disallowed source state."""

    status_code = 409

    def __init__(self, operation: str, current_status: str, allowed: Optional[set] = None):
        self.operation = operation
        self.current_status = current_status
        self.allowed = sorted(allowed or [])
        if self.allowed:
            message = f"Cannot {operation} a complaint in status '{current_status}' (allowed: {', '.join(self.allowed)})"
        else:
            message = f"Cannot {operation} a complaint in status '{current_status}'"
        super().__init__(message)


class PermissionDenied(ResidentResolveError):
    """The caller's role or identity does not permit the action."""

    status_code = 403


class MissingReference(ResidentResolveError):
    """A complaint or user id does not exist in the store."""

    status_code = 404

    def __init__(self, collection: str, record_id: str):
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"No record '{record_id}' in {collection}")


class StoreUnavailable(ResidentResolveError):
    """The backing database failed to read or write."""

    status_code = 503


__all__ = [
    "ResidentResolveError",
    "InvalidTransition",
    "PermissionDenied",
    "MissingReference",
    "StoreUnavailable",
]
