"""Error taxonomy for the sync engine."""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    CONNECTION_ERROR = "connection_error"
    MALFORMED_RESPONSE = "malformed_response"
    INVALID_URL = "invalid_url"
    UNKNOWN = "unknown"


class SyncEngineError(Exception):
    """Base error for everything raised by this package."""


class RemoteError(SyncEngineError):
    """Base remote backend error."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        code: ErrorCode | str = ErrorCode.UNKNOWN,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(message)


class UnauthenticatedError(RemoteError):
    """Remote operation attempted without an authenticated session."""

    def __init__(self, operation: str = "remote operation"):
        super().__init__(
            message=f"Authentication required for {operation}",
            status_code=401,
            code=ErrorCode.UNAUTHENTICATED,
        )


class RemoteNotFoundError(RemoteError):
    """Record or object not found on the remote side."""

    def __init__(self, target: str):
        super().__init__(
            message=f"Not found: {target}",
            status_code=404,
            code=ErrorCode.NOT_FOUND,
        )


class RemoteConflictError(RemoteError):
    """Record already exists on the remote side."""

    def __init__(self, target: str):
        super().__init__(
            message=f"Conflict: {target}",
            status_code=409,
            code=ErrorCode.CONFLICT,
        )


class TransportError(RemoteError):
    """Network failure before a response was received."""

    def __init__(self, message: str):
        super().__init__(message, 503, ErrorCode.CONNECTION_ERROR)


class TranslationError(SyncEngineError, ValueError):
    """A single field could not be converted between local and remote shapes."""

    def __init__(self, field: str, value: object, reason: str = "invalid value"):
        self.field = field
        self.value = value
        super().__init__(f"Cannot convert {field}={value!r}: {reason}")


class InvalidTransitionError(SyncEngineError, ValueError):
    """Invitation status change not allowed from the current state."""

    def __init__(self, current: object, target: object):
        self.current = current
        self.target = target
        super().__init__(f"Invalid invitation transition: {current} -> {target}")


class SyncFailedError(SyncEngineError):
    """Full sync aborted, raised from the underlying cause."""


class WishlistSyncError(SyncEngineError):
    """Personal wishlist synchronization failed."""
