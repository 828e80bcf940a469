"""Drive backend exceptions.

Every failure coming back from the drive is classified once, at the HTTP
boundary, into a :class:`BackendErrorKind`. Retry predicates match on that tag.
"""
from enum import Enum
from typing import Any, Optional


class BackendErrorKind(str, Enum):
    """Closed set of failure kinds produced by the drive client."""

    NETWORK = "network"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    CLIENT_ERROR = "client_error"
    UNAUTHORIZED = "unauthorized"


def classify_status(status_code: int) -> BackendErrorKind:
    if status_code == 401:
        return BackendErrorKind.UNAUTHORIZED
    if status_code == 429:
        return BackendErrorKind.RATE_LIMITED
    if status_code >= 500:
        return BackendErrorKind.SERVER_ERROR
    return BackendErrorKind.CLIENT_ERROR


class StorageError(Exception):
    """Base drive exception."""

    def __init__(
        self,
        message: str,
        *,
        kind: Optional[BackendErrorKind] = None,
        status_code: Optional[int] = None,
        body: Any = None,
        content_range: Optional[str] = None,
    ) -> None:
        self.message = message
        self.kind = kind
        self.status_code = status_code
        self.body = body
        self.content_range = content_range
        super().__init__(message)

    def to_details(self) -> dict[str, Any]:
        details: dict[str, Any] = {}
        if self.kind is not None:
            details["kind"] = self.kind.value
        if self.status_code is not None:
            details["status"] = self.status_code
        if self.content_range:
            details["range"] = self.content_range
        if self.body is not None:
            details["backend"] = self.body
        return details


class ConfigurationError(StorageError):
    """Drive settings are missing or invalid."""
    pass


class AuthenticationError(StorageError):
    """OAuth exchange failed or returned no access token."""
    pass


class TransientBackendError(StorageError):
    """Network failure, 429 or 5xx. Eligible for backoff."""
    pass


class FatalBackendError(StorageError):
    """Any other non-success status. Never retried."""
    pass


class RemoteItemNotFoundError(FatalBackendError):
    """Item does not exist at the requested drive path."""
    pass
