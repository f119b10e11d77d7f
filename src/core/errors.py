"""Typed error taxonomy shared by every component.

Each error carries a stable machine-checkable ``kind`` plus a human message.
Messages are sanitized by the classifier before they are logged or surfaced.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, Optional


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NETWORK = "network"
    AUTH = "auth"
    RATE_LIMITED = "rate_limited"
    REMOTE_SERVICE = "remote_service"
    ASSISTANT_SERVICE = "assistant_service"
    STORAGE = "storage"
    SYSTEM = "system"


_USER_MESSAGES = {
    ErrorKind.NETWORK: "Network error occurred. Please check your connection.",
    ErrorKind.AUTH: "GitHub authentication failed. Please check your token.",
    ErrorKind.ASSISTANT_SERVICE: "AI service is temporarily unavailable. Please try again.",
    ErrorKind.RATE_LIMITED: "Rate limit exceeded. Please wait before making more requests.",
}


class SyncError(Exception):
    """Base error for the sync engine."""

    kind: ErrorKind = ErrorKind.SYSTEM

    def __init__(self, message: str, *, context: Optional[Mapping[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = dict(context or {})

    def user_message(self) -> str:
        return _USER_MESSAGES.get(self.kind, self.message)


class ValidationError(SyncError):
    """Raised when user input is invalid."""

    kind = ErrorKind.VALIDATION


class NetworkError(SyncError):
    """Raised when a remote collaborator cannot be reached."""

    kind = ErrorKind.NETWORK


class AuthError(SyncError):
    """Raised when a credential is invalid, expired or lacks a scope."""

    kind = ErrorKind.AUTH


class RateLimitedError(SyncError):
    """Raised when a call is refused by a local or remote rate limit."""

    kind = ErrorKind.RATE_LIMITED

    def __init__(
        self,
        message: str = _USER_MESSAGES[ErrorKind.RATE_LIMITED],
        *,
        retry_after: float = 0.0,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message, context=context)
        self.retry_after = max(0.0, float(retry_after))

    def user_message(self) -> str:
        base = super().user_message()
        if self.retry_after > 0:
            return f"{base} Retry in {int(self.retry_after + 0.999)}s."
        return base


class RemoteServiceError(SyncError):
    """Raised when the hosting API answers with an unexpected status."""

    kind = ErrorKind.REMOTE_SERVICE

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message, context=context)
        self.status_code = status_code


class NotFoundError(RemoteServiceError):
    """Raised when a requested remote resource is not found."""

    def __init__(self, message: str, *, context: Optional[Mapping[str, Any]] = None) -> None:
        super().__init__(message, status_code=404, context=context)


class NonFastForwardError(RemoteServiceError):
    """Raised when the branch moved on the remote since the last import or commit."""


class AssistantServiceError(SyncError):
    """Raised when the assistant fails or returns a malformed payload."""

    kind = ErrorKind.ASSISTANT_SERVICE


class StorageError(SyncError):
    """Raised when local persistence fails."""

    kind = ErrorKind.STORAGE


class AccessDeniedError(StorageError):
    """Raised when an operation tries to access data outside the granted root."""


class InternalError(SyncError):
    """Raised for failures that fit no other kind."""

    kind = ErrorKind.SYSTEM
