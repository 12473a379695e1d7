"""
Exception hierarchy for the comms realtime layer.

Provides layered exception structure for domain-specific errors.
Each exception carries an `error_code` that is sent verbatim to the
originating socket in the `error` event payload.

Dependencies: None (pure domain layer)
System role: Centralized exception handling across the application
"""

from typing import Any


class CommsException(Exception):
    """Base exception for all comms realtime errors."""

    error_code = "COMMS_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize base exception with message and optional context.

        Args:
            message: Human-readable error message
            details: Optional dictionary of additional context for debugging
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation including details."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message

    def to_payload(self, event: str | None = None) -> dict[str, Any]:
        """
        Build the structured `error` event payload.

        Args:
            event: Inbound event name that triggered the error

        Returns:
            dict: {code, message, event, details?}
        """
        payload: dict[str, Any] = {"code": self.error_code, "message": self.message}
        if event:
            payload["event"] = event
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(CommsException):
    """Raised when an inbound event payload fails validation."""

    error_code = "INVALID_PAYLOAD"

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Field name that failed validation
            details: Additional context
        """
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details)


class UnauthenticatedError(CommsException):
    """Raised when a write event arrives on a connection without a user id."""

    error_code = "UNAUTHENTICATED"


class ThreadNotFoundError(CommsException):
    """Raised when a thread cannot be found."""

    error_code = "THREAD_NOT_FOUND"

    def __init__(self, thread_id: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["thread_id"] = thread_id
        super().__init__(f"Thread not found: {thread_id}", details)


class MessageNotFoundError(CommsException):
    """Raised when a message cannot be found."""

    error_code = "MESSAGE_NOT_FOUND"

    def __init__(self, message_id: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["message_id"] = message_id
        super().__init__(f"Message not found: {message_id}", details)


class PermissionDeniedError(CommsException):
    """Raised when a user acts on a message they do not own."""

    error_code = "FORBIDDEN"


class EditWindowExpiredError(CommsException):
    """Raised when an edit or delete arrives after the author's edit window."""

    error_code = "EDIT_WINDOW_EXPIRED"


class PersistenceError(CommsException):
    """Raised when the data store rejects or fails a write."""

    error_code = "PERSISTENCE_ERROR"

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize persistence error.

        Args:
            message: Error message
            operation: Store operation that failed (create_message, mark_seen, ...)
            details: Additional context
        """
        details = details or {}
        if operation:
            details["operation"] = operation
        super().__init__(message, details)
