"""Custom exception classes for supervisor errors.

Provides structured error handling with error codes and operator-facing messages.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standard error codes for supervisor errors."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"

    # Session errors
    ALREADY_CONNECTED = "ALREADY_CONNECTED"
    CONFIG_NOT_FOUND = "CONFIG_NOT_FOUND"
    UNKNOWN_SESSION = "UNKNOWN_SESSION"

    # Transport errors
    TRANSPORT_ERROR = "TRANSPORT_ERROR"

    # Profile errors
    PROFILE_NOT_FOUND = "PROFILE_NOT_FOUND"

    # Push channel errors
    INVALID_MESSAGE = "INVALID_MESSAGE"
    UNKNOWN_EVENT = "UNKNOWN_EVENT"


class SupervisorError(Exception):
    """Base exception for supervisor errors.

    Attributes:
        code: Error code for programmatic handling
        message: Operator-facing error message
        details: Additional error details
    """

    def __init__(
        self,
        code: ErrorCode | str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        self.code = code.value if isinstance(code, ErrorCode) else code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class AlreadyConnectedError(SupervisorError):
    """Raised when connect is requested for an id with a live connection."""

    def __init__(self, session_id: str):
        super().__init__(
            code=ErrorCode.ALREADY_CONNECTED,
            message=f"Bot already connected: {session_id}",
            details={"botId": session_id},
        )


class ConfigNotFoundError(SupervisorError):
    """Raised when reconnect is requested for an id with no stored config."""

    def __init__(self, session_id: str):
        super().__init__(
            code=ErrorCode.CONFIG_NOT_FOUND,
            message=f"Bot config not found: {session_id}. Use connect instead.",
            details={"botId": session_id},
        )


class UnknownSessionError(SupervisorError):
    """Raised when an operation targets an id that was never registered."""

    def __init__(self, session_id: str):
        super().__init__(
            code=ErrorCode.UNKNOWN_SESSION,
            message=f"Bot not found: {session_id}",
            details={"botId": session_id},
        )


class ProfileNotFoundError(SupervisorError):
    """Raised when a stored profile does not exist."""

    def __init__(self, profile_id: str):
        super().__init__(
            code=ErrorCode.PROFILE_NOT_FOUND,
            message=f"Profile not found: {profile_id}",
            details={"profileId": profile_id},
        )


class TransportError(SupervisorError):
    """Raised by the protocol layer when a dial or a live session fails.

    The supervisor records it as session status and a system chat event;
    it never escapes to the caller of a supervisor operation.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            code=ErrorCode.TRANSPORT_ERROR,
            message=message,
            details=details,
        )
