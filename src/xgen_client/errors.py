"""
Error classes for xGen panel communication.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Error codes for common scenarios."""

    # Authentication errors
    AUTH_REJECTED = "AUTH_REJECTED"
    AUTH_PROTOCOL_ERROR = "AUTH_PROTOCOL_ERROR"
    SESSION_EXPIRED = "SESSION_EXPIRED"

    # Response errors
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    PANEL_ERROR = "PANEL_ERROR"

    # Connection errors
    TRANSPORT_ERROR = "TRANSPORT_ERROR"

    # Unknown
    UNKNOWN = "UNKNOWN"


class XGenError(Exception):
    """
    Custom exception for xGen client operations.

    Provides structured error information for consistent error handling.
    Subclasses pin the error code so callers can catch either the specific
    class or the base class and inspect ``code``.
    """

    default_code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | str | None = None,
        status: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize an XGenError.

        Args:
            message: Human-readable error message
            code: Error code (defaults to the class default)
            status: HTTP status code if applicable
            details: Additional structured details (e.g., panel error object, body snippet)
        """
        super().__init__(message)
        if code is None:
            code = self.default_code
        self.code = code if isinstance(code, ErrorCode) else ErrorCode(code)
        self.status = status
        self.details = details or {}

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.code != ErrorCode.UNKNOWN:
            parts.append(f"code={self.code}")
        if self.status is not None:
            parts.append(f"status={self.status}")
        if self.details:
            parts.append(f"details={self.details}")
        return " ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({super().__str__()!r}, code={self.code!r}, "
            f"status={self.status!r}, details={self.details!r})"
        )


class AuthRejected(XGenError):
    """Panel refused the credentials, or the user lacks web/area permissions."""

    default_code = ErrorCode.AUTH_REJECTED


class AuthProtocolError(XGenError):
    """Login response had an unexpected shape (no session token, no login form)."""

    default_code = ErrorCode.AUTH_PROTOCOL_ERROR


class SessionExpired(XGenError):
    """Panel answered with its login page. Handled inside XGenClient.call()."""

    default_code = ErrorCode.SESSION_EXPIRED


class MalformedResponse(XGenError):
    """Response body could not be parsed as expected."""

    default_code = ErrorCode.MALFORMED_RESPONSE


class PanelError(XGenError):
    """Panel returned a structured error object."""

    default_code = ErrorCode.PANEL_ERROR


class TransportError(XGenError):
    """Network failure talking to the panel."""

    default_code = ErrorCode.TRANSPORT_ERROR
