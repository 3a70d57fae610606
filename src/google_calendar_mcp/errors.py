"""
Error hierarchy for the Google Calendar MCP server.

Every failure surfaced to a tool caller is one of the CalendarError subclasses
below. Tools convert them into a JSON error envelope via ``error_response``.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict


class ErrorType(str, Enum):
    """Categories of calendar errors."""

    NOT_FOUND = "NOT_FOUND"
    PERMISSION = "PERMISSION_DENIED"
    INVALID_INPUT = "INVALID_INPUT"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    INTERNAL = "INTERNAL_ERROR"
    AUTHENTICATION = "AUTHENTICATION_ERROR"
    NETWORK = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT_ERROR"
    CONFLICT = "CONFLICT_ERROR"


# Error codes
EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
CALENDAR_NOT_FOUND = "CALENDAR_NOT_FOUND"
INVALID_TIME_FORMAT = "INVALID_TIME_FORMAT"
INVALID_TIME_RANGE = "INVALID_TIME_RANGE"
MISSING_CREDENTIALS = "MISSING_CREDENTIALS"
INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
API_QUOTA_EXCEEDED = "API_QUOTA_EXCEEDED"
PERMISSION_DENIED = "PERMISSION_DENIED"
NETWORK_TIMEOUT = "NETWORK_TIMEOUT"
SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
INVALID_EVENT_DATA = "INVALID_EVENT_DATA"
EVENT_CONFLICT = "EVENT_CONFLICT"
CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
MALFORMED_INTERVAL = "MALFORMED_INTERVAL"


class CalendarError(Exception):
    """Base class for all calendar errors."""

    error_type: ErrorType = ErrorType.INTERNAL

    def __init__(self, code: str, message: str, details: str = ""):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.__cause__ is not None:
            return f"{self.code}: {self.message} (caused by: {self.__cause__})"
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, str]:
        """Serialize to the error envelope returned by tools."""
        data = {
            "error": str(self),
            "code": self.code,
            "type": self.error_type.value,
        }
        if self.details:
            data["details"] = self.details
        return data


class NotFoundError(CalendarError):
    error_type = ErrorType.NOT_FOUND


class PermissionDeniedError(CalendarError):
    error_type = ErrorType.PERMISSION


class InvalidInputError(CalendarError):
    error_type = ErrorType.INVALID_INPUT


class QuotaExceededError(CalendarError):
    error_type = ErrorType.QUOTA_EXCEEDED


class InternalError(CalendarError):
    error_type = ErrorType.INTERNAL


class AuthenticationError(CalendarError):
    error_type = ErrorType.AUTHENTICATION


class NetworkError(CalendarError):
    error_type = ErrorType.NETWORK


class RequestTimeoutError(CalendarError):
    error_type = ErrorType.TIMEOUT


class ConflictError(CalendarError):
    error_type = ErrorType.CONFLICT


class ConfigurationError(InvalidInputError):
    """Raised when the server configuration is invalid."""

    def __init__(self, message: str, details: str = ""):
        super().__init__(CONFIGURATION_ERROR, message, details)


class MalformedInterval(InvalidInputError):
    """Raised when a busy interval ends before it starts."""

    def __init__(self, index: int, start: datetime, end: datetime):
        super().__init__(
            MALFORMED_INTERVAL,
            f"Busy interval #{index} ends before it starts",
            f"start={start.isoformat()}, end={end.isoformat()}",
        )
        self.index = index
        self.start = start
        self.end = end


def error_response(exc: BaseException) -> Dict[str, Any]:
    """Converts any exception into a tool error envelope."""
    if isinstance(exc, CalendarError):
        return exc.to_dict()
    return {
        "error": str(exc),
        "code": ErrorType.INTERNAL.value,
        "type": ErrorType.INTERNAL.value,
    }


__all__ = [
    "ErrorType",
    "CalendarError",
    "NotFoundError",
    "PermissionDeniedError",
    "InvalidInputError",
    "QuotaExceededError",
    "InternalError",
    "AuthenticationError",
    "NetworkError",
    "RequestTimeoutError",
    "ConflictError",
    "ConfigurationError",
    "MalformedInterval",
    "error_response",
]
