"""
Domain models for calendar events and requests.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .errors import (
    INVALID_EVENT_DATA,
    INVALID_TIME_FORMAT,
    INVALID_TIME_RANGE,
    InvalidInputError,
)

DEFAULT_MAX_RESULTS = 50
MAX_RESULTS_LIMIT = 250
DEFAULT_TIMEZONE = "UTC"
DEFAULT_CALENDAR_ID = "primary"

EVENT_STATUS_CONFIRMED = "confirmed"
EVENT_STATUS_TENTATIVE = "tentative"
EVENT_STATUS_CANCELLED = "cancelled"

# Fractional seconds, normalised to microseconds before fromisoformat
_FRACTION = re.compile(r"\.(\d+)")


def parse_rfc3339(value: str, field: str = "time") -> datetime:
    """Parses an RFC3339 timestamp such as ``2024-01-15T09:00:00Z``.

    Raises:
        InvalidInputError: if the value is not a timezone-aware timestamp.
    """
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise InvalidInputError(
            INVALID_TIME_FORMAT,
            f"Invalid {field} format. Please use RFC3339 format: {e}",
        ) from None
    if parsed.tzinfo is None or parsed.utcoffset() is None:
        raise InvalidInputError(
            INVALID_TIME_FORMAT,
            f"Invalid {field} format. Timezone offset is required (e.g. 2024-01-15T09:00:00Z)",
        )
    return parsed


def format_rfc3339(dt: datetime) -> str:
    """Formats a timestamp as RFC3339, rendering UTC as ``Z``."""
    if dt.utcoffset() == timedelta(0):
        return dt.replace(tzinfo=None).isoformat() + "Z"
    return dt.isoformat()


def parse_attendees(value: str) -> List[str]:
    """Splits a comma-separated attendee list."""
    return [email.strip() for email in value.split(",") if email.strip()]


def normalize_max_results(value: Optional[int]) -> int:
    """Clamps requested result counts to the accepted range."""
    if value is not None and 0 < value <= MAX_RESULTS_LIMIT:
        return value
    return DEFAULT_MAX_RESULTS


def invalid_request(e: ValidationError) -> InvalidInputError:
    """Converts a request validation failure into an InvalidInputError."""
    messages = [err["msg"].removeprefix("Value error, ") for err in e.errors()]
    code = INVALID_EVENT_DATA
    if any("before end time" in m for m in messages):
        code = INVALID_TIME_RANGE
    return InvalidInputError(code, "; ".join(messages))


def _check_attendees(attendees: Optional[List[str]]) -> Optional[List[str]]:
    for email in attendees or []:
        if "@" not in email:
            raise ValueError(f"Invalid email format: {email}")
    return attendees


class Event(BaseModel):
    """A calendar event."""

    id: str
    summary: str = ""
    description: str = ""
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    all_day: bool = False
    location: str = ""
    attendees: List[str] = Field(default_factory=list)
    status: str = EVENT_STATUS_CONFIRMED
    html_link: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CalendarInfo(BaseModel):
    """Basic calendar information."""

    id: str
    summary: str = ""
    description: str = ""
    timezone: str = ""
    location: str = ""


class EventCreateRequest(BaseModel):
    """A request to create an event."""

    summary: str
    start_time: datetime
    end_time: datetime
    description: str = ""
    location: str = ""
    attendees: List[str] = Field(default_factory=list)

    @field_validator("summary")
    @classmethod
    def validate_summary(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Event summary is required")
        return v

    @field_validator("attendees")
    @classmethod
    def validate_attendees(cls, v: List[str]) -> List[str]:
        return _check_attendees(v)

    @model_validator(mode="after")
    def validate_order(self) -> "EventCreateRequest":
        if self.start_time > self.end_time:
            raise ValueError("Start time must be before end time")
        return self


class EventUpdateRequest(BaseModel):
    """A partial update of an event.

    ``None`` leaves a field unchanged. An empty string clears it, and an empty
    attendee list removes all attendees.
    """

    summary: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    attendees: Optional[List[str]] = None

    @field_validator("attendees")
    @classmethod
    def validate_attendees(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _check_attendees(v)

    @model_validator(mode="after")
    def validate_order(self) -> "EventUpdateRequest":
        if (
            self.start_time is not None
            and self.end_time is not None
            and self.start_time > self.end_time
        ):
            raise ValueError("Start time must be before end time")
        return self
