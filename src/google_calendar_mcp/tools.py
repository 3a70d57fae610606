"""
MCP tool implementations for the Google Calendar server.
This module turns tool arguments into service calls and service results into
JSON-serialisable responses.
"""

import logging
from typing import Annotated, Any, Dict, Literal, Optional

from pydantic import Field, ValidationError

from .errors import SERVICE_UNAVAILABLE, CalendarError, InternalError, error_response
from .models import (
    EventCreateRequest,
    EventUpdateRequest,
    format_rfc3339,
    invalid_request,
    normalize_max_results,
    parse_attendees,
    parse_rfc3339,
)
from .service import CalendarService

logger = logging.getLogger(__name__)

RFC3339_HINT = "in RFC3339 format (e.g., 2024-07-22T09:00:00Z)"


def _failure(action: str, exc: Exception) -> Dict[str, Any]:
    if isinstance(exc, CalendarError):
        logger.error("Failed to %s: %s", action, exc)
    else:
        logger.exception("Unexpected error trying to %s", action)
    return error_response(exc)


def _optional_time(value: Optional[str], field: str):
    if value is None or not value.strip():
        return None
    return parse_rfc3339(value, field)


class CalendarTools:
    """Calendar tools bound to a service instance.

    The service may be None when credentials could not be validated at
    start-up; every tool then reports the calendar as unavailable.
    """

    def __init__(self, service: CalendarService | None):
        self.service = service

    def _require_service(self) -> CalendarService:
        if self.service is None:
            raise InternalError(
                SERVICE_UNAVAILABLE,
                "Calendar service unavailable. Please check your Google Calendar credentials configuration.",
            )
        return self.service

    def check_google_calendar(
        self,
        start_time: Annotated[
            str,
            Field(description=f"The start of the time window to check, {RFC3339_HINT}."),
        ],
        end_time: Annotated[
            str,
            Field(description=f"The end of the time window to check, {RFC3339_HINT}."),
        ],
        calendar_id: Annotated[
            Optional[str],
            Field(
                description="Specific calendar ID to check. Defaults to the configured calendar if not provided."
            ),
        ] = None,
    ) -> Dict[str, Any]:
        """Checks for available time slots in a Google Calendar within a specified time range. Returns the ordered free and busy slots that exactly cover the window; overlapping meetings are merged into one busy slot."""
        logger.info("Checking availability %s - %s", start_time, end_time)
        try:
            service = self._require_service()
            start = parse_rfc3339(start_time, "start_time")
            end = parse_rfc3339(end_time, "end_time")
            slots = service.check_availability(start, end, calendar_id=calendar_id or None)
        except Exception as e:
            return _failure("check availability", e)

        return {
            "time_range": {"start": format_rfc3339(start), "end": format_rfc3339(end)},
            "time_slots": [slot.to_dict() for slot in slots],
        }

    def create_calendar_event(
        self,
        title: Annotated[str, Field(description="The title/summary of the event.")],
        start_time: Annotated[
            str, Field(description=f"The start time for the event, {RFC3339_HINT}.")
        ],
        end_time: Annotated[
            str, Field(description=f"The end time for the event, {RFC3339_HINT}.")
        ],
        description: Annotated[
            str, Field(description="A description for the event.")
        ] = "",
        location: Annotated[str, Field(description="The location for the event.")] = "",
        attendees: Annotated[
            str,
            Field(description="Comma-separated list of attendee email addresses."),
        ] = "",
    ) -> Dict[str, Any]:
        """Creates a new event in a Google Calendar."""
        logger.info("Creating event '%s'", title)
        try:
            service = self._require_service()
            start = parse_rfc3339(start_time, "start_time")
            end = parse_rfc3339(end_time, "end_time")
            try:
                request = EventCreateRequest(
                    summary=title,
                    start_time=start,
                    end_time=end,
                    description=description,
                    location=location,
                    attendees=parse_attendees(attendees),
                )
            except ValidationError as e:
                raise invalid_request(e) from None
            event = service.create_event(request)
        except Exception as e:
            return _failure("create event", e)

        return {
            "success": True,
            "message": f"Successfully created event '{event.summary}'",
            "event": event.model_dump(mode="json"),
        }

    def list_calendar_events(
        self,
        start_time: Annotated[
            str,
            Field(description=f"The start of the time window to list events, {RFC3339_HINT}."),
        ],
        end_time: Annotated[
            str,
            Field(description=f"The end of the time window to list events, {RFC3339_HINT}."),
        ],
        max_results: Annotated[
            Optional[int],
            Field(description="Maximum number of events to return (1-250, default: 50)."),
        ] = None,
    ) -> Dict[str, Any]:
        """Lists events in a Google Calendar within a specified time range."""
        try:
            service = self._require_service()
            start = parse_rfc3339(start_time, "start_time")
            end = parse_rfc3339(end_time, "end_time")
            events = service.list_events(
                start, end, max_results=normalize_max_results(max_results)
            )
        except Exception as e:
            return _failure("list events", e)

        return {
            "time_range": {"start": format_rfc3339(start), "end": format_rfc3339(end)},
            "event_count": len(events),
            "events": [event.model_dump(mode="json") for event in events],
        }

    def update_calendar_event(
        self,
        event_id: Annotated[str, Field(description="The ID of the event to update.")],
        title: Annotated[
            Optional[str],
            Field(description="New title for the event. Omit to keep the current title."),
        ] = None,
        start_time: Annotated[
            Optional[str],
            Field(description=f"New start time for the event, {RFC3339_HINT}."),
        ] = None,
        end_time: Annotated[
            Optional[str],
            Field(description=f"New end time for the event, {RFC3339_HINT}."),
        ] = None,
        description: Annotated[
            Optional[str],
            Field(
                description="New description for the event. Omit to keep it, pass an empty string to clear it."
            ),
        ] = None,
        location: Annotated[
            Optional[str],
            Field(
                description="New location for the event. Omit to keep it, pass an empty string to clear it."
            ),
        ] = None,
        attendees: Annotated[
            Optional[str],
            Field(
                description="Comma-separated list of attendee email addresses replacing the current ones. Pass an empty string to remove all attendees."
            ),
        ] = None,
    ) -> Dict[str, Any]:
        """Updates an existing event in a Google Calendar. Only the provided fields are changed."""
        logger.info("Updating event %s", event_id)
        try:
            service = self._require_service()
            try:
                update = EventUpdateRequest(
                    summary=title,
                    description=description,
                    location=location,
                    start_time=_optional_time(start_time, "start_time"),
                    end_time=_optional_time(end_time, "end_time"),
                    attendees=parse_attendees(attendees) if attendees is not None else None,
                )
            except ValidationError as e:
                raise invalid_request(e) from None
            event = service.update_event(event_id, update)
        except Exception as e:
            return _failure("update event", e)

        return {
            "success": True,
            "message": f"Successfully updated event '{event.summary}'",
            "event": event.model_dump(mode="json"),
        }

    def delete_calendar_event(
        self,
        event_id: Annotated[str, Field(description="The ID of the event to delete.")],
    ) -> Dict[str, Any]:
        """Deletes an event from a Google Calendar."""
        logger.info("Deleting event %s", event_id)
        try:
            self._require_service().delete_event(event_id)
        except Exception as e:
            return _failure("delete event", e)

        return {
            "success": True,
            "message": f"Successfully deleted event with ID: {event_id}",
        }

    def search_calendar_events(
        self,
        query: Annotated[
            str,
            Field(description="Search query to match against event titles and descriptions."),
        ],
        start_time: Annotated[
            Optional[str],
            Field(description=f"Optional start time to limit search, {RFC3339_HINT}."),
        ] = None,
        end_time: Annotated[
            Optional[str],
            Field(description=f"Optional end time to limit search, {RFC3339_HINT}."),
        ] = None,
        max_results: Annotated[
            Optional[int],
            Field(description="Maximum number of events to return (1-250, default: 50)."),
        ] = None,
    ) -> Dict[str, Any]:
        """Searches for events in a Google Calendar matching a query."""
        try:
            service = self._require_service()
            start = _optional_time(start_time, "start_time")
            end = _optional_time(end_time, "end_time")
            events = service.search_events(
                query, start, end, max_results=normalize_max_results(max_results)
            )
        except Exception as e:
            return _failure("search events", e)

        response: Dict[str, Any] = {
            "query": query,
            "event_count": len(events),
            "events": [event.model_dump(mode="json") for event in events],
        }
        if start is not None or end is not None:
            time_range = {}
            if start is not None:
                time_range["start"] = format_rfc3339(start)
            if end is not None:
                time_range["end"] = format_rfc3339(end)
            response["time_range"] = time_range
        return response

    def get_calendar_info(self) -> Dict[str, Any]:
        """Gets basic information about the configured Google Calendar."""
        try:
            info = self._require_service().get_calendar_info()
        except Exception as e:
            return _failure("get calendar info", e)
        return info.model_dump(mode="json")


def calculate(
    operation: Annotated[
        Literal["add", "subtract", "multiply", "divide"],
        Field(description="The operation to perform (add, subtract, multiply, divide)"),
    ],
    x: Annotated[float, Field(description="First number")],
    y: Annotated[float, Field(description="Second number")],
) -> str | Dict[str, str]:
    """Perform basic arithmetic operations"""
    if operation == "add":
        result = x + y
    elif operation == "subtract":
        result = x - y
    elif operation == "multiply":
        result = x * y
    elif operation == "divide":
        if y == 0:
            return {"error": "cannot divide by zero"}
        result = x / y
    else:
        return {"error": f"Unknown operation: {operation}"}

    logger.info("Calculated result: %.2f", result)
    return f"{result:.2f}"


__all__ = ["CalendarTools", "calculate"]
