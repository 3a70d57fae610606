"""
Calendar operations backed by the Google Calendar API.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional, Protocol, Tuple

import httplib2
from google.auth.exceptions import RefreshError
from googleapiclient.errors import HttpError

from .auth import AuthManager
from .availability import AvailabilityCalculator, BusyInterval, QueryWindow, TimeSlot
from .config import CalendarConfig
from .errors import (
    API_QUOTA_EXCEEDED,
    CALENDAR_NOT_FOUND,
    EVENT_CONFLICT,
    EVENT_NOT_FOUND,
    INVALID_CREDENTIALS,
    INVALID_EVENT_DATA,
    INVALID_TIME_RANGE,
    NETWORK_TIMEOUT,
    PERMISSION_DENIED,
    SERVICE_UNAVAILABLE,
    AuthenticationError,
    CalendarError,
    ConflictError,
    InternalError,
    InvalidInputError,
    NetworkError,
    NotFoundError,
    PermissionDeniedError,
    QuotaExceededError,
    RequestTimeoutError,
)
from .models import (
    DEFAULT_MAX_RESULTS,
    EVENT_STATUS_CANCELLED,
    EVENT_STATUS_CONFIRMED,
    CalendarInfo,
    Event,
    EventCreateRequest,
    EventUpdateRequest,
    format_rfc3339,
    normalize_max_results,
    parse_rfc3339,
)

logger = logging.getLogger(__name__)

# Largest page the Events.list endpoint accepts
PAGE_SIZE = 250

QUOTA_REASONS = {
    "rateLimitExceeded",
    "userRateLimitExceeded",
    "quotaExceeded",
    "dailyLimitExceeded",
}


class CalendarService(Protocol):
    """Protocol defining the calendar operations exposed as tools."""

    def check_availability(
        self, start: datetime, end: datetime, calendar_id: Optional[str] = None
    ) -> List[TimeSlot]: ...

    """Free and busy slots within a time window."""

    def create_event(self, request: EventCreateRequest) -> Event: ...

    """Create a new event."""

    def list_events(
        self, start: datetime, end: datetime, max_results: int = DEFAULT_MAX_RESULTS
    ) -> List[Event]: ...

    """List events in a time window."""

    def update_event(self, event_id: str, update: EventUpdateRequest) -> Event: ...

    """Apply a partial update to an event."""

    def delete_event(self, event_id: str) -> None: ...

    """Delete an event."""

    def search_events(
        self,
        query: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        max_results: int = DEFAULT_MAX_RESULTS,
    ) -> List[Event]: ...

    """Search events by free text."""

    def get_calendar_info(self) -> CalendarInfo: ...

    """Basic calendar information."""


def _error_reasons(err: HttpError) -> set[str]:
    details = getattr(err, "error_details", None)
    if not isinstance(details, list):
        return set()
    return {d.get("reason", "") for d in details if isinstance(d, dict)}


def translate_http_error(
    err: HttpError,
    action: str,
    not_found: Optional[Tuple[str, str]] = None,
) -> CalendarError:
    """Maps a Google API HTTP error onto the calendar error hierarchy."""
    status = err.resp.status
    reasons = _error_reasons(err)

    if status == 404:
        code, message = not_found or (EVENT_NOT_FOUND, f"Not found: {action}")
        return NotFoundError(code, message)
    if status == 429 or reasons & QUOTA_REASONS:
        return QuotaExceededError(API_QUOTA_EXCEEDED, "Calendar API quota exceeded")
    if status == 403:
        return PermissionDeniedError(PERMISSION_DENIED, f"Permission denied to {action}")
    if status == 401:
        return AuthenticationError(INVALID_CREDENTIALS, f"Not authorized to {action}")
    if status in (409, 412):
        return ConflictError(EVENT_CONFLICT, f"Conflict while trying to {action}")
    if status == 400:
        return InvalidInputError(
            INVALID_EVENT_DATA, f"Invalid request to {action}", str(getattr(err, "reason", ""))
        )
    return InternalError(SERVICE_UNAVAILABLE, f"Failed to {action}")


class GoogleCalendarService:
    """CalendarService implementation using the Google Calendar API."""

    def __init__(self, config: CalendarConfig, auth_manager: AuthManager | None = None):
        self.config = config
        self.auth_manager = auth_manager or AuthManager(config)
        self.calculator = AvailabilityCalculator()
        self.tz = config.get_tz()

    # API plumbing

    def _api(self):
        return self.auth_manager.get_calendar_api()

    def _execute(
        self,
        request,
        action: str,
        not_found: Optional[Tuple[str, str]] = None,
    ) -> Dict[str, Any]:
        """Executes an API request, translating transport failures."""
        try:
            return request.execute()
        except HttpError as e:
            raise translate_http_error(e, action, not_found) from e
        except RefreshError as e:
            raise AuthenticationError(
                INVALID_CREDENTIALS, "Failed to refresh credentials"
            ) from e
        except TimeoutError as e:
            raise RequestTimeoutError(
                NETWORK_TIMEOUT, f"Timed out while trying to {action}"
            ) from e
        except (OSError, httplib2.HttpLib2Error) as e:
            raise NetworkError(
                SERVICE_UNAVAILABLE, f"Network error while trying to {action}"
            ) from e

    def _list_items(
        self,
        action: str,
        limit: Optional[int] = None,
        calendar_id: Optional[str] = None,
        **params: Any,
    ) -> List[Dict[str, Any]]:
        """Pages through Events.list until exhausted or ``limit`` items."""
        api = self._api()
        items: List[Dict[str, Any]] = []
        page_token = None

        while True:
            page_size = PAGE_SIZE if limit is None else min(PAGE_SIZE, limit - len(items))
            kwargs = dict(
                calendarId=calendar_id or self.config.calendar_id,
                singleEvents=True,
                orderBy="startTime",
                maxResults=page_size,
                **params,
            )
            if page_token:
                kwargs["pageToken"] = page_token

            response = self._execute(api.events().list(**kwargs), action)
            items.extend(response.get("items", []))
            page_token = response.get("nextPageToken")

            if not page_token or (limit is not None and len(items) >= limit):
                break

        return items if limit is None else items[:limit]

    # Conversion

    def _parse_event_time(self, value: Dict[str, Any]) -> Tuple[Optional[datetime], bool]:
        """Resolves a Google EventDateTime into an instant.

        All-day events carry a ``date`` and start at local midnight in the
        configured timezone.
        """
        if value.get("dateTime"):
            try:
                return parse_rfc3339(value["dateTime"], "event time"), False
            except InvalidInputError:
                logger.warning("Ignoring unparseable event time: %s", value["dateTime"])
                return None, False
        if value.get("date"):
            d = date.fromisoformat(value["date"])
            return datetime.combine(d, time(0, 0), tzinfo=self.tz), True
        return None, False

    @staticmethod
    def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
        if not value:
            return None
        try:
            return parse_rfc3339(value, "timestamp")
        except InvalidInputError:
            return None

    def _to_event(self, item: Dict[str, Any]) -> Event:
        start, all_day = self._parse_event_time(item.get("start", {}))
        end, _ = self._parse_event_time(item.get("end", {}))

        return Event(
            id=item.get("id", ""),
            summary=item.get("summary", ""),
            description=item.get("description", ""),
            start_time=start,
            end_time=end,
            all_day=all_day,
            location=item.get("location", ""),
            attendees=[a["email"] for a in item.get("attendees", []) if a.get("email")],
            status=item.get("status", EVENT_STATUS_CONFIRMED),
            html_link=item.get("htmlLink", ""),
            created_at=self._parse_timestamp(item.get("created")),
            updated_at=self._parse_timestamp(item.get("updated")),
        )

    def _to_busy_intervals(self, items: List[Dict[str, Any]]) -> List[BusyInterval]:
        """Converts API events to busy intervals.

        Transparent ("show as available") and cancelled events do not block
        time.
        """
        busy: List[BusyInterval] = []
        for item in items:
            if item.get("transparency") == "transparent":
                continue
            if item.get("status") == EVENT_STATUS_CANCELLED:
                continue

            start, _ = self._parse_event_time(item.get("start", {}))
            end, _ = self._parse_event_time(item.get("end", {}))
            if start is None or end is None:
                logger.warning("Skipping event %s without start or end", item.get("id"))
                continue

            busy.append(BusyInterval(start=start, end=end))
        return busy

    def _event_time(self, dt: datetime) -> Dict[str, str]:
        return {"dateTime": format_rfc3339(dt), "timeZone": self.config.timezone}

    @staticmethod
    def _attendees(emails: List[str]) -> List[Dict[str, str]]:
        return [{"email": email} for email in emails]

    # Operations

    def check_availability(
        self, start: datetime, end: datetime, calendar_id: Optional[str] = None
    ) -> List[TimeSlot]:
        """Free and busy slots within ``[start, end)``.

        Args:
            start: Window start.
            end: Window end, strictly after start.
            calendar_id: Calendar to check instead of the configured one.
        """
        if start >= end:
            raise InvalidInputError(
                INVALID_TIME_RANGE, "Start time must be before end time"
            )

        items = self._list_items(
            "retrieve events",
            calendar_id=calendar_id,
            timeMin=format_rfc3339(start),
            timeMax=format_rfc3339(end),
        )
        busy = self._to_busy_intervals(items)
        logger.info("Found %d busy intervals between %s and %s", len(busy), start, end)

        return self.calculator.compute(QueryWindow(start=start, end=end), busy)

    def create_event(self, request: EventCreateRequest) -> Event:
        """Creates a new event in the configured calendar."""
        body: Dict[str, Any] = {
            "summary": request.summary,
            "start": self._event_time(request.start_time),
            "end": self._event_time(request.end_time),
        }
        if request.description:
            body["description"] = request.description
        if request.location:
            body["location"] = request.location
        if request.attendees:
            body["attendees"] = self._attendees(request.attendees)

        api = self._api()
        created = self._execute(
            api.events().insert(calendarId=self.config.calendar_id, body=body),
            "create event",
        )
        logger.info("Created event %s", created.get("id"))
        return self._to_event(created)

    def list_events(
        self, start: datetime, end: datetime, max_results: int = DEFAULT_MAX_RESULTS
    ) -> List[Event]:
        """Lists events between ``start`` and ``end``."""
        if start > end:
            raise InvalidInputError(
                INVALID_TIME_RANGE, "Start time must be before end time"
            )

        items = self._list_items(
            "retrieve events",
            limit=normalize_max_results(max_results),
            timeMin=format_rfc3339(start),
            timeMax=format_rfc3339(end),
        )
        return [self._to_event(item) for item in items]

    def update_event(self, event_id: str, update: EventUpdateRequest) -> Event:
        """Applies the provided fields of ``update`` to an existing event."""
        if not event_id:
            raise InvalidInputError(INVALID_EVENT_DATA, "Event ID is required")

        not_found = (EVENT_NOT_FOUND, f"Event not found: {event_id}")
        api = self._api()
        event = self._execute(
            api.events().get(calendarId=self.config.calendar_id, eventId=event_id),
            "retrieve event",
            not_found,
        )

        if update.summary is not None:
            event["summary"] = update.summary
        if update.description is not None:
            event["description"] = update.description
        if update.location is not None:
            event["location"] = update.location
        if update.start_time is not None:
            event["start"] = self._event_time(update.start_time)
        if update.end_time is not None:
            event["end"] = self._event_time(update.end_time)
        if update.attendees is not None:
            event["attendees"] = self._attendees(update.attendees)

        # Start and end must both be all-day dates or both be timed
        if ("date" in event.get("start", {})) != ("date" in event.get("end", {})):
            raise InvalidInputError(
                INVALID_TIME_RANGE,
                "Start and end time must both be set when changing an all-day event",
            )

        start, _ =self._parse_event_time(event.get("start", {}))
        end, _ = self._parse_event_time(event.get("end", {}))
        if start is not None and end is not None and start > end:
            raise InvalidInputError(
                INVALID_TIME_RANGE, "Start time must be before end time"
            )

        updated = self._execute(
            api.events().update(
                calendarId=self.config.calendar_id, eventId=event_id, body=event
            ),
            "update event",
            not_found,
        )
        logger.info("Updated event %s", event_id)
        return self._to_event(updated)

    def delete_event(self, event_id: str) -> None:
        """Deletes an event."""
        if not event_id:
            raise InvalidInputError(INVALID_EVENT_DATA, "Event ID is required")

        api = self._api()
        self._execute(
            api.events().delete(calendarId=self.config.calendar_id, eventId=event_id),
            "delete event",
            (EVENT_NOT_FOUND, f"Event not found: {event_id}"),
        )
        logger.info("Successfully deleted event: %s", event_id)

    def search_events(
        self,
        query: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        max_results: int = DEFAULT_MAX_RESULTS,
    ) -> List[Event]:
        """Searches events matching ``query``, optionally within a window."""
        if not query or not query.strip():
            raise InvalidInputError(INVALID_EVENT_DATA, "Search query is required")
        if start is not None and end is not None and start > end:
            raise InvalidInputError(
                INVALID_TIME_RANGE, "Start time must be before end time"
            )

        params: Dict[str, Any] = {"q": query}
        if start is not None:
            params["timeMin"] = format_rfc3339(start)
        if end is not None:
            params["timeMax"] = format_rfc3339(end)

        items = self._list_items(
            "search events", limit=normalize_max_results(max_results), **params
        )
        return [self._to_event(item) for item in items]

    def get_calendar_info(self) -> CalendarInfo:
        """Basic information about the configured calendar."""
        api = self._api()
        info = self._execute(
            api.calendars().get(calendarId=self.config.calendar_id),
            "get calendar info",
            (CALENDAR_NOT_FOUND, f"Calendar not found: {self.config.calendar_id}"),
        )
        return CalendarInfo(
            id=info.get("id", self.config.calendar_id),
            summary=info.get("summary", ""),
            description=info.get("description", ""),
            timezone=info.get("timeZone", ""),
            location=info.get("location", ""),
        )

    def validate_credentials(self) -> None:
        """Checks that the credentials can access the configured calendar."""
        self.get_calendar_info()
        logger.info(
            "Successfully validated credentials for calendar: %s", self.config.calendar_id
        )


def create_calendar_service(config: CalendarConfig) -> GoogleCalendarService:
    """Creates a calendar service and validates its credentials."""
    service = GoogleCalendarService(config)
    service.validate_credentials()
    return service
