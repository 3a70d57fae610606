"""
Google Calendar MCP package initialization.
"""

from fastmcp import FastMCP

from .availability import AvailabilityCalculator, Interval, TimeSlot, compute_time_slots
from .config import CalendarConfig, load_config
from .errors import CalendarError, MalformedInterval
from .service import CalendarService, GoogleCalendarService, create_calendar_service
from .tools import CalendarTools, calculate


def create_server(
    config: CalendarConfig | None = None,
    service: CalendarService | None = None,
) -> FastMCP:
    """Builds the MCP server and registers all tools.

    Args:
        config: Server configuration. Only the server name is read here.
        service: Calendar backend; None registers tools that report the
            calendar as unavailable.
    """
    mcp = FastMCP(
        name=config.server_name if config else "Google Calendar MCP Server",
        instructions="Checks availability and manages events in a Google Calendar: free/busy slots, event creation, listing, updates, deletion and search.",
    )

    tools = CalendarTools(service)

    # Register tools
    mcp.tool(calculate)
    mcp.tool(tools.check_google_calendar)
    mcp.tool(tools.create_calendar_event)
    mcp.tool(tools.list_calendar_events)
    mcp.tool(tools.update_calendar_event)
    mcp.tool(tools.delete_calendar_event)
    mcp.tool(tools.search_calendar_events)
    mcp.tool(tools.get_calendar_info)

    return mcp


__all__ = [
    "create_server",
    "AvailabilityCalculator",
    "Interval",
    "TimeSlot",
    "compute_time_slots",
    "CalendarConfig",
    "load_config",
    "CalendarError",
    "MalformedInterval",
    "CalendarService",
    "GoogleCalendarService",
    "create_calendar_service",
    "CalendarTools",
    "calculate",
]
