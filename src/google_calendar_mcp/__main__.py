"""
Entry point for the Google Calendar MCP server.
"""

import logging
import sys

from . import create_server
from .config import load_config
from .errors import CalendarError
from .service import create_calendar_service

logger = logging.getLogger(__name__)


def main():
    """Loads configuration and serves the tools on the configured transport."""
    try:
        config = load_config()
    except CalendarError as e:
        logging.basicConfig(level=logging.ERROR)
        logger.error("Failed to load configuration: %s", e)
        if e.details:
            logger.error("%s", e.details)
        sys.exit(1)

    # Logs go to stderr; stdout carries the stdio transport
    logging.basicConfig(
        level=config.logging_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Loaded configuration: %s", config)

    try:
        service = create_calendar_service(config)
    except CalendarError as e:
        logger.warning("Failed to create calendar service: %s", e)
        logger.warning(
            "Calendar tools will return errors until valid credentials are provided"
        )
        service = None

    mcp = create_server(config, service)
    logger.info(
        "Server '%s' v%s starting on %s", config.server_name, config.server_version, config.transport
    )

    if config.transport == "stdio":
        mcp.run(transport="stdio")
    else:
        mcp.run(transport=config.transport, host=config.host, port=config.port)


if __name__ == "__main__":
    main()
