"""
Credential loading and Google Calendar API client construction.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

from google.auth.exceptions import GoogleAuthError
from google.oauth2 import credentials as user_credentials
from google.oauth2 import service_account
from googleapiclient.discovery import build

from .config import CalendarConfig
from .errors import (
    INVALID_CREDENTIALS,
    MISSING_CREDENTIALS,
    SERVICE_UNAVAILABLE,
    AuthenticationError,
    InternalError,
)

logger = logging.getLogger(__name__)

CALENDAR_SCOPES = ["https://www.googleapis.com/auth/calendar"]


class AuthManager:
    """Loads credentials once and hands out authenticated API clients."""

    def __init__(self, config: CalendarConfig):
        self.config = config
        self._credentials = None

    def load_credentials_info(self) -> Dict[str, Any]:
        """Reads the credentials JSON from an inline string or a file path."""
        source = self.config.credentials_json.strip()
        if not source:
            raise AuthenticationError(MISSING_CREDENTIALS, "No credentials provided")

        if source.startswith("{"):
            raw = source
        else:
            path = Path(source)
            if not path.exists():
                raise AuthenticationError(
                    MISSING_CREDENTIALS, f"Credentials file not found: {source}"
                )
            try:
                raw = path.read_text()
            except OSError as e:
                raise AuthenticationError(
                    INVALID_CREDENTIALS, "Failed to read credentials file"
                ) from e

        try:
            info = json.loads(raw)
        except json.JSONDecodeError as e:
            raise AuthenticationError(
                INVALID_CREDENTIALS, "Credentials are not valid JSON"
            ) from e

        if not isinstance(info, dict):
            raise AuthenticationError(
                INVALID_CREDENTIALS, "Credentials must be a JSON object"
            )
        return info

    def get_credentials(self):
        """Returns cached Google credentials, creating them on first use."""
        if self._credentials is not None:
            return self._credentials

        info = self.load_credentials_info()
        cred_type = info.get("type")

        try:
            if cred_type == "service_account":
                creds = service_account.Credentials.from_service_account_info(
                    info, scopes=CALENDAR_SCOPES
                )
            elif cred_type == "authorized_user":
                creds = user_credentials.Credentials.from_authorized_user_info(
                    info, scopes=CALENDAR_SCOPES
                )
            elif "installed" in info or "web" in info:
                raise AuthenticationError(
                    INVALID_CREDENTIALS,
                    "OAuth2 client secrets require an interactive flow, which is not supported. "
                    "Please use service account or authorized user credentials",
                )
            else:
                raise AuthenticationError(
                    INVALID_CREDENTIALS, f"Unsupported credentials type: {cred_type}"
                )
        except (ValueError, KeyError, GoogleAuthError) as e:
            raise AuthenticationError(
                INVALID_CREDENTIALS, f"Failed to parse {cred_type} credentials"
            ) from e

        logger.debug("Loaded %s credentials", cred_type)
        self._credentials = creds
        return creds

    def get_calendar_api(self):
        """Builds an authenticated Calendar v3 resource.

        A new resource is built per call because the underlying HTTP
        transport is not thread safe.
        """
        creds = self.get_credentials()
        try:
            return build("calendar", "v3", credentials=creds, cache_discovery=False)
        except Exception as e:
            raise InternalError(
                SERVICE_UNAVAILABLE, "Failed to create calendar service"
            ) from e
