"""
Test cases for credential loading.
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from google_calendar_mcp.auth import CALENDAR_SCOPES, AuthManager
from google_calendar_mcp.config import CalendarConfig
from google_calendar_mcp.errors import AuthenticationError, InternalError

from tests.conftest import SERVICE_ACCOUNT_INFO

AUTHORIZED_USER_INFO = {
    "type": "authorized_user",
    "client_id": "client.apps.googleusercontent.com",
    "client_secret": "secret",
    "refresh_token": "refresh-token",
}


def manager_for(credentials_json: str) -> AuthManager:
    config = CalendarConfig.model_construct(credentials_json=credentials_json)
    return AuthManager(config)


class TestLoadCredentialsInfo:

    def test_inline_json(self):
        manager = manager_for(json.dumps(SERVICE_ACCOUNT_INFO))

        assert manager.load_credentials_info()["client_email"] == SERVICE_ACCOUNT_INFO["client_email"]

    def test_file_path(self, tmp_path):
        path = tmp_path / "credentials.json"
        path.write_text(json.dumps(SERVICE_ACCOUNT_INFO))

        assert manager_for(str(path)).load_credentials_info()["type"] == "service_account"

    def test_missing_source(self):
        with pytest.raises(AuthenticationError) as exc_info:
            manager_for("").load_credentials_info()

        assert exc_info.value.code == "MISSING_CREDENTIALS"

    def test_missing_file(self, tmp_path):
        with pytest.raises(AuthenticationError, match="Credentials file not found") as exc_info:
            manager_for(str(tmp_path / "nope.json")).load_credentials_info()

        assert exc_info.value.code == "MISSING_CREDENTIALS"

    def test_invalid_json(self):
        with pytest.raises(AuthenticationError) as exc_info:
            manager_for("{not json").load_credentials_info()

        assert exc_info.value.code == "INVALID_CREDENTIALS"


class TestGetCredentials:

    @patch("google_calendar_mcp.auth.service_account.Credentials.from_service_account_info")
    def test_service_account(self, mock_factory):
        mock_factory.return_value = MagicMock(name="credentials")
        manager = manager_for(json.dumps(SERVICE_ACCOUNT_INFO))

        creds = manager.get_credentials()

        assert creds is mock_factory.return_value
        mock_factory.assert_called_once_with(SERVICE_ACCOUNT_INFO, scopes=CALENDAR_SCOPES)

    @patch("google_calendar_mcp.auth.service_account.Credentials.from_service_account_info")
    def test_credentials_cached(self, mock_factory):
        manager = manager_for(json.dumps(SERVICE_ACCOUNT_INFO))

        assert manager.get_credentials() is manager.get_credentials()
        assert mock_factory.call_count == 1

    @patch("google_calendar_mcp.auth.user_credentials.Credentials.from_authorized_user_info")
    def test_authorized_user(self, mock_factory):
        manager = manager_for(json.dumps(AUTHORIZED_USER_INFO))

        manager.get_credentials()

        mock_factory.assert_called_once_with(AUTHORIZED_USER_INFO, scopes=CALENDAR_SCOPES)

    def test_client_secrets_rejected(self):
        manager = manager_for(json.dumps({"installed": {"client_id": "x"}}))

        with pytest.raises(AuthenticationError, match="interactive flow"):
            manager.get_credentials()

    def test_unknown_type_rejected(self):
        manager = manager_for(json.dumps({"type": "external_account"}))

        with pytest.raises(AuthenticationError, match="Unsupported credentials type"):
            manager.get_credentials()

    @patch("google_calendar_mcp.auth.service_account.Credentials.from_service_account_info")
    def test_unparseable_service_account(self, mock_factory):
        mock_factory.side_effect = ValueError("No key could be detected.")
        manager = manager_for(json.dumps(SERVICE_ACCOUNT_INFO))

        with pytest.raises(AuthenticationError) as exc_info:
            manager.get_credentials()

        assert exc_info.value.code == "INVALID_CREDENTIALS"
        assert "No key could be detected" in str(exc_info.value)


class TestGetCalendarApi:

    @patch("google_calendar_mcp.auth.build")
    @patch("google_calendar_mcp.auth.service_account.Credentials.from_service_account_info")
    def test_builds_calendar_v3(self, mock_factory, mock_build):
        manager = manager_for(json.dumps(SERVICE_ACCOUNT_INFO))

        api = manager.get_calendar_api()

        assert api is mock_build.return_value
        mock_build.assert_called_once_with(
            "calendar", "v3", credentials=mock_factory.return_value, cache_discovery=False
        )

    @patch("google_calendar_mcp.auth.build", side_effect=RuntimeError("discovery failed"))
    @patch("google_calendar_mcp.auth.service_account.Credentials.from_service_account_info")
    def test_build_failure(self, mock_factory, mock_build):
        manager = manager_for(json.dumps(SERVICE_ACCOUNT_INFO))

        with pytest.raises(InternalError) as exc_info:
            manager.get_calendar_api()

        assert exc_info.value.code == "SERVICE_UNAVAILABLE"
