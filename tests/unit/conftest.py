"""Unit test configuration - runs before any test collection or imports.

Forces the keyring null backend so no test touches a real keychain, points the
config file at a temporary directory and blocks real HTTP calls.
"""

from pathlib import Path
from typing import Any, Optional

import keyring
import pytest
from keyring.backends.null import Keyring as NullKeyring

# Force the null backend BEFORE any test triggers a real keyring call.
keyring.set_keyring(NullKeyring())

ENV_VARS = (
    "ASK_ON_ERROR",
    "SALTPIPE_URL",
    "SALTPIPE_CREDENTIALS_ID",
    "SALTPIPE_PROFILE",
    "SALTPIPE_USERNAME",
    "SALTPIPE_PASSWORD",
    "SALTPIPE_SSL_VERIFY",
    "SALTPIPE_DEBUG",
    "XDG_CONFIG_HOME",
)


class MockResponse:
    """Mock HTTP response for preventing real network calls."""

    def __init__(self, json_data: Optional[Any] = None, status_code: int = 200) -> None:
        """Initialize mock response.

        Args:
            json_data: JSON data to return from json() method
            status_code: HTTP status code
        """
        self._json_data = {} if json_data is None else json_data
        self.status_code = status_code
        self.text = ""

    def json(self) -> Any:
        """Return the JSON data."""
        return self._json_data

    def raise_for_status(self) -> None:
        """Do nothing; unpatched calls always succeed."""


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep tests away from the user's config, environment and network."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SALTPIPE_CONFIG", str(tmp_path / "config.json"))

    def mock_request(*args: Any, **kwargs: Any) -> MockResponse:
        """Return an empty mock response for any unpatched HTTP call."""
        return MockResponse()

    monkeypatch.setattr("requests.Session.request", mock_request)

