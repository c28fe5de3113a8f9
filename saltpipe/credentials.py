"""Credential storage for Salt API logins.

Credentials are looked up by id. Environment variables win over the system
keyring so CI runners can inject them without a keyring backend:

    SALTPIPE_USERNAME / SALTPIPE_PASSWORD  -> used for any credentials id

Keyring entries live under service ``saltpipe`` with the credentials id as the
key and a JSON document ``{"username": ..., "password": ...}`` as the secret.
"""

import json
import os
from dataclasses import dataclass, field
from typing import Optional

import keyring
from keyring.errors import PasswordDeleteError

from .errors import CredentialsNotFound

KEYRING_SERVICE = "saltpipe"
DEFAULT_CREDENTIALS_ID = "salt"


@dataclass(frozen=True)
class Credentials:
    """Username and password for the Salt API."""

    username: str
    password: str = field(repr=False)


class KeyringCredentialStore:
    """Credential store backed by environment variables and the system keyring."""

    def __init__(self, service: str = KEYRING_SERVICE) -> None:
        """Initialize the store.

        Args:
            service: Keyring service name holding the entries
        """
        self.service = service

    def get(self, credentials_id: str) -> Credentials:
        """Return the credentials stored under ``credentials_id``.

        Raises:
            CredentialsNotFound: If neither the environment nor the keyring has them
        """
        username = os.environ.get("SALTPIPE_USERNAME")
        password = os.environ.get("SALTPIPE_PASSWORD")
        if username and password is not None:
            return Credentials(username=username, password=password)

        stored = self._read(credentials_id)
        if stored is None:
            raise CredentialsNotFound(credentials_id)
        return stored

    def set(self, credentials_id: str, credentials: Credentials) -> None:
        """Persist credentials under ``credentials_id``."""
        secret = json.dumps({"username": credentials.username, "password": credentials.password})
        keyring.set_password(self.service, credentials_id, secret)

    def delete(self, credentials_id: str) -> bool:
        """Remove stored credentials. Returns True if an entry was deleted."""
        try:
            keyring.delete_password(self.service, credentials_id)
        except PasswordDeleteError:
            return False
        return True

    def _read(self, credentials_id: str) -> Optional[Credentials]:
        secret = keyring.get_password(self.service, credentials_id)
        if not secret:
            return None
        try:
            data = json.loads(secret)
        except json.JSONDecodeError:
            return None
        if not isinstance(data, dict) or not data.get("username"):
            return None
        return Credentials(username=str(data["username"]), password=str(data.get("password", "")))
