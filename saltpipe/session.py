"""Salt API session handling.

A session is created once per pipeline run by logging in, and afterwards only
provides the authentication header for command requests.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .credentials import DEFAULT_CREDENTIALS_ID, Credentials, KeyringCredentialStore
from .errors import AuthError
from .transport import HttpTransport, Transport
from .utils import debug_msg

DEFAULT_EAUTH = "pam"


@dataclass(frozen=True)
class Session:
    """Authenticated connection context for the Salt API."""

    url: str
    auth_token: str = field(repr=False)
    credentials_id: Optional[str] = None
    credentials: Optional[Credentials] = field(default=None, repr=False)

    def auth_header(self) -> Dict[str, str]:
        """Return the headers required by authenticated Salt API calls."""
        return {"X-Auth-Token": self.auth_token}


def _extract_token(response: Any) -> str:
    try:
        token = response["return"][0]["token"]
    except (KeyError, IndexError, TypeError) as exc:
        raise AuthError(f"Unexpected Salt API login response: {response}") from exc
    if not token:
        raise AuthError(f"Salt API login returned an empty token: {response}")
    return str(token)


def login(
    url: str,
    credentials: Credentials,
    transport: Transport,
    credentials_id: Optional[str] = None,
    eauth: str = DEFAULT_EAUTH,
) -> Session:
    """Log in to the Salt API and return an authenticated session.

    Args:
        url: Salt API base URL
        credentials: Username and password
        transport: Transport used for the login request
        credentials_id: Id the credentials were resolved from, kept for reference
        eauth: External authentication scheme configured on the Salt master

    Raises:
        AuthError: If the login response does not contain a token
        TransportError: If the login request itself fails
    """
    url = url.rstrip("/")
    data = {
        "username": credentials.username,
        "password": credentials.password,
        "eauth": eauth,
    }
    debug_msg(f"Logging in to {url} as {credentials.username}")
    response = transport.submit(f"{url}/login", "POST", data)
    return Session(
        url=url,
        auth_token=_extract_token(response),
        credentials_id=credentials_id,
        credentials=credentials,
    )


def connect(
    url: str,
    credentials_id: str = DEFAULT_CREDENTIALS_ID,
    transport: Optional[Transport] = None,
    store: Optional[KeyringCredentialStore] = None,
    eauth: str = DEFAULT_EAUTH,
) -> Session:
    """Resolve credentials by id and log in.

    Args:
        url: Salt API base URL
        credentials_id: Credential store id
        transport: Transport to use; a fresh HttpTransport by default
        store: Credential store; the keyring store by default
        eauth: External authentication scheme
    """
    store = store or KeyringCredentialStore()
    transport = transport or HttpTransport()
    credentials = store.get(credentials_id)
    return login(url, credentials, transport, credentials_id=credentials_id, eauth=eauth)
