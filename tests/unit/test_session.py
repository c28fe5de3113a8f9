"""Unit tests for Salt API login and sessions."""

import pytest

from saltpipe.credentials import Credentials
from saltpipe.errors import AuthError, CredentialsNotFound, TransportError
from saltpipe.session import connect, login
from .test_utils import FakeTransport


class FakeStore:
    """Credential store with a fixed set of entries."""

    def __init__(self, **entries: Credentials) -> None:
        self.entries = entries

    def get(self, credentials_id: str) -> Credentials:
        if credentials_id not in self.entries:
            raise CredentialsNotFound(credentials_id)
        return self.entries[credentials_id]


LOGIN_OK = {"return": [{"token": "abc123", "user": "jenkins", "eauth": "pam"}]}


def test_login_posts_credentials() -> None:
    transport = FakeTransport(LOGIN_OK)

    session = login("https://salt:8000/", Credentials("jenkins", "secret"), transport)

    url, method, payload, _ = transport.calls[0]
    assert url == "https://salt:8000/login"
    assert method == "POST"
    assert payload == {"username": "jenkins", "password": "secret", "eauth": "pam"}
    assert session.url == "https://salt:8000"
    assert session.auth_header() == {"X-Auth-Token": "abc123"}


def test_login_with_custom_eauth() -> None:
    transport = FakeTransport(LOGIN_OK)
    login("https://salt:8000", Credentials("jenkins", "secret"), transport, eauth="ldap")
    assert transport.last_payload["eauth"] == "ldap"


@pytest.mark.parametrize(
    "response",
    [
        {},
        {"return": []},
        {"return": [{}]},
        {"return": [{"token": ""}]},
        None,
        "Unauthorized",
    ],
)
def test_login_without_token_is_auth_error(response: object) -> None:
    with pytest.raises(AuthError):
        login("https://salt:8000", Credentials("jenkins", "secret"), FakeTransport(response))


def test_login_transport_failure_propagates() -> None:
    transport = FakeTransport(TransportError("refused", 503))
    with pytest.raises(TransportError):
        login("https://salt:8000", Credentials("jenkins", "secret"), transport)


def test_token_not_in_repr() -> None:
    session = login("https://salt:8000", Credentials("jenkins", "secret"), FakeTransport(LOGIN_OK))
    assert "abc123" not in repr(session)
    assert "secret" not in repr(session)


def test_connect_resolves_credentials_by_id() -> None:
    transport = FakeTransport(LOGIN_OK)
    store = FakeStore(prod=Credentials("deploy", "pw"))

    session = connect("https://salt:8000", "prod", transport=transport, store=store)

    assert session.credentials_id == "prod"
    assert transport.last_payload["username"] == "deploy"


def test_connect_unknown_credentials() -> None:
    transport = FakeTransport(LOGIN_OK)
    with pytest.raises(CredentialsNotFound) as exc_info:
        connect("https://salt:8000", "missing", transport=transport, store=FakeStore())
    assert exc_info.value.credentials_id == "missing"
    assert transport.calls == []
