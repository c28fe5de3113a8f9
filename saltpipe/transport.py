"""HTTP transport for the Salt API."""

from typing import Any, Dict, Optional, Protocol

import requests

from .errors import TransportError
from .utils import debug_msg, get_ssl_verify

DEFAULT_TIMEOUT = 600


class Transport(Protocol):
    """Anything able to send a request to the Salt API and return its parsed body."""

    def submit(
        self,
        url: str,
        method: str,
        payload: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Send one request and return the decoded JSON body."""
        ...


class HttpTransport:
    """Transport implementation on top of a ``requests.Session``."""

    def __init__(
        self,
        verify: Optional[bool] = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        """Initialize the transport.

        Args:
            verify: SSL verification; defaults to SALTPIPE_SSL_VERIFY
            timeout: Seconds to wait for the Salt API. State runs can be slow.
            session: Optional pre-configured requests session
        """
        self.verify = get_ssl_verify() if verify is None else verify
        self.timeout = timeout
        self.session = session or requests.Session()

    def submit(
        self,
        url: str,
        method: str,
        payload: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Args:
            url: Full endpoint URL
            method: HTTP method (GET, POST, ...)
            payload: JSON body for POST/PUT, query parameters for GET
            headers: Extra headers merged over the JSON defaults

        Raises:
            TransportError: On network failure, non-2xx status or a non-JSON body
        """
        request_headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if headers:
            request_headers.update(headers)

        method = method.upper()
        if method not in ("GET", "POST", "PUT", "DELETE"):
            raise ValueError(f"Unsupported HTTP method: {method}")

        debug_msg(f"{method} {url}")
        kwargs: Dict[str, Any] = {
            "headers": request_headers,
            "verify": self.verify,
            "timeout": self.timeout,
        }
        if method == "GET":
            kwargs["params"] = payload
        else:
            kwargs["json"] = payload

        try:
            resp = self.session.request(method, url, **kwargs)
            resp.raise_for_status()
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            raise TransportError(f"Salt API request to {url} failed: {exc}", status) from exc
        except requests.RequestException as exc:
            raise TransportError(f"Salt API request to {url} failed: {exc}") from exc

        try:
            return resp.json()
        except ValueError as exc:
            raise TransportError(
                f"Salt API returned a non-JSON body from {url}", resp.status_code
            ) from exc
