"""Exception types raised by saltpipe."""

from typing import Optional


class SaltError(Exception):
    """Base class for every error raised while talking to the Salt API."""


class AuthError(SaltError):
    """Raised when the login handshake fails or returns an unexpected shape."""


class CredentialsNotFound(AuthError):
    """Raised when no credentials are stored for a credentials id."""

    def __init__(self, credentials_id: str) -> None:
        """Initialize with the id that could not be resolved."""
        super().__init__(
            f"Credentials '{credentials_id}' not found. "
            "Set SALTPIPE_USERNAME/SALTPIPE_PASSWORD or run 'saltpipe login'."
        )
        self.credentials_id = credentials_id


class TransportError(SaltError):
    """Raised when the HTTP round-trip to the Salt API fails."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        """Initialize with an optional HTTP status code."""
        super().__init__(message)
        self.status_code = status_code


class ProtocolError(SaltError):
    """Raised when a Salt API response has no ``return`` entry."""


class EmptyResponseError(SaltError):
    """Raised when a round of a Salt API response carries no data."""


class StateFailure(SaltError):
    """Raised when a resource on a node reports an explicit failure."""

    def __init__(self, node_id: str, resource_id: object, resource: str) -> None:
        """Initialize with the failing node, resource id and formatted resource."""
        super().__init__(f"Salt state on node {node_id} failed at {resource_id}: {resource}.")
        self.node_id = node_id
        self.resource_id = resource_id
        self.resource = resource


class CommandExecutionFailure(SaltError):
    """Raised when a shell command did not print its success sentinel on a node."""

    def __init__(self, node_id: str, command: str, output: object) -> None:
        """Initialize with the offending node, the original command and its output."""
        super().__init__(
            f"Execution of cmd {command} failed on node {node_id}. Server returns: {output}"
        )
        self.node_id = node_id
        self.command = command
        self.output = output
