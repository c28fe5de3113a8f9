"""Shared utility functions for saltpipe."""

import datetime
import json
import os
import sys
from typing import Any, NoReturn

import click
import requests

from .errors import (
    AuthError,
    CommandExecutionFailure,
    EmptyResponseError,
    ProtocolError,
    SaltError,
    StateFailure,
    TransportError,
)


class ExitCodes:
    """Standard exit codes for CLI operations."""

    SUCCESS = 0
    GENERAL_ERROR = 1
    INVALID_INPUT = 2
    NOT_FOUND = 3
    PERMISSION_DENIED = 4
    NETWORK_ERROR = 5
    STATE_FAILURE = 6


# --- Message output ---
def info_msg(message: str) -> None:
    """Print an informational message to stdout."""
    click.echo(message)


def success_msg(message: str) -> None:
    """Print a success message to stdout."""
    click.echo(f"✓ {message}")


def warning_msg(message: str) -> None:
    """Print a warning message to stderr."""
    click.echo(click.style(f"⚠ {message}", fg="yellow"), err=True)


def error_msg(message: str) -> None:
    """Print an error message to stderr."""
    click.echo(click.style(f"✗ {message}", fg="red"), err=True)


def is_debug_enabled() -> bool:
    """Return True when SALTPIPE_DEBUG is set to a truthy value."""
    return os.environ.get("SALTPIPE_DEBUG", "").lower() in ("1", "true", "yes")


def debug_msg(message: str) -> None:
    """Print a debug message to stderr when SALTPIPE_DEBUG is enabled."""
    if is_debug_enabled():
        click.echo(f"[debug] {message}", err=True)


def pretty_print(data: Any) -> str:
    """Render a Salt payload as indented JSON.

    Strings are returned unchanged so shell output keeps its line breaks.
    """
    if isinstance(data, str):
        return data

    def _default_json_serializer(obj: Any) -> str:
        if isinstance(obj, (datetime.datetime, datetime.date)):
            return obj.isoformat()
        return str(obj)

    return json.dumps(data, indent=4, default=_default_json_serializer)


def get_ssl_verify() -> bool:
    """Return SSL verification setting from environment variable. Defaults to True."""
    env = os.environ.get("SALTPIPE_SSL_VERIFY")
    if env is not None:
        return env.lower() not in ("0", "false", "no")
    return True


def is_env_flag_enabled(name: str) -> bool:
    """Return True when the environment variable ``name`` is the string "true"."""
    return os.environ.get(name, "").strip().lower() == "true"


# --- Error handling ---
def exit_code_for(exc: BaseException) -> int:
    """Map an exception raised by saltpipe or requests to a CLI exit code."""
    if isinstance(exc, AuthError):
        return ExitCodes.PERMISSION_DENIED
    if isinstance(exc, TransportError):
        if exc.status_code in (401, 403):
            return ExitCodes.PERMISSION_DENIED
        if exc.status_code == 404:
            return ExitCodes.NOT_FOUND
        return ExitCodes.NETWORK_ERROR
    if isinstance(exc, requests.RequestException):
        return ExitCodes.NETWORK_ERROR
    if isinstance(exc, (StateFailure, CommandExecutionFailure, EmptyResponseError)):
        return ExitCodes.STATE_FAILURE
    if isinstance(exc, ProtocolError):
        return ExitCodes.GENERAL_ERROR
    if isinstance(exc, ValueError):
        return ExitCodes.INVALID_INPUT
    return ExitCodes.GENERAL_ERROR


def handle_salt_error(exc: Exception) -> NoReturn:
    """Report an error with consistent formatting and exit with a matching code.

    Args:
        exc: The exception to handle
    """
    if isinstance(exc, AuthError):
        error_msg(f"Authentication failed: {exc}")
    elif isinstance(exc, (TransportError, requests.RequestException)):
        error_msg(f"Network error: {exc}")
    elif isinstance(exc, SaltError):
        error_msg(str(exc))
    else:
        error_msg(f"Error: {exc}")
    sys.exit(exit_code_for(exc))
