"""Entry point for the saltpipe command.

The system trust store is injected before the CLI is imported so that every
requests session created afterwards sees the patched SSL configuration.
"""

from __future__ import annotations

from saltpipe.ssl_trust import inject_os_trust  # noqa: E402,I100,I202

inject_os_trust()

from saltpipe.main import cli  # noqa: E402,I100,I202


def run() -> None:
    """Run the CLI with OS trust injection applied."""
    cli()


if __name__ == "__main__":
    run()
