"""Operator escalation for failed Salt resources.

When escalation is enabled, a failing resource does not abort the run on its
own: an operator is asked whether to continue. The question blocks for a
bounded time; an unanswered prompt counts as ``TIMED_OUT``.
"""

import threading
from enum import Enum
from typing import Callable, Dict, Optional

import click

DEFAULT_ESCALATION_TIMEOUT = 3600.0


class Decision(Enum):
    """Outcome of an escalation prompt."""

    CONTINUE = "continue"
    ABORT = "abort"
    TIMED_OUT = "timed_out"


# Signature of an escalation prompt: (message, timeout seconds) -> Decision
Prompt = Callable[[str, float], Decision]


def ask_operator(message: str, timeout: float = DEFAULT_ESCALATION_TIMEOUT) -> Decision:
    """Ask the operator whether to continue, waiting at most ``timeout`` seconds.

    The confirmation runs on a daemon thread so an unanswered prompt cannot keep
    the process alive after the timeout.

    Args:
        message: Question shown to the operator
        timeout: Seconds to wait for an answer

    Returns:
        CONTINUE on "yes", ABORT on "no" or closed input, TIMED_OUT otherwise
    """
    answer: Dict[str, Optional[bool]] = {"value": None}
    done = threading.Event()

    def _confirm() -> None:
        try:
            answer["value"] = click.confirm(message, default=False)
        except click.Abort:
            answer["value"] = False
        finally:
            done.set()

    prompt_thread = threading.Thread(target=_confirm, daemon=True)
    prompt_thread.start()

    if not done.wait(timeout):
        click.echo(f"\n✗ No answer within {timeout:.0f}s, aborting.", err=True)
        return Decision.TIMED_OUT
    return Decision.CONTINUE if answer["value"] else Decision.ABORT
