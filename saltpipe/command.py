"""Construction and dispatch of Salt API command requests."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .session import Session
from .transport import Transport
from .utils import debug_msg

# Client modes understood by the Salt API
CLIENT_LOCAL = "local"
CLIENT_LOCAL_BATCH = "local_batch"
CLIENT_RUNNER = "runner"
CLIENT_WHEEL = "wheel"

# Target match types (sent as expr_form)
MATCH_COMPOUND = "compound"
MATCH_LIST = "list"
MATCH_GLOB = "glob"
MATCH_PCRE = "pcre"
MATCH_GRAIN = "grain"
MATCH_PILLAR = "pillar"
MATCH_NODEGROUP = "nodegroup"
MATCH_IPCIDR = "ipcidr"

BatchPolicy = Union[int, str, None]


@dataclass(frozen=True)
class Target:
    """Set of managed nodes a command applies to."""

    expression: str
    match_type: Optional[str] = MATCH_COMPOUND


def compound(expression: str) -> Target:
    """Return a compound-match target, e.g. ``I@openssh:server``."""
    return Target(expression, MATCH_COMPOUND)


@dataclass(frozen=True)
class CommandRequest:
    """A single Salt API command, ready to be sent."""

    target: Target
    function: str
    client: str = CLIENT_LOCAL
    batch: BatchPolicy = None
    args: List[Any] = field(default_factory=list)
    kwargs: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        """Render the wire payload, leaving out unset optional fields."""
        data: Dict[str, Any] = {
            "tgt": self.target.expression,
            "fun": self.function,
            "client": self.client,
        }
        if self.target.match_type:
            data["expr_form"] = self.target.match_type
        if self.batch is not None:
            data["batch"] = self.batch
        if self.args:
            data["arg"] = list(self.args)
        if self.kwargs:
            data["kwarg"] = dict(self.kwargs)
        return data


def is_valid_batch(batch: Any) -> bool:
    """Return True for a positive integer or a percentage string such as ``"20%"``."""
    if isinstance(batch, bool):
        return False
    if isinstance(batch, int):
        return batch > 0
    if isinstance(batch, str):
        return "%" in batch
    return False


def build_command(
    target: Union[Target, str],
    function: str,
    client: str = CLIENT_LOCAL,
    batch: BatchPolicy = None,
    args: Optional[List[Any]] = None,
    kwargs: Optional[Dict[str, Any]] = None,
) -> CommandRequest:
    """Build a command request.

    A valid batch policy switches the client to ``local_batch``. Without one the
    batch is dropped and ``local_batch`` falls back to ``local``.

    Args:
        target: Target, or a bare compound expression
        function: Salt function to execute (eg. "state.sls")
        client: Client mode
        batch: Batch size as a positive integer or a percentage string
        args: Positional arguments to the function
        kwargs: Keyword arguments to the function
    """
    if isinstance(target, str):
        target = compound(target)

    if is_valid_batch(batch):
        client = CLIENT_LOCAL_BATCH
    else:
        batch = None
        if client == CLIENT_LOCAL_BATCH:
            client = CLIENT_LOCAL

    return CommandRequest(
        target=target,
        function=function,
        client=client,
        batch=batch,
        args=list(args) if args else [],
        kwargs=dict(kwargs) if kwargs else {},
    )


def run_command(session: Session, transport: Transport, request: CommandRequest) -> Any:
    """Send a command request with the session's authentication header.

    Returns:
        The raw Salt API response
    """
    payload = request.to_payload()
    debug_msg(f"Running {request.function} on {request.target.expression}: {payload}")
    return transport.submit(f"{session.url}/", "POST", payload, session.auth_header())
