"""Named Salt operations.

Each operation builds one command, sends it and, where the function returns
state results, checks them with ``check_result``.
"""

import shlex
from typing import Any, Dict, List, Optional, Union

from .command import (
    CLIENT_LOCAL,
    CLIENT_LOCAL_BATCH,
    CLIENT_RUNNER,
    CLIENT_WHEEL,
    BatchPolicy,
    Target,
    build_command,
    compound,
    run_command,
)
from .errors import CommandExecutionFailure, EmptyResponseError
from .escalation import DEFAULT_ESCALATION_TIMEOUT, Prompt
from .payload import response_rounds
from .reporter import Reporter, print_command_result
from .session import Session
from .transport import Transport
from .utils import info_msg
from .walker import WalkResult, check_result

# Appended to shell commands; present in the output only if the command succeeded
SUCCESS_SENTINEL = "Salt command execution success"

TargetSpec = Union[Target, str]


def _as_target(target: TargetSpec) -> Target:
    return compound(target) if isinstance(target, str) else target


def check_sentinel(response: Any, command: str, sentinel: str = SUCCESS_SENTINEL) -> None:
    """Verify every node's shell output contains ``sentinel``.

    Raises:
        ProtocolError: If the response has no ``return`` entry
        EmptyResponseError: If no node answered
        CommandExecutionFailure: For the first node whose output lacks the sentinel
    """
    rounds = response_rounds(response)
    if not any(rounds):
        raise EmptyResponseError(f"Salt API returned empty response: {response}")
    for entry in rounds:
        for node_id, output in (entry or {}).items():
            if not isinstance(output, str) or sentinel not in output:
                raise CommandExecutionFailure(str(node_id), command, output)


class SaltClient:
    """Runs Salt operations through one authenticated session."""

    def __init__(
        self,
        session: Session,
        transport: Transport,
        escalate_on_failure: bool = False,
        reporter: Optional[Reporter] = None,
        prompt: Optional[Prompt] = None,
        escalation_timeout: float = DEFAULT_ESCALATION_TIMEOUT,
    ) -> None:
        """Initialize the client.

        Args:
            session: Authenticated Salt API session
            transport: Transport used for every command
            escalate_on_failure: Ask an operator before failing on a false result
            reporter: Receiver of node reports; terminal output by default
            prompt: Escalation prompt; terminal prompt by default
            escalation_timeout: Seconds to wait for the operator
        """
        self.session = session
        self.transport = transport
        self.escalate_on_failure = escalate_on_failure
        self.reporter = reporter
        self.prompt = prompt
        self.escalation_timeout = escalation_timeout

    def run(
        self,
        target: TargetSpec,
        function: str,
        client: str = CLIENT_LOCAL,
        batch: BatchPolicy = None,
        args: Optional[List[Any]] = None,
        kwargs: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Build and send one command, returning the raw response."""
        request = build_command(_as_target(target), function, client, batch, args, kwargs)
        return run_command(self.session, self.transport, request)

    def check(
        self,
        response: Any,
        fail_on_error: bool = True,
        print_results: bool = True,
        print_only_changes: bool = True,
    ) -> WalkResult:
        """Check a state response with this client's escalation settings."""
        return check_result(
            response,
            fail_on_error=fail_on_error,
            print_results=print_results,
            print_only_changes=print_only_changes,
            escalate_on_failure=self.escalate_on_failure,
            reporter=self.reporter,
            prompt=self.prompt,
            escalation_timeout=self.escalation_timeout,
        )

    def enforce_state(
        self,
        target: TargetSpec,
        state: Union[str, List[str]],
        output: bool = True,
        fail_on_error: bool = True,
        batch: BatchPolicy = None,
    ) -> Any:
        """Apply one or more states on the target and check the result.

        Args:
            target: State enforcing target
            state: Salt state, or a list of states
            output: Print changed resources
            fail_on_error: Raise on a false result
            batch: Batch size as integer or percentage string
        """
        run_states = state if isinstance(state, str) else ",".join(state)
        info_msg(f"Enforcing state {run_states} on {_as_target(target).expression}")
        out = self.run(target, "state.sls", CLIENT_LOCAL, batch, [run_states])
        self.check(out, fail_on_error, output)
        return out

    def check_state(
        self,
        target: TargetSpec,
        state: Union[str, List[str]],
        output: bool = True,
        fail_on_error: bool = True,
        batch: BatchPolicy = None,
    ) -> Any:
        """Dry-run one or more states on the target (``test=True``) and check the result."""
        run_states = state if isinstance(state, str) else ",".join(state)
        info_msg(f"Checking state {run_states} on {_as_target(target).expression}")
        out = self.run(target, "state.sls", CLIENT_LOCAL, batch, [run_states], {"test": True})
        self.check(out, fail_on_error, output)
        return out

    def cmd_run(
        self,
        target: TargetSpec,
        cmd: str,
        check_response: bool = True,
        batch: BatchPolicy = None,
        output: bool = True,
    ) -> Any:
        """Run a shell command on the target (``cmd.run``).

        With ``check_response`` the command is chained with an echo of
        ``SUCCESS_SENTINEL`` and every node must print it.

        Raises:
            CommandExecutionFailure: If a node's output lacks the sentinel
        """
        original_cmd = cmd
        info_msg(f"Running command {cmd} on {_as_target(target).expression}")
        if check_response:
            cmd = f"{cmd} && echo {SUCCESS_SENTINEL}"
        out = self.run(target, "cmd.run", CLIENT_LOCAL, batch, [cmd])
        if check_response:
            check_sentinel(out, original_cmd)
        if output:
            print_command_result(out)
        return out

    def sync_all(self, target: TargetSpec) -> Any:
        """Sync all custom modules, states and pillars from master to target."""
        return self.run(target, "saltutil.sync_all")

    def enforce_highstate(
        self,
        target: TargetSpec,
        output: bool = False,
        fail_on_error: bool = True,
        batch: BatchPolicy = None,
    ) -> Any:
        """Apply the highstate on the target and check the result."""
        out = self.run(target, "state.highstate", CLIENT_LOCAL, batch)
        self.check(out, fail_on_error, output)
        return out

    def get_minions(self, target: TargetSpec) -> List[str]:
        """Return ids of the minions answering a ping, in response order."""
        rounds = response_rounds(self.run(target, "test.ping"))
        if not rounds or not rounds[0]:
            return []
        return [str(node_id) for node_id in rounds[0]]

    def generate_node_key(self, target: TargetSpec, host: str, keysize: int = 4096) -> Any:
        """Generate and accept a minion key (``key.gen_accept``)."""
        return self.run(target, "key.gen_accept", CLIENT_WHEEL, None, [host], {"keysize": keysize})

    def generate_node_metadata(
        self,
        target: TargetSpec,
        host: str,
        classes: List[str],
        parameters: Dict[str, Any],
    ) -> Any:
        """Generate reclass metadata for a node (``reclass.node_create``)."""
        return self.run(
            target,
            "reclass.node_create",
            CLIENT_LOCAL,
            None,
            [host, "_generated"],
            {"classes": classes, "parameters": parameters},
        )

    def orchestrate_system(self, target: TargetSpec, orchestrate: str) -> Any:
        """Run ``state.orchestrate`` through the runner client."""
        return self.run(target, "state.orchestrate", CLIENT_RUNNER, None, [orchestrate])

    def run_process_step(
        self,
        target: TargetSpec,
        fun: str,
        arg: Optional[List[Any]] = None,
        batch: BatchPolicy = None,
        output: bool = False,
    ) -> Any:
        """Run an arbitrary Salt function as a pipeline step.

        Args:
            target: Step target
            fun: Salt function
            arg: Positional arguments
            batch: Batch size; ``local_batch`` is used only with a valid policy
            output: Print the raw result of every node
        """
        info_msg(f"Running step {fun} on {_as_target(target).expression}")
        client = CLIENT_LOCAL_BATCH if batch is not None else CLIENT_LOCAL
        out = self.run(target, fun, client, batch, arg)
        if output:
            print_command_result(out)
        return out

    def get_pillar(self, target: TargetSpec, pillar: Optional[str] = None) -> Any:
        """Return pillar data, or a single pillar key given in dotted form."""
        if pillar is not None:
            return self.run(target, "pillar.get", args=[pillar.replace(".", ":")])
        return self.run(target, "pillar.data")

    def get_grain(self, target: TargetSpec, grain: Optional[str] = None) -> Any:
        """Return all grains, or a single grain."""
        if grain is not None:
            return self.run(target, "grains.item", args=[grain])
        return self.run(target, "grains.items")

    def get_file_content(self, target: TargetSpec, path: str) -> str:
        """Return the content of a file on the (single) targeted node."""
        out = self.cmd_run(target, f"cat {shlex.quote(path)}", output=False)
        outputs = [output for entry in out["return"] if entry for output in entry.values()]
        if not outputs:
            raise EmptyResponseError(f"Salt API returned empty response: {out}")
        content = str(outputs[0])
        lines = content.splitlines()
        if lines and lines[-1].strip() == SUCCESS_SENTINEL:
            lines = lines[:-1]
        return "\n".join(lines)
