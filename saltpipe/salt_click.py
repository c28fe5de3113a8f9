"""CLI commands that run Salt operations against the active profile."""

import json
from typing import Any, Optional, Tuple

import click
from tabulate import tabulate

from .errors import SaltError
from .operations import SaltClient
from .profiles import get_active_profile
from .session import connect
from .transport import HttpTransport
from .utils import (
    ExitCodes,
    error_msg,
    get_ssl_verify,
    handle_salt_error,
    is_env_flag_enabled,
    pretty_print,
    success_msg,
)


def parse_batch(value: Optional[str]) -> Any:
    """Turn a --batch value into a batch policy: digits become an int, the rest stays text."""
    if value is None:
        return None
    value = value.strip()
    if value.isdigit():
        return int(value)
    return value


def get_client() -> SaltClient:
    """Log in with the active profile and return a ready client."""
    profile = get_active_profile()
    if profile is None or not profile.url:
        error_msg("No Salt API configured. Run 'saltpipe login' or set SALTPIPE_URL.")
        raise SystemExit(ExitCodes.INVALID_INPUT)

    transport = HttpTransport(verify=profile.verify_ssl and get_ssl_verify())
    session = connect(
        profile.url,
        credentials_id=profile.credentials_id,
        transport=transport,
        eauth=profile.eauth,
    )
    return SaltClient(session, transport, escalate_on_failure=is_env_flag_enabled("ASK_ON_ERROR"))


def _echo_result(result: Any, format_output: str) -> None:
    if format_output == "json":
        click.echo(json.dumps(result, indent=2))
    else:
        click.echo(pretty_print(result))


batch_option = click.option(
    "--batch",
    "-b",
    default=None,
    help="Run in batches: a node count (10) or a percentage (25%).",
)

format_option = click.option(
    "--format",
    "-f",
    "format_output",
    type=click.Choice(["table", "json"]),
    default="table",
    show_default=True,
    help="Output format.",
)


def register_salt_commands(cli: Any) -> None:
    """Register the Salt operation commands with the CLI.

    Args:
        cli: The Click CLI group to register commands with.
    """

    @cli.group()
    def state() -> None:
        """Apply and check Salt states."""

    @state.command(name="apply")
    @click.argument("target")
    @click.argument("states", nargs=-1, required=True)
    @batch_option
    @click.option("--no-fail", is_flag=True, help="Report failed resources without failing.")
    @click.option("--quiet", "-q", is_flag=True, help="Do not print changed resources.")
    def apply_state(
        target: str, states: Tuple[str, ...], batch: Optional[str], no_fail: bool, quiet: bool
    ) -> None:
        """Enforce STATES on the nodes matching the compound TARGET."""
        try:
            get_client().enforce_state(
                target,
                list(states),
                output=not quiet,
                fail_on_error=not no_fail,
                batch=parse_batch(batch),
            )
        except SaltError as exc:
            handle_salt_error(exc)
        success_msg(f"State {','.join(states)} applied on {target}")

    @state.command(name="check")
    @click.argument("target")
    @click.argument("states", nargs=-1, required=True)
    @batch_option
    def check_state(target: str, states: Tuple[str, ...], batch: Optional[str]) -> None:
        """Dry-run STATES on TARGET and show what would change."""
        try:
            get_client().check_state(target, list(states), batch=parse_batch(batch))
        except SaltError as exc:
            handle_salt_error(exc)
        success_msg(f"State {','.join(states)} checked on {target}")

    @state.command(name="highstate")
    @click.argument("target")
    @batch_option
    @click.option("--no-fail", is_flag=True, help="Report failed resources without failing.")
    @click.option("--output", "-o", is_flag=True, help="Print changed resources.")
    def highstate(target: str, batch: Optional[str], no_fail: bool, output: bool) -> None:
        """Enforce the highstate on TARGET."""
        try:
            get_client().enforce_highstate(
                target, output=output, fail_on_error=not no_fail, batch=parse_batch(batch)
            )
        except SaltError as exc:
            handle_salt_error(exc)
        success_msg(f"Highstate applied on {target}")

    @cli.group()
    def cmd() -> None:
        """Run shell commands on minions."""

    @cmd.command(name="run")
    @click.argument("target")
    @click.argument("command")
    @batch_option
    @click.option("--no-check", is_flag=True, help="Do not verify the command succeeded.")
    @click.option("--quiet", "-q", is_flag=True, help="Do not print command output.")
    def run_cmd(
        target: str, command: str, batch: Optional[str], no_check: bool, quiet: bool
    ) -> None:
        """Run COMMAND on the nodes matching TARGET."""
        try:
            get_client().cmd_run(
                target,
                command,
                check_response=not no_check,
                batch=parse_batch(batch),
                output=not quiet,
            )
        except SaltError as exc:
            handle_salt_error(exc)

    @cli.command()
    @click.argument("target")
    @format_option
    def minions(target: str, format_output: str) -> None:
        """List minions matching TARGET that answer a ping."""
        try:
            ids = get_client().get_minions(target)
        except SaltError as exc:
            handle_salt_error(exc)
        if format_output == "json":
            click.echo(json.dumps(ids, indent=2))
            return
        if not ids:
            click.echo("No minions found.")
            return
        rows = [[minion_id] for minion_id in ids]
        click.echo(tabulate(rows, headers=["Minion"], tablefmt="github"))
        click.echo(f"\nTotal: {len(ids)} minion(s)")

    @cli.command()
    @click.argument("target")
    def sync(target: str) -> None:
        """Sync custom modules, states and pillars to TARGET."""
        try:
            result = get_client().sync_all(target)
        except SaltError as exc:
            handle_salt_error(exc)
        _echo_result(result, "table")

    @cli.command()
    @click.argument("target")
    @click.argument("key", required=False)
    @format_option
    def pillar(target: str, key: Optional[str], format_output: str) -> None:
        """Show pillar data of TARGET, or a single dotted KEY."""
        try:
            result = get_client().get_pillar(target, key)
        except SaltError as exc:
            handle_salt_error(exc)
        _echo_result(result, format_output)

    @cli.command()
    @click.argument("target")
    @click.argument("key", required=False)
    @format_option
    def grains(target: str, key: Optional[str], format_output: str) -> None:
        """Show grains of TARGET, or a single grain KEY."""
        try:
            result = get_client().get_grain(target, key)
        except SaltError as exc:
            handle_salt_error(exc)
        _echo_result(result, format_output)

    @cli.command()
    @click.argument("target")
    @click.argument("orchestration")
    def orchestrate(target: str, orchestration: str) -> None:
        """Run the ORCHESTRATION through the runner client."""
        try:
            result = get_client().orchestrate_system(target, orchestration)
        except SaltError as exc:
            handle_salt_error(exc)
        _echo_result(result, "table")

    @cli.group()
    def key() -> None:
        """Manage minion keys."""

    @key.command(name="gen")
    @click.argument("target")
    @click.argument("host")
    @click.option("--keysize", type=int, default=4096, show_default=True, help="Key size.")
    def gen_key(target: str, host: str, keysize: int) -> None:
        """Generate and accept a key for HOST."""
        try:
            result = get_client().generate_node_key(target, host, keysize)
        except SaltError as exc:
            handle_salt_error(exc)
        _echo_result(result, "table")
        success_msg(f"Key generated for {host}")

    @cli.group(name="file")
    def file_group() -> None:
        """Read files on minions."""

    @file_group.command(name="cat")
    @click.argument("target")
    @click.argument("path")
    def cat_file(target: str, path: str) -> None:
        """Print the content of PATH on the single node matching TARGET."""
        try:
            content = get_client().get_file_content(target, path)
        except SaltError as exc:
            handle_salt_error(exc)
        click.echo(content)
