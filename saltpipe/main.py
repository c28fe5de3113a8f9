"""saltpipe entry points."""

import getpass
from pathlib import Path
from typing import Optional

import click
import tomllib
from tabulate import tabulate

from .credentials import DEFAULT_CREDENTIALS_ID, Credentials, KeyringCredentialStore
from .errors import SaltError
from .profiles import (
    Profile,
    ProfileConfig,
    check_config_file_permissions,
    set_profile_override,
)
from .salt_click import register_salt_commands
from .session import DEFAULT_EAUTH, login as salt_login
from .transport import HttpTransport
from .utils import ExitCodes, handle_salt_error, success_msg, warning_msg


def get_version() -> str:
    """Get version from _version.py (built package) or pyproject.toml (development)."""
    try:
        from ._version import __version__

        return __version__
    except ImportError:
        try:
            pyproject_path = Path(__file__).parent.parent / "pyproject.toml"
            with open(pyproject_path, "rb") as f:
                pyproject_data = tomllib.load(f)
            return pyproject_data["tool"]["poetry"]["version"]
        except (OSError, KeyError, tomllib.TOMLDecodeError):
            return "unknown"


CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])


@click.group(context_settings=CONTEXT_SETTINGS, invoke_without_command=True)
@click.option("--version", "-v", is_flag=True, help="Show version and exit")
@click.option("--profile", "-p", default=None, help="Connection profile to use.")
@click.pass_context
def cli(ctx: click.Context, version: bool, profile: Optional[str]) -> None:
    """saltpipe - run Salt API operations from automation pipelines."""
    if version:
        click.echo(f"saltpipe version {get_version()}")
        ctx.exit()
    set_profile_override(profile)
    warning = check_config_file_permissions()
    if warning:
        warning_msg(warning)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.option("--url", help="Salt API URL")
@click.option("--username", help="Salt API user")
@click.option("--password", help="Salt API password (prompted when omitted)")
@click.option(
    "--credentials-id",
    default=DEFAULT_CREDENTIALS_ID,
    show_default=True,
    help="Keyring id to store the credentials under",
)
@click.option("--eauth", default=DEFAULT_EAUTH, show_default=True, help="External auth backend")
@click.option("--name", "profile_name", default="default", show_default=True, help="Profile name")
@click.option("--insecure", is_flag=True, help="Skip TLS certificate verification")
def login(
    url: Optional[str],
    username: Optional[str],
    password: Optional[str],
    credentials_id: str,
    eauth: str,
    profile_name: str,
    insecure: bool,
) -> None:
    """Verify and store Salt API credentials, and save a connection profile.

    Credentials go to the system keyring; the profile in the config file only
    references them by id.
    """
    if not url:
        url = click.prompt("Enter your Salt API URL")
    assert isinstance(url, str)
    url = url.strip().rstrip("/")
    if not url:
        raise click.ClickException("Salt API URL cannot be empty.")
    if not url.startswith(("http://", "https://")):
        warning_msg("Adding HTTPS protocol to URL.")
        url = f"https://{url}"

    if not username:
        username = click.prompt("Enter your Salt API username")
    if password is None:
        password = getpass.getpass("Enter your Salt API password: ")
    assert isinstance(username, str)
    credentials = Credentials(username=username.strip(), password=password)

    try:
        salt_login(url, credentials, HttpTransport(verify=not insecure), credentials_id, eauth)
    except SaltError as exc:
        handle_salt_error(exc)

    KeyringCredentialStore().set(credentials_id, credentials)

    config = ProfileConfig.load()
    config.add_profile(
        Profile(
            name=profile_name,
            url=url,
            credentials_id=credentials_id,
            eauth=eauth,
            verify_ssl=not insecure,
        ),
        set_current=True,
    )
    try:
        config.save()
    except RuntimeError as exc:
        raise click.ClickException(str(exc))
    success_msg(f"Logged in to {url}; profile '{profile_name}' is now active.")


@cli.command()
@click.option(
    "--credentials-id",
    default=DEFAULT_CREDENTIALS_ID,
    show_default=True,
    help="Keyring id to remove",
)
def logout(credentials_id: str) -> None:
    """Remove stored Salt API credentials from the system keyring."""
    if KeyringCredentialStore().delete(credentials_id):
        success_msg(f"Credentials '{credentials_id}' removed from system keyring.")
    else:
        warning_msg(f"No stored credentials named '{credentials_id}'.")


@cli.group()
def profile() -> None:
    """Manage connection profiles."""


@profile.command(name="list")
def list_profiles() -> None:
    """List configured profiles."""
    config = ProfileConfig.load()
    profiles = config.list_profiles()
    if not profiles:
        click.echo("No profiles configured. Run 'saltpipe login' to create one.")
        return
    rows = [
        [
            "*" if item.name == config.current_profile else "",
            click.style(item.name, fg="blue"),
            item.url,
            item.credentials_id,
        ]
        for item in profiles
    ]
    click.echo(tabulate(rows, headers=["", "Profile", "URL", "Credentials"], tablefmt="github"))


@profile.command(name="use")
@click.argument("name")
def use_profile(name: str) -> None:
    """Make NAME the current profile."""
    config = ProfileConfig.load()
    try:
        config.set_current_profile(name)
    except ValueError as exc:
        click.echo(f"✗ {exc}", err=True)
        raise SystemExit(ExitCodes.NOT_FOUND)
    config.save()
    success_msg(f"Switched to profile '{name}'")


@profile.command(name="delete")
@click.argument("name")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
def delete_profile(name: str, yes: bool) -> None:
    """Delete the profile NAME."""
    config = ProfileConfig.load()
    if name not in config.profiles:
        click.echo(f"✗ Profile '{name}' does not exist", err=True)
        raise SystemExit(ExitCodes.NOT_FOUND)
    if not yes and not click.confirm(f"Are you sure you want to delete profile '{name}'?"):
        return
    config.delete_profile(name)
    config.save()
    success_msg(f"Profile '{name}' deleted")


register_salt_commands(cli)
