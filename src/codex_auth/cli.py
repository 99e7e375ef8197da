"""
Click CLI for Codex authentication.

Usage:
    codex-auth login [--no-browser] [--port 1455] [--timeout 300]
    codex-auth login-api-key [KEY]
    codex-auth logout
    codex-auth status
    codex-auth token
"""

import logging
import sys
from dataclasses import replace
from typing import Optional

import click

from .auth_server import LoginState
from .config import CodexAuthConfig
from .coordinator import LoginCoordinator
from .exceptions import CodexAuthError

logger = logging.getLogger(__name__)


def print_error(message: str) -> None:
    """Print error message to stderr."""
    click.secho(f"Error: {message}", fg="red", err=True)


def print_success(message: str) -> None:
    """Print success message."""
    click.secho(message, fg="green")


def get_coordinator(ctx: click.Context) -> LoginCoordinator:
    """Get the LoginCoordinator from context."""
    return ctx.obj["coordinator"]


@click.group()
@click.option(
    "--codex-home",
    type=click.Path(file_okay=False),
    envvar="CODEX_HOME",
    help="Directory holding auth.json (default: ~/.codex)",
)
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.pass_context
def cli(ctx: click.Context, codex_home: Optional[str], verbose: bool) -> None:
    """
    Codex Auth - log in to OpenAI and manage stored credentials.
    """
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    ctx.ensure_object(dict)
    try:
        config = CodexAuthConfig.from_env()
        if codex_home:
            config = replace(config, codex_home=codex_home)
    except CodexAuthError as e:
        print_error(str(e))
        sys.exit(1)

    ctx.obj["config"] = config
    ctx.obj["coordinator"] = LoginCoordinator(config)


@cli.command()
@click.option("--no-browser", is_flag=True, help="Don't open the browser (print URL only)")
@click.option("--port", type=int, default=None, help="Callback port (default: 1455)")
@click.option("--timeout", type=float, default=None, help="Seconds to wait before giving up")
@click.pass_context
def login(
    ctx: click.Context, no_browser: bool, port: Optional[int], timeout: Optional[float]
) -> None:
    """Log in with a ChatGPT account in the browser."""
    coordinator = get_coordinator(ctx)
    if port is not None:
        try:
            coordinator.config = replace(coordinator.config, port=port)
        except CodexAuthError as e:
            print_error(str(e))
            sys.exit(1)

    try:
        server = coordinator.start_login(open_browser=not no_browser)
    except CodexAuthError as e:
        print_error(str(e))
        sys.exit(1)

    click.echo("Please authorize Codex by visiting:")
    click.echo(f"\n  {server.auth_url}\n")
    click.echo("Waiting for authorization...")

    try:
        state = server.block_until_done(timeout)
    except KeyboardInterrupt:
        state = LoginState.LISTENING

    if not state.is_terminal:
        server.cancel()
        state = server.block_until_done()

    if state is LoginState.SUCCESS:
        print_success("Login successful.")
        status = coordinator.get_auth_status()
        if status:
            click.echo(f"Status: {status}")
        return

    if state is LoginState.CANCELLED:
        print_error("Login cancelled.")
    else:
        print_error(f"Login failed: {server.error}")
    sys.exit(1)


@cli.command("login-api-key")
@click.argument("api_key", required=False)
@click.pass_context
def login_api_key(ctx: click.Context, api_key: Optional[str]) -> None:
    """Store an OpenAI API key (replaces stored tokens)."""
    if not api_key:
        api_key = click.prompt("API key", hide_input=True)

    try:
        get_coordinator(ctx).login_with_api_key(api_key)
    except CodexAuthError as e:
        print_error(str(e))
        sys.exit(1)

    print_success("API key saved.")


@cli.command()
@click.pass_context
def logout(ctx: click.Context) -> None:
    """Delete stored credentials."""
    try:
        removed = get_coordinator(ctx).logout()
    except CodexAuthError as e:
        print_error(str(e))
        sys.exit(1)

    if removed:
        print_success("Logged out.")
    else:
        click.echo("Not logged in.")


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the current authentication status."""
    try:
        auth_status = get_coordinator(ctx).get_auth_status()
    except CodexAuthError as e:
        print_error(str(e))
        sys.exit(1)

    if auth_status is None:
        click.echo("Not logged in.")
        sys.exit(1)

    click.echo(auth_status)


@cli.command()
@click.pass_context
def token(ctx: click.Context) -> None:
    """Print the API key, or a fresh access token in ChatGPT mode."""
    coordinator = get_coordinator(ctx)
    try:
        api_key = coordinator.get_api_key()
        if api_key:
            click.echo(api_key)
            return
        click.echo(coordinator.get_token_data().access_token)
    except CodexAuthError as e:
        print_error(str(e))
        sys.exit(1)


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
