"""CLI app entry point.

Provides the main Typer app with the global connection and diagnostic
flags. Flags override ``BLACKSMITH_*`` settings; the merged client
configuration is stored in the Typer context for commands to access.
"""

from pathlib import Path
from typing import Optional

import typer

from boss.cli.commands.artifacts import creds, log, manifest, redeploy, task
from boss.cli.commands.lifecycle import create, delete, update
from boss.cli.commands.list_cmd import catalog, list_instances
from boss.cli.output import console
from boss.cli.state import CLIState
from boss.client.core import ClientConfig
from boss.config import get_broker_settings
from boss.logging import configure_logging, set_debug_mode
from boss.version import __version__

app = typer.Typer(
    name="boss",
    help="boss - a command-line client for the Blacksmith service broker.",
    add_completion=False,
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(False, "--debug", "-D", help="Enable debugging output."),
    trace: bool = typer.Option(
        False, "--trace", "-T", help="Trace HTTP(s) calls. Implies --debug."
    ),
    url: Optional[str] = typer.Option(
        None, "--url", "-U", help="URL of Blacksmith. Defaults to $BLACKSMITH_URL"
    ),
    skip_ssl_validation: bool = typer.Option(
        False,
        "--skip-ssl-validation",
        "-k",
        help="Skip verification of the API endpoint's TLS certificate",
    ),
    username: Optional[str] = typer.Option(
        None,
        "--username",
        "-u",
        help="Blacksmith username. Defaults to $BLACKSMITH_USERNAME",
    ),
    password: Optional[str] = typer.Option(
        None,
        "--password",
        "-p",
        help="Blacksmith password. Defaults to $BLACKSMITH_PASSWORD",
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", min=0.001, help="Request timeout in seconds"
    ),
    retries: Optional[int] = typer.Option(
        None, "--retries", min=0, help="Maximum retry attempts per request"
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable colours in diagnostic output"
    ),
    log_dir: Optional[Path] = typer.Option(
        None,
        "--log-dir",
        help="Also write a rotating debug log (boss.log) to this directory",
    ),
) -> None:
    """boss - deploy and inspect Blacksmith service instances."""
    config = ClientConfig.from_settings(
        get_broker_settings(),
        url=url,
        username=username,
        password=password,
        insecure_skip_verify=True if skip_ssl_validation else None,
        debug=debug,
        trace=trace,
        timeout=timeout,
        max_retries=retries,
    )

    configure_logging(log_dir=log_dir, color=not no_color)
    set_debug_mode(config.debug_enabled)

    ctx.obj = CLIState(config=config)


@app.command()
def version() -> None:
    """Print the boss version."""
    console.print(f"boss {__version__}")


app.command("list")(list_instances)
app.command("ls", hidden=True)(list_instances)
app.command()(catalog)
app.command("cat", hidden=True)(catalog)
app.command()(log)
app.command("logs", hidden=True)(log)
app.command()(create)
app.command("new", hidden=True)(create)
app.command()(update)
app.command()(delete)
app.command("rm", hidden=True)(delete)
app.command()(task)
app.command()(manifest)
app.command()(creds)
app.command()(redeploy)
