"""CLI command implementations and the helpers they share."""

from typing import Any, Optional

import typer
import yaml

from boss.cli.output import print_error
from boss.cli.state import CLIState
from boss.client import BrokerClient


def open_client(state: CLIState) -> BrokerClient:
    """Open a BrokerClient for the current command.

    Exits with status 1 when the connection settings are incomplete.
    """
    missing = [
        flag
        for flag, value in (
            ("--url", state.config.url),
            ("--username", state.config.username),
            ("--password", state.config.password),
        )
        if not value
    ]
    if missing:
        print_error(f"missing required option(s): {', '.join(missing)}")
        raise typer.Exit(1)

    return BrokerClient(state.config).open()


def parse_params(pairs: Optional[list[str]]) -> dict[str, Any]:
    """Turn repeated ``-P key=value`` options into a parameters mapping.

    Values are read as YAML scalars, so ``-P size=3`` yields an integer and
    ``-P ha=true`` a boolean.

    Raises:
        typer.BadParameter: If an item has no ``=`` or an empty key
    """
    params: dict[str, Any] = {}
    for pair in pairs or []:
        key, sep, raw = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise typer.BadParameter(
                f"expected key=value, got '{pair}'", param_hint="'-P'"
            )
        try:
            params[key] = yaml.safe_load(raw) if raw else ""
        except yaml.YAMLError:
            params[key] = raw
    return params
