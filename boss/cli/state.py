"""CLI state management.

Holds the resolved client configuration for the duration of one command.
The root Typer callback builds it and stores it in ``ctx.obj``.
"""

from dataclasses import dataclass

from boss.client.core import ClientConfig


@dataclass(frozen=True)
class CLIState:
    """Immutable state object for CLI-wide configuration.

    Attributes:
        config: Broker client configuration (settings merged with flags)
    """

    config: ClientConfig
