"""CLI output helpers.

Results go to stdout through Rich; errors go to stderr in the
``!!! message`` form.
"""

import typer
from rich.console import Console
from rich.markup import escape

# Console instances for stdout and stderr
console = Console(highlight=False)
error_console = Console(stderr=True, highlight=False)


def print_error(message: str) -> None:
    """Print an error message in red on stderr."""
    error_console.print(f"!!! {message}", style="red", markup=False, soft_wrap=True)


def print_notice(message: str, style: str = "yellow") -> None:
    console.print(escape(message), style=style, soft_wrap=True)


def print_header(instance_id: str) -> None:
    """Print the ``# <instance>`` line that precedes instance artifacts."""
    console.print(f"# [magenta]{escape(instance_id)}[/magenta]", soft_wrap=True)


def print_raw(text: str) -> None:
    """Print broker-supplied text untouched (no markup, no wrapping)."""
    typer.echo(text)
