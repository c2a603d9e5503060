"""Commands that print broker-side artifacts.

``log`` shows the broker's own log; ``task``, ``manifest``, ``creds`` and
``redeploy`` act on one instance, which may be named by a unique ID prefix.
"""

import typer


def log(ctx: typer.Context) -> None:
    """Print the Blacksmith Service Broker log file."""
    from boss.cli.commands import open_client
    from boss.cli.output import print_error, print_raw
    from boss.cli.state import CLIState
    from boss.client import BossClientError

    state: CLIState = ctx.obj

    try:
        with open_client(state) as client:
            text = client.log()
    except BossClientError as e:
        print_error(str(e))
        raise typer.Exit(1) from None

    print_raw(text)


def task(
    ctx: typer.Context,
    instance: str = typer.Argument(..., metavar="INSTANCE"),
    follow: bool = typer.Option(
        False, "--follow", "-f", help="Keep printing the task log as it grows"
    ),
) -> None:
    """Show the BOSH deployment task for an instance.

    With --follow the log is streamed over one connection until the broker
    closes it or Ctrl+C is pressed.
    """
    from boss.cli.commands import open_client
    from boss.cli.output import console, print_error, print_header, print_raw
    from boss.cli.state import CLIState
    from boss.client import BossClientError

    state: CLIState = ctx.obj

    try:
        with open_client(state) as client:
            instance_id = client.resolve(instance)
            print_header(instance_id)
            if not follow:
                print_raw(client.task(instance_id))
                return
            try:
                for line in client.stream_task(instance_id, follow=True):
                    print_raw(line)
            except KeyboardInterrupt:
                console.print()
    except BossClientError as e:
        print_error(str(e))
        raise typer.Exit(1) from None


def manifest(
    ctx: typer.Context,
    instance: str = typer.Argument(..., metavar="INSTANCE"),
) -> None:
    """Print an instance's BOSH deployment manifest."""
    _print_artifact(ctx, instance, "manifest")


def creds(
    ctx: typer.Context,
    instance: str = typer.Argument(..., metavar="INSTANCE"),
) -> None:
    """Print out credentials for a service instance."""
    _print_artifact(ctx, instance, "creds")


def redeploy(
    ctx: typer.Context,
    instance: str = typer.Argument(..., metavar="INSTANCE"),
) -> None:
    """Redeploy a service instance from its saved deployment manifest."""
    _print_artifact(ctx, instance, "redeploy")


def _print_artifact(ctx: typer.Context, instance: str, operation: str) -> None:
    from boss.cli.commands import open_client
    from boss.cli.output import print_error, print_header, print_raw
    from boss.cli.state import CLIState
    from boss.client import BossClientError

    state: CLIState = ctx.obj

    try:
        with open_client(state) as client:
            instance_id = client.resolve(instance)
            text = getattr(client, operation)(instance_id)
    except BossClientError as e:
        print_error(str(e))
        raise typer.Exit(1) from None

    print_header(instance_id)
    print_raw(text)
