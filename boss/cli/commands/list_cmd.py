"""List and catalog commands.

Implements ``boss list`` (deployed instances) and ``boss catalog``
(services and their plans), both rendered as Rich tables.
"""

import typer

UNKNOWN = "(unknown)"
NONE = "(none)"


def list_instances(
    ctx: typer.Context,
    long: bool = typer.Option(
        False, "--long", "-l", help="Display additional details about service instances"
    ),
) -> None:
    """Show all deployed service instances.

    Examples:
        boss list

        boss list -l
    """
    # Lazy imports for fast CLI startup
    from rich.table import Table

    from boss.cli.commands import open_client
    from boss.cli.output import console, print_error, print_notice
    from boss.cli.state import CLIState
    from boss.client import BossClientError

    state: CLIState = ctx.obj

    try:
        with open_client(state) as client:
            instances = client.instances()
    except BossClientError as e:
        print_error(str(e))
        raise typer.Exit(1) from None

    if not instances:
        print_notice("No Blacksmith service instances found.")
        return

    table = Table()
    table.add_column("ID", style="cyan")
    table.add_column("Service")
    if long:
        table.add_column("(ID)")
    table.add_column("Plan")
    if long:
        table.add_column("(ID)")

    for instance in instances:
        service_name = instance.service.name if instance.service else UNKNOWN
        plan_name = instance.plan.name if instance.plan else UNKNOWN
        if long:
            table.add_row(
                instance.id,
                service_name,
                instance.service.id if instance.service else "-",
                plan_name,
                instance.plan.id if instance.plan else "-",
            )
        else:
            table.add_row(instance.id, service_name, plan_name)

    console.print(table)


def catalog(
    ctx: typer.Context,
    long: bool = typer.Option(
        False, "--long", "-l", help="Display additional details about catalog plans"
    ),
) -> None:
    """Print the catalog of services / plans."""
    from rich.table import Table

    from boss.cli.commands import open_client
    from boss.cli.output import console, print_error
    from boss.cli.state import CLIState
    from boss.client import BossClientError

    state: CLIState = ctx.obj

    try:
        with open_client(state) as client:
            result = client.catalog()
    except BossClientError as e:
        print_error(str(e))
        raise typer.Exit(1) from None

    table = Table(show_lines=True)
    table.add_column("Service", style="green")
    if long:
        table.add_column("(ID)")
    table.add_column("Plans", style="yellow")
    if long:
        table.add_column("(IDs)")
    table.add_column("Tags")

    for service in result.services:
        plans = "\n".join(p.name for p in service.plans) or NONE
        tags = "\n".join(service.tags) or NONE
        if long:
            ids = "\n".join(p.id for p in service.plans)
            table.add_row(service.name, service.id, plans, ids, tags)
        else:
            table.add_row(service.name, plans, tags)

    console.print(table)
