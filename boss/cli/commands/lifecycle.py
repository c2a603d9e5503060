"""Instance lifecycle commands: create, update, delete."""

import uuid
from typing import List, Optional

import typer
from rich.markup import escape


def create(
    ctx: typer.Context,
    service_plan: str = typer.Argument(..., metavar="SERVICE/PLAN"),
    instance_id: Optional[str] = typer.Option(
        None, "--id", "-i", help="Service instance id (default: a random UUID)"
    ),
    follow: bool = typer.Option(
        False, "--follow", "-f", help="Actively display the deployment task log"
    ),
    params: Optional[List[str]] = typer.Option(
        None, "--param", "-P", help="Provisioning parameter as key=value (repeatable)"
    ),
    wait: bool = typer.Option(
        False, "--wait", help="Block until an asynchronous provision finishes"
    ),
) -> None:
    """Deploy a new instance of a service + plan.

    SERVICE and PLAN may be given by ID or by name.

    Examples:
        boss create redis/small

        boss create postgresql/standalone -i my-db -P version=15 --wait
    """
    from boss.cli.commands import open_client, parse_params
    from boss.cli.output import console, print_error
    from boss.cli.state import CLIState
    from boss.client import BossClientError

    state: CLIState = ctx.obj

    service_name, sep, plan_name = service_plan.partition("/")
    if not sep or not service_name or not plan_name:
        print_error("The `service/plan' argument is required.")
        raise typer.Exit(1)

    parameters = parse_params(params)
    instance_id = instance_id or str(uuid.uuid4())

    try:
        with open_client(state) as client:
            service, plan = client.plan(service_name, plan_name)
            if wait:
                client.create_and_wait(instance_id, service.id, plan.id, params=parameters)
            else:
                client.create(instance_id, service.id, plan.id, params=parameters)

            console.print(
                f"[green]{escape(service_name)}[/green]/[yellow]{escape(plan_name)}[/yellow] "
                f"instance [magenta]{escape(instance_id)}[/magenta] created.",
                soft_wrap=True,
            )

            if follow:
                _tail_task(client, instance_id)
    except BossClientError as e:
        print_error(str(e))
        raise typer.Exit(1) from None


def _tail_task(client, instance_id: str) -> None:
    from boss.cli.output import console, print_raw

    console.print("\n[blue]tailing deployment task log...[/blue]")
    try:
        for line in client.stream_task(instance_id, follow=True):
            print_raw(line)
    except KeyboardInterrupt:
        console.print()


def update(
    ctx: typer.Context,
    instance_id: str = typer.Argument(..., metavar="INSTANCE"),
    plan: Optional[str] = typer.Option(
        None, "--plan", help="Switch the instance to this plan (ID or name)"
    ),
    params: Optional[List[str]] = typer.Option(
        None, "--param", "-P", help="Parameter as key=value (repeatable)"
    ),
) -> None:
    """Change the plan and/or parameters of a service instance."""
    from boss.cli.commands import open_client, parse_params
    from boss.cli.output import console, print_error
    from boss.cli.state import CLIState
    from boss.client import BossClientError

    state: CLIState = ctx.obj

    parameters = parse_params(params)
    if not plan and not parameters:
        print_error("Nothing to update: give --plan and/or -P key=value.")
        raise typer.Exit(1)

    try:
        with open_client(state) as client:
            instance = next(
                (i for i in client.instances() if i.id == instance_id), None
            )
            if instance is None:
                print_error(f"no instance found matching '{instance_id}'")
                raise typer.Exit(1)
            if instance.service is None:
                print_error(f"service of instance '{instance_id}' is not in the catalog")
                raise typer.Exit(1)

            plan_id = ""
            if plan:
                plan_id = _plan_id(instance.service, plan)

            client.update(instance_id, instance.service.id, plan_id, params=parameters)
    except BossClientError as e:
        print_error(str(e))
        raise typer.Exit(1) from None

    console.print(
        f"[cyan]{escape(instance_id)}[/cyan] instance updated.", soft_wrap=True
    )


def delete(
    ctx: typer.Context,
    instance_id: str = typer.Argument(..., metavar="INSTANCE"),
) -> None:
    """Delete a deployed service instance."""
    from boss.cli.commands import open_client
    from boss.cli.output import console, print_error
    from boss.cli.state import CLIState
    from boss.client import BossClientError

    state: CLIState = ctx.obj

    try:
        with open_client(state) as client:
            client.delete(instance_id)
    except BossClientError as e:
        print_error(str(e))
        raise typer.Exit(1) from None

    console.print(
        f"[cyan]{escape(instance_id)}[/cyan] instance deleted.", soft_wrap=True
    )


def _plan_id(service, plan: str) -> str:
    """Find one of the service's plans by ID, then by name."""
    from boss.client import NotFoundError

    for match in (lambda p: p.id == plan, lambda p: p.name == plan):
        for candidate in service.plans:
            if match(candidate):
                return candidate.id
    raise NotFoundError(
        f"service '{service.name}' / plan '{plan}' not found",
        details={"service": service.id, "plan": plan},
    )
