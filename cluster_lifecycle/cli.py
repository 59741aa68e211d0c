"""Main CLI entry point for cluster lifecycle management."""

import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cluster_lifecycle.config import LifecycleConfig
from cluster_lifecycle.exceptions import ClusterLifecycleError, ConfigurationError
from cluster_lifecycle.logging_config import get_logger, setup_logging

app = typer.Typer(
    name="cluster-lifecycle",
    help="Manage cluster aggregates and derive provisioning inventories",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    log_file: str | None = typer.Option(None, "--log-file", help="Path to log file"),
    config_path: str | None = typer.Option(
        None, "--config", "-c", help="Path to a YAML configuration file"
    ),
    database_url: str | None = typer.Option(
        None, "--database-url", help="SQLAlchemy database URL (overrides configuration)"
    ),
):
    """Global options for all commands."""
    try:
        config = LifecycleConfig.load(config_path)
        if database_url:
            config = LifecycleConfig(**{**config.model_dump(), "database_url": database_url})
    except ConfigurationError as e:
        _print_error("Configuration Error", e)
        raise typer.Exit(code=1)
    except ValueError as e:
        console.print(f"[red]Configuration Error:[/red] {e}")
        raise typer.Exit(code=1)

    log_path = Path(log_file) if log_file else None
    setup_logging(level=config.log_level, verbose=verbose, log_file=log_path)
    logger.debug("Logging initialized")
    ctx.obj = config


def _print_error(title: str, error: ClusterLifecycleError) -> None:
    console.print(f"[red]{title}:[/red] {escape(error.message)}")
    if error.details:
        console.print(f"\n{escape(error.details)}")


def _manager(ctx: typer.Context):
    from cluster_lifecycle.lifecycle import LifecycleManager
    from cluster_lifecycle.store import AggregateStore

    return LifecycleManager(AggregateStore.from_config(ctx.obj))


@app.command()
def version() -> None:
    """Show version information."""
    from cluster_lifecycle import __version__

    typer.echo(f"cluster-lifecycle version {__version__}")


@app.command()
def init_db(ctx: typer.Context) -> None:
    """Create the database tables."""
    from cluster_lifecycle.store import AggregateStore

    try:
        AggregateStore.from_config(ctx.obj).create_schema()
    except ClusterLifecycleError as e:
        _print_error("Store Error", e)
        raise typer.Exit(code=1)
    console.print("[green]✓[/green] Database schema is ready")


@app.command()
def add_host(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Unique host name"),
    ip: str = typer.Argument(..., help="Address the provisioning engine connects to"),
    port: int = typer.Option(22, "--port", "-p", help="SSH port"),
    user: str = typer.Option("root", "--user", "-u", help="SSH user"),
    password: str = typer.Option("", "--password", help="SSH password"),
    private_key_file: str = typer.Option("", "--private-key-file", help="SSH private key path"),
) -> None:
    """
    Register a host that clusters can be built on.

    The host starts unassigned and is bound to a cluster when a node using it
    is created.
    """
    from cluster_lifecycle.models.node import Host
    from cluster_lifecycle.store import AggregateStore

    store = AggregateStore.from_config(ctx.obj)
    tx = store.begin()
    try:
        tx.create(
            Host(
                name=name,
                ip=ip,
                port=port,
                user=user,
                password=password,
                private_key_file=private_key_file,
            )
        )
        tx.commit()
    except ClusterLifecycleError as e:
        tx.rollback()
        _print_error("Store Error", e)
        raise typer.Exit(code=1)
    finally:
        tx.close()

    console.print(f"[green]✓[/green] Registered host '{name}' ({ip})")


@app.command()
def create(
    ctx: typer.Context,
    definition_file: str = typer.Option(
        ..., "--file", "-f", help="YAML file describing the cluster to create"
    ),
) -> None:
    """
    Create a cluster from a YAML definition.

    The cluster, its specification, status, secret, nodes and companion tools
    are written in a single transaction and the referenced hosts are bound to
    the new cluster.
    """
    import yaml
    from pydantic import ValidationError

    from cluster_lifecycle.models.definition import ClusterDefinition

    if not Path(definition_file).exists():
        console.print(f"[red]Error:[/red] Definition file not found: {definition_file}")
        raise typer.Exit(code=1)

    try:
        definition = ClusterDefinition.load(definition_file)
    except ValidationError as e:
        console.print("[red]Validation Error:[/red]")
        for error in e.errors():
            field = ".".join(str(x) for x in error["loc"])
            console.print(f"  - {field}: {error['msg']}")
        raise typer.Exit(code=1)
    except yaml.YAMLError as e:
        console.print(f"[red]Error:[/red] Invalid YAML in {definition_file}: {escape(str(e))}")
        raise typer.Exit(code=1)

    try:
        cluster = _manager(ctx).create_from_definition(definition)
    except ClusterLifecycleError as e:
        logger.error(f"Cluster creation failed: {e.message}")
        _print_error("Error", e)
        raise typer.Exit(code=1)

    console.print(f"[green]✓[/green] Created cluster '{cluster.name}'")
    console.print(f"  ID: {cluster.id}")
    console.print(f"  Nodes: {len(cluster.nodes)}")
    console.print(f"  Tools: {', '.join(tool.name for tool in cluster.tools)}")


@app.command()
def delete(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name of the cluster to delete"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation prompt"),
) -> None:
    """Delete a cluster and release its hosts."""
    manager = _manager(ctx)
    try:
        cluster = manager.get_cluster_by_name(name)
        if not force:
            console.print(
                f"[yellow]Warning:[/yellow] About to delete cluster '{name}' "
                f"and its {len(cluster.nodes)} nodes"
            )
            if not typer.confirm("Are you sure you want to continue?"):
                console.print("Operation cancelled")
                raise typer.Exit(code=0)
        manager.delete_cluster(cluster.id)
    except ClusterLifecycleError as e:
        _print_error("Error", e)
        raise typer.Exit(code=1)

    console.print(f"[green]✓[/green] Deleted cluster '{name}'")


@app.command("list")
def list_clusters(ctx: typer.Context) -> None:
    """List stored clusters."""
    try:
        clusters = _manager(ctx).list_clusters()
    except ClusterLifecycleError as e:
        _print_error("Error", e)
        raise typer.Exit(code=1)

    if not clusters:
        console.print("[yellow]No clusters found[/yellow]")
        return

    table = Table(title="Clusters")
    table.add_column("Name", style="cyan")
    table.add_column("Source", style="magenta")
    table.add_column("Phase", style="green")
    table.add_column("Nodes", justify="right")

    for cluster in clusters:
        phase = cluster.status.phase if cluster.status else "Unknown"
        table.add_row(cluster.name, cluster.source, phase, str(len(cluster.nodes)))

    console.print(table)


@app.command()
def show(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Cluster name"),
) -> None:
    """Show a cluster with its nodes and companion tools."""
    try:
        cluster = _manager(ctx).get_cluster_by_name(name)
    except ClusterLifecycleError as e:
        _print_error("Error", e)
        raise typer.Exit(code=1)

    console.print(f"[bold]Cluster:[/bold] {cluster.name} ({cluster.id})")
    console.print(f"[bold]Phase:[/bold] {cluster.status.phase if cluster.status else 'Unknown'}")

    nodes_table = Table(title="Nodes")
    nodes_table.add_column("Name", style="cyan")
    nodes_table.add_column("Role", style="magenta")
    nodes_table.add_column("Status", style="green")
    nodes_table.add_column("Host")
    nodes_table.add_column("IP")
    for node in cluster.nodes:
        nodes_table.add_row(node.name, node.role, node.status or "-", node.host.name, node.host.ip)
    console.print(nodes_table)

    tools_table = Table(title="Tools")
    tools_table.add_column("Name", style="cyan")
    tools_table.add_column("Version")
    tools_table.add_column("Status", style="green")
    for tool in cluster.tools:
        tools_table.add_row(tool.name, tool.version, tool.status)
    console.print(tools_table)


@app.command()
def inventory(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Cluster name"),
    output: str | None = typer.Option(
        None, "--output", "-o", help="Write the inventory to this file instead of stdout"
    ),
    with_vars: bool = typer.Option(
        True, "--with-vars/--no-vars", help="Include provisioning variables under all.vars"
    ),
) -> None:
    """Render the provisioning inventory of a cluster as Ansible YAML."""
    from cluster_lifecycle.inventory import InventoryWriter, build_inventory
    from cluster_lifecycle.variables import project_variables

    try:
        cluster = _manager(ctx).get_cluster_by_name(name)
        cluster_inventory = build_inventory(cluster)
        variables = project_variables(cluster.spec) if with_vars else None

        writer = InventoryWriter()
        if output:
            writer.write(cluster_inventory, output, variables)
            console.print(f"[green]✓[/green] Wrote inventory to {output}")
        else:
            writer.dump(cluster_inventory, sys.stdout, variables)
    except ClusterLifecycleError as e:
        _print_error("Error", e)
        raise typer.Exit(code=1)


@app.command("vars")
def show_vars(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Cluster name"),
) -> None:
    """Show the provisioning variables projected from a cluster's specification."""
    try:
        variables = _manager(ctx).variables(name)
    except ClusterLifecycleError as e:
        _print_error("Error", e)
        raise typer.Exit(code=1)

    if not variables:
        console.print("[yellow]No overrides; playbook defaults apply[/yellow]")
        return

    table = Table(title=f"Variables for {name}")
    table.add_column("Fact", style="cyan")
    table.add_column("Value", style="green")
    for fact_name, value in variables.items():
        table.add_row(fact_name, value)
    console.print(table)


if __name__ == "__main__":
    app()
