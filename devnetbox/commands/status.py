"""
Status command - Show the state of a devnet cluster's services.
"""

import json
import sys

import click
from rich import box
from rich.table import Table

from devnetbox.commands.cluster import Cluster
from devnetbox.commands.constants import ERROR_ENGINE_HINT
from devnetbox.commands.errors import DevnetError, EngineUnavailableError
from devnetbox.commands.options import build_config, cluster_options
from devnetbox.commands.up import endpoints_table
from devnetbox.commands.utils import console, run_async_function


async def _status(config):
    cluster = await Cluster.attach(config)
    return cluster, await cluster.status()


@click.command()
@cluster_options
@click.option("--json", "as_json", is_flag=True, help="Print status as JSON")
def status(cluster_name, config_file, as_json):
    """Show the state of each service in a devnet cluster."""
    try:
        config = build_config(cluster_name, config_file)
        cluster, services = run_async_function(_status, config)
    except EngineUnavailableError as e:
        console.print(f"[red]{e.message}[/red]")
        console.print(f"[yellow]{ERROR_ENGINE_HINT}[/yellow]")
        sys.exit(1)
    except DevnetError as e:
        console.print(f"[red]✗ {str(e)}[/red]")
        sys.exit(1)

    running = all(entry["running"] for entry in services.values())

    if as_json:
        click.echo(
            json.dumps(
                {
                    "cluster": cluster.name,
                    "running": running,
                    "services": services,
                    "endpoints": cluster.network_config.to_dict(),
                },
                indent=2,
            )
        )
        return

    table = Table(title=f"Devnet Cluster {cluster.name}", box=box.ROUNDED)
    table.add_column("Service", style="cyan")
    table.add_column("Container", style="blue")
    table.add_column("ID", style="white")
    table.add_column("State", style="green")
    table.add_column("Health", style="yellow")

    for role, entry in services.items():
        state_style = "green" if entry["running"] else "red"
        table.add_row(
            role,
            entry["name"],
            entry["id"],
            f"[{state_style}]{entry['state']}[/{state_style}]",
            entry["health"] or "N/A",
        )

    console.print(table)
    if running:
        console.print(endpoints_table(cluster.network_config))
    else:
        console.print("[yellow]Cluster is not fully running[/yellow]")
