"""
Down command - Remove a devnet cluster's containers and network.

Works by deterministic name, so it also cleans up clusters that were only
partly created or whose containers were removed out of band.
"""

import sys

import click

from devnetbox.commands.cluster import cleanup
from devnetbox.commands.constants import ERROR_ENGINE_HINT
from devnetbox.commands.errors import DevnetError, EngineUnavailableError
from devnetbox.commands.options import build_config, cluster_options
from devnetbox.commands.utils import console, run_async_function


@click.command()
@cluster_options
def down(cluster_name, config_file):
    """Remove a devnet cluster's containers and network."""
    try:
        config = build_config(cluster_name, config_file)
        console.print(f"[bold]Removing devnet cluster {config.cluster_name}...[/bold]")
        outcomes = run_async_function(cleanup, config)
    except EngineUnavailableError as e:
        console.print(f"[red]{e.message}[/red]")
        console.print(f"[yellow]{ERROR_ENGINE_HINT}[/yellow]")
        sys.exit(1)
    except DevnetError as e:
        console.print(f"[red]✗ {str(e)}[/red]")
        sys.exit(1)

    failed = 0
    for name, outcome in outcomes.items():
        if not outcome["success"]:
            failed += 1
            console.print(f"[red]✗ {outcome['error']}[/red]")
        elif outcome.get("removed"):
            console.print(f"[green]✓ Removed {name}[/green]")
        else:
            console.print(f"[cyan]{name} not found or already removed[/cyan]")

    if failed:
        sys.exit(1)
    console.print("\n[bold]Cleanup complete[/bold]")
