"""
Stop command - Stop the containers of a devnet cluster without removing them.
"""

import sys

import click

from devnetbox.commands.cluster import Cluster
from devnetbox.commands.constants import ERROR_ENGINE_HINT
from devnetbox.commands.errors import DevnetError, EngineUnavailableError
from devnetbox.commands.options import build_config, cluster_options
from devnetbox.commands.utils import console, run_async_function


async def _stop(config):
    cluster = await Cluster.attach(config)
    return await cluster.stop()


@click.command()
@cluster_options
def stop(cluster_name, config_file):
    """Stop a devnet cluster's containers."""
    try:
        config = build_config(cluster_name, config_file)
        outcomes = run_async_function(_stop, config)
    except EngineUnavailableError as e:
        console.print(f"[red]{e.message}[/red]")
        console.print(f"[yellow]{ERROR_ENGINE_HINT}[/yellow]")
        sys.exit(1)
    except DevnetError as e:
        console.print(f"[red]✗ {str(e)}[/red]")
        sys.exit(1)

    for name, outcome in outcomes.items():
        if outcome["success"]:
            console.print(f"[green]✓ Stopped {name}[/green]")
        else:
            console.print(f"[red]✗ {outcome['error']}[/red]")
