"""
Up command - Create and start a devnet cluster in Docker containers.
"""

import sys

import click
from rich import box
from rich.table import Table

from devnetbox.commands.cluster import Cluster
from devnetbox.commands.config import NetworkConfig
from devnetbox.commands.constants import ERROR_ENGINE_HINT
from devnetbox.commands.errors import DevnetError, EngineUnavailableError
from devnetbox.commands.options import build_config, cluster_options
from devnetbox.commands.utils import console, run_async_function


def endpoints_table(network_config: NetworkConfig) -> Table:
    table = Table(title="Devnet Endpoints", box=box.ROUNDED)
    table.add_column("Service", style="cyan")
    table.add_column("Endpoint", style="green")
    for key, value in network_config.to_dict().items():
        table.add_row(key, value)
    return table


async def _up(config, start: bool) -> Cluster:
    cluster = await Cluster.make(config)
    if start:
        await cluster.start()
    return cluster


@click.command()
@cluster_options
@click.option("--node-port", type=int, default=None, help="Host port for the node")
@click.option(
    "--indexer-port", type=int, default=None, help="Host port for the indexer"
)
@click.option(
    "--proof-server-port",
    type=int,
    default=None,
    help="Host port for the proof server",
)
@click.option(
    "--zk-params",
    "zk_params_path",
    type=click.Path(file_okay=False),
    default=None,
    help="Host directory to mount as the proof server parameter cache",
)
@click.option(
    "--no-start",
    is_flag=True,
    help="Only create the containers, do not start them",
)
def up(
    cluster_name,
    config_file,
    node_port,
    indexer_port,
    proof_server_port,
    zk_params_path,
    no_start,
):
    """Create and start a devnet cluster (node, indexer, proof server)."""
    try:
        config = build_config(
            cluster_name,
            config_file,
            node_port=node_port,
            indexer_port=indexer_port,
            proof_server_port=proof_server_port,
            zk_params_path=zk_params_path,
        )
        cluster = run_async_function(_up, config, not no_start)
    except EngineUnavailableError as e:
        console.print(f"[red]{e.message}[/red]")
        console.print(f"[yellow]{ERROR_ENGINE_HINT}[/yellow]")
        sys.exit(1)
    except DevnetError as e:
        console.print(f"[red]✗ {str(e)}[/red]")
        console.print(
            "[yellow]Run 'devnetbox down' to clean up any partially started services.[/yellow]"
        )
        sys.exit(1)

    state = "created" if no_start else "running"
    console.print(f"\n[bold]Cluster {cluster.name} is {state}[/bold]")
    console.print(endpoints_table(cluster.network_config))
