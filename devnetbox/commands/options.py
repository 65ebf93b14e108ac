"""
Shared click options for commands that address a cluster.
"""

from typing import Any, Optional

import click

from devnetbox.commands.config import DevNetConfig, resolve_config
from devnetbox.commands.utils import load_config_file


def cluster_options(func):
    """Add --name and --config to a command."""
    func = click.option(
        "--config",
        "config_file",
        type=click.Path(dir_okay=False),
        default=None,
        help="YAML file with cluster overrides (cluster_name, node, indexer, proof_server)",
    )(func)
    func = click.option(
        "--name",
        "cluster_name",
        type=str,
        default=None,
        help="Cluster name (default: midday-devnet)",
    )(func)
    return func


def build_config(
    cluster_name: Optional[str],
    config_file: Optional[str],
    node_port: Optional[int] = None,
    indexer_port: Optional[int] = None,
    proof_server_port: Optional[int] = None,
    zk_params_path: Optional[str] = None,
) -> DevNetConfig:
    """Resolve a config from a YAML file with command-line values on top."""
    overrides: dict[str, Any] = load_config_file(config_file)

    if cluster_name:
        overrides.pop("clusterName", None)
        overrides["cluster_name"] = cluster_name

    def section(key: str, alias: str) -> dict[str, Any]:
        current = overrides.get(key) or overrides.get(alias) or {}
        overrides.pop(alias, None)
        overrides[key] = dict(current)
        return overrides[key]

    if node_port is not None:
        section("node", "node")["port"] = node_port
    if indexer_port is not None:
        section("indexer", "indexer")["port"] = indexer_port
    if proof_server_port is not None:
        section("proof_server", "proofServer")["port"] = proof_server_port
    if zk_params_path:
        section("proof_server", "proofServer")["zk_params_path"] = zk_params_path

    return resolve_config(overrides)
