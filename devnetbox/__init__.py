"""
devnetbox - Run a local Midnight devnet (node, indexer, proof server) in Docker.
"""

__version__ = "0.2.0"

from devnetbox.commands.cluster import Cluster, ClusterData, cleanup, with_cluster
from devnetbox.commands.config import (
    DevNetConfig,
    IndexerConfig,
    NetworkConfig,
    NodeConfig,
    ProofServerConfig,
    resolve_config,
    to_network_config,
)
from devnetbox.commands.errors import (
    ClusterError,
    ConfigurationError,
    ContainerError,
    DevnetError,
    EngineUnavailableError,
    HealthCheckError,
    ImageError,
)
from devnetbox.commands.health import HealthCheckOptions
from devnetbox.commands.managers import ContainerHandle

__all__ = [
    "__version__",
    "Cluster",
    "ClusterData",
    "ContainerHandle",
    "cleanup",
    "with_cluster",
    "DevNetConfig",
    "NodeConfig",
    "IndexerConfig",
    "ProofServerConfig",
    "NetworkConfig",
    "resolve_config",
    "to_network_config",
    "HealthCheckOptions",
    "DevnetError",
    "ClusterError",
    "ContainerError",
    "HealthCheckError",
    "ImageError",
    "EngineUnavailableError",
    "ConfigurationError",
]
