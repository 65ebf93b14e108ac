"""
Commands module - CLI commands and the devnet orchestration they drive.
"""

from devnetbox.commands.cluster import Cluster, ClusterData, cleanup, with_cluster
from devnetbox.commands.down import down
from devnetbox.commands.errors import (
    ClusterError,
    ConfigurationError,
    ContainerError,
    DevnetError,
    EngineUnavailableError,
    HealthCheckError,
    ImageError,
)
from devnetbox.commands.status import status
from devnetbox.commands.stop import stop
from devnetbox.commands.up import up

__all__ = [
    # Commands
    "up",
    "stop",
    "down",
    "status",
    # Orchestration
    "Cluster",
    "ClusterData",
    "cleanup",
    "with_cluster",
    # Error classes
    "DevnetError",
    "ClusterError",
    "ContainerError",
    "HealthCheckError",
    "ImageError",
    "EngineUnavailableError",
    "ConfigurationError",
]
