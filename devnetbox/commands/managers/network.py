"""
NetworkManager - The dedicated Docker network a cluster's containers share.
"""

import logging
from typing import Optional

import docker

from devnetbox.commands.config import network_name
from devnetbox.commands.constants import LABEL_CLUSTER
from devnetbox.commands.managers.base import BaseManager
from devnetbox.commands.utils import console

logger = logging.getLogger(__name__)


class NetworkManager(BaseManager):
    """Manages the per-cluster bridge network."""

    def __init__(self, client: Optional[docker.DockerClient] = None):
        super().__init__(client)

    async def ensure_cluster_network(self, cluster_name: str):
        """Get or create the bridge network for a cluster.

        Returns:
            The Docker network object.
        """
        name = network_name(cluster_name)
        try:
            network = await self._run(self.client.networks.get, name)
            logger.debug("Network %s already exists", name)
            return network
        except docker.errors.NotFound:
            pass

        network = await self._run(
            self.client.networks.create,
            name,
            driver="bridge",
            labels={LABEL_CLUSTER: cluster_name},
        )
        console.print(f"[green]✓ Created network: {name}[/green]")
        return network

    async def remove_cluster_network(self, cluster_name: str) -> bool:
        """Remove the cluster network.

        Returns:
            True if a network was removed, False if it did not exist.
        """
        name = network_name(cluster_name)
        try:
            network = await self._run(self.client.networks.get, name)
        except docker.errors.NotFound:
            logger.debug("Network %s not found, nothing to remove", name)
            return False

        try:
            await self._run(network.remove)
        except docker.errors.NotFound:
            return False
        console.print(f"[green]✓ Removed network: {name}[/green]")
        return True
