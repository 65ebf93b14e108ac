"""
ContainerManager - Lifecycle primitives and service definitions for devnet containers.

Containers are addressed through a ContainerHandle (id + deterministic name).
Run state is never cached here; every status question goes to the engine.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import docker

from devnetbox.commands.config import DevNetConfig, container_name, network_name
from devnetbox.commands.constants import (
    CONTAINER_STOP_TIMEOUT,
    DEV_INDEXER_SECRET,
    INDEXER_LOG_TARGETS,
    INDEXER_PORT_BINDING,
    LABEL_CLUSTER,
    LABEL_ROLE,
    NODE_PORT,
    NODE_PORT_BINDING,
    PROOF_SERVER_PORT_BINDING,
    PROOF_SERVER_ZK_PARAMS_DIR,
    ROLE_INDEXER,
    ROLE_NODE,
    ROLE_PROOF_SERVER,
)
from devnetbox.commands.errors import ContainerError
from devnetbox.commands.managers.base import BaseManager
from devnetbox.commands.managers.image import ImageManager
from devnetbox.commands.utils import console

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContainerHandle:
    """Opaque reference to an engine-managed container."""

    id: str
    name: str

    @property
    def short_id(self) -> str:
        return self.id[:12]


def _indexer_rust_log(level: str) -> str:
    targets = [f"{target}={level}" for target in INDEXER_LOG_TARGETS]
    return ",".join(targets + [level])


class ContainerManager(BaseManager):
    """Manages the node, indexer and proof server containers."""

    def __init__(
        self,
        client: Optional[docker.DockerClient] = None,
        image_manager: Optional[ImageManager] = None,
    ):
        """Initialize the ContainerManager.

        Args:
            client: Optional Docker client. If not provided, creates one from environment.
            image_manager: Optional ImageManager sharing the same client.
        """
        super().__init__(client)
        self.image_manager = image_manager or ImageManager(self.client)

    # Lifecycle

    async def start(self, handle: ContainerHandle) -> None:
        """Start a container.

        Raises:
            ContainerError: reason ``container_start_failed``, e.g. when the
                host port is already bound.
        """
        try:
            container = await self._run(self.client.containers.get, handle.id)
            await self._run(container.start)
        except Exception as e:
            raise ContainerError(
                "container_start_failed",
                f"Failed to start container '{handle.name}'. Check if ports are available.",
                container=handle.name,
                cause=e,
            ) from e
        logger.debug("Started container %s (%s)", handle.name, handle.short_id)

    async def stop(self, handle: ContainerHandle) -> None:
        """Stop a container if it is running. Stopping a stopped container is a no-op."""
        try:
            container = await self._run(self.client.containers.get, handle.id)
            if container.attrs.get("State", {}).get("Running"):
                await self._run(container.stop, timeout=CONTAINER_STOP_TIMEOUT)
        except Exception as e:
            raise ContainerError(
                "container_stop_failed",
                f"Failed to stop container '{handle.name}'.",
                container=handle.name,
                cause=e,
            ) from e

    async def remove(self, handle: ContainerHandle) -> None:
        """Stop (if running) and remove a container."""
        try:
            await self.stop(handle)
            container = await self._run(self.client.containers.get, handle.id)
            await self._run(container.remove)
        except Exception as e:
            raise ContainerError(
                "container_removal_failed",
                f"Failed to remove container '{handle.name}'.",
                container=handle.name,
                cause=e,
            ) from e

    async def get_status(self, handle: ContainerHandle) -> dict[str, Any]:
        """Return the engine's inspect document for a container."""
        try:
            container = await self._run(self.client.containers.get, handle.id)
        except Exception as e:
            raise ContainerError(
                "container_inspection_failed",
                f"Failed to inspect container '{handle.name}'.",
                container=handle.name,
                cause=e,
            ) from e
        return container.attrs

    async def is_running(self, handle: ContainerHandle) -> bool:
        """Check if a container is running.

        Any inspection failure, including a missing container, counts as not
        running.
        """
        try:
            status = await self.get_status(handle)
        except ContainerError:
            return False
        return bool(status.get("State", {}).get("Running", False))

    # Name-keyed lookup

    async def find_by_name(self, name: str):
        """Find a container (running or not) by exact name.

        Returns:
            The Docker container object, or None if there is none.
        """
        try:
            containers = await self._run(
                self.client.containers.list, all=True, filters={"name": name}
            )
        except Exception as e:
            raise ContainerError(
                "container_not_found",
                "Ensure Docker is running and accessible.",
                container=name,
                cause=e,
            ) from e

        for container in containers:
            if container.name == name:
                return container
        return None

    async def remove_by_name(self, name: str) -> bool:
        """Remove a container by name if it exists.

        Returns:
            True if a container was removed, False if none existed.
        """
        existing = await self.find_by_name(name)
        if existing is None:
            return False

        try:
            if existing.attrs.get("State", {}).get("Running"):
                console.print(
                    f"[yellow]Container {name} is already running, stopping it...[/yellow]"
                )
                await self._run(existing.stop, timeout=CONTAINER_STOP_TIMEOUT)
            await self._run(existing.remove)
        except docker.errors.NotFound:
            return False
        except Exception as e:
            raise ContainerError(
                "container_removal_failed",
                f"Failed to remove container '{name}'.",
                container=name,
                cause=e,
            ) from e

        console.print(f"[green]✓ Cleaned up existing container {name}[/green]")
        return True

    # Service definitions

    async def create_node(self, config: DevNetConfig) -> ContainerHandle:
        """Create (but do not start) the chain node container."""
        return await self._create(
            config,
            role=ROLE_NODE,
            image=config.node.image,
            ports={NODE_PORT_BINDING: config.node.port},
            environment={"CFG_PRESET": config.node.cfg_preset},
        )

    async def create_indexer(self, config: DevNetConfig) -> ContainerHandle:
        """Create the indexer container.

        The node is addressed by its container name, which the cluster
        network's DNS resolves.
        """
        node_name = container_name(config.cluster_name, ROLE_NODE)
        level = config.indexer.log_level
        return await self._create(
            config,
            role=ROLE_INDEXER,
            image=config.indexer.image,
            ports={INDEXER_PORT_BINDING: config.indexer.port},
            environment={
                "RUST_LOG": _indexer_rust_log(level),
                "APP__INFRA__SECRET": DEV_INDEXER_SECRET,
                "APP__INFRA__NODE__URL": f"ws://{node_name}:{NODE_PORT}",
            },
        )

    async def create_proof_server(self, config: DevNetConfig) -> ContainerHandle:
        """Create the proof server container with an optional parameter cache bind."""
        volumes = None
        if config.proof_server.zk_params_path:
            volumes = {
                config.proof_server.zk_params_path: {
                    "bind": PROOF_SERVER_ZK_PARAMS_DIR,
                    "mode": "rw",
                }
            }
        return await self._create(
            config,
            role=ROLE_PROOF_SERVER,
            image=config.proof_server.image,
            ports={PROOF_SERVER_PORT_BINDING: config.proof_server.port},
            environment={"HOME": "/root"},
            volumes=volumes,
        )

    async def _create(
        self,
        config: DevNetConfig,
        role: str,
        image: str,
        ports: dict[str, int],
        environment: dict[str, str],
        volumes: Optional[dict] = None,
    ) -> ContainerHandle:
        name = container_name(config.cluster_name, role)

        await self.image_manager.ensure_available(image)

        container_config: dict[str, Any] = {
            "name": name,
            "detach": True,
            "environment": environment,
            "ports": ports,
            "labels": {
                LABEL_CLUSTER: config.cluster_name,
                LABEL_ROLE: role,
            },
            "network": network_name(config.cluster_name),
        }
        if volumes:
            container_config["volumes"] = volumes

        try:
            container = await self._run(
                self.client.containers.create, image, **container_config
            )
        except Exception as e:
            raise ContainerError(
                "container_create_failed",
                f"Failed to create container '{name}' from image '{image}'.",
                container=name,
                cause=e,
            ) from e

        console.print(f"[green]✓ Created container {name} (ID: {container.short_id})[/green]")
        return ContainerHandle(id=container.id, name=name)
