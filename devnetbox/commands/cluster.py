"""
Cluster - Devnet orchestration for a node, an indexer and a proof server.

Lifecycle:

    make()    -> containers created, not started
    start()   -> node, then indexer, then proof server, each verified healthy
    stop()    -> all three stopped concurrently, best effort
    remove()  -> all three removed concurrently, best effort, then the network

Usage::

    cluster = await Cluster.make({"cluster_name": "t1", "node": {"port": 19944}})
    try:
        await cluster.start()
        endpoints = cluster.network_config
    finally:
        await cluster.remove()

There is no rollback. If make() or start() fails part way, call remove().
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

import docker

from devnetbox.commands import health
from devnetbox.commands.config import (
    ConfigOverrides,
    DevNetConfig,
    NetworkConfig,
    container_names,
    network_config_for,
    network_name,
    resolve_config,
)
from devnetbox.commands.constants import (
    ROLE_INDEXER,
    ROLE_NODE,
    ROLE_PROOF_SERVER,
    TEARDOWN_CONCURRENCY,
)
from devnetbox.commands.errors import ClusterError
from devnetbox.commands.health import HealthCheckOptions
from devnetbox.commands.managers.base import connect_engine
from devnetbox.commands.managers.container import ContainerHandle, ContainerManager
from devnetbox.commands.managers.network import NetworkManager
from devnetbox.commands.result import fail, is_ok, ok
from devnetbox.commands.utils import console

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ClusterData:
    """The three container handles plus the configuration they were made from."""

    node: ContainerHandle
    indexer: ContainerHandle
    proof_server: ContainerHandle
    config: DevNetConfig

    def handles(self) -> dict[str, ContainerHandle]:
        """Handles keyed by service role, in start order."""
        return {
            ROLE_NODE: self.node,
            ROLE_INDEXER: self.indexer,
            ROLE_PROOF_SERVER: self.proof_server,
        }


class Cluster:
    """A devnet cluster instance with lifecycle methods."""

    def __init__(
        self,
        data: ClusterData,
        container_manager: ContainerManager,
        network_manager: NetworkManager,
        health_options: Optional[HealthCheckOptions] = None,
    ):
        self.data = data
        self.container_manager = container_manager
        self.network_manager = network_manager
        self.health_options = health_options

    # Construction

    @staticmethod
    def _managers(
        client: Optional[docker.DockerClient],
    ) -> tuple[ContainerManager, NetworkManager]:
        client = client if client is not None else connect_engine()
        return ContainerManager(client), NetworkManager(client)

    @classmethod
    async def make(
        cls,
        config: ConfigOverrides = None,
        *,
        client: Optional[docker.DockerClient] = None,
        health_options: Optional[HealthCheckOptions] = None,
    ) -> "Cluster":
        """Create the cluster's containers without starting them.

        Any containers already holding this cluster's names are removed first.
        Cleanup errors are ignored.

        Raises:
            ClusterError: operation ``create`` if the network or a container
                cannot be created. If the indexer or proof server fails, the
                other one is removed before this is raised. The node is kept.
        """
        resolved = resolve_config(config)
        container_manager, network_manager = cls._managers(client)
        names = container_names(resolved.cluster_name)

        console.print(
            f"[bold]Creating devnet cluster {resolved.cluster_name}...[/bold]"
        )

        for name in names.values():
            try:
                await container_manager.remove_by_name(name)
            except Exception as e:
                logger.debug("Ignoring cleanup failure for %s: %s", name, e)

        await _wrap(
            "create",
            network_name(resolved.cluster_name),
            lambda: network_manager.ensure_cluster_network(resolved.cluster_name),
        )

        # The indexer reaches the node by name, so the node must exist first.
        node = await _wrap(
            "create",
            names[ROLE_NODE],
            lambda: container_manager.create_node(resolved),
        )

        # Both only need the node container to exist, not to be running. The
        # sibling of a failed create is awaited and removed, since its engine
        # call keeps running in a worker thread even if the task is cancelled.
        results = await asyncio.gather(
            _wrap(
                "create",
                names[ROLE_INDEXER],
                lambda: container_manager.create_indexer(resolved),
            ),
            _wrap(
                "create",
                names[ROLE_PROOF_SERVER],
                lambda: container_manager.create_proof_server(resolved),
            ),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            for result in results:
                if isinstance(result, ContainerHandle):
                    try:
                        await container_manager.remove_by_name(result.name)
                    except Exception as e:
                        logger.warning("Failed to discard %s: %s", result.name, e)
            raise errors[0]
        indexer, proof_server = results

        data = ClusterData(
            node=node, indexer=indexer, proof_server=proof_server, config=resolved
        )
        return cls(data, container_manager, network_manager, health_options)

    @classmethod
    async def attach(
        cls,
        config: ConfigOverrides = None,
        *,
        client: Optional[docker.DockerClient] = None,
        health_options: Optional[HealthCheckOptions] = None,
    ) -> "Cluster":
        """Rebuild a cluster from containers that already exist under its names.

        Raises:
            ClusterError: operation ``attach`` if any service container is missing.
        """
        resolved = resolve_config(config)
        container_manager, network_manager = cls._managers(client)

        handles: dict[str, ContainerHandle] = {}
        for role, name in container_names(resolved.cluster_name).items():
            container = await _wrap(
                "attach", name, lambda name=name: container_manager.find_by_name(name)
            )
            if container is None:
                raise ClusterError(
                    "attach",
                    f"Container {name} not found. Run 'devnetbox up' first.",
                    cluster=name,
                )
            handles[role] = ContainerHandle(id=container.id, name=name)

        data = ClusterData(
            node=handles[ROLE_NODE],
            indexer=handles[ROLE_INDEXER],
            proof_server=handles[ROLE_PROOF_SERVER],
            config=resolved,
        )
        return cls(data, container_manager, network_manager, health_options)

    # Accessors

    @property
    def config(self) -> DevNetConfig:
        return self.data.config

    @property
    def name(self) -> str:
        return self.data.config.cluster_name

    @property
    def node(self) -> ContainerHandle:
        return self.data.node

    @property
    def indexer(self) -> ContainerHandle:
        return self.data.indexer

    @property
    def proof_server(self) -> ContainerHandle:
        return self.data.proof_server

    @property
    def network_config(self) -> NetworkConfig:
        """Connection endpoints, derived from the configured ports on every access."""
        return network_config_for(self.data.config)

    # Lifecycle

    async def start(self) -> None:
        """Start node, indexer and proof server in order, waiting for each.

        Raises:
            ClusterError: operation ``start``, naming the failing container and
                step. The underlying ``ContainerError`` (e.g. reason
                ``container_start_failed`` for a host port that is already
                bound) or ``HealthCheckError`` is available as ``.cause``.
                Services already started are left running.
        """
        data = self.data
        config = data.config
        manager = self.container_manager
        options = self.health_options

        console.print(f"[bold]Starting devnet cluster {self.name}...[/bold]")

        await self._start_step(data.node, "start", lambda: manager.start(data.node))
        await self._start_step(
            data.node,
            "wait_healthy",
            lambda: health.wait_for_node(config.node.port, options),
        )
        console.print(f"[green]✓ Node ready on port {config.node.port}[/green]")

        await self._start_step(
            data.indexer, "start", lambda: manager.start(data.indexer)
        )
        await self._start_step(
            data.indexer,
            "wait_synced",
            lambda: health.wait_for_indexer(config.indexer.port, options),
        )
        console.print(
            f"[green]✓ Indexer ready and synced on port {config.indexer.port}[/green]"
        )

        await self._start_step(
            data.proof_server, "start", lambda: manager.start(data.proof_server)
        )
        await self._start_step(
            data.proof_server,
            "wait_reachable",
            lambda: health.wait_for_proof_server(config.proof_server.port, options),
        )
        console.print(
            f"[green]✓ Proof server ready on port {config.proof_server.port}[/green]"
        )

    async def _start_step(
        self,
        handle: ContainerHandle,
        step: str,
        action: Callable[[], Awaitable[Any]],
    ) -> None:
        logger.debug("start %s: %s", handle.name, step)
        try:
            await action()
        except Exception as e:
            console.print(f"[red]✗ {handle.name} failed at {step}: {str(e)}[/red]")
            raise ClusterError(
                "start", cluster=handle.name, step=step, cause=e
            ) from e

    async def stop(self, raise_on_error: bool = False) -> dict[str, dict[str, Any]]:
        """Stop all services concurrently.

        Every service is attempted regardless of the others. Failures are
        captured in the returned outcomes and are not raised unless
        ``raise_on_error`` is set.

        Returns:
            Outcome per container name, in ``ok()``/``fail()`` shape.
        """
        outcomes = await self._teardown("stop", self.container_manager.stop)
        return self._finish("stop", outcomes, raise_on_error)

    async def remove(self, raise_on_error: bool = False) -> dict[str, dict[str, Any]]:
        """Remove all service containers concurrently, then the cluster network.

        A missing network is not a failure. See ``stop`` for error handling.
        """
        outcomes = await self._teardown("remove", self.container_manager.remove)

        net = network_name(self.name)
        try:
            removed = await self.network_manager.remove_cluster_network(self.name)
            outcomes[net] = ok(removed=removed)
        except Exception as e:
            logger.warning("Failed to remove network %s: %s", net, e)
            outcomes[net] = fail(f"Failed to remove network {net}", error=e)

        return self._finish("remove", outcomes, raise_on_error)

    async def _teardown(
        self,
        operation: str,
        action: Callable[[ContainerHandle], Awaitable[None]],
    ) -> dict[str, dict[str, Any]]:
        semaphore = asyncio.Semaphore(TEARDOWN_CONCURRENCY)

        async def run_one(handle: ContainerHandle) -> tuple[str, dict[str, Any]]:
            async with semaphore:
                try:
                    await action(handle)
                except Exception as e:
                    logger.warning("Failed to %s %s: %s", operation, handle.name, e)
                    return handle.name, fail(
                        f"Failed to {operation} {handle.name}", error=e
                    )
                return handle.name, ok()

        handles = list(self.data.handles().values())
        results = await asyncio.gather(*(run_one(h) for h in reversed(handles)))
        return dict(results)

    def _finish(
        self,
        operation: str,
        outcomes: dict[str, dict[str, Any]],
        raise_on_error: bool,
    ) -> dict[str, dict[str, Any]]:
        failed = [name for name, outcome in outcomes.items() if not is_ok(outcome)]
        if not failed:
            console.print(f"[green]✓ Cluster {self.name}: {operation} complete[/green]")
            return outcomes

        console.print(
            f"[yellow]⚠️  Cluster {self.name}: {operation} failed for {', '.join(failed)}[/yellow]"
        )
        if raise_on_error:
            raise ClusterError(
                operation,
                f"Cluster {operation} failed for {', '.join(failed)}",
                cluster=self.name,
            )
        return outcomes

    # Inspection

    async def is_running(self) -> bool:
        """True only if all three services are running."""
        states = await asyncio.gather(
            *(
                self.container_manager.is_running(handle)
                for handle in self.data.handles().values()
            )
        )
        return all(states)

    async def status(self) -> dict[str, dict[str, Any]]:
        """Per-service snapshot read from the engine, keyed by role.

        Unlike ``is_running`` this distinguishes a stopped container from one
        that could not be inspected (``state`` is ``unknown``).
        """

        async def describe(handle: ContainerHandle) -> dict[str, Any]:
            entry: dict[str, Any] = {"name": handle.name, "id": handle.short_id}
            try:
                attrs = await self.container_manager.get_status(handle)
            except Exception as e:
                entry.update(running=False, state="unknown", health=None, error=str(e))
                return entry
            state = attrs.get("State", {})
            entry.update(
                running=bool(state.get("Running")),
                state=state.get("Status", "unknown"),
                health=(state.get("Health") or {}).get("Status"),
            )
            return entry

        roles = self.data.handles()
        snapshots = await asyncio.gather(*(describe(h) for h in roles.values()))
        return dict(zip(roles.keys(), snapshots))

    # Context manager

    async def __aenter__(self) -> "Cluster":
        try:
            await self.start()
        except BaseException:
            await self.remove()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.remove()


async def _wrap(
    operation: str, target: str, action: Callable[[], Awaitable[T]]
) -> T:
    try:
        return await action()
    except ClusterError:
        raise
    except Exception as e:
        console.print(f"[red]✗ Failed to {operation} {target}: {str(e)}[/red]")
        raise ClusterError(operation, cluster=target, cause=e) from e


async def cleanup(
    config: ConfigOverrides = None,
    *,
    client: Optional[docker.DockerClient] = None,
) -> dict[str, dict[str, Any]]:
    """Remove a cluster's containers and network by name, best effort.

    Works without a ClusterData, for clusters left behind by another process.
    """
    resolved = resolve_config(config)
    container_manager, network_manager = Cluster._managers(client)

    async def remove_one(name: str) -> tuple[str, dict[str, Any]]:
        try:
            removed = await container_manager.remove_by_name(name)
        except Exception as e:
            return name, fail(f"Failed to remove {name}", error=e)
        return name, ok(removed=removed)

    names = container_names(resolved.cluster_name).values()
    outcomes = dict(await asyncio.gather(*(remove_one(n) for n in names)))

    net = network_name(resolved.cluster_name)
    try:
        outcomes[net] = ok(
            removed=await network_manager.remove_cluster_network(resolved.cluster_name)
        )
    except Exception as e:
        outcomes[net] = fail(f"Failed to remove network {net}", error=e)
    return outcomes


async def with_cluster(
    fn: Callable[[Cluster], Awaitable[T]],
    config: ConfigOverrides = None,
    *,
    client: Optional[docker.DockerClient] = None,
) -> T:
    """Run ``fn`` against a freshly made and started cluster, then remove it.

    The cluster is removed whether ``fn`` (or ``start``) succeeds or not.
    """
    cluster = await Cluster.make(config, client=client)
    try:
        await cluster.start()
        return await fn(cluster)
    finally:
        await cluster.remove()
