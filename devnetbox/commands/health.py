"""
Health checks for devnet services.

Every waiter in this module is built from the same pieces: a probe that
attempts a readiness check once, and ``poll_until_ready`` which retries it on
an interval until enough consecutive attempts succeed or the timeout passes.
New probe kinds only need to provide the single attempt.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import aiohttp

from devnetbox.commands.constants import (
    DEFAULT_HEALTH_INTERVAL,
    DEFAULT_HEALTH_TIMEOUT,
    DEFAULT_REQUIRED_SUCCESSES,
    GRAPHQL_LIVENESS_QUERY,
    GRAPHQL_TIP_HEIGHT_QUERY,
    INDEXER_GRAPHQL_PATH,
    INDEXER_MIN_SYNCED_HEIGHT,
    INDEXER_POLL_INTERVAL,
    INDEXER_READY_TIMEOUT,
    NODE_HEALTH_PATH,
    NODE_READY_TIMEOUT,
    PROBE_REQUEST_TIMEOUT,
    PROBE_SOCKET_TIMEOUT,
    PROOF_SERVER_READY_TIMEOUT,
)
from devnetbox.commands.errors import HealthCheckError

logger = logging.getLogger(__name__)

Probe = Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class HealthCheckOptions:
    """Options for health check polling.

    Fields left as None take the default of the waiter they are passed to.

    Attributes:
        timeout: Maximum time to wait, in seconds.
        interval: Sleep between attempts, in seconds.
        required_successes: Consecutive successful attempts needed.
    """

    timeout: Optional[float] = None
    interval: Optional[float] = None
    required_successes: Optional[int] = None


def _resolve(
    options: Optional[HealthCheckOptions],
    timeout: float = DEFAULT_HEALTH_TIMEOUT,
    interval: float = DEFAULT_HEALTH_INTERVAL,
    required_successes: int = DEFAULT_REQUIRED_SUCCESSES,
) -> dict[str, Any]:
    """Merge caller options over a waiter's defaults into poll keyword arguments."""
    resolved = {
        "timeout": timeout,
        "interval": interval,
        "required_successes": required_successes,
    }
    if options is not None:
        resolved.update(
            {name: value for name, value in vars(options).items() if value is not None}
        )
    return resolved


def _fill(options: Optional[HealthCheckOptions], **defaults: Any) -> HealthCheckOptions:
    """Apply service defaults to the unset fields of ``options``."""
    return HealthCheckOptions(**_resolve(options, **defaults))


async def poll_until_ready(
    probe: Probe,
    *,
    service: str,
    timeout: float = DEFAULT_HEALTH_TIMEOUT,
    interval: float = DEFAULT_HEALTH_INTERVAL,
    required_successes: int = DEFAULT_REQUIRED_SUCCESSES,
) -> None:
    """Poll ``probe`` until it succeeds ``required_successes`` times in a row.

    A probe succeeds when it returns a truthy value. A falsy return or an
    exception resets the streak. An attempt is only started while the elapsed
    time is below ``timeout``, so a probe that never succeeds fails between
    ``timeout`` and ``timeout + interval``.

    Raises:
        HealthCheckError: If the streak is not reached before the timeout. The
            last exception raised by the probe, if any, is the cause.
    """
    started = time.monotonic()
    streak = 0
    attempts = 0
    last_error: Optional[BaseException] = None

    while time.monotonic() - started < timeout:
        attempts += 1
        try:
            ready = await probe()
        except Exception as e:
            logger.debug("Probe for %s failed: %s", service, e)
            last_error = e
            ready = False

        if ready:
            streak += 1
            if streak >= required_successes:
                logger.debug("%s ready after %d attempt(s)", service, attempts)
                return
        else:
            streak = 0

        await asyncio.sleep(interval)

    raise HealthCheckError(
        service,
        f"Health check timed out after {timeout}s for {service}",
        timeout_seconds=timeout,
        cause=last_error,
    )


# Probes: each attempts a readiness check exactly once.


def _client_timeout() -> aiohttp.ClientTimeout:
    return aiohttp.ClientTimeout(total=PROBE_REQUEST_TIMEOUT)


def http_probe(url: str) -> Probe:
    """Succeeds when a GET to ``url`` returns a 2xx status."""

    async def attempt() -> bool:
        async with aiohttp.ClientSession(timeout=_client_timeout()) as session:
            async with session.get(url) as response:
                return 200 <= response.status < 300

    return attempt


def websocket_probe(url: str) -> Probe:
    """Succeeds when a WebSocket handshake with ``url`` completes."""

    async def attempt() -> bool:
        async with aiohttp.ClientSession(timeout=_client_timeout()) as session:
            async with session.ws_connect(url):
                return True

    return attempt


async def _post_graphql(url: str, query: str) -> Optional[dict]:
    async with aiohttp.ClientSession(timeout=_client_timeout()) as session:
        async with session.post(url, json={"query": query}) as response:
            if not 200 <= response.status < 300:
                return None
            return await response.json(content_type=None)


def graphql_probe(url: str) -> Probe:
    """Succeeds when the endpoint answers ``{ __typename }`` without errors."""

    async def attempt() -> bool:
        data = await _post_graphql(url, GRAPHQL_LIVENESS_QUERY)
        return isinstance(data, dict) and not data.get("errors")

    return attempt


def _tip_height(payload: Any) -> Optional[int]:
    try:
        height = payload["data"]["state"]["tip"]["height"]
    except (KeyError, TypeError):
        return None
    return height if isinstance(height, int) else None


def graphql_synced_probe(url: str, min_height: int = INDEXER_MIN_SYNCED_HEIGHT) -> Probe:
    """Succeeds when the indexed chain tip height reaches ``min_height``."""

    async def attempt() -> bool:
        data = await _post_graphql(url, GRAPHQL_TIP_HEIGHT_QUERY)
        height = _tip_height(data)
        return height is not None and height >= min_height

    return attempt


def tcp_probe(port: int, host: str = "localhost") -> Probe:
    """Succeeds when a TCP connection to ``host:port`` can be opened."""

    async def attempt() -> bool:
        _, writer = await asyncio.wait_for(
            asyncio.open_connection(host, port), timeout=PROBE_SOCKET_TIMEOUT
        )
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
        return True

    return attempt


def container_health_probe(container_manager, handle) -> Probe:
    """Succeeds when the engine reports the container healthy.

    Containers without a configured healthcheck count as healthy once they
    are running.
    """

    async def attempt() -> bool:
        state = (await container_manager.get_status(handle)).get("State", {})
        health = state.get("Health")
        if health:
            return health.get("Status") == "healthy"
        return bool(state.get("Running"))

    return attempt


# Generic waiters


async def wait_for_http(url: str, options: Optional[HealthCheckOptions] = None) -> None:
    """Wait for an HTTP endpoint to return a successful response."""
    await poll_until_ready(http_probe(url), service=url, **_resolve(options))


async def wait_for_websocket(
    url: str, options: Optional[HealthCheckOptions] = None
) -> None:
    """Wait for a WebSocket endpoint to accept connections."""
    await poll_until_ready(websocket_probe(url), service=url, **_resolve(options))


async def wait_for_graphql(
    url: str, options: Optional[HealthCheckOptions] = None
) -> None:
    """Wait for a GraphQL endpoint to answer a trivial query."""
    await poll_until_ready(
        graphql_probe(url),
        service=url,
        **_resolve(options, interval=INDEXER_POLL_INTERVAL),
    )


async def wait_for_port(
    port: int, options: Optional[HealthCheckOptions] = None, host: str = "localhost"
) -> None:
    """Wait for a TCP port to accept connections."""
    await poll_until_ready(
        tcp_probe(port, host), service=f"{host}:{port}", **_resolve(options)
    )


async def wait_for_container_healthy(
    container_manager, handle, options: Optional[HealthCheckOptions] = None
) -> None:
    """Wait for the engine to report a container healthy (or running)."""
    await poll_until_ready(
        container_health_probe(container_manager, handle),
        service=handle.name,
        **_resolve(options),
    )


# Service waiters


async def wait_for_node(port: int, options: Optional[HealthCheckOptions] = None) -> None:
    """Wait for the chain node's HTTP health endpoint."""
    await wait_for_http(
        f"http://localhost:{port}{NODE_HEALTH_PATH}",
        _fill(options, timeout=NODE_READY_TIMEOUT),
    )


def _indexer_url(port: int) -> str:
    return f"http://localhost:{port}{INDEXER_GRAPHQL_PATH}"


async def wait_for_indexer_synced(
    port: int,
    options: Optional[HealthCheckOptions] = None,
    min_height: int = INDEXER_MIN_SYNCED_HEIGHT,
) -> None:
    """Wait until the indexer has indexed the chain up to ``min_height``.

    Genesis data, including the initial token allocation, is only queryable
    once the tip height is at least 1.
    """
    url = _indexer_url(port)
    await poll_until_ready(
        graphql_synced_probe(url, min_height),
        service=f"{url} (sync)",
        **_resolve(
            options, timeout=INDEXER_READY_TIMEOUT, interval=INDEXER_POLL_INTERVAL
        ),
    )


async def wait_for_indexer(
    port: int, options: Optional[HealthCheckOptions] = None
) -> None:
    """Wait for the indexer to be up, then for it to have indexed genesis."""
    opts = _fill(
        options, timeout=INDEXER_READY_TIMEOUT, interval=INDEXER_POLL_INTERVAL
    )
    await wait_for_graphql(_indexer_url(port), opts)
    await wait_for_indexer_synced(port, opts)


async def wait_for_proof_server(
    port: int, options: Optional[HealthCheckOptions] = None
) -> None:
    """Wait for the proof server port to accept connections.

    The proof server has no HTTP liveness endpoint, so an open port is the
    readiness signal.
    """
    await wait_for_port(port, _fill(options, timeout=PROOF_SERVER_READY_TIMEOUT))
