"""
Unit tests for the polling combinator, the probes and the service waiters.

Probes run against real aiohttp servers bound to an ephemeral loopback port.
"""

import time
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, patch

import pytest
from aiohttp import web

from devnetbox.commands import health
from devnetbox.commands.config import resolve_config
from devnetbox.commands.errors import HealthCheckError
from devnetbox.commands.health import (
    HealthCheckOptions,
    container_health_probe,
    graphql_probe,
    graphql_synced_probe,
    http_probe,
    poll_until_ready,
    tcp_probe,
    websocket_probe,
)
from devnetbox.commands.managers import ContainerManager, NetworkManager


@asynccontextmanager
async def serve(app):
    """Run ``app`` on 127.0.0.1 and yield (base_url, port)."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    try:
        host, port = runner.addresses[0][:2]
        yield f"http://{host}:{port}", port
    finally:
        await runner.cleanup()


def respond(status=200, payload=None, text=None):
    """Build a handler that always answers with the given status and body."""

    async def handler(request):
        if payload is not None:
            return web.json_response(payload, status=status)
        return web.Response(status=status, text=text)

    return handler


def sequence_probe(results):
    """A probe returning (or raising) the given results in order, then the last one forever."""
    calls = []

    async def probe():
        index = min(len(calls), len(results) - 1)
        calls.append(index)
        result = results[index]
        if isinstance(result, Exception):
            raise result
        return result

    probe.calls = calls
    return probe


class TestPollUntilReady:
    """Tests for poll_until_ready."""

    @pytest.mark.asyncio
    async def test_returns_after_first_success(self):
        probe = sequence_probe([False, ConnectionError("refused"), True])
        await poll_until_ready(probe, service="svc", timeout=5, interval=0)
        assert len(probe.calls) == 3

    @pytest.mark.asyncio
    async def test_failure_resets_streak(self):
        probe = sequence_probe([True, False, True, True])
        await poll_until_ready(
            probe, service="svc", timeout=5, interval=0, required_successes=2
        )
        assert len(probe.calls) == 4

    @pytest.mark.asyncio
    async def test_exception_resets_streak(self):
        probe = sequence_probe([True, OSError("reset"), True, True, True])
        await poll_until_ready(
            probe, service="svc", timeout=5, interval=0, required_successes=3
        )
        assert len(probe.calls) == 5

    @pytest.mark.asyncio
    async def test_times_out_within_bounds(self):
        """A never-ready probe fails after the timeout but within one extra interval."""
        probe = sequence_probe([False])
        started = time.monotonic()
        with pytest.raises(HealthCheckError) as exc_info:
            await poll_until_ready(probe, service="svc", timeout=0.3, interval=0.1)
        elapsed = time.monotonic() - started

        assert 0.3 <= elapsed < 0.3 + 0.1 + 0.25
        assert exc_info.value.service == "svc"
        assert exc_info.value.timeout_seconds == 0.3
        assert "timed out after 0.3s" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_last_error_is_cause(self):
        error = ConnectionRefusedError("refused")
        probe = sequence_probe([error])
        with pytest.raises(HealthCheckError) as exc_info:
            await poll_until_ready(probe, service="svc", timeout=0.1, interval=0.02)
        assert exc_info.value.cause is error

    @pytest.mark.asyncio
    async def test_no_cause_when_probe_only_returned_false(self):
        probe = sequence_probe([False])
        with pytest.raises(HealthCheckError) as exc_info:
            await poll_until_ready(probe, service="svc", timeout=0.05, interval=0.01)
        assert exc_info.value.cause is None


class TestOptions:
    """Tests for merging caller options over waiter defaults."""

    def test_unset_fields_take_waiter_defaults(self):
        resolved = health._resolve(HealthCheckOptions(interval=0.5), timeout=90)
        assert resolved == {"timeout": 90, "interval": 0.5, "required_successes": 1}

    def test_explicit_value_equal_to_default_is_kept(self):
        """An explicit 60s timeout is not replaced by a service default."""
        resolved = health._resolve(HealthCheckOptions(timeout=60), timeout=120)
        assert resolved["timeout"] == 60

    def test_no_options(self):
        assert health._resolve(None) == {
            "timeout": 60,
            "interval": 1,
            "required_successes": 1,
        }


class TestHttpProbes:
    """Tests for the HTTP, GraphQL and WebSocket probes."""

    @pytest.mark.asyncio
    async def test_http_probe_status(self):
        app = web.Application()
        app.router.add_get("/health", respond(payload={"ok": True}))
        app.router.add_get("/down", respond(status=503))

        async with serve(app) as (base, _):
            assert await http_probe(f"{base}/health")() is True
            assert await http_probe(f"{base}/down")() is False

    @pytest.mark.asyncio
    async def test_graphql_probe(self):
        async def good(request):
            body = await request.json()
            assert body == {"query": "{ __typename }"}
            return web.json_response({"data": {"__typename": "Query"}})

        async def bad(request):
            return web.json_response({"errors": [{"message": "not ready"}]})

        app = web.Application()
        app.router.add_post("/good", good)
        app.router.add_post("/bad", bad)

        async with serve(app) as (base, _):
            assert await graphql_probe(f"{base}/good")() is True
            assert await graphql_probe(f"{base}/bad")() is False

    @pytest.mark.asyncio
    async def test_graphql_synced_probe_waits_for_height(self):
        heights = [None, 0, 1]
        served = []

        async def handler(request):
            height = heights[min(len(served), len(heights) - 1)]
            served.append(height)
            if height is None:
                return web.json_response({"data": {"state": {"tip": None}}})
            return web.json_response({"data": {"state": {"tip": {"height": height}}}})

        app = web.Application()
        app.router.add_post("/api/v3/graphql", handler)

        async with serve(app) as (base, _):
            probe = graphql_synced_probe(f"{base}/api/v3/graphql")
            assert await probe() is False
            assert await probe() is False
            assert await probe() is True

    @pytest.mark.asyncio
    async def test_graphql_non_2xx_is_not_ready(self):
        app = web.Application()
        app.router.add_post("/gql", respond(status=502, text="bad gateway"))

        async with serve(app) as (base, _):
            assert await graphql_probe(f"{base}/gql")() is False
            assert await graphql_synced_probe(f"{base}/gql")() is False

    @pytest.mark.asyncio
    async def test_websocket_probe(self):
        async def ws_handler(request):
            ws = web.WebSocketResponse()
            await ws.prepare(request)
            await ws.close()
            return ws

        app = web.Application()
        app.router.add_get("/ws", ws_handler)

        async with serve(app) as (base, _):
            url = base.replace("http://", "ws://") + "/ws"
            assert await websocket_probe(url)() is True

    @pytest.mark.asyncio
    async def test_wait_for_http_against_server(self):
        app = web.Application()
        app.router.add_get("/health", respond(text="ok"))

        async with serve(app) as (base, _):
            await health.wait_for_http(
                f"{base}/health", HealthCheckOptions(timeout=5, interval=0.05)
            )


class TestTcpProbe:
    @pytest.mark.asyncio
    async def test_open_port(self):
        async with serve(web.Application()) as (_, port):
            assert await tcp_probe(port, host="127.0.0.1")() is True

    @pytest.mark.asyncio
    async def test_closed_port_raises(self):
        async with serve(web.Application()) as (_, port):
            pass
        with pytest.raises(OSError):
            await tcp_probe(port, host="127.0.0.1")()


class TestContainerHealthProbe:
    @pytest.mark.asyncio
    async def test_reports_engine_health(self, docker_client):
        await NetworkManager(docker_client).ensure_cluster_network("t1")
        manager = ContainerManager(docker_client)
        handle = await manager.create_node(resolve_config({"cluster_name": "t1"}))
        container = docker_client.containers_by_id[handle.id]
        probe = container_health_probe(manager, handle)

        assert await probe() is False
        container.running = True
        assert await probe() is True
        container.health = "starting"
        assert await probe() is False
        container.health = "healthy"
        assert await probe() is True


class TestServiceWaiters:
    """Tests for the per-service defaults of the service waiters."""

    @pytest.mark.asyncio
    async def test_wait_for_node(self):
        with patch.object(health, "wait_for_http", new_callable=AsyncMock) as mock_wait:
            await health.wait_for_node(19944)
        url, options = mock_wait.call_args[0]
        assert url == "http://localhost:19944/health"
        assert options == HealthCheckOptions(timeout=90, interval=1, required_successes=1)

    @pytest.mark.asyncio
    async def test_wait_for_indexer_runs_both_phases(self):
        with patch.object(
            health, "wait_for_graphql", new_callable=AsyncMock
        ) as mock_graphql, patch.object(
            health, "wait_for_indexer_synced", new_callable=AsyncMock
        ) as mock_synced:
            await health.wait_for_indexer(18088, HealthCheckOptions(required_successes=2))

        expected = HealthCheckOptions(timeout=120, interval=2, required_successes=2)
        mock_graphql.assert_awaited_once_with(
            "http://localhost:18088/api/v3/graphql", expected
        )
        mock_synced.assert_awaited_once_with(18088, expected)

    @pytest.mark.asyncio
    async def test_wait_for_indexer_stops_when_not_live(self):
        with patch.object(
            health,
            "wait_for_graphql",
            new_callable=AsyncMock,
            side_effect=HealthCheckError("gql"),
        ), patch.object(
            health, "wait_for_indexer_synced", new_callable=AsyncMock
        ) as mock_synced:
            with pytest.raises(HealthCheckError):
                await health.wait_for_indexer(18088)
        mock_synced.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_wait_for_proof_server_honours_override(self):
        with patch.object(health, "wait_for_port", new_callable=AsyncMock) as mock_wait:
            await health.wait_for_proof_server(16300, HealthCheckOptions(timeout=5))
        port, options = mock_wait.call_args[0]
        assert port == 16300
        assert options.timeout == 5

    @pytest.mark.asyncio
    async def test_wait_for_indexer_synced_service_name(self):
        with patch.object(
            health, "poll_until_ready", new_callable=AsyncMock
        ) as mock_poll:
            await health.wait_for_indexer_synced(18088)
        kwargs = mock_poll.call_args.kwargs
        assert kwargs["service"] == "http://localhost:18088/api/v3/graphql (sync)"
        assert kwargs["timeout"] == 120
        assert kwargs["interval"] == 2
