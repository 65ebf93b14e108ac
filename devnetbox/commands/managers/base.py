"""
BaseManager - Common Docker client utilities and shared functionality.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

import docker

from devnetbox.commands.constants import ERROR_ENGINE_UNAVAILABLE
from devnetbox.commands.errors import EngineUnavailableError

logger = logging.getLogger(__name__)


def connect_engine() -> docker.DockerClient:
    """Create a Docker client from the environment.

    Raises:
        EngineUnavailableError: If the engine cannot be reached.
    """
    try:
        client = docker.from_env()
        client.ping()
        return client
    except Exception as e:
        raise EngineUnavailableError(
            ERROR_ENGINE_UNAVAILABLE.format(error=str(e)), cause=e
        ) from e


class BaseManager:
    """Base class with shared Docker client utilities."""

    def __init__(self, client: Optional[docker.DockerClient] = None):
        """Initialize with an optional Docker client.

        Args:
            client: Optional Docker client. If not provided, creates one from environment.
        """
        self.client = client if client is not None else connect_engine()

    async def _run(self, func: Callable[..., Any], *args, **kwargs) -> Any:
        """Run a blocking Docker SDK call without blocking the event loop."""
        return await asyncio.to_thread(func, *args, **kwargs)
