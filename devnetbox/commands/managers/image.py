"""
ImageManager - Docker image availability and pulls.
"""

import logging
from typing import Optional

import docker

from devnetbox.commands.constants import QUIET_PULL_STATUSES
from devnetbox.commands.errors import ImageError
from devnetbox.commands.managers.base import BaseManager
from devnetbox.commands.utils import console

logger = logging.getLogger(__name__)


class ImageManager(BaseManager):
    """Checks for and pulls the images the devnet services run from."""

    def __init__(self, client: Optional[docker.DockerClient] = None):
        super().__init__(client)

    async def is_available(self, image: str) -> bool:
        """Check if a Docker image exists locally.

        Raises:
            ImageError: If the engine cannot be queried.
        """
        try:
            images = await self._run(
                self.client.images.list, filters={"reference": image}
            )
        except Exception as e:
            raise ImageError(
                "image_inspection_failed",
                f"Failed to check if image '{image}' is available.",
                image=image,
                cause=e,
            ) from e
        return len(images) > 0

    async def pull(self, image: str) -> None:
        """Pull an image and wait for the pull to complete.

        Progress events are printed as they arrive. There is no retry.

        Raises:
            ImageError: If the pull cannot be started or reports an error.
        """
        console.print(f"[yellow]Pulling image: {image}[/yellow]")
        console.print("[yellow]This may take a few minutes on first run...[/yellow]")

        try:
            await self._run(self._pull_blocking, image)
        except ImageError:
            raise
        except Exception as e:
            console.print(f"[red]✗ Failed to pull image {image}: {str(e)}[/red]")
            raise ImageError(
                "image_pull_failed",
                f"Failed to pull image '{image}'. Check internet connection and image name.",
                image=image,
                cause=e,
            ) from e

        console.print(f"[green]✓ Image ready: {image}[/green]")

    def _pull_blocking(self, image: str) -> None:
        for event in self.client.api.pull(image, stream=True, decode=True):
            if "error" in event:
                raise ImageError(
                    "image_pull_failed",
                    f"Failed to pull image '{image}': {event['error']}",
                    image=image,
                )
            self._report_progress(event)

    def _report_progress(self, event: dict) -> None:
        status = event.get("status")
        if not status or status in QUIET_PULL_STATUSES:
            return
        layer = event.get("id")
        suffix = f" {layer}" if layer else ""
        console.print(f"[cyan]{status}{suffix}[/cyan]")

    async def ensure_available(self, image: str) -> None:
        """Pull the image only if it is not already present."""
        if await self.is_available(image):
            logger.debug("Image %s already available locally", image)
            return
        await self.pull(image)
