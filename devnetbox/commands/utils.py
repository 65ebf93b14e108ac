"""
Shared helpers for devnetbox commands.
"""

import asyncio
from pathlib import Path
from typing import Any, Optional

import yaml
from rich.console import Console

from devnetbox.commands.errors import ConfigurationError

console = Console()

# Per-service sections of a config file, in both accepted spellings
SERVICE_SECTIONS = ("node", "indexer", "proof_server", "proofServer")


def run_async_function(func, *args, **kwargs):
    """Run an async function from synchronous (click) code."""
    return asyncio.run(func(*args, **kwargs))


def load_config_file(path: Optional[str]) -> dict[str, Any]:
    """Load a YAML devnet configuration file into an override mapping.

    Returns an empty mapping when no path is given.

    Raises:
        ConfigurationError: If the file is missing or unreadable, or if it or
            one of its service sections is not a mapping.
    """
    if not path:
        return {}

    config_path = Path(path)
    if not config_path.exists():
        raise ConfigurationError(
            f"Configuration file not found: {path}", config_file=str(path)
        )

    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(
            f"Failed to read configuration file {path}: {e}",
            config_file=str(path),
            cause=e,
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration file {path} must contain a mapping at the top level",
            config_file=str(path),
        )
    for key in SERVICE_SECTIONS:
        section = data.get(key)
        if section is not None and not isinstance(section, dict):
            raise ConfigurationError(
                f"Section '{key}' in {path} must be a mapping, "
                f"got {type(section).__name__}",
                config_file=str(path),
            )
    return data
