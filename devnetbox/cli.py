#!/usr/bin/env python3
"""
devnetbox CLI
A Python CLI tool for running a local Midnight devnet in Docker containers.
"""

import click

from devnetbox import __version__
from devnetbox.commands import down, status, stop, up


@click.group()
@click.version_option(version=__version__)
def cli():
    """devnetbox CLI - Manage a local devnet cluster in Docker containers."""
    pass


cli.add_command(up)
cli.add_command(stop)
cli.add_command(down)
cli.add_command(status)


def main():
    """Main entry point for the devnetbox CLI."""
    cli()


if __name__ == "__main__":
    main()
