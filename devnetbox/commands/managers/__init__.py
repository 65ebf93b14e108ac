"""
Managers module - Focused manager classes over the Docker engine.

- BaseManager: Docker client acquisition and thread offloading
- ImageManager: Image availability checks and pulls
- ContainerManager: Container lifecycle and service container definitions
- NetworkManager: The per-cluster Docker network
"""

from devnetbox.commands.managers.base import BaseManager, connect_engine
from devnetbox.commands.managers.container import ContainerHandle, ContainerManager
from devnetbox.commands.managers.image import ImageManager
from devnetbox.commands.managers.network import NetworkManager

__all__ = [
    "BaseManager",
    "connect_engine",
    "ImageManager",
    "ContainerHandle",
    "ContainerManager",
    "NetworkManager",
]
