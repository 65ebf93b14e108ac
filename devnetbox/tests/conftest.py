"""Pytest configuration for devnetbox tests.

Provides an in-memory stand-in for ``docker.DockerClient`` so the
orchestration logic can be exercised without a Docker daemon. The fake keeps
engine state (containers, images, networks) the way the daemon does: by id and
by unique name, with run state that lives only in the fake engine.
"""

import uuid

import docker
import pytest

from devnetbox.commands.constants import (
    DEFAULT_INDEXER_IMAGE,
    DEFAULT_NODE_IMAGE,
    DEFAULT_PROOF_SERVER_IMAGE,
)


class FakeContainer:
    def __init__(self, engine, image, name, **kwargs):
        self.engine = engine
        self.id = uuid.uuid4().hex + uuid.uuid4().hex
        self.name = name
        self.image = image
        self.kwargs = kwargs
        self.running = False
        self.health = None

    @property
    def short_id(self):
        return self.id[:12]

    @property
    def host_ports(self):
        return {int(port) for port in (self.kwargs.get("ports") or {}).values()}

    @property
    def status(self):
        return "running" if self.running else "created"

    @property
    def attrs(self):
        state = {"Running": self.running, "Status": self.status}
        if self.health is not None:
            state["Health"] = {"Status": self.health}
        return {"Id": self.id, "Name": f"/{self.name}", "State": state}

    def _check_exists(self):
        if self.id not in self.engine.containers_by_id:
            raise docker.errors.NotFound(f"No such container: {self.id}")

    def start(self):
        self._check_exists()
        self.engine.calls.append(("start", self.name))
        for other in list(self.engine.containers_by_id.values()):
            if other is not self and other.running and other.host_ports & self.host_ports:
                raise docker.errors.APIError(
                    "driver failed programming external connectivity: "
                    "port is already allocated"
                )
        self.running = True

    def stop(self, timeout=None):
        self._check_exists()
        self.engine.calls.append(("stop", self.name))
        self.running = False

    def remove(self, force=False):
        self._check_exists()
        if self.running and not force:
            raise docker.errors.APIError("cannot remove a running container")
        self.engine.calls.append(("remove", self.name))
        del self.engine.containers_by_id[self.id]


class FakeContainers:
    def __init__(self, engine):
        self.engine = engine

    def create(self, image, name=None, **kwargs):
        if any(c.name == name for c in list(self.engine.containers_by_id.values())):
            raise docker.errors.APIError(f"Conflict. The container name {name} is in use")
        if image not in self.engine.images.local:
            raise docker.errors.ImageNotFound(f"No such image: {image}")
        network = kwargs.get("network")
        if network and network not in self.engine.networks.by_name:
            raise docker.errors.NotFound(f"network {network} not found")
        container = FakeContainer(self.engine, image, name, **kwargs)
        self.engine.containers_by_id[container.id] = container
        self.engine.calls.append(("create", name))
        return container

    def get(self, container_id):
        self.engine.check_reachable()
        container = self.engine.containers_by_id.get(container_id)
        if container is None:
            for candidate in list(self.engine.containers_by_id.values()):
                if candidate.name == container_id:
                    return candidate
            raise docker.errors.NotFound(f"No such container: {container_id}")
        return container

    def list(self, all=False, filters=None):
        self.engine.check_reachable()
        filters = filters or {}
        result = []
        for container in list(self.engine.containers_by_id.values()):
            if not all and not container.running:
                continue
            if "name" in filters and filters["name"] not in container.name:
                continue
            result.append(container)
        return result


class FakeImage:
    def __init__(self, tag):
        self.tags = [tag]


class FakeImages:
    def __init__(self, engine):
        self.engine = engine
        self.local = set()

    def list(self, filters=None):
        self.engine.check_reachable()
        reference = (filters or {}).get("reference")
        return [FakeImage(tag) for tag in list(self.local) if reference in (None, tag)]


class FakeAPI:
    def __init__(self, engine):
        self.engine = engine
        self.pull_events = None
        self.pulled = []

    def pull(self, image, stream=False, decode=False):
        self.engine.check_reachable()
        self.pulled.append(image)
        events = self.pull_events
        if events is None:
            events = [
                {"status": f"Pulling from {image}"},
                {"status": "Downloading", "id": "abc123"},
                {"status": "Pull complete", "id": "abc123"},
                {"status": f"Status: Downloaded newer image for {image}"},
            ]

        def generate():
            for event in events:
                yield event
            if not any("error" in event for event in events):
                self.engine.images.local.add(image)

        return generate()


class FakeNetwork:
    def __init__(self, engine, name, **kwargs):
        self.engine = engine
        self.name = name
        self.kwargs = kwargs

    def remove(self):
        if self.name not in self.engine.networks.by_name:
            raise docker.errors.NotFound(f"network {self.name} not found")
        del self.engine.networks.by_name[self.name]


class FakeNetworks:
    def __init__(self, engine):
        self.engine = engine
        self.by_name = {}

    def get(self, name):
        self.engine.check_reachable()
        if name not in self.by_name:
            raise docker.errors.NotFound(f"network {name} not found")
        return self.by_name[name]

    def create(self, name, **kwargs):
        network = FakeNetwork(self.engine, name, **kwargs)
        self.by_name[name] = network
        return network


class FakeDockerClient:
    """Minimal in-memory Docker engine."""

    def __init__(self):
        self.containers_by_id = {}
        self.calls = []
        self.reachable = True
        self.containers = FakeContainers(self)
        self.images = FakeImages(self)
        self.networks = FakeNetworks(self)
        self.api = FakeAPI(self)

    def check_reachable(self):
        if not self.reachable:
            raise docker.errors.DockerException("Error while fetching server API version")

    def ping(self):
        self.check_reachable()
        return True

    def container_named(self, name):
        for container in list(self.containers_by_id.values()):
            if container.name == name:
                return container
        return None


@pytest.fixture
def docker_client():
    """A fake Docker client with the default devnet images already present."""
    client = FakeDockerClient()
    client.images.local.update(
        {DEFAULT_NODE_IMAGE, DEFAULT_INDEXER_IMAGE, DEFAULT_PROOF_SERVER_IMAGE}
    )
    return client


@pytest.fixture
def empty_docker_client():
    """A fake Docker client with no local images."""
    return FakeDockerClient()
