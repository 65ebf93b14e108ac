"""
Devnet configuration - resolves partial per-service overrides against defaults.

Everything here is pure: no Docker calls, no filesystem access. A resolved
DevNetConfig is frozen and is never mutated after ``resolve_config`` returns it.
"""

from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any, Mapping, Optional, Union

from devnetbox.commands.constants import (
    DEFAULT_CLUSTER_NAME,
    DEFAULT_INDEXER_IMAGE,
    DEFAULT_INDEXER_LOG_LEVEL,
    DEFAULT_NODE_CFG_PRESET,
    DEFAULT_NODE_IMAGE,
    DEFAULT_PROOF_SERVER_IMAGE,
    INDEXER_GRAPHQL_PATH,
    INDEXER_GRAPHQL_WS_PATH,
    INDEXER_PORT,
    NETWORK_ID,
    NODE_PORT,
    PROOF_SERVER_PORT,
    ROLE_INDEXER,
    ROLE_NODE,
    ROLE_PROOF_SERVER,
)


@dataclass(frozen=True)
class NodeConfig:
    """Configuration for the chain node container."""

    image: str = DEFAULT_NODE_IMAGE
    port: int = NODE_PORT
    cfg_preset: str = DEFAULT_NODE_CFG_PRESET


@dataclass(frozen=True)
class IndexerConfig:
    """Configuration for the indexer container."""

    image: str = DEFAULT_INDEXER_IMAGE
    port: int = INDEXER_PORT
    log_level: str = DEFAULT_INDEXER_LOG_LEVEL


@dataclass(frozen=True)
class ProofServerConfig:
    """Configuration for the proof server container.

    ``zk_params_path`` is a host directory mounted as the proof server's
    parameter cache. Empty means no bind mount.
    """

    image: str = DEFAULT_PROOF_SERVER_IMAGE
    port: int = PROOF_SERVER_PORT
    zk_params_path: str = ""


@dataclass(frozen=True)
class DevNetConfig:
    """Fully resolved devnet configuration with all defaults applied."""

    cluster_name: str = DEFAULT_CLUSTER_NAME
    node: NodeConfig = field(default_factory=NodeConfig)
    indexer: IndexerConfig = field(default_factory=IndexerConfig)
    proof_server: ProofServerConfig = field(default_factory=ProofServerConfig)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class NetworkConfig:
    """Connection endpoints for the services of a running cluster."""

    network_id: str
    indexer: str
    indexer_ws: str
    node: str
    proof_server: str

    def to_dict(self) -> dict[str, str]:
        """Return the endpoint view using the camelCase keys clients expect."""
        return {
            "networkId": self.network_id,
            "indexer": self.indexer,
            "indexerWS": self.indexer_ws,
            "node": self.node,
            "proofServer": self.proof_server,
        }


# camelCase spellings accepted alongside the dataclass field names
_KEY_ALIASES = {
    "clusterName": "cluster_name",
    "proofServer": "proof_server",
    "cfgPreset": "cfg_preset",
    "logLevel": "log_level",
    "zkParamsPath": "zk_params_path",
}

ConfigOverrides = Union[DevNetConfig, Mapping[str, Any], None]


def _normalize(overrides: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    if not overrides:
        return {}
    return {_KEY_ALIASES.get(key, key): value for key, value in overrides.items()}


def _merge(defaults, overrides: Any):
    """Apply known, non-None override fields onto a frozen dataclass."""
    if isinstance(overrides, type(defaults)):
        return overrides
    if not isinstance(overrides, Mapping):
        return defaults

    known = {f.name for f in fields(defaults)}
    values = {
        key: value
        for key, value in _normalize(overrides).items()
        if key in known and value is not None
    }
    return replace(defaults, **values)


def resolve_config(overrides: ConfigOverrides = None) -> DevNetConfig:
    """Resolve partial overrides against the documented defaults.

    Args:
        overrides: A DevNetConfig (returned unchanged) or a mapping such as
            ``{"cluster_name": "t1", "node": {"port": 19944}}``. Unknown keys
            are ignored and missing or None values take defaults.

    Returns:
        An immutable DevNetConfig.
    """
    if isinstance(overrides, DevNetConfig):
        return overrides

    values = _normalize(overrides)
    cluster_name = values.get("cluster_name") or DEFAULT_CLUSTER_NAME

    return DevNetConfig(
        cluster_name=cluster_name,
        node=_merge(NodeConfig(), values.get("node")),
        indexer=_merge(IndexerConfig(), values.get("indexer")),
        proof_server=_merge(ProofServerConfig(), values.get("proof_server")),
    )


def to_network_config(
    node_port: int, indexer_port: int, proof_server_port: int
) -> NetworkConfig:
    """Map service ports to the endpoint URIs clients connect to."""
    return NetworkConfig(
        network_id=NETWORK_ID,
        indexer=f"http://localhost:{indexer_port}{INDEXER_GRAPHQL_PATH}",
        indexer_ws=f"ws://localhost:{indexer_port}{INDEXER_GRAPHQL_WS_PATH}",
        node=f"ws://localhost:{node_port}",
        proof_server=f"http://localhost:{proof_server_port}",
    )


def network_config_for(config: DevNetConfig) -> NetworkConfig:
    return to_network_config(
        config.node.port, config.indexer.port, config.proof_server.port
    )


def container_name(cluster_name: str, role: str) -> str:
    """Deterministic container name for a service role."""
    return f"{cluster_name}-{role}"


def container_names(cluster_name: str) -> dict[str, str]:
    """Deterministic container names for every service, keyed by role."""
    return {
        role: container_name(cluster_name, role)
        for role in (ROLE_NODE, ROLE_INDEXER, ROLE_PROOF_SERVER)
    }


def network_name(cluster_name: str) -> str:
    return f"{cluster_name}-network"
