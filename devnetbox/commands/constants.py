"""
Constants and configuration values used across the devnetbox codebase.
"""

# Cluster defaults
DEFAULT_CLUSTER_NAME = "midday-devnet"
NETWORK_ID = "undeployed"

# Docker images (version pinned)
DEFAULT_NODE_IMAGE = "midnightntwrk/midnight-node:0.20.1"
DEFAULT_INDEXER_IMAGE = "midnightntwrk/indexer-standalone:3.0.0"
DEFAULT_PROOF_SERVER_IMAGE = "bricktowers/proof-server:7.0.0"

# Service ports inside the containers
NODE_PORT = 9944
INDEXER_PORT = 8088
PROOF_SERVER_PORT = 6300

# Docker port binding strings (used in container port mappings)
NODE_PORT_BINDING = f"{NODE_PORT}/tcp"
INDEXER_PORT_BINDING = f"{INDEXER_PORT}/tcp"
PROOF_SERVER_PORT_BINDING = f"{PROOF_SERVER_PORT}/tcp"

# Service knobs
DEFAULT_NODE_CFG_PRESET = "dev"
DEFAULT_INDEXER_LOG_LEVEL = "info"
PROOF_SERVER_ZK_PARAMS_DIR = "/root/.cache/midnight/zk-params"

# Indexer secret for local development only. DO NOT use in production.
DEV_INDEXER_SECRET = (
    "303132333435363738393031323334353637383930313233343536373839303132"
)

# Crates whose log level follows the indexer log level setting
INDEXER_LOG_TARGETS = [
    "indexer",
    "chain_indexer",
    "indexer_api",
    "wallet_indexer",
    "indexer_common",
    "fastrace_opentelemetry",
]

# Container name suffixes per service role
ROLE_NODE = "node"
ROLE_INDEXER = "indexer"
ROLE_PROOF_SERVER = "proof-server"
SERVICE_ROLES = [ROLE_NODE, ROLE_INDEXER, ROLE_PROOF_SERVER]

# Docker labels
LABEL_CLUSTER = "devnetbox.cluster"
LABEL_ROLE = "devnetbox.role"

# API endpoints
NODE_HEALTH_PATH = "/health"
INDEXER_GRAPHQL_PATH = "/api/v3/graphql"
INDEXER_GRAPHQL_WS_PATH = "/api/v3/graphql/ws"

# GraphQL query shapes understood by the indexer
GRAPHQL_LIVENESS_QUERY = "{ __typename }"
GRAPHQL_TIP_HEIGHT_QUERY = "{ state { tip { height } } }"
INDEXER_MIN_SYNCED_HEIGHT = 1

# Health check defaults
DEFAULT_HEALTH_TIMEOUT = 60.0  # seconds
DEFAULT_HEALTH_INTERVAL = 1.0  # seconds between attempts
DEFAULT_REQUIRED_SUCCESSES = 1
PROBE_REQUEST_TIMEOUT = 5.0  # seconds per HTTP/WebSocket attempt
PROBE_SOCKET_TIMEOUT = 2.0  # seconds per TCP connect attempt

NODE_READY_TIMEOUT = 90.0  # seconds
INDEXER_READY_TIMEOUT = 120.0  # seconds
INDEXER_POLL_INTERVAL = 2.0  # seconds
PROOF_SERVER_READY_TIMEOUT = 60.0  # seconds

# Container management
CONTAINER_STOP_TIMEOUT = 10  # seconds
TEARDOWN_CONCURRENCY = 3

# Image pull progress statuses that are too chatty to print
QUIET_PULL_STATUSES = {"Downloading", "Extracting"}

# Error messages
ERROR_ENGINE_UNAVAILABLE = "Failed to connect to Docker: {error}"
ERROR_ENGINE_HINT = (
    "Make sure Docker is running and you have permission to access it."
)
