"""Shared constants for container-stats.

Centralized defaults and messages so the CLI, the config schema and the
poller agree on them.
"""

from __future__ import annotations

# Docker Engine API endpoint defaults (unauthenticated TCP socket)
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 2375

DEFAULT_POLL_INTERVAL_SECONDS = 5.0
DEFAULT_REQUEST_TIMEOUT_SECONDS = 30
DEFAULT_MAX_WORKERS = 8

# Prefix carried by every metric identifier on the wire.
METRIC_PREFIX = "DOCKER_"

# Separator between the base source and the container name in source labels.
SOURCE_SEPARATOR = "."

# Docker reports container names with a leading "/".
CONTAINER_NAME_SEPARATOR = "/"

NO_CONTAINERS_MESSAGE = "There aren't any containers running."

MEMORY_PERCENT_DECIMALS = 4
NETWORK_DECIMALS = 2
