"""Docker Engine API transport.

Thin wrapper around the Docker SDK's low-level ``APIClient`` exposing the two
requests a polling round needs: listing running containers and taking a
one-shot stats snapshot of a single container.
"""

from __future__ import annotations

import logging
from typing import Any

import docker
import requests
from docker.errors import DockerException

from container_stats.core.schemas import PollerConfig

logger = logging.getLogger(__name__)


class StatsTransportError(RuntimeError):
    """A Docker Engine API request failed or returned an unusable body."""


class DockerStatsClient:
    """Request/response access to the Docker Engine API.

    The underlying ``APIClient`` is created lazily so constructing the client
    never touches the network; with ``api_version="auto"`` the first request
    negotiates the version.

    Example:
        ```python
        client = DockerStatsClient.from_config(PollerConfig(host="10.0.0.5"))
        for descriptor in client.list_containers():
            print(descriptor["Names"][0])
        ```
    """

    def __init__(
        self,
        base_url: str,
        timeout: int = 30,
        api_version: str = "auto",
        max_pool_size: int = 8,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: API URL, e.g. ``tcp://127.0.0.1:2375``
            timeout: Per-request timeout in seconds
            api_version: Docker API version or "auto"
            max_pool_size: HTTP connection pool size, one per concurrent request
        """
        self.base_url = base_url
        self.timeout = timeout
        self.api_version = api_version
        self.max_pool_size = max_pool_size
        self._api: docker.APIClient | None = None

    @classmethod
    def from_config(cls, config: PollerConfig) -> DockerStatsClient:
        return cls(
            base_url=config.api_url,
            timeout=config.request_timeout_seconds,
            api_version=config.api_version,
            max_pool_size=config.max_workers,
        )

    @property
    def api(self) -> docker.APIClient:
        if self._api is None:
            try:
                self._api = docker.APIClient(
                    base_url=self.base_url,
                    version=self.api_version,
                    timeout=self.timeout,
                    max_pool_size=self.max_pool_size,
                )
            except (DockerException, requests.RequestException) as e:
                raise StatsTransportError(f"Cannot connect to {self.base_url}: {e}") from e
            logger.debug(f"Connected to Docker Engine API at {self.base_url}")
        return self._api

    def list_containers(self) -> list[dict[str, Any]]:
        """``GET /containers/json``: descriptors of running containers.

        Raises:
            StatsTransportError: On connection, HTTP or decoding failure
        """
        try:
            containers = self.api.containers()
        except (DockerException, requests.RequestException, ValueError) as e:
            raise StatsTransportError(f"Failed to list containers: {e}") from e

        if not isinstance(containers, list):
            raise StatsTransportError(
                f"Unexpected container list payload: {type(containers).__name__}"
            )
        return containers

    def stats(self, name: str) -> dict[str, Any]:
        """``GET /containers/<name>/stats?stream=false``: one stats snapshot.

        Raises:
            StatsTransportError: On connection, HTTP or decoding failure
        """
        try:
            payload = self.api.stats(name, stream=False)
        except (DockerException, requests.RequestException, ValueError) as e:
            raise StatsTransportError(f"Failed to get stats for {name}: {e}") from e

        if not isinstance(payload, dict):
            raise StatsTransportError(
                f"Unexpected stats payload for {name}: {type(payload).__name__}"
            )
        return payload

    def close(self) -> None:
        """Close the HTTP session."""
        if self._api is not None:
            self._api.close()
            self._api = None
