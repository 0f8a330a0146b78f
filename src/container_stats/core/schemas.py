"""Pydantic schemas for container-stats.

This module defines the data contracts used throughout the poller: the
poller configuration and the payloads returned by the Docker Engine API
(container listings and one-shot stats snapshots).
"""

from __future__ import annotations

import socket
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from container_stats.core.constants import (
    CONTAINER_NAME_SEPARATOR,
    DEFAULT_HOST,
    DEFAULT_MAX_WORKERS,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_PORT,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    METRIC_PREFIX,
)


class MetricName(str, Enum):
    """Metric identifiers emitted per container and per round."""

    BLOCK_IO_READ_BYTES = METRIC_PREFIX + "BLOCK_IO_READ_BYTES"
    BLOCK_IO_WRITE_BYTES = METRIC_PREFIX + "BLOCK_IO_WRITE_BYTES"
    TOTAL_CPU_USAGE = METRIC_PREFIX + "TOTAL_CPU_USAGE"
    MEMORY_USAGE_BYTES = METRIC_PREFIX + "MEMORY_USAGE_BYTES"
    MEMORY_LIMIT_BYTES = METRIC_PREFIX + "MEMORY_LIMIT_BYTES"
    MEMORY_USAGE_PERCENT = METRIC_PREFIX + "MEMORY_USAGE_PERCENT"
    NETWORK_RX_BYTES = METRIC_PREFIX + "NETWORK_RX_BYTES"
    NETWORK_TX_BYTES = METRIC_PREFIX + "NETWORK_TX_BYTES"
    NETWORK_RX_PACKETS = METRIC_PREFIX + "NETWORK_RX_PACKETS"
    NETWORK_TX_PACKETS = METRIC_PREFIX + "NETWORK_TX_PACKETS"
    NETWORK_RX_ERRORS = METRIC_PREFIX + "NETWORK_RX_ERRORS"
    NETWORK_TX_ERRORS = METRIC_PREFIX + "NETWORK_TX_ERRORS"


class FailurePolicy(str, Enum):
    """What a failed stats request does to the round's pending set."""

    DROP = "drop"  # Remove the container with zero contribution
    STALL = "stall"  # Keep it pending; the round never emits its aggregate


class OverlapPolicy(str, Enum):
    """What a poll trigger does while the previous round is still pending."""

    ABANDON = "abandon"  # Drop the old round, start a new one
    SKIP = "skip"  # Keep draining the old round, skip this poll


class PollerConfig(BaseModel):
    """Top-level poller configuration.

    This is the main configuration loaded from YAML/JSON files.

    Attributes:
        host: Docker Engine API host
        port: Docker Engine API TCP port
        base_url: Full API URL, overrides host and port when set
        containers: Optional allow-list of container names
        source: Base source label for per-container metrics
        poll_interval_seconds: Time between poll triggers
        request_timeout_seconds: Per-request transport timeout
        max_workers: Concurrent stats requests
        api_version: Docker API version, or "auto" to negotiate
        failure_policy: Pending-set handling for failed stats requests
        overlap_policy: Handling of a poll while the previous round is pending
    """

    host: str = Field(default=DEFAULT_HOST)
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    base_url: str | None = Field(default=None, description="e.g. unix:///var/run/docker.sock")
    containers: list[str] | None = Field(default=None, description="Container allow-list")
    source: str = Field(default_factory=socket.gethostname, min_length=1)
    poll_interval_seconds: float = Field(default=DEFAULT_POLL_INTERVAL_SECONDS, gt=0)
    request_timeout_seconds: int = Field(default=DEFAULT_REQUEST_TIMEOUT_SECONDS, ge=1)
    max_workers: int = Field(default=DEFAULT_MAX_WORKERS, ge=1, le=64)
    api_version: str = Field(default="auto")
    failure_policy: FailurePolicy = Field(default=FailurePolicy.DROP)
    overlap_policy: OverlapPolicy = Field(default=OverlapPolicy.ABANDON)

    @field_validator("host", mode="before")
    @classmethod
    def default_empty_host(cls, v: Any) -> Any:
        """Treat an empty host as unset."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_HOST
        return v

    @field_validator("port", mode="before")
    @classmethod
    def default_empty_port(cls, v: Any) -> Any:
        """Treat an empty port as unset."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_PORT
        return v

    @field_validator("containers")
    @classmethod
    def empty_allow_list_is_none(cls, v: list[str] | None) -> list[str] | None:
        if not v:
            return None
        return v

    @property
    def allow_list(self) -> frozenset[str] | None:
        """Return the allow-list as a set, or None when every container is polled."""
        if self.containers is None:
            return None
        return frozenset(self.containers)

    @property
    def api_url(self) -> str:
        """Return the Docker Engine API base URL."""
        if self.base_url:
            return self.base_url
        return f"tcp://{self.host}:{self.port}"


# =============================================================================
# DOCKER ENGINE API PAYLOADS
# =============================================================================


class ContainerDescriptor(BaseModel):
    """One entry of ``GET /containers/json``."""

    id: str = Field(..., alias="Id", min_length=1)
    names: list[str] = Field(..., alias="Names", min_length=1)

    model_config = {"populate_by_name": True}

    @property
    def name(self) -> str:
        """First name with its single leading separator stripped.

        Docker always prefixes names with "/"; a name without it is returned
        unchanged rather than losing its first character.
        """
        first = self.names[0]
        if first.startswith(CONTAINER_NAME_SEPARATOR):
            return first[1:]
        return first


class CPUUsage(BaseModel):
    """CPU accounting counters (nanoseconds)."""

    total_usage: int = 0
    percpu_usage: list[int] = Field(default_factory=list)

    @field_validator("percpu_usage", mode="before")
    @classmethod
    def null_percpu_is_empty(cls, v: Any) -> Any:
        # cgroup v2 hosts report null
        return [] if v is None else v


class CPUStats(BaseModel):
    """One side (current or previous) of the CPU accounting snapshot."""

    system_cpu_usage: int = 0
    cpu_usage: CPUUsage = Field(default_factory=CPUUsage)
    online_cpus: int | None = None


class MemoryStats(BaseModel):
    """Memory usage and limit in bytes."""

    usage: int = Field(..., ge=0)
    limit: int = Field(..., ge=0)


class NetworkStats(BaseModel):
    """Network interface counters."""

    rx_bytes: int = 0
    tx_bytes: int = 0
    rx_packets: int = 0
    tx_packets: int = 0
    rx_errors: int = 0
    tx_errors: int = 0

    def __add__(self, other: NetworkStats) -> NetworkStats:
        return NetworkStats(
            rx_bytes=self.rx_bytes + other.rx_bytes,
            tx_bytes=self.tx_bytes + other.tx_bytes,
            rx_packets=self.rx_packets + other.rx_packets,
            tx_packets=self.tx_packets + other.tx_packets,
            rx_errors=self.rx_errors + other.rx_errors,
            tx_errors=self.tx_errors + other.tx_errors,
        )


class BlkioEntry(BaseModel):
    """One ``io_service_bytes_recursive`` entry."""

    op: str
    value: int = Field(..., ge=0)


class BlkioStats(BaseModel):
    """Block I/O accounting."""

    io_service_bytes_recursive: list[BlkioEntry] = Field(default_factory=list)

    @field_validator("io_service_bytes_recursive", mode="before")
    @classmethod
    def null_entries_are_empty(cls, v: Any) -> Any:
        return [] if v is None else v


class RawStatsSample(BaseModel):
    """One-shot response of ``GET /containers/<name>/stats?stream=false``.

    ``cpu_stats`` and ``memory_stats`` (usage and limit) are required; a
    payload without them is rejected. ``precpu_stats`` defaults to zeroed
    counters and block I/O defaults to no entries.

    Network counters come from the legacy single ``network`` object, or are
    summed across the per-interface ``networks`` map reported by current API
    versions. Containers without networking report zeros.
    """

    cpu_stats: CPUStats
    precpu_stats: CPUStats = Field(default_factory=CPUStats)
    memory_stats: MemoryStats
    network: NetworkStats | None = None
    networks: dict[str, NetworkStats] | None = None
    blkio_stats: BlkioStats = Field(default_factory=BlkioStats)

    @field_validator("blkio_stats", mode="before")
    @classmethod
    def null_blkio_is_empty(cls, v: Any) -> Any:
        return {} if v is None else v

    @property
    def network_totals(self) -> NetworkStats:
        """Network counters for the container, summed across interfaces."""
        if self.network is not None:
            return self.network
        total = NetworkStats()
        for interface in (self.networks or {}).values():
            total = total + interface
        return total
