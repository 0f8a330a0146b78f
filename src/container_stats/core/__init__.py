"""Core module - configuration and schemas."""

from __future__ import annotations

from container_stats.core.config import apply_overrides, load_config
from container_stats.core.constants import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    METRIC_PREFIX,
    NO_CONTAINERS_MESSAGE,
)
from container_stats.core.schemas import (
    BlkioEntry,
    BlkioStats,
    ContainerDescriptor,
    CPUStats,
    CPUUsage,
    FailurePolicy,
    MemoryStats,
    MetricName,
    NetworkStats,
    OverlapPolicy,
    PollerConfig,
    RawStatsSample,
)

__all__ = [
    "DEFAULT_HOST",
    "DEFAULT_PORT",
    "METRIC_PREFIX",
    "NO_CONTAINERS_MESSAGE",
    "BlkioEntry",
    "BlkioStats",
    "ContainerDescriptor",
    "CPUStats",
    "CPUUsage",
    "FailurePolicy",
    "MemoryStats",
    "MetricName",
    "NetworkStats",
    "OverlapPolicy",
    "PollerConfig",
    "RawStatsSample",
    "apply_overrides",
    "load_config",
]
