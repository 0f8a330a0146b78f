"""Monitoring module - Docker container stats collection and aggregation.

Pipeline stages, leaves first:
- extractor: derive metrics from one stats snapshot
- discovery: select the containers to poll
- dispatcher: fan out one stats request per container
- aggregator: per-round pending set and totals
- poller: round orchestration and the polling loop

Sinks decide where samples and events go.
"""

from __future__ import annotations

from container_stats.monitoring.aggregator import PendingSet, RoundAggregator, RoundTotals
from container_stats.monitoring.base import (
    ERROR,
    INFO,
    Container,
    ContainerMetrics,
    Event,
    MetricSample,
)
from container_stats.monitoring.client import DockerStatsClient, StatsTransportError
from container_stats.monitoring.discovery import (
    filter_containers,
    select_containers,
    to_containers,
)
from container_stats.monitoring.dispatcher import Completion, StatsDispatcher
from container_stats.monitoring.extractor import (
    calculate_block_io,
    calculate_cpu_percent,
    calculate_memory_percent,
    extract_metrics,
    parse_stats,
)
from container_stats.monitoring.poller import RoundReport, StatsPoller
from container_stats.monitoring.sinks import LineSink, LoggingSink, MemorySink, MetricSink

__all__ = [
    "ERROR",
    "INFO",
    "Completion",
    "Container",
    "ContainerMetrics",
    "DockerStatsClient",
    "Event",
    "LineSink",
    "LoggingSink",
    "MemorySink",
    "MetricSample",
    "MetricSink",
    "PendingSet",
    "RoundAggregator",
    "RoundReport",
    "RoundTotals",
    "StatsDispatcher",
    "StatsPoller",
    "StatsTransportError",
    "calculate_block_io",
    "calculate_cpu_percent",
    "calculate_memory_percent",
    "extract_metrics",
    "filter_containers",
    "parse_stats",
    "select_containers",
    "to_containers",
]
