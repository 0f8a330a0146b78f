"""container-stats - Docker container stats poller."""

from __future__ import annotations

from container_stats.core.schemas import FailurePolicy, MetricName, OverlapPolicy, PollerConfig
from container_stats.monitoring.poller import RoundReport, StatsPoller

__version__ = "0.1.0"

__all__ = [
    "FailurePolicy",
    "MetricName",
    "OverlapPolicy",
    "PollerConfig",
    "RoundReport",
    "StatsPoller",
    "__version__",
]
