"""Shared records for the collection pipeline.

Every stage of a polling round exchanges these plain dataclasses: discovery
produces ``Container`` records, the extractor produces ``ContainerMetrics``,
and the aggregator hands ``MetricSample`` and ``Event`` records to a sink.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from container_stats.core.constants import NETWORK_DECIMALS, SOURCE_SEPARATOR
from container_stats.core.schemas import MetricName

INFO = "info"
ERROR = "error"


@dataclass(frozen=True)
class Container:
    """A running container selected for polling.

    The name is the container's identity: it keys the pending set and
    labels the per-container metrics.
    """

    id: str
    name: str


@dataclass
class MetricSample:
    """A single named value handed to a metric sink."""

    name: MetricName
    value: float
    source: str | None = None  # None for round aggregates
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class Event:
    """Informational or error message relayed to a metric sink."""

    level: str  # INFO or ERROR
    message: str
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class ContainerMetrics:
    """Derived metrics for one container in one round.

    Values are kept unrounded; rounding is applied when samples are built so
    the round totals add the raw counters.
    """

    name: str
    block_io_read_bytes: int = 0
    block_io_write_bytes: int = 0
    cpu_percent: float = 0.0
    memory_usage_bytes: int = 0
    memory_limit_bytes: int = 0
    memory_usage_percent: float = 0.0  # Already rounded to 4 places
    network_rx_bytes: int = 0
    network_tx_bytes: int = 0
    network_rx_packets: int = 0
    network_tx_packets: int = 0
    network_rx_errors: int = 0
    network_tx_errors: int = 0

    def to_samples(self, base_source: str) -> list[MetricSample]:
        """Build the per-container samples, in emission order.

        Args:
            base_source: Source label prefix (typically the host name)

        Returns:
            Twelve samples tagged ``<base_source>.<container name>``
        """
        source = f"{base_source}{SOURCE_SEPARATOR}{self.name}"
        values: list[tuple[MetricName, float]] = [
            (MetricName.BLOCK_IO_READ_BYTES, self.block_io_read_bytes),
            (MetricName.BLOCK_IO_WRITE_BYTES, self.block_io_write_bytes),
            (MetricName.TOTAL_CPU_USAGE, self.cpu_percent),
            (MetricName.MEMORY_USAGE_BYTES, self.memory_usage_bytes),
            (MetricName.MEMORY_LIMIT_BYTES, self.memory_limit_bytes),
            (MetricName.MEMORY_USAGE_PERCENT, self.memory_usage_percent),
            (MetricName.NETWORK_RX_BYTES, round(self.network_rx_bytes, NETWORK_DECIMALS)),
            (MetricName.NETWORK_TX_BYTES, round(self.network_tx_bytes, NETWORK_DECIMALS)),
            (MetricName.NETWORK_RX_PACKETS, round(self.network_rx_packets, NETWORK_DECIMALS)),
            (MetricName.NETWORK_TX_PACKETS, round(self.network_tx_packets, NETWORK_DECIMALS)),
            (MetricName.NETWORK_RX_ERRORS, self.network_rx_errors),
            (MetricName.NETWORK_TX_ERRORS, self.network_tx_errors),
        ]
        return [MetricSample(name=name, value=value, source=source) for name, value in values]
