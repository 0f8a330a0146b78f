"""Per-round pending-set tracking and cross-container aggregation.

A round starts when the dispatcher registers its first container and ends
when the last registered container has been accounted for. At that instant
the round totals are emitted once, without a source label, and reset.

Each round owns its own ``RoundAggregator``; completions carry the round id
they were dispatched under, and completions for any other round are
rejected instead of being folded into these totals.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass

from container_stats.core.schemas import FailurePolicy, MetricName
from container_stats.monitoring.base import ContainerMetrics, MetricSample
from container_stats.monitoring.sinks import MetricSink

logger = logging.getLogger(__name__)


class PendingSet:
    """Container names whose stats response has not been processed yet."""

    def __init__(self) -> None:
        self._names: set[str] = set()

    def add(self, name: str) -> bool:
        """Insert a name. Returns False if it was already pending."""
        if name in self._names:
            return False
        self._names.add(name)
        return True

    def remove(self, name: str) -> bool:
        """Remove a name. Returns False if it was not pending."""
        if name not in self._names:
            return False
        self._names.remove(name)
        return True

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __len__(self) -> int:
        return len(self._names)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._names))


@dataclass
class RoundTotals:
    """Running sums across the containers processed in one round."""

    cpu_usage: float = 0.0
    memory_usage_bytes: int = 0
    network_rx_bytes: int = 0
    network_tx_bytes: int = 0
    network_rx_packets: int = 0
    network_tx_packets: int = 0
    network_rx_errors: int = 0
    network_tx_errors: int = 0

    def add(self, metrics: ContainerMetrics) -> None:
        self.cpu_usage += metrics.cpu_percent
        self.memory_usage_bytes += metrics.memory_usage_bytes
        self.network_rx_bytes += metrics.network_rx_bytes
        self.network_tx_bytes += metrics.network_tx_bytes
        self.network_rx_packets += metrics.network_rx_packets
        self.network_tx_packets += metrics.network_tx_packets
        self.network_rx_errors += metrics.network_rx_errors
        self.network_tx_errors += metrics.network_tx_errors

    def to_samples(self) -> list[MetricSample]:
        """Build the eight aggregate samples (no source label)."""
        values: list[tuple[MetricName, float]] = [
            (MetricName.TOTAL_CPU_USAGE, self.cpu_usage),
            (MetricName.MEMORY_USAGE_BYTES, self.memory_usage_bytes),
            (MetricName.NETWORK_RX_BYTES, self.network_rx_bytes),
            (MetricName.NETWORK_TX_BYTES, self.network_tx_bytes),
            (MetricName.NETWORK_RX_PACKETS, self.network_rx_packets),
            (MetricName.NETWORK_TX_PACKETS, self.network_tx_packets),
            (MetricName.NETWORK_RX_ERRORS, self.network_rx_errors),
            (MetricName.NETWORK_TX_ERRORS, self.network_tx_errors),
        ]
        return [MetricSample(name=name, value=value) for name, value in values]


class RoundAggregator:
    """Stateful reducer over the lifetime of one polling round.

    Only the poller thread calls into an aggregator, so it holds no lock.

    Example:
        ```python
        aggregator = RoundAggregator(round_id=1, sink=sink, base_source="host")
        aggregator.register("web")
        aggregator.on_container_processed(1, "web", metrics)
        assert aggregator.completed
        ```
    """

    def __init__(
        self,
        round_id: int,
        sink: MetricSink,
        base_source: str,
        failure_policy: FailurePolicy = FailurePolicy.DROP,
    ) -> None:
        """Initialize the aggregator.

        Args:
            round_id: Identifier of the round this aggregator owns
            sink: Receives per-container and aggregate samples
            base_source: Prefix for per-container source labels
            failure_policy: Pending-set handling for failed containers
        """
        self.round_id = round_id
        self.base_source = base_source
        self.failure_policy = failure_policy
        self.pending = PendingSet()
        self.totals = RoundTotals()
        self.dispatched: list[str] = []
        self.processed: list[str] = []
        self.failed: list[str] = []
        self.aggregate_emitted = False
        self.abandoned = False
        self._sink = sink

    @property
    def completed(self) -> bool:
        """True once every dispatched container has been accounted for."""
        return self.aggregate_emitted

    @property
    def in_flight(self) -> bool:
        """True while the round still waits on a response."""
        return len(self.pending) > 0 and not self.abandoned

    def register(self, name: str) -> bool:
        """Insert a container into the pending set before its request is sent.

        A name already pending in this round is a naming collision; the
        second registration is rejected and the caller must not dispatch it.
        """
        if self.aggregate_emitted or self.abandoned:
            logger.warning(f"Round {self.round_id} is closed, not registering {name}")
            return False
        if not self.pending.add(name):
            logger.warning(f"Round {self.round_id}: duplicate container name {name}, skipping")
            return False
        self.dispatched.append(name)
        return True

    def on_container_processed(self, round_id: int, name: str, metrics: ContainerMetrics) -> bool:
        """Record one container's metrics and retire it from the pending set.

        Emits the per-container samples, adds the container into the round
        totals and, if it was the last pending container, emits the round
        aggregates.

        Returns:
            False if the response was rejected (other round, closed round,
            or a name that is not pending)
        """
        if not self._accepts(round_id, name):
            return False

        self._sink.emit_metrics(metrics.to_samples(self.base_source))
        self.totals.add(metrics)
        self.pending.remove(name)
        self.processed.append(name)

        self._complete_if_drained()
        return True

    def on_container_failed(self, round_id: int, name: str) -> bool:
        """Account for a container whose stats request failed.

        Under ``FailurePolicy.DROP`` the container leaves the pending set with
        no contribution to the totals. Under ``FailurePolicy.STALL`` it stays
        pending and this round never emits its aggregate.

        Returns:
            False if the failure was rejected (other round, closed round,
            or a name that is not pending)
        """
        if not self._accepts(round_id, name):
            return False

        self.failed.append(name)
        if self.failure_policy == FailurePolicy.STALL:
            logger.warning(
                f"Round {self.round_id}: {name} failed and stays pending, "
                "aggregate will not be emitted"
            )
            return True

        self.pending.remove(name)
        self._complete_if_drained()
        return True

    def abandon(self) -> None:
        """Close the round without emitting its aggregate."""
        if self.aggregate_emitted:
            return
        logger.warning(
            f"Abandoning round {self.round_id} with {len(self.pending)} pending: "
            f"{', '.join(self.pending)}"
        )
        self.abandoned = True
        self.totals = RoundTotals()

    def _accepts(self, round_id: int, name: str) -> bool:
        if round_id != self.round_id:
            logger.warning(
                f"Rejecting response for {name} from round {round_id} in round {self.round_id}"
            )
            return False
        if self.abandoned or self.aggregate_emitted:
            logger.warning(f"Rejecting late response for {name}: round {self.round_id} is closed")
            return False
        if name not in self.pending:
            logger.warning(f"Round {self.round_id}: unexpected response for {name}, ignoring")
            return False
        return True

    def _complete_if_drained(self) -> None:
        if self.pending or self.aggregate_emitted or not self.dispatched:
            return
        self._sink.emit_metrics(self.totals.to_samples())
        self.aggregate_emitted = True
        self.totals = RoundTotals()
        logger.debug(
            f"Round {self.round_id} complete: {len(self.processed)} processed, "
            f"{len(self.failed)} failed"
        )
