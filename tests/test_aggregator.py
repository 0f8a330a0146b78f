"""Tests for the pending set and the round aggregator."""

import pytest

from container_stats.core.schemas import FailurePolicy, MetricName
from container_stats.monitoring.aggregator import PendingSet, RoundAggregator, RoundTotals
from container_stats.monitoring.base import ContainerMetrics


def metrics(name: str, cpu: float = 0.4, memory: int = 100, rx: int = 10) -> ContainerMetrics:
    return ContainerMetrics(
        name=name,
        cpu_percent=cpu,
        memory_usage_bytes=memory,
        memory_limit_bytes=1000,
        network_rx_bytes=rx,
        network_tx_bytes=rx // 2,
        network_rx_packets=3,
        network_tx_packets=2,
        network_rx_errors=1,
        network_tx_errors=0,
    )


def make_aggregator(sink, round_id=1, policy=FailurePolicy.DROP, names=("a", "b")):
    aggregator = RoundAggregator(round_id, sink, base_source="host", failure_policy=policy)
    for name in names:
        assert aggregator.register(name)
    return aggregator


class TestPendingSet:
    """Tests for PendingSet."""

    def test_add_remove(self):
        pending = PendingSet()
        assert pending.add("a")
        assert "a" in pending
        assert len(pending) == 1
        assert pending.remove("a")
        assert len(pending) == 0

    def test_duplicate_add(self):
        pending = PendingSet()
        pending.add("a")
        assert not pending.add("a")
        assert len(pending) == 1

    def test_remove_unknown(self):
        pending = PendingSet()
        assert not pending.remove("a")
        pending.add("a")
        pending.remove("a")
        assert not pending.remove("a")

    def test_iterates_sorted(self):
        pending = PendingSet()
        for name in ("c", "a", "b"):
            pending.add(name)
        assert list(pending) == ["a", "b", "c"]


class TestRoundTotals:
    """Tests for RoundTotals."""

    def test_add_and_samples(self):
        totals = RoundTotals()
        totals.add(metrics("a", cpu=0.4, memory=100, rx=10))
        totals.add(metrics("b", cpu=0.6, memory=50, rx=20))
        samples = {s.name: s.value for s in totals.to_samples()}

        assert samples[MetricName.TOTAL_CPU_USAGE] == pytest.approx(1.0)
        assert samples[MetricName.MEMORY_USAGE_BYTES] == 150
        assert samples[MetricName.NETWORK_RX_BYTES] == 30
        assert samples[MetricName.NETWORK_RX_ERRORS] == 2
        assert len(samples) == 8

    def test_samples_have_no_source(self):
        assert all(s.source is None for s in RoundTotals().to_samples())


class TestRoundAggregator:
    """Tests for RoundAggregator."""

    def test_aggregate_emitted_once_when_drained(self, sink):
        aggregator = make_aggregator(sink)

        assert aggregator.on_container_processed(1, "a", metrics("a"))
        assert not aggregator.completed
        assert sink.aggregates() == []

        assert aggregator.on_container_processed(1, "b", metrics("b"))
        assert aggregator.completed
        assert len(sink.aggregates()) == 8
        assert len(sink.per_container()) == 24

    def test_aggregate_equals_sum_of_containers(self, sink):
        aggregator = make_aggregator(sink, names=("a", "b", "c"))
        for i, name in enumerate(("c", "a", "b")):  # Out of dispatch order
            aggregator.on_container_processed(1, name, metrics(name, cpu=0.1 * (i + 1), rx=i))

        per_container = sink.per_container()
        aggregates = {s.name: s.value for s in sink.aggregates()}
        for name in (MetricName.TOTAL_CPU_USAGE, MetricName.NETWORK_RX_BYTES):
            expected = sum(s.value for s in per_container if s.name == name)
            assert aggregates[name] == pytest.approx(expected)

    def test_totals_reset_after_emission(self, sink):
        aggregator = make_aggregator(sink, names=("a",))
        aggregator.on_container_processed(1, "a", metrics("a"))
        assert aggregator.totals == RoundTotals()

    def test_duplicate_response_rejected(self, sink):
        aggregator = make_aggregator(sink)
        aggregator.on_container_processed(1, "a", metrics("a"))

        assert not aggregator.on_container_processed(1, "a", metrics("a", cpu=99.0))
        assert aggregator.totals.cpu_usage == pytest.approx(0.4)
        assert len(sink.per_container()) == 12

    def test_stray_response_rejected(self, sink):
        aggregator = make_aggregator(sink)
        assert not aggregator.on_container_processed(1, "zzz", metrics("zzz"))
        assert len(aggregator.pending) == 2
        assert sink.metrics == []

    def test_other_round_rejected(self, sink):
        aggregator = make_aggregator(sink, round_id=2)
        assert not aggregator.on_container_processed(1, "a", metrics("a"))
        assert "a" in aggregator.pending

    def test_response_after_completion_rejected(self, sink):
        aggregator = make_aggregator(sink, names=("a",))
        aggregator.on_container_processed(1, "a", metrics("a"))
        assert not aggregator.on_container_processed(1, "a", metrics("a"))
        assert len(sink.aggregates()) == 8

    def test_duplicate_registration_rejected(self, sink):
        aggregator = make_aggregator(sink, names=("a",))
        assert not aggregator.register("a")
        assert aggregator.dispatched == ["a"]

    def test_no_dispatch_never_emits(self, sink):
        aggregator = RoundAggregator(1, sink, base_source="host")
        assert not aggregator.completed
        assert not aggregator.in_flight
        assert sink.metrics == []

    def test_failure_drop_completes_round(self, sink):
        aggregator = make_aggregator(sink)
        aggregator.on_container_processed(1, "a", metrics("a", memory=100))
        assert aggregator.on_container_failed(1, "b")

        assert aggregator.completed
        assert aggregator.failed == ["b"]
        aggregates = {s.name: s.value for s in sink.aggregates()}
        assert aggregates[MetricName.MEMORY_USAGE_BYTES] == 100

    def test_all_failed_drop_emits_zero_aggregate(self, sink):
        aggregator = make_aggregator(sink, names=("a",))
        aggregator.on_container_failed(1, "a")
        assert aggregator.completed
        assert all(s.value == 0 for s in sink.aggregates())

    def test_failure_stall_blocks_round(self, sink):
        aggregator = make_aggregator(sink, policy=FailurePolicy.STALL)
        aggregator.on_container_failed(1, "b")
        aggregator.on_container_processed(1, "a", metrics("a"))

        assert not aggregator.completed
        assert aggregator.in_flight
        assert list(aggregator.pending) == ["b"]
        assert sink.aggregates() == []

    def test_abandon(self, sink):
        aggregator = make_aggregator(sink)
        aggregator.on_container_processed(1, "a", metrics("a"))
        aggregator.abandon()

        assert aggregator.abandoned
        assert not aggregator.in_flight
        assert not aggregator.on_container_processed(1, "b", metrics("b"))
        assert not aggregator.register("c")
        assert sink.aggregates() == []
