"""Shared fixtures for container-stats tests."""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import Executor, Future
from typing import Any
from unittest.mock import MagicMock

import pytest

from container_stats.core.schemas import PollerConfig
from container_stats.monitoring.sinks import MemorySink


def build_stats(
    system_delta: int = 100,
    cpu_delta: int = 10,
    num_cpus: int = 4,
    memory_usage: int = 50,
    memory_limit: int = 200,
    rx_bytes: int = 1000,
    tx_bytes: int = 500,
    rx_packets: int = 10,
    tx_packets: int = 5,
    rx_errors: int = 0,
    tx_errors: int = 0,
    blkio: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Create a Docker stats response with the given deltas and counters."""
    prev_system = 1_000_000
    prev_total = 50_000
    return {
        "read": "2024-01-01T00:00:01Z",
        "preread": "2024-01-01T00:00:00Z",
        "cpu_stats": {
            "cpu_usage": {
                "total_usage": prev_total + cpu_delta,
                "percpu_usage": [1] * num_cpus,
            },
            "system_cpu_usage": prev_system + system_delta,
        },
        "precpu_stats": {
            "cpu_usage": {"total_usage": prev_total, "percpu_usage": [1] * num_cpus},
            "system_cpu_usage": prev_system,
        },
        "memory_stats": {"usage": memory_usage, "limit": memory_limit},
        "network": {
            "rx_bytes": rx_bytes,
            "tx_bytes": tx_bytes,
            "rx_packets": rx_packets,
            "tx_packets": tx_packets,
            "rx_errors": rx_errors,
            "tx_errors": tx_errors,
        },
        "blkio_stats": {
            "io_service_bytes_recursive": blkio
            if blkio is not None
            else [
                {"major": 8, "minor": 0, "op": "Read", "value": 4096},
                {"major": 8, "minor": 0, "op": "Write", "value": 1024},
                {"major": 8, "minor": 0, "op": "Total", "value": 5120},
            ]
        },
    }


def build_descriptor(container_id: str, name: str) -> dict[str, Any]:
    """Create a ``/containers/json`` entry."""
    return {"Id": container_id, "Names": [f"/{name}"], "Image": "busybox", "State": "running"}


class SyncExecutor(Executor):
    """Runs every submitted call immediately on the calling thread."""

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Future[Any]:
        future: Future[Any] = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


class ManualExecutor(Executor):
    """Holds submitted calls until ``run_all`` is called."""

    def __init__(self) -> None:
        self.queued: list[tuple[Future[Any], Callable[..., Any], tuple[Any, ...]]] = []
        self.is_shutdown = False

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Future[Any]:
        if self.is_shutdown:
            raise RuntimeError("cannot schedule new futures after shutdown")
        future: Future[Any] = Future()
        self.queued.append((future, fn, args))
        return future

    def run_all(self) -> None:
        queued, self.queued = self.queued, []
        for future, fn, args in queued:
            try:
                future.set_result(fn(*args))
            except Exception as e:
                future.set_exception(e)

    def shutdown(self, wait: bool = True, *, cancel_futures: bool = False) -> None:
        self.is_shutdown = True


@pytest.fixture
def make_stats() -> Callable[..., dict[str, Any]]:
    return build_stats


@pytest.fixture
def make_descriptor() -> Callable[[str, str], dict[str, Any]]:
    return build_descriptor


@pytest.fixture
def sink() -> MemorySink:
    return MemorySink()


@pytest.fixture
def config() -> PollerConfig:
    return PollerConfig(source="testhost", poll_interval_seconds=0.05)


@pytest.fixture
def mock_client() -> MagicMock:
    """Docker client mock with no containers running."""
    client = MagicMock()
    client.base_url = "tcp://127.0.0.1:2375"
    client.list_containers.return_value = []
    return client
