"""Metric extraction from Docker stats snapshots.

Pure functions that turn one container's ``RawStatsSample`` into the fixed
set of derived metrics. Nothing here holds state between calls.
"""

from __future__ import annotations

from typing import Any

from container_stats.core.constants import MEMORY_PERCENT_DECIMALS
from container_stats.core.schemas import BlkioStats, CPUStats, MemoryStats, RawStatsSample
from container_stats.monitoring.base import ContainerMetrics


def count_cpus(cpu_stats: CPUStats) -> int:
    """Number of CPUs the container's usage is spread over.

    Uses the length of ``percpu_usage``; cgroup v2 hosts leave that empty
    and report ``online_cpus`` instead.
    """
    if cpu_stats.cpu_usage.percpu_usage:
        return len(cpu_stats.cpu_usage.percpu_usage)
    return cpu_stats.online_cpus or 0


def calculate_cpu_percent(precpu_stats: CPUStats, cpu_stats: CPUStats) -> float:
    """Calculate CPU utilization from two consecutive CPU accounting snapshots.

    The result is a ratio of host CPU time, multiplied by the CPU count, so
    a container saturating two cores reports 2.0. It is not clamped.

    Args:
        precpu_stats: Previous snapshot
        cpu_stats: Current snapshot

    Returns:
        CPU utilization, 0.0 when either delta is not positive
    """
    system_delta = cpu_stats.system_cpu_usage - precpu_stats.system_cpu_usage
    cpu_delta = cpu_stats.cpu_usage.total_usage - precpu_stats.cpu_usage.total_usage

    if system_delta > 0 and cpu_delta > 0:
        return (cpu_delta / system_delta) * count_cpus(cpu_stats)

    return 0.0


def calculate_block_io(blkio_stats: BlkioStats) -> tuple[int, int]:
    """Sum block I/O bytes by operation kind.

    Operation kinds compare case-insensitively; anything other than read or
    write (sync, async, total, discard) is ignored.

    Returns:
        Tuple of (read_bytes, write_bytes)
    """
    read_bytes = 0
    write_bytes = 0

    for entry in blkio_stats.io_service_bytes_recursive:
        op = entry.op.lower()
        if op == "read":
            read_bytes += entry.value
        elif op == "write":
            write_bytes += entry.value

    return read_bytes, write_bytes


def calculate_memory_percent(memory_stats: MemoryStats) -> float:
    """Memory usage as a fraction of the limit, rounded to 4 places.

    A zero limit yields 0.0.
    """
    if memory_stats.limit <= 0:
        return 0.0
    return round(memory_stats.usage / memory_stats.limit, MEMORY_PERCENT_DECIMALS)


def extract_metrics(name: str, sample: RawStatsSample) -> ContainerMetrics:
    """Derive the per-container metrics from one stats snapshot.

    Args:
        name: Container name the snapshot belongs to
        sample: Validated stats payload

    Returns:
        ContainerMetrics for the container
    """
    read_bytes, write_bytes = calculate_block_io(sample.blkio_stats)
    network = sample.network_totals

    return ContainerMetrics(
        name=name,
        block_io_read_bytes=read_bytes,
        block_io_write_bytes=write_bytes,
        cpu_percent=calculate_cpu_percent(sample.precpu_stats, sample.cpu_stats),
        memory_usage_bytes=sample.memory_stats.usage,
        memory_limit_bytes=sample.memory_stats.limit,
        memory_usage_percent=calculate_memory_percent(sample.memory_stats),
        network_rx_bytes=network.rx_bytes,
        network_tx_bytes=network.tx_bytes,
        network_rx_packets=network.rx_packets,
        network_tx_packets=network.tx_packets,
        network_rx_errors=network.rx_errors,
        network_tx_errors=network.tx_errors,
    )


def parse_stats(payload: Any) -> RawStatsSample:
    """Validate a decoded stats response.

    Raises:
        pydantic.ValidationError: If required fields are missing or malformed
    """
    return RawStatsSample.model_validate(payload)
