"""Metric sinks - where a round's samples and events go.

All sinks implement this interface so the poller never depends on how the
samples are transported:
- MemorySink: keeps everything in lists
- LoggingSink: writes through the standard logging module
- LineSink: writes one line per sample to a text stream
"""

from __future__ import annotations

import json
import logging
import sys
from abc import ABC, abstractmethod
from typing import TextIO

from container_stats.monitoring.base import ERROR, Event, MetricSample

logger = logging.getLogger(__name__)


class MetricSink(ABC):
    """Abstract base class for metric sinks."""

    @abstractmethod
    def emit_metric(self, sample: MetricSample) -> None:
        """Publish one metric sample."""
        pass

    @abstractmethod
    def emit_event(self, event: Event) -> None:
        """Publish one informational or error event."""
        pass

    def emit_metrics(self, samples: list[MetricSample]) -> None:
        for sample in samples:
            self.emit_metric(sample)


class MemorySink(MetricSink):
    """Collects samples and events in memory."""

    def __init__(self) -> None:
        self.metrics: list[MetricSample] = []
        self.events: list[Event] = []

    def emit_metric(self, sample: MetricSample) -> None:
        self.metrics.append(sample)

    def emit_event(self, event: Event) -> None:
        self.events.append(event)

    def per_container(self) -> list[MetricSample]:
        """Samples carrying a container source label."""
        return [m for m in self.metrics if m.source is not None]

    def aggregates(self) -> list[MetricSample]:
        """Round aggregate samples (no source label)."""
        return [m for m in self.metrics if m.source is None]

    def clear(self) -> None:
        self.metrics.clear()
        self.events.clear()


class LoggingSink(MetricSink):
    """Writes samples at DEBUG and events at INFO or ERROR."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def emit_metric(self, sample: MetricSample) -> None:
        self._log.debug(f"{sample.name.value} {sample.value} {sample.source or ''}".rstrip())

    def emit_event(self, event: Event) -> None:
        if event.level == ERROR:
            self._log.error(event.message)
        else:
            self._log.info(event.message)


class LineSink(MetricSink):
    """Writes one line per sample to a text stream.

    The plain format is the plugin host line protocol ``NAME VALUE [SOURCE]``
    with events as ``_bevent:`` lines; ``json_format`` writes one JSON object
    per line instead.
    """

    def __init__(self, stream: TextIO | None = None, json_format: bool = False) -> None:
        self._stream = stream or sys.stdout
        self.json_format = json_format

    def emit_metric(self, sample: MetricSample) -> None:
        if self.json_format:
            line = json.dumps(
                {
                    "metric": sample.name.value,
                    "value": sample.value,
                    "source": sample.source,
                    "timestamp": sample.timestamp.isoformat(),
                }
            )
        else:
            parts = [sample.name.value, str(sample.value)]
            if sample.source is not None:
                parts.append(sample.source)
            line = " ".join(parts)
        self._write(line)

    def emit_event(self, event: Event) -> None:
        if self.json_format:
            line = json.dumps(
                {
                    "event": event.level,
                    "message": event.message,
                    "timestamp": event.timestamp.isoformat(),
                }
            )
        else:
            line = f"_bevent:{event.message}|t:{event.level}"
        self._write(line)

    def _write(self, line: str) -> None:
        self._stream.write(line + "\n")
        self._stream.flush()
