"""Round orchestration and the polling loop.

One poll trigger runs one round:

1. Discovery: ``GET /containers/json``, filtered by the allow-list
2. Fan-out: one stats request per selected container
3. Fan-in: completions are drained on the calling thread, each one parsed,
   turned into metrics and handed to the round's aggregator
4. The aggregator emits the round totals when its pending set empties

The completion queue is the only hand-off between the request threads and
the round state, so aggregation always happens on the polling thread.
"""

from __future__ import annotations

import itertools
import logging
import queue
import threading
import time
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, field
from types import TracebackType

from pydantic import ValidationError

from container_stats.core.schemas import OverlapPolicy, PollerConfig
from container_stats.monitoring.aggregator import RoundAggregator
from container_stats.monitoring.base import ERROR, Event
from container_stats.monitoring.client import DockerStatsClient, StatsTransportError
from container_stats.monitoring.discovery import select_containers
from container_stats.monitoring.dispatcher import Completion, StatsDispatcher
from container_stats.monitoring.extractor import extract_metrics, parse_stats
from container_stats.monitoring.sinks import LoggingSink, MetricSink

logger = logging.getLogger(__name__)


@dataclass
class RoundReport:
    """Outcome of one poll trigger."""

    round_id: int
    dispatched: list[str] = field(default_factory=list)
    processed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    aggregate_emitted: bool = False
    discovery_failed: bool = False
    skipped: bool = False  # Trigger ignored because the previous round was pending
    duration_seconds: float = 0.0

    @classmethod
    def from_aggregator(cls, aggregator: RoundAggregator, **kwargs: object) -> RoundReport:
        return cls(
            round_id=aggregator.round_id,
            dispatched=list(aggregator.dispatched),
            processed=list(aggregator.processed),
            failed=list(aggregator.failed),
            aggregate_emitted=aggregator.aggregate_emitted,
            **kwargs,  # type: ignore[arg-type]
        )


class StatsPoller:
    """Polls the Docker Engine API and emits per-container and round metrics.

    Example:
        ```python
        config = PollerConfig(containers=["web", "db"])
        with StatsPoller(config, sink=LineSink()) as poller:
            report = poller.poll_once()
            print(f"Round {report.round_id}: {len(report.processed)} containers")
        ```
    """

    def __init__(
        self,
        config: PollerConfig,
        client: DockerStatsClient | None = None,
        sink: MetricSink | None = None,
        executor: Executor | None = None,
    ) -> None:
        """Initialize the poller.

        Args:
            config: Poller configuration
            client: Docker Engine API client (built from config if None)
            sink: Destination for samples and events (logging if None)
            executor: Runs stats requests (a thread pool of
                ``config.max_workers`` if None)
        """
        self.config = config
        self.client = client or DockerStatsClient.from_config(config)
        self.sink = sink or LoggingSink()
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=config.max_workers, thread_name_prefix="container-stats"
        )
        self._completions: queue.Queue[Completion] = queue.Queue()
        self._dispatcher = StatsDispatcher(self.client, self._executor, self._completions)
        self._round_ids = itertools.count(1)
        self._awaiting = 0  # Completions still expected for the active round
        self.active: RoundAggregator | None = None
        self.discovery_error: str | None = None

    def __enter__(self) -> StatsPoller:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def start_round(self) -> RoundAggregator | None:
        """Discover containers and dispatch this round's stats requests.

        If the previous round is still waiting on responses the overlap
        policy decides: ``abandon`` closes it without an aggregate, ``skip``
        leaves it running and starts nothing while responses are still
        outstanding. A round with nothing left to await is always abandoned.

        Returns:
            The new round's aggregator, or None when the trigger was skipped
        """
        previous = self.active
        if previous is not None and previous.in_flight:
            # A stalled round has no response left to wait for
            if self.config.overlap_policy == OverlapPolicy.SKIP and self._awaiting > 0:
                logger.warning(
                    f"Round {previous.round_id} still has {len(previous.pending)} pending, "
                    "skipping this poll"
                )
                return None
            previous.abandon()

        aggregator = RoundAggregator(
            round_id=next(self._round_ids),
            sink=self.sink,
            base_source=self.config.source,
            failure_policy=self.config.failure_policy,
        )
        self.active = aggregator
        self._awaiting = 0
        self.discovery_error = None

        try:
            descriptors = self.client.list_containers()
        except StatsTransportError as e:
            self.discovery_error = str(e)
            self.sink.emit_event(Event(level=ERROR, message=str(e)))
            return aggregator

        containers = select_containers(descriptors, self.config.allow_list, self.sink)
        dispatched = self._dispatcher.dispatch(aggregator, containers)
        self._awaiting = len(dispatched)
        logger.debug(f"Round {aggregator.round_id}: dispatched {len(dispatched)} requests")
        return aggregator

    def drain(self, timeout: float | None = None) -> bool:
        """Process completions for the active round.

        Returns when the round has completed, when every dispatched request
        has reported back, or when ``timeout`` seconds have passed.

        Returns:
            True if the active round emitted its aggregate
        """
        aggregator = self.active
        if aggregator is None:
            return False

        deadline = None if timeout is None else time.monotonic() + timeout
        while aggregator.in_flight and self._awaiting > 0:
            remaining = None if deadline is None else deadline - time.monotonic()
            if remaining is not None and remaining <= 0:
                break
            try:
                completion = self._completions.get(timeout=remaining)
            except queue.Empty:
                break
            self._handle(aggregator, completion)

        if aggregator.in_flight:
            logger.debug(
                f"Round {aggregator.round_id} still pending: {', '.join(aggregator.pending)}"
            )
        return aggregator.completed

    def poll_once(self, timeout: float | None = None) -> RoundReport:
        """Run one round: discover, fan out and drain.

        Args:
            timeout: Seconds to wait for responses (None waits for every
                dispatched request, each bounded by the request timeout)

        Returns:
            RoundReport describing the round
        """
        start = time.monotonic()
        aggregator = self.start_round()

        if aggregator is None:
            # Skipped: keep draining the round that is still pending
            previous = self.active
            if previous is None:
                raise RuntimeError("Poll skipped without a pending round")
            self.drain(timeout)
            return RoundReport.from_aggregator(
                previous, skipped=True, duration_seconds=time.monotonic() - start
            )

        self.drain(timeout)
        report = RoundReport.from_aggregator(
            aggregator,
            discovery_failed=self.discovery_error is not None,
            duration_seconds=time.monotonic() - start,
        )
        logger.info(
            f"Round {report.round_id}: {len(report.processed)}/{len(report.dispatched)} "
            f"containers processed in {report.duration_seconds:.2f}s"
        )
        return report

    def run(
        self, stop_event: threading.Event | None = None, max_rounds: int | None = None
    ) -> int:
        """Poll every ``poll_interval_seconds`` until stopped.

        Each round may use the whole interval to drain; whatever is still
        pending when the next trigger fires is handled by the overlap policy.

        Args:
            stop_event: Set it to stop the loop between rounds
            max_rounds: Stop after this many triggers (None runs forever)

        Returns:
            Number of poll triggers handled
        """
        stop_event = stop_event or threading.Event()
        interval = self.config.poll_interval_seconds
        rounds = 0
        logger.info(f"Polling {self.client.base_url} every {interval}s")

        while not stop_event.is_set():
            start = time.monotonic()
            try:
                self.poll_once(timeout=interval)
            except Exception as e:
                logger.error(f"Error in polling loop: {e}", exc_info=True)

            rounds += 1
            if max_rounds is not None and rounds >= max_rounds:
                break

            # Sleep until next trigger
            stop_event.wait(max(0.0, interval - (time.monotonic() - start)))

        return rounds

    def close(self) -> None:
        """Shut down the request pool and the API session."""
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)
        self.client.close()

    def _handle(self, aggregator: RoundAggregator, completion: Completion) -> None:
        name = completion.container.name
        if completion.round_id != aggregator.round_id:
            logger.warning(
                f"Discarding stale response for {name} from round {completion.round_id}"
            )
            return
        self._awaiting -= 1

        if not completion.ok:
            message = str(completion.error)
            if not isinstance(completion.error, StatsTransportError):
                message = f"Failed to get stats for {name}: {completion.error!r}"
            self.sink.emit_event(Event(level=ERROR, message=message))
            aggregator.on_container_failed(completion.round_id, name)
            return

        try:
            sample = parse_stats(completion.payload)
        except ValidationError as e:
            self.sink.emit_event(
                Event(
                    level=ERROR,
                    message=f"Malformed stats payload for {name}: "
                    f"{e.error_count()} validation error(s)",
                )
            )
            aggregator.on_container_failed(completion.round_id, name)
            return

        aggregator.on_container_processed(completion.round_id, name, extract_metrics(name, sample))
