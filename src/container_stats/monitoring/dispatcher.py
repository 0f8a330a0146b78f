"""Concurrent fan-out of per-container stats requests.

Requests run on a thread pool; each finished request is posted to a
completion queue tagged with its round id and container. Nothing here
touches a round's totals: the poller thread drains the queue and feeds the
round aggregator.
"""

from __future__ import annotations

import logging
import queue
from collections.abc import Iterable
from concurrent.futures import CancelledError, Executor, Future
from dataclasses import dataclass
from functools import partial
from typing import Any

from container_stats.monitoring.aggregator import RoundAggregator
from container_stats.monitoring.base import Container
from container_stats.monitoring.client import DockerStatsClient

logger = logging.getLogger(__name__)


@dataclass
class Completion:
    """Outcome of one stats request."""

    round_id: int
    container: Container
    payload: Any = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class StatsDispatcher:
    """Issues one stats request per container and reports completions.

    Example:
        ```python
        completions = queue.Queue()
        dispatcher = StatsDispatcher(client, ThreadPoolExecutor(4), completions)
        dispatcher.dispatch(aggregator, containers)
        completion = completions.get()
        ```
    """

    def __init__(
        self,
        client: DockerStatsClient,
        executor: Executor,
        completions: queue.Queue[Completion],
    ) -> None:
        self._client = client
        self._executor = executor
        self._completions = completions

    def dispatch(
        self, aggregator: RoundAggregator, containers: Iterable[Container]
    ) -> list[Container]:
        """Register and request stats for every container.

        Each container is registered in the round's pending set before its
        request is submitted, so a response can never arrive for a name the
        round does not know about. Containers whose registration is
        rejected (duplicate names) are not requested.

        Returns:
            Containers a request was issued for
        """
        dispatched: list[Container] = []
        for container in containers:
            if not aggregator.register(container.name):
                continue

            on_done = partial(self._on_done, aggregator.round_id, container)
            try:
                future = self._executor.submit(self._client.stats, container.name)
            except RuntimeError as e:
                # Executor shut down: report it like any other request failure
                self._completions.put(Completion(aggregator.round_id, container, error=e))
            else:
                future.add_done_callback(on_done)
            dispatched.append(container)
            logger.debug(f"Round {aggregator.round_id}: requested stats for {container.name}")

        return dispatched

    def _on_done(self, round_id: int, container: Container, future: Future[Any]) -> None:
        try:
            payload = future.result()
        except (CancelledError, Exception) as e:
            self._completions.put(Completion(round_id, container, error=e))
            return
        self._completions.put(Completion(round_id, container, payload=payload))
