"""Container discovery and allow-list filtering."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Set
from typing import Any

from pydantic import ValidationError

from container_stats.core.constants import NO_CONTAINERS_MESSAGE
from container_stats.core.schemas import ContainerDescriptor
from container_stats.monitoring.base import INFO, Container, Event
from container_stats.monitoring.sinks import MetricSink

logger = logging.getLogger(__name__)


def to_containers(descriptors: Iterable[Any]) -> list[Container]:
    """Convert raw ``/containers/json`` entries to Container records.

    Entries that fail validation are skipped with a warning so one odd
    descriptor does not hide the rest.
    """
    containers: list[Container] = []
    for raw in descriptors:
        try:
            descriptor = ContainerDescriptor.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Skipping malformed container descriptor: {e}")
            continue
        containers.append(Container(id=descriptor.id, name=descriptor.name))
    return containers


def filter_containers(
    containers: Iterable[Container], allow_list: Set[str] | None
) -> list[Container]:
    """Keep containers named in the allow-list, or all when there is none.

    Discovery order is preserved.
    """
    if allow_list is None:
        return list(containers)
    return [c for c in containers if c.name in allow_list]


def select_containers(
    descriptors: list[Any],
    allow_list: Set[str] | None,
    sink: MetricSink,
) -> list[Container]:
    """Turn a decoded container listing into this round's poll targets.

    Args:
        descriptors: Decoded ``/containers/json`` response
        allow_list: Names to keep, or None to keep everything
        sink: Receives the informational event for an empty listing

    Returns:
        Containers to dispatch stats requests for, in discovery order
    """
    if not descriptors:
        sink.emit_event(Event(level=INFO, message=NO_CONTAINERS_MESSAGE))
        return []

    selected = filter_containers(to_containers(descriptors), allow_list)
    if allow_list is not None:
        logger.debug(f"Allow-list kept {len(selected)}/{len(descriptors)} containers")
    return selected
