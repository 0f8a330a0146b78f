"""Tests for container discovery and filtering."""

from container_stats.core.constants import NO_CONTAINERS_MESSAGE
from container_stats.monitoring.base import INFO, Container
from container_stats.monitoring.discovery import (
    filter_containers,
    select_containers,
    to_containers,
)


class TestDiscovery:
    """Tests for select_containers and helpers."""

    def test_to_containers(self, make_descriptor):
        containers = to_containers([make_descriptor("1", "a"), make_descriptor("2", "b")])
        assert containers == [Container(id="1", name="a"), Container(id="2", name="b")]

    def test_allow_list(self, make_descriptor, sink):
        descriptors = [make_descriptor(str(i), n) for i, n in enumerate("abc")]
        selected = select_containers(descriptors, frozenset({"a", "c"}), sink)

        assert [c.name for c in selected] == ["a", "c"]
        assert sink.events == []

    def test_no_allow_list(self, make_descriptor, sink):
        descriptors = [make_descriptor(str(i), n) for i, n in enumerate("abc")]
        selected = select_containers(descriptors, None, sink)
        assert [c.name for c in selected] == ["a", "b", "c"]

    def test_allow_list_with_unknown_names(self):
        containers = [Container(id="1", name="a")]
        assert filter_containers(containers, frozenset({"zzz"})) == []

    def test_no_containers_running(self, sink):
        """An empty listing emits one informational event and selects nothing."""
        assert select_containers([], None, sink) == []
        assert len(sink.events) == 1
        assert sink.events[0].level == INFO
        assert sink.events[0].message == NO_CONTAINERS_MESSAGE

    def test_malformed_descriptor_skipped(self, make_descriptor, sink):
        descriptors = [{"Id": "x"}, make_descriptor("2", "b"), {"Names": ["/c"]}]
        selected = select_containers(descriptors, None, sink)
        assert [c.name for c in selected] == ["b"]
