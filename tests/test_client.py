"""Tests for the Docker Engine API client wrapper."""

from unittest.mock import patch

import pytest
import requests
from docker.errors import APIError, DockerException

from container_stats.core.schemas import PollerConfig
from container_stats.monitoring.client import DockerStatsClient, StatsTransportError


@pytest.fixture
def api():
    with patch("container_stats.monitoring.client.docker.APIClient") as api_cls:
        yield api_cls


class TestDockerStatsClient:
    """Tests for DockerStatsClient."""

    def test_from_config(self):
        config = PollerConfig(host="10.0.0.5", port=4243, request_timeout_seconds=7, max_workers=3)
        client = DockerStatsClient.from_config(config)

        assert client.base_url == "tcp://10.0.0.5:4243"
        assert client.timeout == 7
        assert client.max_pool_size == 3

    def test_base_url_override(self):
        config = PollerConfig(base_url="unix:///var/run/docker.sock")
        assert DockerStatsClient.from_config(config).base_url == "unix:///var/run/docker.sock"

    def test_lazy_connection(self, api):
        client = DockerStatsClient("tcp://127.0.0.1:2375")
        api.assert_not_called()

        api.return_value.containers.return_value = []
        assert client.list_containers() == []
        client.list_containers()
        api.assert_called_once_with(
            base_url="tcp://127.0.0.1:2375", version="auto", timeout=30, max_pool_size=8
        )

    def test_stats_one_shot(self, api, make_stats):
        api.return_value.stats.return_value = make_stats()
        client = DockerStatsClient("tcp://127.0.0.1:2375")

        assert client.stats("web") == make_stats()
        api.return_value.stats.assert_called_once_with("web", stream=False)

    @pytest.mark.parametrize(
        "error",
        [
            requests.ConnectionError("refused"),
            APIError("404 Client Error: Not Found"),
            ValueError("Expecting value"),
        ],
    )
    def test_stats_errors_wrapped(self, api, error):
        api.return_value.stats.side_effect = error
        client = DockerStatsClient("tcp://127.0.0.1:2375")

        with pytest.raises(StatsTransportError, match="Failed to get stats for web"):
            client.stats("web")

    def test_list_errors_wrapped(self, api):
        api.return_value.containers.side_effect = requests.Timeout("timed out")
        with pytest.raises(StatsTransportError, match="Failed to list containers"):
            DockerStatsClient("tcp://127.0.0.1:2375").list_containers()

    def test_unexpected_payload_types(self, api):
        api.return_value.containers.return_value = {"message": "nope"}
        api.return_value.stats.return_value = ["not", "a", "dict"]
        client = DockerStatsClient("tcp://127.0.0.1:2375")

        with pytest.raises(StatsTransportError, match="Unexpected container list payload"):
            client.list_containers()
        with pytest.raises(StatsTransportError, match="Unexpected stats payload for web"):
            client.stats("web")

    def test_connect_error_wrapped(self, api):
        api.side_effect = DockerException("Error while fetching server API version")
        with pytest.raises(StatsTransportError, match="Cannot connect"):
            DockerStatsClient("tcp://127.0.0.1:2375").list_containers()

    def test_close(self, api):
        client = DockerStatsClient("tcp://127.0.0.1:2375")
        client.close()  # Never connected
        api.return_value.containers.return_value = []
        client.list_containers()
        client.close()

        api.return_value.close.assert_called_once()
        assert client._api is None


def test_transport_error_is_runtime_error():
    assert issubclass(StatsTransportError, RuntimeError)
