"""Tests for the urllib based HTTP transport."""

import json
import socket
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch
from urllib.error import HTTPError, URLError

import pytest

from aw_client.sender import HTTPTransport, TransportConfig, create_default_transport

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
URLOPEN = "aw_client.sender.http_transport.urlopen"


def mock_response(body: bytes, status: int = 200) -> MagicMock:
    response = MagicMock()
    response.status = status
    response.read.return_value = body
    response.__enter__.return_value = response
    response.__exit__.return_value = False
    return response


@pytest.fixture
def http_transport():
    return HTTPTransport(TransportConfig(base_url="http://127.0.0.1:5666", timeout_seconds=10, client_name="test-client"))


class TestHTTPTransport:
    @pytest.mark.asyncio
    async def test_get_builds_url_and_decodes_json(self, http_transport):
        with patch(URLOPEN, return_value=mock_response(b'{"hostname": "laptop"}')) as mock_urlopen:
            result = await http_transport.get("/0/info")

        assert result == {"hostname": "laptop"}
        request = mock_urlopen.call_args[0][0]
        assert request.full_url == "http://127.0.0.1:5666/api/0/info"
        assert request.get_method() == "GET"
        assert request.data is None
        assert mock_urlopen.call_args.kwargs["timeout"] == 10

    @pytest.mark.asyncio
    async def test_post_encodes_json_body(self, http_transport):
        with patch(URLOPEN, return_value=mock_response(b"[]")) as mock_urlopen:
            await http_transport.post("/0/buckets/b1/heartbeat", {"timestamp": T0, "data": {}}, params={"pulsetime": 60})

        request = mock_urlopen.call_args[0][0]
        assert request.get_method() == "POST"
        assert request.full_url == "http://127.0.0.1:5666/api/0/buckets/b1/heartbeat?pulsetime=60"
        assert request.get_header("Content-type") == "application/json"
        assert json.loads(request.data) == {"timestamp": "2024-01-01T00:00:00+00:00", "data": {}}

    @pytest.mark.asyncio
    async def test_delete_sends_query(self, http_transport):
        with patch(URLOPEN, return_value=mock_response(b"")) as mock_urlopen:
            result = await http_transport.delete("/0/buckets/b1", params={"force": 1})

        assert result is None
        request = mock_urlopen.call_args[0][0]
        assert request.get_method() == "DELETE"
        assert request.full_url.endswith("/api/0/buckets/b1?force=1")

    def test_params_drop_none_and_encode_datetimes(self, http_transport):
        url = http_transport.build_url("/0/buckets/b1/events/count", {"starttime": T0, "endtime": None})

        assert url == "http://127.0.0.1:5666/api/0/buckets/b1/events/count?starttime=2024-01-01T00%3A00%3A00%2B00%3A00"

    def test_params_encode_booleans(self, http_transport):
        assert http_transport.build_url("/0/x", {"flag": True}).endswith("?flag=1")

    def test_all_none_params_leave_url_bare(self, http_transport):
        assert http_transport.build_url("/0/x", {"a": None}) == "http://127.0.0.1:5666/api/0/x"

    @pytest.mark.asyncio
    async def test_http_error_propagates_unchanged(self, http_transport):
        error = HTTPError("http://127.0.0.1:5666/api/0/buckets/b1", 304, "Not Modified", None, None)

        with patch(URLOPEN, side_effect=error):
            with pytest.raises(HTTPError) as exc_info:
                await http_transport.post("/0/buckets/b1", {"type": "afk"})

        assert exc_info.value is error
        stats = http_transport.get_stats()
        assert stats["total_requests"] == 1
        assert stats["total_requests_failed"] == 1
        assert stats["last_error"] == "HTTP error: 304 Not Modified"

    @pytest.mark.asyncio
    async def test_network_error_propagates(self, http_transport):
        with patch(URLOPEN, side_effect=URLError("connection refused")):
            with pytest.raises(URLError):
                await http_transport.get("/0/info")

    @pytest.mark.asyncio
    async def test_timeout_propagates(self, http_transport):
        with patch(URLOPEN, side_effect=TimeoutError("timed out")):
            with pytest.raises(TimeoutError):
                await http_transport.get("/0/info")

        assert http_transport.get_stats()["last_error"] == "Timed out after 10s"

    @pytest.mark.asyncio
    async def test_socket_timeout_is_recorded(self, http_transport):
        with patch(URLOPEN, side_effect=socket.timeout("timed out")):
            with pytest.raises(TimeoutError):
                await http_transport.get("/0/info")

        stats = http_transport.get_stats()
        assert stats["total_requests_failed"] == 1
        assert stats["last_error"] == "Timed out after 10s"

    def test_default_config_is_not_shared(self):
        first, second = HTTPTransport(), HTTPTransport()

        assert first.config is not second.config
        first.config.base_url = "http://elsewhere:1"
        assert second.api_url == "http://127.0.0.1:5600/api"

    def test_create_default_transport(self):
        transport = create_default_transport("http://localhost:5600/", "my-watcher")

        assert transport.api_url == "http://localhost:5600/api"
        assert transport.config.timeout_seconds == 10.0
        assert transport.config.client_name == "my-watcher"
