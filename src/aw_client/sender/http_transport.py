"""HTTP transport for talking to the activity server REST API.

This module owns the request/response plumbing: URL construction under
``{base_url}/api``, JSON and query-string encoding, the per-request timeout
and JSON decoding of responses. Requests are blocking urllib calls executed in
a worker thread so callers on the event loop only suspend at the HTTP
boundary. Errors are logged and re-raised unchanged; nothing is retried here.
"""

from __future__ import annotations

import asyncio
import json
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Mapping, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from loguru import logger
from pydantic import BaseModel

from ..models import to_iso


@dataclass
class TransportConfig:
    """Configuration for the HTTP transport."""

    base_url: str = "http://127.0.0.1:5600"  # Server root, without /api
    api_prefix: str = "/api"
    timeout_seconds: float = 10.0  # Per-request timeout
    client_name: str = ""  # Reported in the User-Agent


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return to_iso(value)
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _encode_params(params: Mapping[str, Any]) -> str:
    """Encode query parameters, dropping unset values."""
    encoded = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, datetime):
            value = to_iso(value)
        elif isinstance(value, bool):
            value = int(value)
        encoded[key] = value
    return urlencode(encoded)


class HTTPTransport:
    """Sends JSON requests to the server API."""

    def __init__(self, config: Optional[TransportConfig] = None):
        """Initialize the HTTP transport.

        Args:
            config: Transport configuration, defaults to a local server
        """
        self.config = config if config is not None else TransportConfig()
        self._stats_lock = threading.Lock()

        # Statistics
        self._total_requests = 0
        self._total_requests_failed = 0
        self._total_request_time = 0.0
        self._last_error: Optional[str] = None

    @property
    def api_url(self) -> str:
        return self.config.base_url.rstrip("/") + self.config.api_prefix

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        body: Any = None,
    ) -> Any:
        """Send a request without blocking the event loop.

        Args:
            method: HTTP method
            path: Path below the API prefix, e.g. ``/0/info``
            params: Query parameters, ``None`` values are dropped
            body: JSON-serializable request body

        Returns:
            Decoded JSON response, or None for an empty body

        Raises:
            HTTPError: Server answered with a non-2xx status
            URLError: Server could not be reached
            TimeoutError: No response within the configured timeout
        """
        return await asyncio.to_thread(self.send_request, method, path, params, body)

    async def get(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, body: Any = None, params: Optional[Mapping[str, Any]] = None) -> Any:
        return await self.request("POST", path, params=params, body=body)

    async def delete(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        return await self.request("DELETE", path, params=params)

    def build_url(self, path: str, params: Optional[Mapping[str, Any]] = None) -> str:
        url = self.api_url + path
        if params:
            query = _encode_params(params)
            if query:
                url = f"{url}?{query}"
        return url

    def send_request(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        body: Any = None,
    ) -> Any:
        """Send a single blocking HTTP request."""
        url = self.build_url(path, params)
        headers = {
            "Accept": "application/json",
            "User-Agent": f"aw-client/{self.config.client_name}",
        }
        data = None
        if body is not None:
            data = json.dumps(body, default=_json_default).encode("utf-8")
            headers["Content-Type"] = "application/json"

        req = Request(url, data=data, headers=headers, method=method)
        start_time = time.time()

        try:
            with urlopen(req, timeout=self.config.timeout_seconds) as response:
                raw = response.read().decode("utf-8")
                logger.debug(f"{method} {url} -> {response.status}")

        except HTTPError as e:
            self._record(start_time, f"HTTP error: {e.code} {e.reason}")
            # 304 is an expected answer when creating an existing bucket
            if e.code == 304:
                logger.debug(f"{method} {url} -> 304 Not Modified")
            else:
                logger.warning(f"{method} {url} failed: HTTP {e.code} {e.reason}")
            raise

        except URLError as e:
            self._record(start_time, f"Network error: {e.reason}")
            logger.warning(f"{method} {url} failed: network error: {e.reason}")
            raise

        except TimeoutError:  # socket.timeout aliases TimeoutError on 3.10+
            self._record(start_time, f"Timed out after {self.config.timeout_seconds}s")
            logger.warning(f"{method} {url} timed out after {self.config.timeout_seconds}s")
            raise

        self._record(start_time)
        if not raw.strip():
            return None
        return json.loads(raw)

    def get_stats(self) -> Dict[str, Any]:
        """Get transport statistics.

        Returns:
            Dictionary with transport statistics
        """
        with self._stats_lock:
            total = self._total_requests
            return {
                "total_requests": total,
                "total_requests_failed": self._total_requests_failed,
                "average_request_time_seconds": self._total_request_time / max(1, total),
                "last_error": self._last_error,
            }

    def _record(self, start_time: float, error: Optional[str] = None) -> None:
        with self._stats_lock:
            self._total_requests += 1
            self._total_request_time += time.time() - start_time
            if error is not None:
                self._total_requests_failed += 1
                self._last_error = error


def create_default_transport(base_url: str, client_name: str, timeout_seconds: float = 10.0) -> HTTPTransport:
    """Create an HTTP transport with default configuration.

    Args:
        base_url: Server root URL
        client_name: Client name reported to the server
        timeout_seconds: Per-request timeout

    Returns:
        Configured HTTP transport
    """
    config = TransportConfig(
        base_url=base_url,
        timeout_seconds=timeout_seconds,
        client_name=client_name,
    )

    return HTTPTransport(config)
