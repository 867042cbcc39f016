"""Asynchronous client for the activity server REST API.

Every operation except ``heartbeat`` is a single request against the server.
Heartbeats go through per-bucket queues so the server receives them in call
order, one at a time per bucket.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union
from urllib.error import HTTPError
from urllib.parse import quote

from loguru import logger

from ..config import ClientConfig
from ..models import Bucket, EnsureBucketResult, Event, Heartbeat, ServerInfo, to_iso
from ..queuer import HeartbeatQueueManager
from ..sender import HTTPTransport, create_default_transport

TimePeriod = Union[str, Tuple[datetime, datetime]]


def _bucket_path(bucket_id: str) -> str:
    return "/0/buckets/" + quote(bucket_id, safe="")


def format_timeperiod(timeperiod: TimePeriod) -> str:
    """Render a query time period as ``start/end``."""
    if isinstance(timeperiod, str):
        return timeperiod
    start, end = timeperiod
    return f"{to_iso(start)}/{to_iso(end)}"


class AWClient:
    """Client bound to one activity server."""

    def __init__(
        self,
        client_name: str = "",
        testing: Optional[bool] = None,
        base_url: Optional[str] = None,
        *,
        config: Optional[ClientConfig] = None,
        transport: Optional[HTTPTransport] = None,
    ):
        """Initialize the client.

        Args:
            client_name: Name recorded as the creator of new buckets
            testing: Use the testing server port instead of the production one,
                None defers to AW_TESTING
            base_url: Explicit server root URL, overrides the port selection
            config: Full configuration, replaces the three arguments above
            transport: Transport to use instead of building one from config

        Raises:
            ValueError: If the configuration is invalid
        """
        if config is None:
            config = ClientConfig(client_name=client_name, testing=testing, base_url=base_url)

        is_valid, errors = config.validate()
        if not is_valid:
            raise ValueError(f"Invalid client configuration: {'; '.join(errors)}")

        self.config = config
        self.transport = transport or create_default_transport(**config.get_transport_config())
        self._heartbeats = HeartbeatQueueManager(self._send_heartbeat)

        logger.debug(f"Client {self.client_name} targeting {self.base_url}")

    @property
    def client_name(self) -> str:
        return self.config.client_name

    @property
    def testing(self) -> bool:
        return bool(self.config.testing)

    @property
    def base_url(self) -> str:
        return self.config.resolved_base_url

    async def __aenter__(self) -> "AWClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Wait for queued heartbeats to be delivered."""
        await self._heartbeats.join()

    # Server

    async def get_info(self) -> ServerInfo:
        data = await self.transport.get("/0/info")
        return ServerInfo.model_validate(data)

    # Buckets

    async def ensure_bucket(self, bucket_id: str, event_type: str, hostname: Optional[str] = None) -> EnsureBucketResult:
        """Create a bucket unless it already exists.

        The server answers 304 for an existing bucket; that is reported as
        ``already_exist=True`` instead of an error.
        """
        try:
            await self.create_bucket(bucket_id, event_type, hostname)
        except HTTPError as e:
            if e.code == 304:
                logger.debug(f"Bucket {bucket_id} already exists")
                return EnsureBucketResult(already_exist=True)
            raise
        return EnsureBucketResult(already_exist=False)

    async def create_bucket(self, bucket_id: str, event_type: str, hostname: Optional[str] = None) -> None:
        body = {
            "client": self.client_name,
            "type": event_type,
            "hostname": hostname or self.config.hostname,
        }
        await self.transport.post(_bucket_path(bucket_id), body)
        logger.info(f"Created bucket {bucket_id} ({event_type})")

    async def delete_bucket(self, bucket_id: str) -> None:
        await self.transport.delete(_bucket_path(bucket_id), params={"force": 1})

    async def get_buckets(self) -> Dict[str, Bucket]:
        data = await self.transport.get("/0/buckets/")
        return {bucket_id: Bucket.model_validate(bucket) for bucket_id, bucket in (data or {}).items()}

    async def get_bucket_info(self, bucket_id: str) -> Bucket:
        data = await self.transport.get(_bucket_path(bucket_id))
        return Bucket.model_validate(data)

    # Events

    async def get_events(self, bucket_id: str, params: Optional[Mapping[str, Any]] = None) -> List[Event]:
        """Fetch events of a bucket.

        Args:
            bucket_id: Bucket to read
            params: Server filters such as ``limit``, ``start`` and ``end``
        """
        data = await self.transport.get(_bucket_path(bucket_id) + "/events", params=params)
        return [Event.model_validate(event) for event in data or []]

    async def count_events(
        self,
        bucket_id: str,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ) -> int:
        params = {"starttime": start_time, "endtime": end_time}
        data = await self.transport.get(_bucket_path(bucket_id) + "/events/count", params=params)
        return int(data)

    async def insert_event(self, bucket_id: str, event: Union[Event, Mapping[str, Any]]) -> Optional[Event]:
        events = await self.insert_events(bucket_id, [event])
        return events[0] if events else None

    async def insert_events(self, bucket_id: str, events: Iterable[Union[Event, Mapping[str, Any]]]) -> List[Event]:
        """Insert events and return them as stored by the server.

        A server answering with a single object instead of a list still
        yields a one-element list.
        """
        payload = [Event.model_validate(event).to_payload() for event in events]
        data = await self.transport.post(_bucket_path(bucket_id) + "/events", payload)
        if data is None:
            return []
        if not isinstance(data, list):
            data = [data]
        return [Event.model_validate(event) for event in data]

    # Heartbeats

    def heartbeat(
        self,
        bucket_id: str,
        pulsetime: float,
        heartbeat: Union[Heartbeat, Mapping[str, Any]],
    ) -> "asyncio.Future[Heartbeat]":
        """Queue a heartbeat for delivery.

        The heartbeat is enqueued before this returns, so successive calls
        reach the server in call order even if nobody awaits in between.
        Must be called while an event loop is running.

        Args:
            bucket_id: The id of the bucket to send the heartbeat to
            pulsetime: Maximum seconds since the last heartbeat for the server to merge them
            heartbeat: The actual heartbeat event

        Returns:
            Future resolving to the heartbeat as merged by the server
        """
        if not isinstance(heartbeat, Heartbeat):
            heartbeat = Heartbeat.model_validate(heartbeat)
        return self._heartbeats.submit(bucket_id, pulsetime, heartbeat)

    async def _send_heartbeat(self, bucket_id: str, pulsetime: float, heartbeat: Heartbeat) -> Heartbeat:
        data = await self.transport.post(
            _bucket_path(bucket_id) + "/heartbeat",
            heartbeat.to_payload(),
            params={"pulsetime": pulsetime},
        )
        return Heartbeat.model_validate(data)

    # Queries

    async def query(self, timeperiods: Sequence[TimePeriod], query: Sequence[str]) -> Any:
        """Run a query over one or more time periods.

        Args:
            timeperiods: ``"start/end"`` strings or ``(start, end)`` datetime pairs
            query: Query statements, one per line
        """
        body = {
            "query": list(query),
            "timeperiods": [format_timeperiod(tp) for tp in timeperiods],
        }
        return await self.transport.post("/0/query/", body)

    def get_stats(self) -> Dict[str, Any]:
        """Get transport and heartbeat queue statistics."""
        return {
            "transport": self.transport.get_stats(),
            "heartbeats": self._heartbeats.get_stats(),
        }
