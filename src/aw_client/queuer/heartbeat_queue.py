"""Per-bucket heartbeat queues.

Heartbeats for one bucket must reach the server one at a time and in the
order they were submitted, because the server merges each heartbeat into the
previous one. Callers may submit from many coroutines without waiting for
earlier heartbeats, so every bucket gets its own FIFO queue drained by a
single task. Queues of different buckets never wait on each other.

All queue state is touched only from the event loop thread and no ``await``
happens between inspecting and mutating it, so no locking is needed.
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Deque, Dict, Optional

from loguru import logger

from ..models import Heartbeat

HeartbeatSender = Callable[[str, float, Heartbeat], Awaitable[Heartbeat]]


@dataclass
class HeartbeatQueueItem:
    """A pending heartbeat and the future its caller is waiting on."""

    heartbeat: Heartbeat
    pulsetime: float
    future: asyncio.Future


@dataclass
class BucketQueue:
    """Queue state of a single bucket."""

    items: Deque[HeartbeatQueueItem] = field(default_factory=deque)
    processing: bool = False
    task: Optional[asyncio.Task] = None


class HeartbeatQueueManager:
    """Serializes heartbeat delivery per bucket."""

    def __init__(self, send: HeartbeatSender):
        """Initialize the queue manager.

        Args:
            send: Coroutine function delivering one heartbeat to the server
        """
        self._send = send
        self._queues: Dict[str, BucketQueue] = {}

        # Statistics
        self._total_enqueued = 0
        self._total_sent = 0
        self._total_failed = 0

    def submit(self, bucket_id: str, pulsetime: float, heartbeat: Heartbeat) -> asyncio.Future:
        """Queue a heartbeat and return a future for the server's answer.

        Enqueueing happens immediately, so the submission order of calls is
        the delivery order even if the returned futures are awaited later or
        not at all. Must be called from a running event loop.

        Args:
            bucket_id: Target bucket
            pulsetime: Merge window in seconds, forwarded to the server
            heartbeat: Heartbeat to send

        Returns:
            Future resolved with the server's heartbeat or the delivery error
        """
        loop = asyncio.get_running_loop()

        queue = self._queues.get(bucket_id)
        if queue is None:
            queue = self._queues[bucket_id] = BucketQueue()

        future = loop.create_future()
        queue.items.append(HeartbeatQueueItem(heartbeat=heartbeat, pulsetime=pulsetime, future=future))
        self._total_enqueued += 1

        logger.debug(f"Queued heartbeat for {bucket_id}, queue size: {len(queue.items)}")

        self._start_drain(bucket_id, queue)
        return future

    def pending(self, bucket_id: str) -> int:
        """Number of heartbeats waiting behind the in-flight one."""
        queue = self._queues.get(bucket_id)
        return len(queue.items) if queue else 0

    def is_processing(self, bucket_id: str) -> bool:
        queue = self._queues.get(bucket_id)
        return queue.processing if queue else False

    async def join(self) -> None:
        """Wait until every bucket queue has been drained."""
        while True:
            tasks = [queue.task for queue in self._queues.values() if queue.task is not None]
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)

    def get_stats(self) -> Dict[str, Any]:
        """Get queue statistics.

        Returns:
            Dictionary with queue statistics
        """
        return {
            "buckets": len(self._queues),
            "total_enqueued": self._total_enqueued,
            "total_sent": self._total_sent,
            "total_failed": self._total_failed,
            "pending": sum(len(queue.items) for queue in self._queues.values()),
            "processing": [bucket_id for bucket_id, queue in self._queues.items() if queue.processing],
        }

    def _start_drain(self, bucket_id: str, queue: BucketQueue) -> None:
        if queue.processing or not queue.items:
            return

        queue.processing = True
        queue.task = asyncio.get_running_loop().create_task(self._drain(bucket_id, queue))

    async def _drain(self, bucket_id: str, queue: BucketQueue) -> None:
        """Send queued heartbeats one by one until the queue is empty."""
        try:
            while queue.items:
                item = queue.items.popleft()
                try:
                    response = await self._send(bucket_id, item.pulsetime, item.heartbeat)
                except asyncio.CancelledError:
                    item.future.cancel()
                    self._abandon(bucket_id, queue)
                    raise
                except Exception as e:
                    self._total_failed += 1
                    logger.warning(f"Heartbeat delivery to {bucket_id} failed: {e!r}")
                    # Caller may have cancelled its future; the item was still sent
                    if not item.future.done():
                        item.future.set_exception(e)
                else:
                    self._total_sent += 1
                    if not item.future.done():
                        item.future.set_result(response)
        finally:
            queue.processing = False
            queue.task = None

        logger.debug(f"Heartbeat queue for {bucket_id} drained")

    def _abandon(self, bucket_id: str, queue: BucketQueue) -> None:
        """Cancel every queued heartbeat once its drain task is gone."""
        if queue.items:
            logger.warning(f"Drain of {bucket_id} cancelled, dropping {len(queue.items)} queued heartbeats")
        while queue.items:
            queue.items.popleft().future.cancel()
