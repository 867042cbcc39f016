"""Heartbeat queueing module."""

from .heartbeat_queue import BucketQueue, HeartbeatQueueItem, HeartbeatQueueManager

__all__ = ["HeartbeatQueueManager", "HeartbeatQueueItem", "BucketQueue"]
