"""aw-client - Async client for the local activity tracking server."""

from .config import ClientConfig, setup_logging
from .core import AWClient
from .models import (
    AppEditorActivityEvent,
    AppEditorActivityHeartbeat,
    Bucket,
    EnsureBucketResult,
    Event,
    Heartbeat,
    ServerInfo,
)

__version__ = "1.0.0"

__all__ = [
    "AWClient",
    "ClientConfig",
    "setup_logging",
    "Heartbeat",
    "Event",
    "AppEditorActivityHeartbeat",
    "AppEditorActivityEvent",
    "Bucket",
    "ServerInfo",
    "EnsureBucketResult",
]
