"""Data models package."""

from .models import (
    AppEditorActivityEvent,
    AppEditorActivityHeartbeat,
    Bucket,
    EditorActivityData,
    EnsureBucketResult,
    Event,
    Heartbeat,
    ServerInfo,
    as_utc,
    to_iso,
)

__all__ = [
    "Heartbeat",
    "Event",
    "EditorActivityData",
    "AppEditorActivityHeartbeat",
    "AppEditorActivityEvent",
    "Bucket",
    "ServerInfo",
    "EnsureBucketResult",
    "as_utc",
    "to_iso",
]
