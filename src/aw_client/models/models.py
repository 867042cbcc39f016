"""Pydantic models for data exchanged with the activity server.

Every datetime field is parsed from its ISO-8601 wire form into a timezone
aware ``datetime``. Naive datetimes are interpreted as UTC.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, leave aware ones untouched."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_iso(value: datetime) -> str:
    """Serialize a datetime the way the server expects it."""
    return as_utc(value).isoformat()


class Heartbeat(BaseModel):
    """Point-in-time or short-interval activity signal."""

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    id: Optional[int] = Field(None, description="Server-side event id")
    timestamp: datetime = Field(..., description="Start of the activity")
    duration: Optional[float] = Field(None, ge=0, description="Duration in seconds")
    data: Dict[str, Any] = Field(default_factory=dict, description="Watcher specific payload")

    @field_validator("timestamp")
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:
        return as_utc(v)

    def to_payload(self) -> Dict[str, Any]:
        """Convert to a JSON-ready dict, leaving out unset optional fields."""
        payload = self.model_dump(mode="json")
        for key in ("id", "duration"):
            if payload.get(key) is None:
                payload.pop(key, None)
        return payload


class Event(Heartbeat):
    """A heartbeat finalized into an interval record."""

    duration: float = Field(..., ge=0, description="Duration in seconds")


class EditorActivityData(BaseModel):
    """Payload of coding activity heartbeats."""

    model_config = ConfigDict(extra="allow")

    project: str = Field(..., description="Path to the current project / workdir")
    file: str = Field(..., description="Path to the current file")
    language: str = Field(..., description="Language identifier, e.g. python")


class AppEditorActivityHeartbeat(Heartbeat):
    """Heartbeat sent by editor watchers."""

    data: EditorActivityData


class AppEditorActivityEvent(AppEditorActivityHeartbeat):
    """Finalized editor activity."""

    duration: float = Field(..., ge=0, description="Duration in seconds")


class Bucket(BaseModel):
    """Named, typed container of events owned by the server."""

    model_config = ConfigDict(extra="allow")

    id: str
    name: Optional[str] = None
    type: str
    client: str
    hostname: str
    created: datetime
    last_update: Optional[datetime] = Field(
        None,
        validation_alias=AliasChoices("last_update", "last_updated"),
        description="Time of the most recent event in the bucket",
    )

    @field_validator("created", "last_update")
    @classmethod
    def ensure_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is None:
            return None
        return as_utc(v)


class ServerInfo(BaseModel):
    """Response of the info endpoint."""

    model_config = ConfigDict(extra="allow")

    hostname: str
    version: str
    testing: bool


class EnsureBucketResult(BaseModel):
    """Outcome of ensure_bucket."""

    already_exist: bool
