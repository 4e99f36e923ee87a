"""
Immutable notification events.

One event is emitted at the end of every successful mutation. Events are
also the journal's line format: replaying them in order through the normal
mutation path reproduces the full ledger state.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, Union

from .errors import JournalError

# Event type constants
ARTIFACT_CREATED = "artifact.created"
VOTE_CAST = "vote.cast"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _text(data: dict[str, Any], key: str) -> str:
    value = data[key]
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class ArtifactCreated:
    """A new artifact (root or comment) was recorded."""

    event_type: ClassVar[str] = ARTIFACT_CREATED

    sequence: int  # Logical time of the mutation
    id: int
    parent_id: int  # 0 for roots
    author: str
    artifact_type: str  # ArtifactType value
    content_ref: str
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "event_type": self.event_type,
            "sequence": self.sequence,
            "timestamp": self.timestamp.isoformat(),
            "id": self.id,
            "parent_id": self.parent_id,
            "author": self.author,
            "artifact_type": self.artifact_type,
            "content_ref": self.content_ref,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ArtifactCreated:
        return cls(
            sequence=int(data["sequence"]),
            id=int(data["id"]),
            parent_id=int(data.get("parent_id", 0)),
            author=_text(data, "author"),
            artifact_type=_text(data, "artifact_type"),
            content_ref=_text(data, "content_ref"),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )

    def to_json(self) -> str:
        """Serialize to JSON string (single line)."""
        return json.dumps(self.to_dict(), separators=(",", ":"))


@dataclass(frozen=True)
class Voted:
    """A voter's value on an artifact changed from `old_value` to `new_value`."""

    event_type: ClassVar[str] = VOTE_CAST

    sequence: int
    artifact_id: int
    voter: str
    old_value: int
    new_value: int
    timestamp: datetime = field(default_factory=_utcnow)

    @property
    def delta(self) -> int:
        return self.new_value - self.old_value

    def to_dict(self) -> dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "event_type": self.event_type,
            "sequence": self.sequence,
            "timestamp": self.timestamp.isoformat(),
            "artifact_id": self.artifact_id,
            "voter": self.voter,
            "old_value": self.old_value,
            "new_value": self.new_value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Voted:
        return cls(
            sequence=int(data["sequence"]),
            artifact_id=int(data["artifact_id"]),
            voter=_text(data, "voter"),
            old_value=int(data["old_value"]),
            new_value=int(data["new_value"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )

    def to_json(self) -> str:
        """Serialize to JSON string (single line)."""
        return json.dumps(self.to_dict(), separators=(",", ":"))


Event = Union[ArtifactCreated, Voted]

_EVENT_CLASSES: dict[str, type] = {
    ARTIFACT_CREATED: ArtifactCreated,
    VOTE_CAST: Voted,
}


def event_from_dict(data: dict[str, Any]) -> Event:
    """Reconstruct an event from its dict form, dispatching on `event_type`."""
    event_type = data.get("event_type")
    cls = _EVENT_CLASSES.get(event_type) if isinstance(event_type, str) else None
    if cls is None:
        raise JournalError(f"Invalid event_type: {event_type!r}")
    try:
        return cls.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise JournalError(f"Malformed {event_type} event: {e}") from e


def event_from_json(line: str) -> Event:
    """Parse an event from a JSON line."""
    try:
        data = json.loads(line)
    except json.JSONDecodeError as e:
        raise JournalError(f"Invalid JSON: {e.msg}") from e
    if not isinstance(data, dict):
        raise JournalError("Event must be a JSON object")
    return event_from_dict(data)

