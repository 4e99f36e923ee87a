"""
Error kinds raised by the tally ledger.

Every error is raised before any state is touched, so a failed call leaves
the store, votes, scores and reputation exactly as they were.
"""

from __future__ import annotations

from typing import Any


class TallyError(Exception):
    """Base class for all tally errors."""


class NotFound(TallyError, LookupError):
    """A referenced artifact (or the parent of a new artifact) does not exist."""

    def __init__(self, artifact_id: int, *, kind: str = "artifact"):
        self.artifact_id = artifact_id
        self.kind = kind  # "artifact" | "parent"
        super().__init__(f"{kind.capitalize()} not found: {artifact_id}")


class InvalidValue(TallyError, ValueError):
    """An argument is outside its allowed domain (e.g. a vote not in {-1, 0, 1})."""

    def __init__(self, field: str, value: Any, message: str | None = None):
        self.field = field
        self.value = value
        super().__init__(message or f"Invalid {field}: {value!r}")


class JournalError(TallyError):
    """The journal cannot be read or does not replay to a consistent state."""

    def __init__(self, message: str, *, line: int | None = None):
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class ConfigError(TallyError):
    """Malformed tally.toml."""
