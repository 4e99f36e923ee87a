"""
Append-only event journal.

Stores mutation events in <data_dir>/journal.jsonl, one event per line.
Key property: append-only, never rewritten. Ledger state is rebuilt by
replaying the journal in order.

Processes sharing a journal serialize through an advisory lock on the
sidecar file <data_dir>/journal.jsonl.lock.
"""

from __future__ import annotations

import fcntl
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator

from .errors import JournalError
from .events import Event, event_from_json

DEFAULT_JOURNAL_FILE = "journal.jsonl"


class EventJournal:
    """Append-only journal of ArtifactCreated / Voted events.

    Storage format: JSON Lines (.jsonl) - one event per line
    """

    def __init__(self, path: Path):
        self.path = path

    @classmethod
    def in_dir(cls, data_dir: Path, filename: str = DEFAULT_JOURNAL_FILE) -> EventJournal:
        return cls(data_dir / filename)

    @property
    def lock_path(self) -> Path:
        return self.path.with_name(self.path.name + ".lock")

    def _ensure_dir(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def locked(self) -> Iterator[None]:
        """Hold the journal's exclusive lock across processes.

        flock locks belong to the open file, so a second `locked()` in the
        same process blocks; callers must not nest it.
        """
        self._ensure_dir()
        with self.lock_path.open("a+", encoding="utf-8") as handle:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)

    def append(self, event: Event) -> int:
        """Append an event to the journal; returns the journal size in bytes.

        This is the only write operation. Events are never modified or deleted.
        """
        self._ensure_dir()
        with self.path.open("ab") as f:
            f.write((event.to_json() + "\n").encode("utf-8"))
            return f.tell()

    def append_many(self, events: Iterable[Event]) -> int:
        self._ensure_dir()
        count = 0
        with self.path.open("ab") as f:
            for event in events:
                f.write((event.to_json() + "\n").encode("utf-8"))
                count += 1
        return count

    def read_from(self, offset: int = 0, lineno: int = 0) -> tuple[list[Event], int, int]:
        """
        Parse the events written after byte `offset`.

        `lineno` is the number of lines before `offset`, so errors carry
        absolute line numbers. Returns (events, end offset, end line count).
        """
        if not self.path.exists():
            return [], offset, lineno
        events: list[Event] = []
        with self.path.open("rb") as f:
            f.seek(offset)
            for raw in f:
                offset += len(raw)
                lineno += 1
                try:
                    line = raw.decode("utf-8").strip()
                    if line:
                        events.append(event_from_json(line))
                except UnicodeDecodeError as e:
                    raise JournalError(f"Invalid UTF-8: {e.reason}", line=lineno) from e
                except JournalError as e:
                    raise JournalError(str(e), line=lineno) from e
        return events, offset, lineno

    def iter_events(self) -> Iterator[Event]:
        """Iterate over events (memory-efficient for large journals)."""
        if not self.path.exists():
            return
        with self.path.open("r", encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    yield event_from_json(line)
                except JournalError as e:
                    raise JournalError(str(e), line=lineno) from e

    def read_all(self) -> list[Event]:
        return list(self.iter_events())

    def count(self) -> int:
        """Count events without parsing them."""
        if not self.path.exists():
            return 0
        count = 0
        with self.path.open("r", encoding="utf-8") as f:
            for line in f:
                if line.strip():
                    count += 1
        return count
