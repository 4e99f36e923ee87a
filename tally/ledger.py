"""
Tally service: the single serialized mutation path.

Composes ArtifactStore <- VoteLedger <- ReputationAggregator behind one
re-entrant lock. Every mutation is one indivisible step: validate, apply to
all derived tables, journal, then notify observers. Reads take the same lock
so they always see the state as of the last completed mutation.

A journal-backed Tally also holds the journal's file lock for the outermost
call and first replays whatever other processes appended since it last
looked, so several processes can share one data directory.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Hashable
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterable, Iterator

from .artifacts import Artifact, ArtifactStore, ArtifactType
from .clock import LogicalClock
from .config import TallyConfig
from .errors import InvalidValue, JournalError, TallyError
from .events import ArtifactCreated, Event, Voted
from .journal import DEFAULT_JOURNAL_FILE, EventJournal
from .reputation import ReputationAggregator
from .votes import VoteLedger

logger = logging.getLogger(__name__)

Observer = Callable[[Event], None]


class Tally:
    """
    Artifact tree, votes, scores and reputation as one consistent ledger.

    INVARIANT: a failed call leaves every table exactly as it was; a
    successful call updates all of them before any observer sees the event.
    """

    def __init__(self, *, journal: EventJournal | None = None, clock: LogicalClock | None = None):
        self._lock = threading.RLock()
        self.clock = clock if clock is not None else LogicalClock()
        self.store = ArtifactStore(self.clock)
        self.reputation = ReputationAggregator()
        self.votes = VoteLedger(self.store, self.reputation)
        self.journal = journal
        self._observers: list[Observer] = []
        self._replaying = False
        self._depth = 0  # nesting of _guard on the owning thread
        self._journal_offset = 0  # bytes of journal already applied
        self._journal_lines = 0

    @classmethod
    def open(cls, data_dir: Path, *, journal_file: str = DEFAULT_JOURNAL_FILE) -> Tally:
        """Open a journal-backed ledger under `data_dir`, replaying existing history."""
        journal = EventJournal.in_dir(data_dir, journal_file)
        tally = cls(journal=journal)
        with tally._guard():
            logger.info("Opened %s at sequence %d", journal.path, tally.clock.now())
        return tally

    @classmethod
    def from_config(cls, config: TallyConfig) -> Tally:
        if not config.journal_enabled:
            return cls()
        return cls.open(config.data_dir, journal_file=config.journal_file)

    # --- Observers ---

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register an observer for mutation events; returns an unsubscribe callable."""
        with self._lock:
            self._observers.append(observer)

        def unsubscribe() -> None:
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return unsubscribe

    # --- Serialization ---

    @contextmanager
    def _guard(self) -> Iterator[None]:
        """
        Enter the serialized section.

        Only the outermost entry takes the journal lock and catches up on
        foreign appends; nested calls (observers reading back, replay going
        through the mutation path) already hold it.
        """
        with self._lock:
            outermost = self._depth == 0 and self.journal is not None
            self._depth += 1
            try:
                if outermost:
                    with self.journal.locked():
                        self._sync()
                        yield
                else:
                    yield
            finally:
                self._depth -= 1

    def _sync(self) -> None:
        events, offset, lines = self.journal.read_from(self._journal_offset, self._journal_lines)
        if events:
            self._replay(events)
            logger.debug("Caught up %d events from %s", len(events), self.journal.path)
        self._journal_offset, self._journal_lines = offset, lines

    def _commit(self, event: Event) -> None:
        if self._replaying:
            return
        if self.journal is not None:
            self._journal_offset = self.journal.append(event)
            self._journal_lines += 1
        for observer in list(self._observers):
            try:
                observer(event)
            except Exception:
                # Observers are external; the mutation has already happened.
                logger.exception("Observer %r failed on %s", observer, event.event_type)

    def _check_persistable(self, field: str, value: object) -> None:
        # The journal stores authors and voters as JSON strings.
        if self.journal is not None and not self._replaying and not isinstance(value, str):
            raise InvalidValue(field, value, f"{field} must be a string when journaling (got {value!r})")

    # --- Mutations ---

    def create_artifact(
        self,
        artifact_type: ArtifactType | str,
        parent_id: int,
        author: str,
        content_ref: str,
    ) -> Artifact:
        with self._guard():
            self._check_persistable("author", author)
            artifact = self.store.create_artifact(artifact_type, parent_id, author, content_ref)
            self._commit(
                ArtifactCreated(
                    sequence=artifact.created_at,
                    id=artifact.id,
                    parent_id=artifact.parent_id,
                    author=artifact.author,
                    artifact_type=artifact.artifact_type.value,
                    content_ref=artifact.content_ref,
                )
            )
            logger.info(
                "Created %s %d (parent=%d, author=%s)",
                artifact.artifact_type.value,
                artifact.id,
                artifact.parent_id,
                artifact.author,
            )
            return artifact

    def post(self, author: str, content_ref: str) -> Artifact:
        """Create a root artifact."""
        return self.create_artifact(ArtifactType.ROOT_CONTENT, 0, author, content_ref)

    def reply(self, parent_id: int, author: str, content_ref: str) -> Artifact:
        """Create a comment under `parent_id`."""
        return self.create_artifact(ArtifactType.COMMENT, parent_id, author, content_ref)

    def vote(self, artifact_id: int, voter: Hashable, value: int) -> Voted | None:
        """Cast, change or withdraw (value 0) a vote. Returns None for a no-op."""
        with self._guard():
            self._check_persistable("voter", voter)
            event = self.votes.vote(artifact_id, voter, value)
            if event is None:
                logger.debug("Vote unchanged: artifact=%s voter=%s value=%s", artifact_id, voter, value)
                return None
            self._commit(event)
            logger.info(
                "Vote on %d by %s: %+d -> %+d",
                event.artifact_id,
                event.voter,
                event.old_value,
                event.new_value,
            )
            return event

    def replay(self, events: Iterable[Event]) -> int:
        """
        Re-apply recorded events through the normal mutation path.

        Nothing is journaled and no observer is notified. Raises JournalError
        when the rebuilt state diverges from what the events recorded.
        """
        with self._guard():
            return self._replay(events)

    def _replay(self, events: Iterable[Event]) -> int:
        count = 0
        self._replaying = True
        try:
            for event in events:
                self._replay_one(event)
                count += 1
        finally:
            self._replaying = False
        logger.debug("Replayed %d events (sequence=%d)", count, self.clock.now())
        return count

    def _replay_one(self, event: Event) -> None:
        if isinstance(event, ArtifactCreated):
            try:
                artifact = self.create_artifact(
                    event.artifact_type, event.parent_id, event.author, event.content_ref
                )
            except TallyError as e:
                raise JournalError(f"cannot replay artifact {event.id}: {e}") from e
            if artifact.id != event.id or artifact.created_at != event.sequence:
                raise JournalError(
                    f"replay minted artifact {artifact.id} at sequence {artifact.created_at}, "
                    f"journal recorded {event.id} at {event.sequence}"
                )
        elif isinstance(event, Voted):
            try:
                result = self.vote(event.artifact_id, event.voter, event.new_value)
            except TallyError as e:
                raise JournalError(f"cannot replay vote at sequence {event.sequence}: {e}") from e
            if result is None or result.old_value != event.old_value or result.sequence != event.sequence:
                raise JournalError(f"vote at sequence {event.sequence} does not match replayed state")
        else:
            raise JournalError(f"unknown event: {event!r}")

    # --- Reads ---

    @property
    def sequence(self) -> int:
        with self._guard():
            return self.clock.now()

    def get_artifact(self, artifact_id: int) -> Artifact:
        with self._guard():
            return self.store.get_artifact(artifact_id)

    def get_child_ids(self, artifact_id: int) -> tuple[int, ...]:
        with self._guard():
            return self.store.get_child_ids(artifact_id)

    def get_artifact_score(self, artifact_id: int) -> int:
        with self._guard():
            return self.votes.get_artifact_score(artifact_id)

    def get_author_reputation(self, author: str) -> int:
        with self._guard():
            return self.votes.get_author_reputation(author)

    def get_vote(self, artifact_id: int, voter: Hashable) -> int:
        with self._guard():
            return self.votes.get_vote(artifact_id, voter)

    def votes_for(self, artifact_id: int) -> dict[Hashable, int]:
        with self._guard():
            return self.votes.votes_for(artifact_id)

    def thread(self, root_id: int) -> list[tuple[int, Artifact]]:
        """Depth-first (depth, artifact) listing of a thread."""
        with self._guard():
            return list(self.store.iter_thread(root_id))

    def ancestors(self, artifact_id: int) -> list[int]:
        with self._guard():
            return self.store.ancestors(artifact_id)

    def artifacts(self) -> list[Artifact]:
        with self._guard():
            return list(self.store.iter_artifacts())

    def leaderboard(self, limit: int | None = None) -> list[tuple[str, int]]:
        with self._guard():
            return self.reputation.leaderboard(limit)

    # --- Summary methods ---

    def summary(self, *, top: int = 10) -> dict:
        """Totals plus top artifacts by score and top authors by reputation."""
        with self._guard():
            artifacts = list(self.store.iter_artifacts())
            roots = sum(1 for a in artifacts if a.is_root)
            return {
                "sequence": self.clock.now(),
                "total_artifacts": len(artifacts),
                "roots": roots,
                "comments": len(artifacts) - roots,
                "voters": len(self.votes.voters()),
                "authors": len({a.author for a in artifacts}),
                "top_artifacts": self.votes.top_artifacts(top),
                "top_authors": self.reputation.leaderboard(top),
            }

    def format_summary(self) -> str:
        """Format summary as markdown."""
        s = self.summary()
        if s["total_artifacts"] == 0:
            return "No artifacts recorded."

        lines = [
            "# Tally Summary",
            "",
            f"- Sequence: {s['sequence']}",
            f"- Artifacts: {s['total_artifacts']} ({s['roots']} roots, {s['comments']} comments)",
            f"- Authors: {s['authors']}",
            f"- Voters: {s['voters']}",
        ]
        if s["top_artifacts"]:
            lines.extend([
                "",
                "## Top Artifacts",
                "",
                "| Artifact | Score |",
                "|---------:|------:|",
            ])
            for artifact_id, score in s["top_artifacts"]:
                lines.append(f"| {artifact_id} | {score:+d} |")
        if s["top_authors"]:
            lines.extend([
                "",
                "## Reputation",
                "",
                "| Author | Reputation |",
                "|--------|-----------:|",
            ])
            for author, rep in s["top_authors"]:
                lines.append(f"| {author} | {rep:+d} |")

        return "\n".join(lines) + "\n"
