"""
Vote ledger: one current vote per (artifact, voter), plus derived scores.

A vote change first reverses the voter's prior contribution and then applies
the new one, which is the same as adding `new - old` to the score (and to the
author's reputation for non-self votes). Repeating the current value is a
no-op, so the operation is idempotent.
"""

from __future__ import annotations

from collections.abc import Hashable

from .artifacts import ArtifactStore
from .errors import InvalidValue, NotFound
from .events import Voted
from .reputation import ReputationAggregator

VOTE_VALUES = frozenset({-1, 0, 1})


def validate_vote_value(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value not in VOTE_VALUES:
        raise InvalidValue("vote", value, f"Vote must be one of -1, 0, 1 (got {value!r})")
    return value


class VoteLedger:
    """
    Owns the vote mapping and per-artifact scores.

    Holds a read-only reference to the ArtifactStore for existence checks and
    author attribution; reputation is updated in the same step as the vote.
    """

    def __init__(self, store: ArtifactStore, reputation: ReputationAggregator | None = None):
        self.store = store
        self.reputation = reputation if reputation is not None else ReputationAggregator()
        # Zero votes are kept once written so a repeated withdrawal is a no-op.
        self._votes: dict[tuple[int, Hashable], int] = {}
        self._scores: dict[int, int] = {}

    def vote(self, artifact_id: int, voter: Hashable, new_value: int) -> Voted | None:
        """
        Set `voter`'s vote on `artifact_id` to `new_value`.

        Returns the Voted event, or None when `new_value` equals the current vote.

        Raises:
            NotFound: artifact_id does not exist
            InvalidValue: new_value is not -1, 0 or 1
        """
        if not self.store.exists(artifact_id):
            raise NotFound(artifact_id)
        new_value = validate_vote_value(new_value)

        key = (artifact_id, voter)
        old_value = self._votes.get(key, 0)
        if new_value == old_value:
            return None

        delta = new_value - old_value
        self._votes[key] = new_value
        self._scores[artifact_id] = self._scores.get(artifact_id, 0) + delta
        self.reputation.apply(self.store.get_author(artifact_id), voter, delta)

        return Voted(
            sequence=self.store.clock.advance(),
            artifact_id=artifact_id,
            voter=voter,  # type: ignore[arg-type]
            old_value=old_value,
            new_value=new_value,
        )

    def get_vote(self, artifact_id: int, voter: Hashable) -> int:
        if isinstance(artifact_id, bool):
            return 0
        return self._votes.get((artifact_id, voter), 0)

    def get_artifact_score(self, artifact_id: int) -> int:
        # Unknown ids read as 0 rather than raising, unlike ArtifactStore reads.
        # True == 1 as a dict key, so bools are screened out first.
        if isinstance(artifact_id, bool):
            return 0
        return self._scores.get(artifact_id, 0)

    def get_author_reputation(self, author: str) -> int:
        return self.reputation.get(author)

    def votes_for(self, artifact_id: int) -> dict[Hashable, int]:
        """Current nonzero votes on an artifact, keyed by voter."""
        if isinstance(artifact_id, bool):
            return {}
        return {
            voter: value
            for (aid, voter), value in self._votes.items()
            if aid == artifact_id and value != 0
        }

    def voters(self) -> set[Hashable]:
        """Voters holding at least one nonzero vote."""
        return {voter for (_aid, voter), value in self._votes.items() if value != 0}

    def top_artifacts(self, limit: int | None = None) -> list[tuple[int, int]]:
        """(artifact_id, score) pairs by score descending, ties by id."""
        ranked = sorted(self._scores.items(), key=lambda x: (-x[1], x[0]))
        return ranked[:limit] if limit is not None else ranked
