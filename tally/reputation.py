"""
Author reputation derived from vote deltas.

Reputation is the live sum of all current non-self votes across every
artifact an author wrote. It is only mutated from inside the vote step of
VoteLedger, so it always moves together with the vote record and score.
"""

from __future__ import annotations

from collections.abc import Hashable


class ReputationAggregator:
    def __init__(self) -> None:
        self._totals: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._totals)

    def apply(self, author: str, voter: Hashable, delta: int) -> bool:
        """Add `delta` to `author`'s total unless the vote is a self-vote.

        Returns True when the total changed.
        """
        if delta == 0 or voter == author:
            return False
        self._totals[author] = self._totals.get(author, 0) + delta
        return True

    def get(self, author: str) -> int:
        """Reputation of `author`; 0 for an author nobody has voted on."""
        return self._totals.get(author, 0)

    def leaderboard(self, limit: int | None = None) -> list[tuple[str, int]]:
        """Authors by reputation (descending), ties broken by author key."""
        ranked = sorted(self._totals.items(), key=lambda x: (-x[1], x[0]))
        return ranked[:limit] if limit is not None else ranked
