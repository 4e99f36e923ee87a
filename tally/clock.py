"""Logical clock for ordering mutations."""

from __future__ import annotations


class LogicalClock:
    """
    Monotonic sequence counter.

    Each completed mutation advances the clock by one; artifacts record the
    sequence of the mutation that created them as `created_at`.
    """

    def __init__(self, start: int = 0):
        if start < 0:
            raise ValueError("start must be >= 0")
        self._value = start

    def now(self) -> int:
        """Sequence of the last completed mutation (0 before any)."""
        return self._value

    def advance(self) -> int:
        self._value += 1
        return self._value
