"""Vote and reputation CLI commands."""

from __future__ import annotations

import json

from rich.console import Console
from rich.table import Table

from ..config import TallyConfig
from ..errors import InvalidValue, TallyError
from ..ledger import Tally

VOTE_ALIASES = {
    "up": 1,
    "+1": 1,
    "1": 1,
    "down": -1,
    "-1": -1,
    "clear": 0,
    "0": 0,
}


def parse_vote_value(text: str) -> int:
    value = VOTE_ALIASES.get(text.strip().lower())
    if value is None:
        raise InvalidValue("vote", text, f"Vote must be up, down, clear, 1, -1 or 0 (got {text!r})")
    return value


def run_vote(config: TallyConfig, artifact_id: int, voter: str, value: str) -> int:
    err = Console(stderr=True)
    try:
        vote_value = parse_vote_value(value)
        tally = Tally.from_config(config)
        event = tally.vote(artifact_id, voter, vote_value)
    except TallyError as e:
        err.print(str(e), style="bold red")
        return 1

    console = Console()
    if event is None:
        console.print(f"no change: {voter} already at {vote_value:+d} on {artifact_id}", style="dim")
    else:
        console.print(f"{voter} on {artifact_id}: {event.old_value:+d} -> {event.new_value:+d}")
    console.print(f"score: {tally.get_artifact_score(artifact_id):+d}", style="dim")
    return 0


def _open_or_report(config: TallyConfig) -> Tally | None:
    try:
        return Tally.from_config(config)
    except TallyError as e:
        Console(stderr=True).print(str(e), style="bold red")
        return None


def run_score(config: TallyConfig, artifact_id: int) -> int:
    tally = _open_or_report(config)
    if tally is None:
        return 1
    # Unknown artifacts score 0; this command does not fail on them.
    print(tally.get_artifact_score(artifact_id))
    return 0


def run_reputation(config: TallyConfig, author: str) -> int:
    tally = _open_or_report(config)
    if tally is None:
        return 1
    print(tally.get_author_reputation(author))
    return 0


def run_leaderboard(config: TallyConfig, *, limit: int = 10, output_json: bool = False) -> int:
    tally = _open_or_report(config)
    if tally is None:
        return 1
    ranked = tally.leaderboard(limit)

    if output_json:
        print(json.dumps([{"author": a, "reputation": r} for a, r in ranked], indent=2))
        return 0

    table = Table(title="Reputation")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Author", style="cyan")
    table.add_column("Reputation", justify="right")
    for rank, (author, rep) in enumerate(ranked, start=1):
        table.add_row(str(rank), author, f"{rep:+d}")
    Console().print(table)
    return 0
