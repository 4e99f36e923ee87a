"""Artifact CLI commands."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from ..config import TallyConfig
from ..errors import TallyError
from ..events import ARTIFACT_CREATED, Event
from ..journal import EventJournal
from ..ledger import Tally
from ..script import apply_script, load_script


def _open(config: TallyConfig) -> Tally:
    return Tally.from_config(config)


def run_create(
    config: TallyConfig,
    artifact_type: str,
    parent_id: int,
    author: str,
    content_ref: str,
) -> int:
    err = Console(stderr=True)
    try:
        tally = _open(config)
        artifact = tally.create_artifact(artifact_type, parent_id, author, content_ref)
    except TallyError as e:
        err.print(str(e), style="bold red")
        return 1
    print(artifact.id)
    err.print(f"created {artifact.artifact_type.value} {artifact.id}", style="green")
    return 0


def run_show(config: TallyConfig, artifact_id: int, *, output_json: bool = False) -> int:
    err = Console(stderr=True)
    try:
        tally = _open(config)
        artifact = tally.get_artifact(artifact_id)
    except TallyError as e:
        err.print(str(e), style="bold red")
        return 1

    score = tally.get_artifact_score(artifact_id)
    if output_json:
        data = artifact.to_dict()
        data["score"] = score
        print(json.dumps(data, indent=2, sort_keys=True))
        return 0

    console = Console()
    console.print(f"artifact: {artifact.id}  type: {artifact.artifact_type.value}")
    console.print(f"author: {artifact.author}  created_at: {artifact.created_at}")
    if not artifact.is_root:
        console.print(f"parent: {artifact.parent_id}")
    console.print(f"content_ref: {artifact.content_ref}")
    console.print(f"score: {score:+d}")
    children = ", ".join(str(c) for c in artifact.child_ids) or "-"
    console.print(f"children: {children}", style="dim")
    return 0


def run_thread(config: TallyConfig, root_id: int) -> int:
    """Render a thread as a tree with per-artifact scores."""
    err = Console(stderr=True)
    try:
        tally = _open(config)
        listing = tally.thread(root_id)
    except TallyError as e:
        err.print(str(e), style="bold red")
        return 1

    nodes: dict[int, Tree] = {}
    root: Tree | None = None
    for _depth, artifact in listing:
        label = (
            f"[cyan]{artifact.id}[/cyan] {artifact.author} "
            f"[dim]{artifact.content_ref}[/dim] ({tally.get_artifact_score(artifact.id):+d})"
        )
        if root is None:
            root = Tree(label)
            nodes[artifact.id] = root
        else:
            nodes[artifact.id] = nodes[artifact.parent_id].add(label)

    Console().print(root)
    return 0


def _format_event_details(event: Event) -> str:
    if event.event_type == ARTIFACT_CREATED:
        parent = f" under {event.parent_id}" if event.parent_id else ""
        return f"{event.artifact_type} {event.id} by {event.author}{parent}"
    return f"{event.voter} on {event.artifact_id}: {event.old_value:+d} -> {event.new_value:+d}"


def run_log(config: TallyConfig, *, limit: int | None = 20, output_json: bool = False) -> int:
    """Show the most recent journal events."""
    err = Console(stderr=True)
    journal = EventJournal.in_dir(config.data_dir, config.journal_file)
    try:
        events = journal.read_all()
    except TallyError as e:
        err.print(str(e), style="bold red")
        return 1
    if limit and limit > 0:
        events = events[-limit:]

    if output_json:
        print(json.dumps([e.to_dict() for e in events], indent=2))
        return 0

    console = Console()
    table = Table(title="Journal")
    table.add_column("Seq", justify="right", style="dim")
    table.add_column("Event Type", style="cyan")
    table.add_column("Details")
    for event in events:
        table.add_row(str(event.sequence), event.event_type, _format_event_details(event))
    console.print(table)
    console.print(f"\nEvents: {len(events)} shown, {journal.count()} total")
    return 0


def run_summary(config: TallyConfig) -> int:
    err = Console(stderr=True)
    try:
        tally = _open(config)
    except TallyError as e:
        err.print(str(e), style="bold red")
        return 1
    print(tally.format_summary(), end="")
    return 0


def run_import(config: TallyConfig, script_path: Path) -> int:
    """Apply a YAML operation script."""
    err = Console(stderr=True)
    try:
        operations = load_script(script_path)
        tally = _open(config)
        events = apply_script(tally, operations)
    except TallyError as e:
        err.print(str(e), style="bold red")
        return 1
    err.print(f"applied {len(operations)} operations ({len(events)} events)", style="green")
    return 0
