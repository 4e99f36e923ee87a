"""
YAML operation scripts.

A script is an ordered list of mutations, applied through the normal
mutation path:

    operations:
      - {op: post, author: alice, content_ref: "bafy...01"}
      - {op: reply, parent_id: 1, author: bob, content_ref: "bafy...02"}
      - {op: create, artifact_type: comment, parent_id: 2, author: carol, content_ref: "x"}
      - {op: vote, artifact_id: 1, voter: bob, value: 1}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import InvalidValue
from .events import Event
from .ledger import Tally

OPS = ("post", "reply", "create", "vote")

_REQUIRED: dict[str, tuple[str, ...]] = {
    "post": ("author", "content_ref"),
    "reply": ("parent_id", "author", "content_ref"),
    "create": ("artifact_type", "parent_id", "author", "content_ref"),
    "vote": ("artifact_id", "voter", "value"),
}


@dataclass(frozen=True)
class Operation:
    op: str
    args: dict[str, Any] = field(default_factory=dict)


def parse_operations(data: Any) -> list[Operation]:
    """Validate the parsed YAML document and return typed operations."""
    if not isinstance(data, dict) or not isinstance(data.get("operations"), list):
        raise InvalidValue("script", data, "script must be a mapping with an 'operations' list")

    ops: list[Operation] = []
    for index, raw in enumerate(data["operations"]):
        if not isinstance(raw, dict):
            raise InvalidValue("operation", raw, f"operations[{index}] must be a mapping")
        op = str(raw.get("op", "")).strip().lower()
        if op not in OPS:
            raise InvalidValue("op", raw.get("op"), f"operations[{index}]: unknown op {raw.get('op')!r}")
        missing = [k for k in _REQUIRED[op] if k not in raw]
        if missing:
            raise InvalidValue(
                "operation", raw, f"operations[{index}] ({op}) is missing {', '.join(missing)}"
            )
        ops.append(Operation(op=op, args={k: raw[k] for k in _REQUIRED[op]}))
    return ops


def load_script(path: Path) -> list[Operation]:
    import yaml

    return parse_operations(yaml.safe_load(path.read_text(encoding="utf-8")))


def apply_script(tally: Tally, operations: list[Operation]) -> list[Event]:
    """Apply operations in order; returns the events they emitted (no-op votes emit none).

    Stops at the first failing operation, leaving earlier ones applied.
    """
    events: list[Event] = []
    unsubscribe = tally.subscribe(events.append)
    try:
        for operation in operations:
            a = operation.args
            if operation.op == "post":
                tally.post(str(a["author"]), str(a["content_ref"]))
            elif operation.op == "reply":
                tally.reply(a["parent_id"], str(a["author"]), str(a["content_ref"]))
            elif operation.op == "create":
                tally.create_artifact(
                    a["artifact_type"], a["parent_id"], str(a["author"]), str(a["content_ref"])
                )
            else:
                tally.vote(a["artifact_id"], str(a["voter"]), a["value"])
    finally:
        unsubscribe()
    return events
