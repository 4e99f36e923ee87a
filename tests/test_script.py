from __future__ import annotations

from pathlib import Path

import pytest

from tally.errors import InvalidValue, NotFound
from tally.events import VOTE_CAST
from tally.ledger import Tally
from tally.script import apply_script, load_script, parse_operations

SCRIPT = """\
operations:
  - {op: post, author: A, content_ref: bafy-root}
  - {op: reply, parent_id: 1, author: B, content_ref: bafy-reply}
  - {op: create, artifact_type: comment, parent_id: 2, author: C, content_ref: bafy-nested}
  - {op: vote, artifact_id: 1, voter: B, value: 1}
  - {op: vote, artifact_id: 1, voter: B, value: -1}
  - {op: vote, artifact_id: 1, voter: C, value: 1}
  - {op: vote, artifact_id: 1, voter: B, value: -1}
  - {op: vote, artifact_id: 1, voter: A, value: 1}
"""


def test_script_replays_reference_scenario(tmp_path: Path, tally: Tally) -> None:
    path = tmp_path / "seed.yml"
    path.write_text(SCRIPT, encoding="utf-8")

    operations = load_script(path)
    events = apply_script(tally, operations)

    assert len(operations) == 8
    assert len(events) == 7  # repeated -1 is a no-op
    assert sum(1 for e in events if e.event_type == VOTE_CAST) == 4
    assert tally.get_child_ids(1) == (2,)
    assert tally.get_child_ids(2) == (3,)
    assert tally.get_artifact_score(1) == 1
    assert tally.get_author_reputation("A") == 0


def test_apply_stops_at_first_failure(tally: Tally) -> None:
    operations = parse_operations({
        "operations": [
            {"op": "post", "author": "A", "content_ref": "x"},
            {"op": "reply", "parent_id": 9, "author": "B", "content_ref": "y"},
            {"op": "post", "author": "C", "content_ref": "z"},
        ]
    })

    with pytest.raises(NotFound):
        apply_script(tally, operations)
    assert [a.id for a in tally.artifacts()] == [1]


@pytest.mark.parametrize(
    "data,fragment",
    [
        (None, "operations"),
        ({"operations": "post"}, "operations"),
        ({"operations": [["post"]]}, "operations[0]"),
        ({"operations": [{"op": "delete"}]}, "unknown op"),
        ({"operations": [{"op": "vote", "artifact_id": 1, "voter": "B"}]}, "missing value"),
    ],
)
def test_malformed_scripts_are_rejected(data, fragment: str) -> None:
    with pytest.raises(InvalidValue, match=fragment.replace("[", r"\[").replace("]", r"\]")):
        parse_operations(data)
