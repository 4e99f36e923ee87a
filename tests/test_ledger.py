from __future__ import annotations

import logging
import threading

import pytest

from tally.artifacts import ArtifactType
from tally.errors import InvalidValue, NotFound
from tally.events import ARTIFACT_CREATED, VOTE_CAST, ArtifactCreated, Voted
from tally.ledger import Tally


def test_empty_ledger_reads(tally: Tally) -> None:
    with pytest.raises(NotFound):
        tally.get_artifact(999)
    with pytest.raises(NotFound):
        tally.get_child_ids(999)
    assert tally.get_artifact_score(999) == 0
    assert tally.get_author_reputation("anyone") == 0
    assert tally.sequence == 0


def test_events_emitted_in_mutation_order(tally: Tally) -> None:
    seen = []
    tally.subscribe(seen.append)

    root = tally.post("A", "cid-root")
    reply = tally.reply(root.id, "B", "cid-reply")
    tally.vote(root.id, "B", 1)
    tally.vote(root.id, "B", 1)  # no-op, no event

    assert [e.event_type for e in seen] == [ARTIFACT_CREATED, ARTIFACT_CREATED, VOTE_CAST]
    assert [e.sequence for e in seen] == [1, 2, 3]

    created = seen[1]
    assert isinstance(created, ArtifactCreated)
    assert (created.id, created.parent_id, created.author, created.artifact_type, created.content_ref) == (
        reply.id,
        root.id,
        "B",
        "comment",
        "cid-reply",
    )

    voted = seen[2]
    assert isinstance(voted, Voted)
    assert (voted.artifact_id, voted.voter, voted.old_value, voted.new_value) == (1, "B", 0, 1)


def test_failed_mutations_emit_nothing_and_change_nothing(tally: Tally) -> None:
    seen = []
    tally.subscribe(seen.append)
    tally.post("A", "cid")
    tally.vote(1, "B", 1)

    with pytest.raises(NotFound):
        tally.reply(999, "B", "cid")
    with pytest.raises(NotFound):
        tally.vote(999, "B", 1)
    with pytest.raises(InvalidValue):
        tally.vote(1, "B", 3)

    assert len(seen) == 2
    assert tally.sequence == 2
    assert tally.get_artifact_score(1) == 1
    assert tally.get_author_reputation("A") == 1
    assert tally.post("A", "cid").id == 2


def test_unsubscribe_stops_notifications(tally: Tally) -> None:
    seen = []
    unsubscribe = tally.subscribe(seen.append)
    tally.post("A", "cid")
    unsubscribe()
    tally.post("A", "cid")
    unsubscribe()  # second call is harmless

    assert len(seen) == 1


def test_failing_observer_is_logged_and_does_not_undo(tally: Tally, caplog) -> None:
    def broken(_event) -> None:
        raise RuntimeError("indexer down")

    seen = []
    tally.subscribe(broken)
    tally.subscribe(seen.append)

    with caplog.at_level(logging.ERROR, logger="tally.ledger"):
        artifact = tally.post("A", "cid")

    assert tally.get_artifact(artifact.id).author == "A"
    assert len(seen) == 1
    assert "Observer" in caplog.text


def test_observer_can_read_state_during_notification(tally: Tally) -> None:
    scores = []
    tally.subscribe(lambda e: scores.append(tally.get_artifact_score(1)) if e.event_type == VOTE_CAST else None)
    tally.post("A", "cid")
    tally.vote(1, "B", 1)
    tally.vote(1, "C", 1)

    assert scores == [1, 2]


def test_mutations_are_logged(tally: Tally, caplog) -> None:
    with caplog.at_level(logging.DEBUG, logger="tally.ledger"):
        tally.post("A", "cid")
        tally.vote(1, "B", 1)
        tally.vote(1, "B", 1)

    assert "Created root_content 1" in caplog.text
    assert "Vote on 1 by B" in caplog.text
    assert "Vote unchanged" in caplog.text


def test_concurrent_replies_keep_child_index_consistent(tally: Tally) -> None:
    root = tally.post("A", "cid")
    n_threads, per_thread = 8, 50

    def worker(idx: int) -> None:
        for i in range(per_thread):
            tally.reply(root.id, f"user-{idx}", f"cid-{idx}-{i}")

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(n_threads)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    children = tally.get_child_ids(root.id)
    total = n_threads * per_thread
    assert len(children) == total
    assert list(children) == sorted(children)
    assert set(children) == set(range(2, total + 2))
    assert tally.sequence == total + 1


def test_concurrent_votes_conserve_score(tally: Tally) -> None:
    tally.post("A", "cid")

    def worker(voter: str) -> None:
        for value in (1, -1, 0, 1, 1, -1, 1):
            tally.vote(1, voter, value)

    voters = [f"v{i}" for i in range(16)]
    threads = [threading.Thread(target=worker, args=(v,)) for v in voters]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert tally.get_artifact_score(1) == len(voters)
    assert tally.get_author_reputation("A") == len(voters)
    assert sum(tally.votes_for(1).values()) == tally.get_artifact_score(1)


def test_thread_and_ancestors(tally: Tally) -> None:
    tally.post("A", "root")  # 1
    tally.reply(1, "B", "r1")  # 2
    tally.reply(2, "C", "r2")  # 3
    tally.create_artifact(ArtifactType.COMMENT, 1, "D", "r3")  # 4

    assert [(d, a.id) for d, a in tally.thread(1)] == [(0, 1), (1, 2), (2, 3), (1, 4)]
    assert tally.ancestors(3) == [2, 1]
    assert [a.id for a in tally.artifacts()] == [1, 2, 3, 4]


def test_summary(tally: Tally) -> None:
    assert tally.format_summary() == "No artifacts recorded."

    tally.post("A", "root")
    tally.reply(1, "B", "reply")
    tally.vote(1, "B", 1)
    tally.vote(1, "C", 1)
    tally.vote(2, "A", -1)
    tally.vote(2, "B", 1)  # self-vote

    s = tally.summary()
    assert s["total_artifacts"] == 2
    assert s["roots"] == 1
    assert s["comments"] == 1
    assert s["authors"] == 2
    assert s["voters"] == 3
    assert s["sequence"] == 6
    assert s["top_artifacts"] == [(1, 2), (2, 0)]
    assert s["top_authors"] == [("A", 2), ("B", -1)]

    text = tally.format_summary()
    assert "# Tally Summary" in text
    assert "| A | +2 |" in text
    assert "| B | -1 |" in text


def test_votes_update_the_exposed_reputation_table(tally: Tally) -> None:
    assert tally.votes.reputation is tally.reputation
    assert tally.store.clock is tally.clock

    tally.post("A", "cid")
    tally.vote(1, "B", 1)
    tally.vote(1, "C", 1)

    assert tally.leaderboard() == [("A", 2)]
    assert tally.summary()["top_authors"] == [("A", 2)]
    assert "| A | +2 |" in tally.format_summary()


def test_withdrawn_voters_are_not_counted(tally: Tally) -> None:
    tally.post("A", "cid")
    tally.vote(1, "B", 1)
    tally.vote(1, "C", -1)
    tally.vote(1, "C", 0)

    assert tally.summary()["voters"] == 1


def test_bool_ids_do_not_alias_artifact_one(tally: Tally) -> None:
    tally.post("A", "cid")
    tally.vote(1, "B", 1)

    with pytest.raises(NotFound):
        tally.get_artifact(True)
    with pytest.raises(NotFound):
        tally.vote(True, "C", 1)
    assert tally.get_artifact_score(True) == 0
    assert tally.get_artifact_score(1) == 1
    assert tally.sequence == 2


def test_in_memory_ledger_accepts_any_hashable_voter(tally: Tally) -> None:
    tally.post("A", "cid")
    assert tally.vote(1, frozenset({"k"}), 1) is not None
    assert tally.get_artifact_score(1) == 1
