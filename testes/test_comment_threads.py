import os
import sys
from datetime import datetime, timezone

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from blogger_import.extractors.comment_threads import resolve_comment_threads
from blogger_import.models import CommentEntry

WHEN = datetime(2020, 1, 1, tzinfo=timezone.utc)


def comment(cid, target):
    return CommentEntry(id=cid, content=f"comment {cid}", published_at=WHEN, updated_at=WHEN, target_ref=target)


def test_reply_chain_resolves_to_post():
    # c3 -> c2 -> c1 -> P, listed out of order on purpose
    comments = [comment("c3", "c2"), comment("c1", "P"), comment("c2", "c1")]
    resolved, orphans = resolve_comment_threads(comments, ["P"])

    assert orphans == []
    by_id = {c.id: c for c in resolved}
    assert by_id["c1"].post_id == "P"
    assert by_id["c1"].parent_id is None
    assert by_id["c2"].post_id == "P"
    assert by_id["c2"].parent_id == "c1"
    assert by_id["c3"].post_id == "P"
    assert by_id["c3"].parent_id == "c2"
    assert by_id["c3"].is_reply


def test_file_order_is_kept():
    comments = [comment("b", "P"), comment("a", "P")]
    resolved, _ = resolve_comment_threads(comments, ["P"])
    assert [c.id for c in resolved] == ["b", "a"]


def test_unknown_target_becomes_orphan():
    comments = [comment("c1", "nowhere"), comment("c2", "c1"), comment("c3", "P")]
    resolved, orphans = resolve_comment_threads(comments, ["P"])

    assert [c.id for c in resolved] == ["c3"]
    assert [o.comment.id for o in orphans] == ["c1", "c2"]
    assert "nowhere" in orphans[0].reason


def test_cycles_terminate_and_are_orphaned():
    comments = [comment("a", "b"), comment("b", "a"), comment("self", "self"), comment("ok", "P")]
    resolved, orphans = resolve_comment_threads(comments, ["P"])

    assert [c.id for c in resolved] == ["ok"]
    assert {o.comment.id for o in orphans} == {"a", "b", "self"}
    assert all("loop" in o.reason for o in orphans)


def test_parent_chains_are_acyclic_and_end_in_known_post():
    comments = [comment("c1", "P"), comment("c2", "c1"), comment("c3", "c2"), comment("d1", "Q"), comment("d2", "d1")]
    resolved, _ = resolve_comment_threads(comments, ["P", "Q"])
    by_id = {c.id: c for c in resolved}

    for c in resolved:
        seen = set()
        current = c
        while current.parent_id is not None:
            assert current.id not in seen
            seen.add(current.id)
            current = by_id[current.parent_id]
        assert current.post_id in {"P", "Q"}
        assert current.target_ref == current.post_id


def test_input_comments_are_not_mutated():
    original = comment("c1", "P")
    resolved, _ = resolve_comment_threads([original], ["P"])
    assert original.post_id is None
    assert resolved[0].post_id == "P"
