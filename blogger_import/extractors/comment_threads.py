"""
Reconstruction of comment threads from flat ``in-reply-to`` references.

Blogger stores every comment with a single ``thr:in-reply-to`` ref that names
either the post it belongs to or, for replies, another comment.  After the
whole export has been read, :func:`resolve_comment_threads` indexes all
comments by id and resolves each one to a ``(post_id, parent_id)`` pair.
Reply chains of any depth are resolved by walking up the chain; a visited set
stops the walk on cycles, which are reported instead of looping forever.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, NamedTuple, Optional, Set

from blogger_import.models import CommentEntry

logger = logging.getLogger(__name__)


class Orphan(NamedTuple):
    comment: CommentEntry
    reason: str


class ThreadResolution(NamedTuple):
    comments: List[CommentEntry]
    orphans: List[Orphan]


def resolve_comment_threads(
    comments: Iterable[CommentEntry],
    content_ids: Iterable[str],
) -> ThreadResolution:
    """Resolve ``post_id`` and ``parent_id`` for every comment.

    Args:
        comments: Parsed comments in file order, with only ``target_ref`` set.
        content_ids: Ids of all posts and pages of the same export.

    Returns:
        The resolved comments (file order kept) and the orphans, i.e.
        comments whose chain ends at an unknown id or loops.
    """
    comments = list(comments)
    known_content: Set[str] = set(content_ids)
    by_id: Dict[str, CommentEntry] = {c.id: c for c in comments}

    # comment id -> resolved post id, or None once known to be unresolvable
    memo: Dict[str, Optional[str]] = {}
    reasons: Dict[str, str] = {}

    def resolve(start: CommentEntry) -> Optional[str]:
        chain: List[str] = []
        visited: Set[str] = set()
        current: Optional[CommentEntry] = start
        post_id: Optional[str] = None
        reason = ""

        while current is not None:
            if current.id in memo:
                post_id = memo[current.id]
                reason = reasons.get(current.id, "")
                break
            if current.id in visited:
                reason = f"reply chain loops back to comment {current.id}"
                break
            visited.add(current.id)
            chain.append(current.id)

            target = current.target_ref
            if target in by_id:
                current = by_id[target]
                continue
            if target in known_content:
                post_id = target
            else:
                reason = f"reply target {target} not found in export"
            current = None

        for cid in chain:
            memo[cid] = post_id
            if post_id is None:
                reasons[cid] = reason
        return post_id

    resolved: List[CommentEntry] = []
    orphans: List[Orphan] = []
    for comment in comments:
        post_id = resolve(comment)
        if post_id is None:
            reason = reasons.get(comment.id, "unresolved reply target")
            logger.warning("Orphaned comment %s: %s", comment.id, reason)
            orphans.append(Orphan(comment, reason))
            continue
        parent_id = comment.target_ref if comment.target_ref in by_id else None
        resolved.append(comment.resolved(post_id, parent_id))

    return ThreadResolution(resolved, orphans)
