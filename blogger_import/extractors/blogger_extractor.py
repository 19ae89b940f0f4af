"""
Streaming parser for Blogger Atom export files.

The export is a single Atom ``<feed>`` holding one ``<entry>`` per post,
page, comment, template and settings record.  Files can hold tens of
thousands of entries, so the document is read with
:func:`xml.etree.ElementTree.iterparse`: each ``<entry>`` sub-tree is
materialized, turned into a typed model and then cleared, keeping memory
bounded by the size of a single entry.

A malformed entry (bad date, missing id, unsupported kind) is logged and
skipped; only a missing file or a document that is not XML aborts the run.
"""

from __future__ import annotations

import logging
import os
import xml.etree.ElementTree as ET
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from blogger_import.models import (
    Author,
    CommentAuthor,
    CommentEntry,
    ContentEntry,
    EntryKind,
    EntryStatus,
)
from blogger_import.models.export import ExportData, IssueKind, ParseIssue, ParseResult, ParseStats
from blogger_import.utils.dates import parse_timestamp
from blogger_import.utils.encoding import fix_encoding
from blogger_import.utils.tags import dedupe_labels

from .comment_threads import resolve_comment_threads
from .media_urls import MEDIA_DOMAINS, MEDIA_EXTENSIONS, extract_media_urls

logger = logging.getLogger(__name__)

ATOM_NS = "http://www.w3.org/2005/Atom"
THREAD_NS = "http://purl.org/syndication/thread/1.0"
APP_NS = "http://purl.org/atom/app#"

KIND_SCHEME = "http://schemas.google.com/g/2005#kind"
KIND_TERM_PREFIX = "http://schemas.google.com/blogger/2008/kind#"

COMMENT = "comment"
# Blogger kinds that carry no content worth importing
NON_CONTENT_KINDS = ("settings", "template")


class ExportParseError(ValueError):
    """The export as a whole cannot be read."""


class EntryError(ValueError):
    """A single entry cannot be turned into a model; the run goes on."""

    def __init__(self, entry_id: str, reason: str) -> None:
        super().__init__(f"{entry_id or '<no id>'}: {reason}")
        self.entry_id = entry_id
        self.reason = reason


def _q(ns: str, tag: str) -> str:
    return f"{{{ns}}}{tag}"


def _text(parent: Optional[ET.Element], ns: str, tag: str) -> str:
    if parent is None:
        return ""
    el = parent.find(_q(ns, tag))
    return (el.text or "") if el is not None else ""


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _categories(entry: ET.Element) -> Iterator[Tuple[str, str]]:
    for cat in entry.findall(_q(ATOM_NS, "category")):
        yield cat.get("scheme", ""), cat.get("term", "")


def _kind_term(entry: ET.Element) -> str:
    for scheme, term in _categories(entry):
        if scheme == KIND_SCHEME:
            return term
    return ""


def classify_entry(entry: ET.Element) -> str:
    """Return ``"comment"``, ``"post"`` or ``"page"`` for an entry.

    A ``thr:in-reply-to`` element always wins over category terms.  Blog
    settings and template records come back as ``"settings"`` and
    ``"template"`` so the caller can pass over them.

    Raises:
        EntryError: For comment-kind entries that lack their reply reference.
    """
    if entry.find(_q(THREAD_NS, "in-reply-to")) is not None:
        return COMMENT

    kind = _kind_term(entry)
    suffix = kind.rsplit("#", 1)[-1] if "#" in kind else ""
    if "#page" in kind:
        return EntryKind.PAGE.value
    if suffix in NON_CONTENT_KINDS:
        return suffix
    if suffix == COMMENT:
        raise EntryError(_text(entry, ATOM_NS, "id"), "comment entry without in-reply-to reference")
    return EntryKind.POST.value


def _is_reserved_term(scheme: str, term: str) -> bool:
    return scheme == KIND_SCHEME or term.startswith(KIND_TERM_PREFIX)


def extract_labels_and_status(entry: ET.Element) -> Tuple[List[str], EntryStatus]:
    """Split category terms into labels and the draft marker."""
    labels: List[str] = []
    status = EntryStatus.PUBLISHED
    for scheme, term in _categories(entry):
        if term == KIND_TERM_PREFIX + "draft":
            status = EntryStatus.DRAFT
        elif not _is_reserved_term(scheme, term):
            labels.append(term)

    control = entry.find(_q(APP_NS, "control"))
    if control is not None and _text(control, APP_NS, "draft").strip().lower() == "yes":
        status = EntryStatus.DRAFT
    return dedupe_labels(labels), status


def _timestamps(entry: ET.Element, entry_id: str):
    published_raw = _text(entry, ATOM_NS, "published")
    updated_raw = _text(entry, ATOM_NS, "updated") or published_raw
    try:
        published = parse_timestamp(published_raw)
        updated = parse_timestamp(updated_raw)
    except ValueError as e:
        raise EntryError(entry_id, str(e)) from e
    return published, updated


def _permalink(entry: ET.Element) -> str:
    for link in entry.findall(_q(ATOM_NS, "link")):
        if link.get("rel") == "alternate":
            return link.get("href", "")
    return ""


def parse_content_entry(
    entry: ET.Element,
    kind: str,
    *,
    media_domains: Sequence[str] = MEDIA_DOMAINS,
    media_extensions: Sequence[str] = MEDIA_EXTENSIONS,
) -> ContentEntry:
    """Build a :class:`ContentEntry` from a post or page ``<entry>``.

    Raises:
        EntryError: If the id is missing or a timestamp cannot be parsed.
    """
    entry_id = _text(entry, ATOM_NS, "id").strip()
    if not entry_id:
        raise EntryError("", "entry has no id")
    published, updated = _timestamps(entry, entry_id)
    labels, status = extract_labels_and_status(entry)
    content = _text(entry, ATOM_NS, "content")
    author_el = entry.find(_q(ATOM_NS, "author"))

    try:
        return ContentEntry(
            id=entry_id,
            kind=EntryKind(kind),
            title=fix_encoding(_text(entry, ATOM_NS, "title")),
            raw_content=content,
            permalink=_permalink(entry),
            published_at=published,
            updated_at=updated,
            author=Author(
                name=fix_encoding(_text(author_el, ATOM_NS, "name")),
                email=_text(author_el, ATOM_NS, "email"),
            ),
            status=status,
            tags=labels,
            media_urls=extract_media_urls(
                content, domains=media_domains, extensions=media_extensions
            ),
        )
    except ValidationError as e:
        raise EntryError(entry_id, f"invalid entry fields: {e.error_count()} error(s)") from e


def parse_comment_entry(entry: ET.Element) -> CommentEntry:
    """Build a :class:`CommentEntry` from a comment ``<entry>``.

    ``target_ref`` keeps the raw ``in-reply-to`` ref; what it points at is
    only known once every entry has been read.
    """
    entry_id = _text(entry, ATOM_NS, "id").strip()
    if not entry_id:
        raise EntryError("", "entry has no id")
    reply_to = entry.find(_q(THREAD_NS, "in-reply-to"))
    target_ref = (reply_to.get("ref", "") if reply_to is not None else "").strip()
    if not target_ref:
        raise EntryError(entry_id, "in-reply-to has no ref")
    published, updated = _timestamps(entry, entry_id)

    author_el = entry.find(_q(ATOM_NS, "author"))
    author_url = ""
    if author_el is not None:
        for child in author_el:
            if _local_name(child.tag) == "uri":
                author_url = (child.text or "").strip()
                break

    try:
        return CommentEntry(
            id=entry_id,
            content=fix_encoding(_text(entry, ATOM_NS, "content")),
            author=CommentAuthor(
                name=fix_encoding(_text(author_el, ATOM_NS, "name")),
                email=_text(author_el, ATOM_NS, "email"),
                url=author_url,
            ),
            published_at=published,
            updated_at=updated,
            target_ref=target_ref,
        )
    except ValidationError as e:
        raise EntryError(entry_id, f"invalid comment fields: {e.error_count()} error(s)") from e


def iter_entries(file_path: str) -> Iterator[ET.Element]:
    """Yield each ``<entry>`` element of the export, one at a time.

    The yielded element is cleared as soon as the caller asks for the next
    one, so callers must not keep references to it.

    Raises:
        ExportParseError: If the file is missing, unreadable or not XML.
    """
    if not os.path.exists(file_path):
        raise ExportParseError(f"Export file not found: {file_path}")
    if not os.access(file_path, os.R_OK):
        raise ExportParseError(f"Export file is not readable: {file_path}")

    entry_tag = _q(ATOM_NS, "entry")
    root: Optional[ET.Element] = None
    try:
        for event, elem in ET.iterparse(file_path, events=("start", "end")):
            if root is None:
                root = elem
                if _local_name(root.tag) != "feed":
                    raise ExportParseError(
                        f"Not a Blogger export: root element is <{_local_name(root.tag)}>"
                    )
                continue
            if event == "end" and elem.tag == entry_tag:
                yield elem
                elem.clear()
                # Drop processed entries from the feed so the tree stays small
                root.clear()
    except ET.ParseError as e:
        raise ExportParseError(f"Malformed XML in {file_path}: {e}") from e
    except OSError as e:
        raise ExportParseError(f"Cannot read export file {file_path}: {e}") from e


def _merge_unique(target: List[str], seen: set, values: Iterable[str]) -> None:
    for value in values:
        if value not in seen:
            seen.add(value)
            target.append(value)


def parse_blogger_export(
    file_path: str,
    *,
    media_domains: Sequence[str] = MEDIA_DOMAINS,
    media_extensions: Sequence[str] = MEDIA_EXTENSIONS,
) -> ParseResult:
    """Parse a Blogger export into posts, pages, comments, labels and media.

    Args:
        file_path: Path to the Atom export (``blog-MM-DD-YYYY.xml``).
        media_domains: Hosts whose URLs always count as media.
        media_extensions: File extensions that mark a URL as media.

    Returns:
        A :class:`ParseResult` holding the data, counters and the list of
        per-entry issues.  Comments come back with ``post_id``/``parent_id``
        resolved; those that cannot be attached are listed separately as
        orphans.

    Raises:
        ExportParseError: If the file is missing, unreadable or not XML.
    """
    posts: List[ContentEntry] = []
    pages: List[ContentEntry] = []
    raw_comments: List[CommentEntry] = []
    tags: List[str] = []
    media_urls: List[str] = []
    issues: List[ParseIssue] = []
    seen_ids: Dict[str, str] = {}
    seen_tags: set = set()
    seen_media: set = set()

    logger.info("Parsing Blogger export %s", file_path)
    for entry in iter_entries(file_path):
        try:
            kind = classify_entry(entry)
            if kind in NON_CONTENT_KINDS:
                logger.debug("Ignoring %s record %s", kind, _text(entry, ATOM_NS, "id"))
                continue
            if kind == COMMENT:
                item = parse_comment_entry(entry)
            else:
                item = parse_content_entry(
                    entry, kind, media_domains=media_domains, media_extensions=media_extensions
                )
            if item.id in seen_ids:
                raise EntryError(item.id, f"duplicate entry id (first seen as {seen_ids[item.id]})")
        except EntryError as e:
            logger.warning("Skipping entry %s: %s", e.entry_id or "<no id>", e.reason)
            issues.append(ParseIssue(entry_id=e.entry_id, reason=e.reason))
            continue

        seen_ids[item.id] = kind
        if isinstance(item, CommentEntry):
            raw_comments.append(item)
            continue
        (pages if item.kind is EntryKind.PAGE else posts).append(item)
        _merge_unique(tags, seen_tags, item.tags)
        _merge_unique(media_urls, seen_media, item.media_urls)

    threads = resolve_comment_threads(raw_comments, [e.id for e in posts + pages])
    for orphan in threads.orphans:
        issues.append(
            ParseIssue(entry_id=orphan.comment.id, reason=orphan.reason, kind=IssueKind.ORPHANED_COMMENT)
        )

    stats = ParseStats(
        post_count=len(posts),
        page_count=len(pages),
        comment_count=len(threads.comments),
        tag_count=len(tags),
        media_count=len(media_urls),
        orphan_count=len(threads.orphans),
        skipped_count=sum(1 for i in issues if i.kind is IssueKind.ENTRY_SKIPPED),
    )
    logger.info(
        "Parsed %d posts, %d pages, %d comments (%d orphaned), %d labels, %d media URLs; %d entries skipped",
        stats.post_count,
        stats.page_count,
        stats.comment_count,
        stats.orphan_count,
        stats.tag_count,
        stats.media_count,
        stats.skipped_count,
    )
    return ParseResult(
        data=ExportData(
            posts=posts,
            pages=pages,
            comments=threads.comments,
            tags=tags,
            media_urls=media_urls,
            orphaned_comments=[o.comment for o in threads.orphans],
        ),
        stats=stats,
        issues=issues,
    )
