import os
import sys
from datetime import datetime, timezone
from html import escape

# Ensure project root is on sys.path for imports when running tests directly
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest

from blogger_import.extractors.blogger_extractor import ExportParseError, parse_blogger_export
from blogger_import.models import EntryKind, EntryStatus
from blogger_import.models.export import IssueKind

KIND = "http://schemas.google.com/blogger/2008/kind#"


def entry(
    entry_id,
    kind="post",
    *,
    title="Title",
    content="",
    labels=(),
    published="2011-03-04T10:15:00.001-08:00",
    updated=None,
    reply_to=None,
    link=None,
    draft=False,
):
    parts = [f"<entry><id>{entry_id}</id>"]
    if published is not None:
        parts.append(f"<published>{published}</published>")
    if updated is not None:
        parts.append(f"<updated>{updated}</updated>")
    parts.append(f"<category scheme='http://schemas.google.com/g/2005#kind' term='{KIND}{kind}'/>")
    for label in labels:
        parts.append(f"<category scheme='http://www.blogger.com/atom/ns#' term='{escape(label)}'/>")
    parts.append(f"<title type='text'>{escape(title)}</title>")
    parts.append(f"<content type='html'>{escape(content)}</content>")
    if link:
        parts.append(f"<link rel='alternate' type='text/html' href='{link}' title='{escape(title)}'/>")
    parts.append("<author><name>Ana</name><email>ana@example.com</email><uri>https://ana.example.com</uri></author>")
    if draft:
        parts.append("<app:control><app:draft>yes</app:draft></app:control>")
    if reply_to:
        parts.append(f"<thr:in-reply-to ref='{reply_to}' type='text/html'/>")
    parts.append("</entry>")
    return "".join(parts)


def write_export(tmp_path, *entries):
    xml = (
        "<?xml version='1.0' encoding='UTF-8'?>"
        "<feed xmlns='http://www.w3.org/2005/Atom' "
        "xmlns:thr='http://purl.org/syndication/thread/1.0' "
        "xmlns:app='http://purl.org/atom/app#'>"
        "<id>tag:blogger.com,1999:blog-1</id>"
        + "".join(entries)
        + "</feed>"
    )
    path = tmp_path / "blog-01-01-2024.xml"
    path.write_text(xml, encoding="utf-8")
    return str(path)


def test_posts_pages_and_comments_are_classified(tmp_path):
    path = write_export(
        tmp_path,
        entry("tag:blog-1.settings-1", "settings"),
        entry("tag:blog-1.layout", "template"),
        entry("tag:blog-1.post-1", "post", link="https://x.blogspot.com/2011/03/first.html"),
        entry("tag:blog-1.page-1", "page", title="About"),
        entry("tag:blog-1.post-1.comment-1", "comment", reply_to="tag:blog-1.post-1"),
    )
    result = parse_blogger_export(path)

    assert [p.id for p in result.data.posts] == ["tag:blog-1.post-1"]
    assert [p.id for p in result.data.pages] == ["tag:blog-1.page-1"]
    assert [c.id for c in result.data.comments] == ["tag:blog-1.post-1.comment-1"]
    assert result.data.posts[0].kind is EntryKind.POST
    assert result.data.posts[0].permalink == "https://x.blogspot.com/2011/03/first.html"
    assert result.stats.post_count == 1
    assert result.stats.page_count == 1
    assert result.stats.comment_count == 1
    # settings and template records are not content and are not reported
    assert result.stats.skipped_count == 0
    assert result.issues == []


def test_page_scenario(tmp_path):
    path = write_export(tmp_path, entry("p1", "page", title="About", content="<p>Hi</p>"))
    result = parse_blogger_export(path)

    assert result.stats.page_count == 1
    assert result.stats.post_count == 0
    page = result.data.pages[0]
    assert page.title == "About"
    assert page.raw_content == "<p>Hi</p>"
    assert page.status is EntryStatus.PUBLISHED


def test_in_reply_to_wins_over_post_kind(tmp_path):
    path = write_export(
        tmp_path,
        entry("post-1"),
        entry("c1", "post", reply_to="post-1"),
    )
    result = parse_blogger_export(path)
    assert result.stats.post_count == 1
    assert [c.id for c in result.data.comments] == ["c1"]


def test_comment_kind_without_reply_reference_is_skipped(tmp_path):
    path = write_export(tmp_path, entry("c1", "comment"))
    result = parse_blogger_export(path)
    assert result.stats.comment_count == 0
    assert result.issues[0].kind is IssueKind.ENTRY_SKIPPED


def test_labels_are_deduplicated_case_sensitively(tmp_path):
    path = write_export(
        tmp_path,
        entry("p1", labels=["Travel", "travel", "Travel", " Food "]),
        entry("p2", labels=["Food", "Code"]),
    )
    result = parse_blogger_export(path)
    assert result.data.posts[0].tags == ["Travel", "travel", "Food"]
    assert result.data.tags == ["Travel", "travel", "Food", "Code"]
    assert result.stats.tag_count == 4


def test_draft_markers(tmp_path):
    path = write_export(
        tmp_path,
        entry("p1", draft=True),
        entry("p2"),
    )
    result = parse_blogger_export(path)
    assert result.data.posts[0].status is EntryStatus.DRAFT
    assert result.data.posts[0].is_draft
    assert result.data.posts[1].status is EntryStatus.PUBLISHED


def test_media_urls_are_filtered_and_deduplicated(tmp_path):
    content = (
        '<img src="https://1.bp.blogspot.com/a/s1600/x.jpg">'
        '<img src="https://1.bp.blogspot.com/a/s1600/x.jpg">'
        '<img src="https://tracker.example.com/pixel">'
        '<img src="https://cdn.example.com/photo.PNG">'
        '<iframe src="https://www.youtube.com/embed/abc"></iframe>'
    )
    path = write_export(tmp_path, entry("p1", content=content))
    result = parse_blogger_export(path)
    assert result.data.posts[0].media_urls == [
        "https://1.bp.blogspot.com/a/s1600/x.jpg",
        "https://cdn.example.com/photo.PNG",
        "https://www.youtube.com/embed/abc",
    ]
    assert result.stats.media_count == 3


def test_timestamps_are_utc_and_updated_falls_back(tmp_path):
    path = write_export(tmp_path, entry("p1", published="2011-03-04T10:15:00.001-08:00"))
    post = parse_blogger_export(path).data.posts[0]
    assert post.published_at == datetime(2011, 3, 4, 18, 15, 0, 1000, tzinfo=timezone.utc)
    assert post.updated_at == post.published_at


def test_bad_date_skips_entry_but_keeps_going(tmp_path):
    path = write_export(
        tmp_path,
        entry("p1", published="not a date"),
        entry("p2", published=None),
        entry("p3"),
    )
    result = parse_blogger_export(path)
    assert [p.id for p in result.data.posts] == ["p3"]
    assert {i.entry_id for i in result.issues} == {"p1", "p2"}
    assert result.stats.skipped_count == 2


def test_duplicate_ids_keep_first_entry(tmp_path):
    path = write_export(
        tmp_path,
        entry("p1", title="First"),
        entry("p1", title="Second"),
    )
    result = parse_blogger_export(path)
    assert [p.title for p in result.data.posts] == ["First"]
    assert "duplicate" in result.issues[0].reason


def test_broken_unicode_escapes_are_repaired(tmp_path):
    path = write_export(tmp_path, entry("p1", title="u5408u7968 menu1234", labels=["u65e5u672c"]))
    post = parse_blogger_export(path).data.posts[0]
    assert post.title == "合票 menu1234"
    assert post.tags == ["日本"]


def test_comment_fields(tmp_path):
    path = write_export(
        tmp_path,
        entry("p1"),
        entry("c1", "comment", content="Nice!", reply_to="p1"),
    )
    comment = parse_blogger_export(path).data.comments[0]
    assert comment.content == "Nice!"
    assert comment.author.name == "Ana"
    assert comment.author.email == "ana@example.com"
    assert comment.author.url == "https://ana.example.com"
    assert comment.target_ref == "p1"
    assert comment.post_id == "p1"
    assert comment.parent_id is None


def test_missing_file_is_fatal(tmp_path):
    with pytest.raises(ExportParseError):
        parse_blogger_export(str(tmp_path / "nope.xml"))


def test_malformed_xml_is_fatal(tmp_path):
    path = tmp_path / "broken.xml"
    path.write_text("<feed xmlns='http://www.w3.org/2005/Atom'><entry><id>p1</id>", encoding="utf-8")
    with pytest.raises(ExportParseError):
        parse_blogger_export(str(path))


def test_non_feed_root_is_fatal(tmp_path):
    path = tmp_path / "other.xml"
    path.write_text("<rss><channel/></rss>", encoding="utf-8")
    with pytest.raises(ExportParseError):
        parse_blogger_export(str(path))


def test_export_error_is_a_value_error():
    assert issubclass(ExportParseError, ValueError)


def test_parsing_twice_gives_equal_results(tmp_path):
    path = write_export(
        tmp_path,
        entry("p1", labels=["A"], content='<img src="https://x.com/a.jpg">'),
        entry("pg", "page"),
        entry("c1", "comment", reply_to="p1"),
        entry("c2", "comment", reply_to="c1"),
        entry("c3", "comment", reply_to="missing"),
    )
    first = parse_blogger_export(path)
    second = parse_blogger_export(path)
    assert first.data == second.data
    assert first.stats == second.stats
