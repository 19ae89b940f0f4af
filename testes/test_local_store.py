import os
import sys
from datetime import datetime, timezone

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from blogger_import.migrators.local_store import AssetIndex, IdMappingStore, LocalContentStore, slug_for
from blogger_import.models import AssetRef, CommentEntry, ContentEntry, EntryKind, EntryStatus

WHEN = datetime(2011, 3, 4, 18, 15, tzinfo=timezone.utc)


def post(entry_id="p1", **kw):
    fields = dict(id=entry_id, title="First Post", published_at=WHEN, updated_at=WHEN)
    fields.update(kw)
    return ContentEntry(**fields)


def test_id_mapping_persists(tmp_path):
    path = str(tmp_path / "id_map.json")
    store = IdMappingStore(path)
    assert store.lookup_local_id("p1") is None
    store.store_mapping("p1", "7", kind="post", url="https://new.org/x")

    reloaded = IdMappingStore(path)
    assert reloaded.lookup_local_id("p1") == "7"
    assert reloaded.lookup_url("p1") == "https://new.org/x"
    assert len(reloaded) == 1


def test_asset_index_matches_source_and_local_urls(tmp_path):
    path = str(tmp_path / "assets.json")
    index = AssetIndex(path)
    asset = AssetRef(id="5", url="https://new.org/media/a.jpg", source_url="http://1.bp.blogspot.com/a/s1600/a.jpg")
    index.add(asset)

    reloaded = AssetIndex(path)
    assert reloaded.find_asset_by_url("https://1.bp.blogspot.com/a/s1600/a.jpg") == asset
    assert reloaded.find_asset_by_url("https://new.org/media/a.jpg") == asset
    assert reloaded.find_asset_by_url("https://1.bp.blogspot.com/a/s320/a.jpg") is None
    assert reloaded.find_asset_by_url("") is None


def test_slug_from_permalink_or_title():
    assert slug_for(post(permalink="https://x.blogspot.com/2011/03/my-first-post.html")) == "my-first-post"
    assert slug_for(post()) == "first-post"


def test_terms_are_reused_by_slug(tmp_path):
    store = LocalContentStore(str(tmp_path))
    first = store.get_or_create_terms(["Travel", "Food"])
    second = store.get_or_create_terms(["travel", "Code", "Food"])

    assert first == ["1", "2"]
    assert second == ["1", "3", "2"]
    assert LocalContentStore(str(tmp_path)).get_or_create_terms(["Code"]) == ["3"]


def test_save_content_and_comment(tmp_path):
    store = LocalContentStore(str(tmp_path))
    entry = post(permalink="https://x.blogspot.com/2011/03/first.html", tags=["A"])
    local_id, url = store.save_content(entry, "<!-- wp:paragraph --><p>x</p><!-- /wp:paragraph -->", term_ids=["1"], site_url="https://new.org/")

    assert local_id == "1"
    assert url == "https://new.org/2011/03/first"
    record = store.load_record("posts", local_id)
    assert record["source_id"] == "p1"
    assert record["terms"] == ["1"]
    assert record["status"] == "publish"

    page = post("pg1", kind=EntryKind.PAGE, title="About Me")
    page_id, page_url = store.save_content(page, "", term_ids=[], site_url="https://new.org")
    assert page_id == "2"
    assert page_url == "https://new.org/about-me"
    assert store.load_record("pages", page_id)["type"] == "page"

    comment = CommentEntry(id="c1", content="Hi", published_at=WHEN, updated_at=WHEN, target_ref="p1", post_id="p1")
    comment_id = store.save_comment(comment, post_local_id=local_id)
    saved = store.load_record("comments", comment_id)
    assert saved["post"] == "1"
    assert saved["parent"] == "0"


def test_drafts_sharing_a_title_get_distinct_slugs(tmp_path):
    store = LocalContentStore(str(tmp_path))
    first = post("d1", status=EntryStatus.DRAFT)
    second = post("d2", status=EntryStatus.DRAFT)

    _, url1 = store.save_content(first, "", term_ids=[], site_url="https://new.org")
    _, url2 = store.save_content(second, "", term_ids=[], site_url="https://new.org")
    assert url1 == "https://new.org/2011/03/first-post"
    assert url2 == "https://new.org/2011/03/first-post-2"

    # the taken slugs survive a reload of the store
    reloaded = LocalContentStore(str(tmp_path))
    local_id, url3 = reloaded.save_content(post("d3"), "", term_ids=[], site_url="https://new.org")
    assert url3 == "https://new.org/2011/03/first-post-3"
    assert reloaded.load_record("posts", local_id)["slug"] == "first-post-3"


def test_pages_and_posts_have_separate_slug_namespaces(tmp_path):
    store = LocalContentStore(str(tmp_path))
    store.save_content(post("p1"), "", term_ids=[], site_url="")
    _, page_url = store.save_content(post("pg1", kind=EntryKind.PAGE), "", term_ids=[], site_url="")
    assert page_url == "/first-post"
