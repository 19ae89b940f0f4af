"""
High-level orchestration of the Blogger import.

This module defines a :class:`BloggerImportTool` class that ties together
the extractors, parsers, migrators and utilities into a complete pipeline.
It parses a Blogger export, converts post and page bodies to block markup,
stores them together with their labels and comments, records the mapping
from Blogger ids to local ids, writes report files and generates a URL
mapping CSV.

Configuration is supplied via a JSON file path or directly as a dictionary.
Import settings (dry-run, limit, output directory, site URL) live under the
``import`` key; converter, media and report settings under ``converter``,
``media`` and ``reports``.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from blogger_import.extractors.blogger_extractor import parse_blogger_export
from blogger_import.extractors.media_urls import MEDIA_DOMAINS, MEDIA_EXTENSIONS
from blogger_import.migrators.local_store import AssetIndex, IdMappingStore, LocalContentStore, slug_for
from blogger_import.models import CommentEntry, ContentEntry, EntryKind
from blogger_import.models.export import IssueKind, ParseResult
from blogger_import.parsers.block_converter import DEFAULT_LIGHTBOX_HOSTS, LightboxRule, convert_html_to_blocks
from blogger_import.parsers.block_serializer import serialize_blocks
from blogger_import.utils.errors import DEFAULT_REPORT_DIR, report_error, report_ok
from blogger_import.utils.redirects import generate_redirects_csv

logger = logging.getLogger(__name__)


class KindSummary(BaseModel):
    imported: int = 0
    skipped: int = 0
    failed: int = 0


class ImportSummary(BaseModel):
    """Per-kind counters of one :meth:`BloggerImportTool.import_entries` run."""

    posts: KindSummary = Field(default_factory=KindSummary)
    pages: KindSummary = Field(default_factory=KindSummary)
    comments: KindSummary = Field(default_factory=KindSummary)


class BloggerImportTool:
    """
    Encapsulates all state and behavior required to import a Blogger export
    into the local content store.  This class is responsible for reading
    configuration, parsing the export, converting content and storing it.
    Detailed success and failure information is recorded using the
    :mod:`blogger_import.utils.errors` module.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, *, config_file: Optional[str] = None) -> None:
        if config_file and os.path.exists(config_file):
            with open(config_file, "r", encoding="utf-8") as f:
                config = json.load(f)
        elif config is None:
            config = {}

        # Ensure essential keys exist to prevent KeyErrors
        config.setdefault("import", {})
        config["import"].setdefault("dry_run", False)
        config["import"].setdefault("limit", None)
        config["import"].setdefault("site_url", os.getenv("BLOGGER_IMPORT_SITE_URL", ""))
        config["import"].setdefault("output_dir", os.getenv("BLOGGER_IMPORT_OUTPUT_DIR", "output"))

        config.setdefault("converter", {})
        config["converter"].setdefault("lightbox_hosts", list(DEFAULT_LIGHTBOX_HOSTS))
        config["converter"].setdefault("lightbox_size_pattern", None)

        config.setdefault("media", {})
        config["media"].setdefault("domains", list(MEDIA_DOMAINS))
        config["media"].setdefault("extensions", list(MEDIA_EXTENSIONS))

        config.setdefault("reports", {})
        config["reports"].setdefault("dir", DEFAULT_REPORT_DIR)

        self.config = config
        output_dir = config["import"]["output_dir"]
        self.report_dir: str = config["reports"]["dir"]
        self.store = LocalContentStore(output_dir)
        self.mapping = IdMappingStore(os.path.join(output_dir, "id_map.json"))
        self.assets = AssetIndex(os.path.join(output_dir, "assets.json"))
        self.lightbox = LightboxRule.from_config(
            config["converter"]["lightbox_hosts"], config["converter"]["lightbox_size_pattern"]
        )
        # URL mapping rows of entries imported by this instance
        self.migrated: List[Dict[str, str]] = []
        # Local ids handed out during a dry run, never persisted
        self._dry_ids: Dict[str, str] = {}

    @property
    def dry_run(self) -> bool:
        return bool(self.config["import"]["dry_run"])

    def parse_export(self, path: str) -> ParseResult:
        """Parse ``path`` and report every skipped entry and orphaned comment."""
        result = parse_blogger_export(
            path,
            media_domains=self.config["media"]["domains"],
            media_extensions=self.config["media"]["extensions"],
        )
        stats = result.stats
        logger.info(
            "Parsed %d posts, %d pages, %d comments, %d labels, %d media URLs (%d skipped, %d orphaned)",
            stats.post_count,
            stats.page_count,
            stats.comment_count,
            stats.tag_count,
            stats.media_count,
            stats.skipped_count,
            stats.orphan_count,
        )
        for issue in result.issues:
            code = "ORPHANED_COMMENT" if issue.kind is IssueKind.ORPHANED_COMMENT else "ENTRY_SKIPPED"
            report_error(code, {"id": issue.entry_id}, report_dir=self.report_dir, extra={"reason": issue.reason})
        return result

    def _local_id(self, external_id: Optional[str]) -> Optional[str]:
        if not external_id:
            return None
        return self._dry_ids.get(external_id) or self.mapping.lookup_local_id(external_id)

    def convert_content(self, entry: ContentEntry) -> str:
        blocks = convert_html_to_blocks(
            entry.raw_content,
            asset_lookup=self.assets.find_asset_by_url,
            lightbox=self.lightbox,
        )
        return serialize_blocks(blocks)

    def import_content(self, entry: ContentEntry, summary: KindSummary) -> None:
        if self._local_id(entry.id):
            logger.info("Skipping %s '%s': already imported", entry.kind.value, entry.title)
            summary.skipped += 1
            return

        logger.info("Importing %s '%s'", entry.kind.value, entry.title)
        ok_code = "PAGE_IMPORTED" if entry.kind is EntryKind.PAGE else "POST_IMPORTED"
        try:
            markup = self.convert_content(entry)
            if self.dry_run:
                logger.info("Dry-run: would store %s with %d labels", entry.id, len(entry.tags))
                local_id = f"dry-{entry.id}"
                new_url = f"{self.config['import']['site_url'].rstrip('/')}/{slug_for(entry)}"
                self._dry_ids[entry.id] = local_id
            else:
                try:
                    term_ids = self.store.get_or_create_terms(entry.tags)
                except Exception as e:
                    report_error("TERM_STORE", entry, e, report_dir=self.report_dir)
                    term_ids = []
                local_id, new_url = self.store.save_content(
                    entry, markup, term_ids=term_ids, site_url=self.config["import"]["site_url"]
                )
                self.mapping.store_mapping(entry.id, local_id, kind=entry.kind.value, url=new_url)
        except Exception as e:
            report_error("POST_STORE", entry, e, report_dir=self.report_dir)
            summary.failed += 1
            return

        summary.imported += 1
        slug = new_url.rstrip("/").rsplit("/", 1)[-1]
        self.migrated.append({"Slug": slug, "Permalink": entry.permalink, "NewURL": new_url})
        report_ok(ok_code, entry, {"local_id": local_id, "url": new_url}, report_dir=self.report_dir)

    def import_comment(self, comment: CommentEntry, summary: KindSummary) -> None:
        if self._local_id(comment.id):
            summary.skipped += 1
            return

        post_local_id = self._local_id(comment.post_id)
        if not post_local_id:
            report_error("COMMENT_POST_MISSING", comment, report_dir=self.report_dir, extra={"post_id": comment.post_id})
            summary.failed += 1
            return
        parent_local_id = self._local_id(comment.parent_id)
        if comment.parent_id and not parent_local_id:
            logger.warning("Parent %s of comment %s was not imported; storing it as top-level", comment.parent_id, comment.id)

        try:
            if self.dry_run:
                local_id = f"dry-{comment.id}"
                self._dry_ids[comment.id] = local_id
            else:
                local_id = self.store.save_comment(
                    comment, post_local_id=post_local_id, parent_local_id=parent_local_id
                )
                self.mapping.store_mapping(comment.id, local_id, kind="comment")
        except Exception as e:
            report_error("COMMENT_STORE", comment, e, report_dir=self.report_dir)
            summary.failed += 1
            return

        summary.imported += 1
        report_ok("COMMENT_IMPORTED", comment, {"local_id": local_id, "post": post_local_id}, report_dir=self.report_dir)

    def import_entries(self, result: ParseResult) -> ImportSummary:
        """
        Store the parsed export.  Posts are imported first, then pages, both
        in file order; comments follow once all content is in place, so that
        their post can be looked up through the id mapping.  The ``limit``
        setting caps the number of posts and pages processed.  If
        ``dry_run`` is enabled, content is still converted but nothing is
        written to the store.
        """
        summary = ImportSummary()
        limit: Optional[int] = self.config["import"]["limit"]
        count = 0

        for entry in result.content_entries:
            if limit is not None and count >= limit:
                break
            count += 1
            target = summary.pages if entry.kind is EntryKind.PAGE else summary.posts
            self.import_content(entry, target)

        for comment in _parents_first(result.data.comments):
            self.import_comment(comment, summary.comments)

        logger.info(
            "Import finished: posts %s, pages %s, comments %s",
            summary.posts.model_dump(),
            summary.pages.model_dump(),
            summary.comments.model_dump(),
        )
        return summary

    def export_url_mapping(self, out_path: Optional[str] = None) -> str:
        """Write the CSV of old Blogger permalinks to new local URLs."""
        path = out_path or os.path.join(self.report_dir, "redirect_map.csv")
        generate_redirects_csv(self.migrated, new_base=self.config["import"]["site_url"], out_path=path)
        logger.info("URL mapping CSV generated with %d entries", len(self.migrated))
        return path


def _parents_first(comments: List[CommentEntry]) -> List[CommentEntry]:
    """File order, except that a reply never comes before its parent."""
    by_id = {c.id: c for c in comments}
    depth: Dict[str, int] = {}

    def depth_of(c: CommentEntry) -> int:
        chain = []
        current: Optional[CommentEntry] = c
        while current is not None and current.id not in depth:
            chain.append(current)
            current = by_id.get(current.parent_id) if current.parent_id else None
        d = depth[current.id] if current is not None else -1
        for item in reversed(chain):
            d += 1
            depth[item.id] = d
        return depth[c.id]

    return sorted(comments, key=depth_of)
