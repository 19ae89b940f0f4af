"""
JSON-file persistence for imported Blogger content.

This module plays the role a remote CMS API would play: it stores converted
posts, pages and comments, ensures labels exist as terms, remembers which
Blogger id became which local id, and indexes already imported media by their
source URL so the block converter can point images at local copies.

Layout under the output directory::

    posts/<local_id>.json
    pages/<local_id>.json
    comments/<local_id>.json
    terms.json          label terms, keyed by slug
    id_map.json         Blogger id -> {local_id, kind, url}
    assets.json         imported media, [{id, url, source_url}]
    counters.json       last local id handed out per record type
    slugs.json          slugs already taken, per content type

Usage example::

    store = LocalContentStore("output")
    mapping = IdMappingStore(os.path.join("output", "id_map.json"))
    assets = AssetIndex(os.path.join("output", "assets.json"))
    term_ids = store.get_or_create_terms(entry.tags)
    local_id, url = store.save_content(entry, markup, term_ids=term_ids, site_url="https://example.org")
    mapping.store_mapping(entry.id, local_id, kind="post", url=url)
"""

from __future__ import annotations

import json
import logging
import os
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple
from urllib.parse import urlparse

from blogger_import.models import AssetRef, CommentEntry, ContentEntry
from blogger_import.utils.tags import slugify, to_term_payloads

logger = logging.getLogger(__name__)


def _load_json(path: str, default: Any) -> Any:
    if not os.path.exists(path):
        return default
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError:
        logger.warning("Could not decode %s. Starting with empty data.", path)
        return default


def _save_json(path: str, data: Any) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    tmp = f"{path}.tmp"
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2, default=str)
    os.replace(tmp, path)


class IdMappingStore:
    """Blogger id to local id mapping, persisted as one JSON object."""

    def __init__(self, path: str) -> None:
        self.path = path
        self._map: Dict[str, Dict[str, str]] = _load_json(path, {})

    def lookup_local_id(self, external_id: str) -> Optional[str]:
        record = self._map.get(external_id)
        return record.get("local_id") if record else None

    def lookup_url(self, external_id: str) -> Optional[str]:
        record = self._map.get(external_id)
        return record.get("url") if record else None

    def store_mapping(self, external_id: str, local_id: str, *, kind: str, url: str = "") -> None:
        self._map[external_id] = {"local_id": local_id, "kind": kind, "url": url}
        _save_json(self.path, self._map)

    def __len__(self) -> int:
        return len(self._map)


def _url_key(url: str) -> str:
    """Scheme-less form of ``url`` so http and https copies match."""
    u = urlparse(url.strip())
    return f"{(u.hostname or '').lower()}{u.path}" + (f"?{u.query}" if u.query else "")


class AssetIndex:
    """Already imported media, looked up by original or local URL."""

    def __init__(self, path: Optional[str] = None, assets: Optional[Iterable[AssetRef]] = None) -> None:
        self.path = path
        self._by_url: Dict[str, AssetRef] = {}
        raw = _load_json(path, []) if path else []
        for record in raw:
            self.add(AssetRef(**record), persist=False)
        for asset in assets or ():
            self.add(asset, persist=False)

    def add(self, asset: AssetRef, *, persist: bool = True) -> None:
        for url in (asset.source_url, asset.url):
            if url:
                self._by_url[_url_key(url)] = asset
        if persist and self.path:
            unique = {a.id: a for a in self._by_url.values()}
            _save_json(self.path, [a.model_dump() for a in unique.values()])

    def find_asset_by_url(self, url: str) -> Optional[AssetRef]:
        if not url:
            return None
        return self._by_url.get(_url_key(url))


_PERMALINK_SLUG = re.compile(r"/([^/]+?)(?:\.html?)?/?$")


def slug_for(entry: ContentEntry) -> str:
    """Slug of the entry's Blogger permalink, else of its title."""
    if entry.permalink:
        m = _PERMALINK_SLUG.search(urlparse(entry.permalink).path)
        if m:
            return m.group(1)
    return slugify(entry.title) or slugify(entry.id)


class LocalContentStore:
    """Writes posts, pages, comments and terms as JSON files."""

    def __init__(self, output_dir: str) -> None:
        self.output_dir = output_dir
        self._counters_path = os.path.join(output_dir, "counters.json")
        self._terms_path = os.path.join(output_dir, "terms.json")
        self._slugs_path = os.path.join(output_dir, "slugs.json")
        self._counters: Dict[str, int] = _load_json(self._counters_path, {})
        self._terms: Dict[str, Dict[str, str]] = _load_json(self._terms_path, {})
        self._slugs: Dict[str, List[str]] = _load_json(self._slugs_path, {})

    def _next_id(self, kind: str) -> str:
        self._counters[kind] = self._counters.get(kind, 0) + 1
        _save_json(self._counters_path, self._counters)
        return str(self._counters[kind])

    def _record_path(self, folder: str, local_id: str) -> str:
        return os.path.join(self.output_dir, folder, f"{local_id}.json")

    def _unique_slug(self, kind: str, base: str) -> str:
        """Return ``base``, or the first free ``base-N`` (N >= 2) for this content type."""
        taken = set(self._slugs.get(kind, []))
        slug, suffix = base, 2
        while slug in taken:
            slug = f"{base}-{suffix}"
            suffix += 1
        self._slugs.setdefault(kind, []).append(slug)
        _save_json(self._slugs_path, self._slugs)
        return slug

    def get_or_create_terms(self, labels: Iterable[str]) -> List[str]:
        """
        Ensure that the given labels exist as terms and return their ids,
        without duplicates.  Labels are matched on their slug, so ``Travel``
        reuses an existing ``travel`` term.
        """
        ids: List[str] = []
        created = False
        for payload in to_term_payloads(list(labels)):
            term = self._terms.get(payload["slug"])
            if term is None:
                term = {"id": self._next_id("term"), **payload}
                self._terms[payload["slug"]] = term
                created = True
                logger.debug("Created term %r (%s)", term["name"], term["id"])
            if term["id"] not in ids:
                ids.append(term["id"])
        if created:
            _save_json(self._terms_path, self._terms)
        return ids

    def save_content(
        self,
        entry: ContentEntry,
        markup: str,
        *,
        term_ids: List[str],
        site_url: str = "",
    ) -> Tuple[str, str]:
        """Store a post or page; returns its local id and new URL."""
        local_id = self._next_id("content")
        slug = self._unique_slug(entry.kind.value, slug_for(entry))
        if entry.kind.value == "page":
            path = f"/{slug}"
        else:
            path = f"/{entry.published_at:%Y/%m}/{slug}"
        url = f"{site_url.rstrip('/')}{path}"
        record = {
            "id": local_id,
            "source_id": entry.id,
            "type": entry.kind.value,
            "title": entry.title,
            "slug": slug,
            "status": entry.status.value,
            "content": markup,
            "date_gmt": entry.published_at.isoformat(),
            "modified_gmt": entry.updated_at.isoformat(),
            "author": entry.author.model_dump(),
            "terms": term_ids,
            "media_urls": list(entry.media_urls),
            "source_url": entry.permalink,
            "url": url,
        }
        folder = "pages" if entry.kind.value == "page" else "posts"
        _save_json(self._record_path(folder, local_id), record)
        return local_id, url

    def save_comment(
        self,
        comment: CommentEntry,
        *,
        post_local_id: str,
        parent_local_id: Optional[str] = None,
    ) -> str:
        local_id = self._next_id("comment")
        record = {
            "id": local_id,
            "source_id": comment.id,
            "post": post_local_id,
            "parent": parent_local_id or "0",
            "author_name": comment.author.name,
            "author_email": comment.author.email,
            "author_url": comment.author.url,
            "content": comment.content,
            "date_gmt": comment.published_at.isoformat(),
        }
        _save_json(self._record_path("comments", local_id), record)
        return local_id

    def load_record(self, folder: str, local_id: str) -> Optional[Dict[str, Any]]:
        return _load_json(self._record_path(folder, local_id), None)
