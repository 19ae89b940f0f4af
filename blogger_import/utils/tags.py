from __future__ import annotations

from html import unescape
import re
from typing import Iterable, List

from .encoding import fix_encoding


def normalize_label(value: str) -> str:
    """Unescape HTML entities and collapse inner whitespace.

    Preserves original casing but trims leading/trailing spaces
    and converts sequences of whitespace to a single space.
    """
    if not value:
        return ""
    text = fix_encoding(unescape(value)).strip()
    text = re.sub(r"\s+", " ", text)
    return text


def dedupe_labels(labels: Iterable[str]) -> List[str]:
    """
    Normalize and deduplicate Blogger labels.

    Deduplication is case-sensitive: ``Travel`` and ``travel`` are two
    distinct labels on Blogger and stay distinct here. First-seen order is
    preserved and empty labels are dropped.
    """
    seen = set()
    result: List[str] = []
    for raw in labels:
        label = normalize_label(raw)
        if label and label not in seen:
            seen.add(label)
            result.append(label)
    return result


def to_term_payloads(tags: List[str]) -> List[dict]:
    """
    Build the term records the content store expects for a list of labels.

    Slugs follow the usual lowercase-dash convention; two labels that differ
    only in case share a slug, which is how the store matches existing terms.
    """
    return [{"name": t, "slug": slugify(t)} for t in tags if t]


def slugify(value: str) -> str:
    text = value.strip().lower()
    out = []
    prev_dash = False
    for ch in text:
        if ch.isalnum():
            out.append(ch)
            prev_dash = False
        else:
            if not prev_dash:
                out.append("-")
            prev_dash = True
    slug = "".join(out).strip("-")
    return slug[:200]
