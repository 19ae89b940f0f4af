"""
Extractors for Blogger export files.

This subpackage streams a Blogger Atom export into typed entries, pulls media
references out of post bodies and resolves flat comment references into
threads.
"""

from .blogger_extractor import EntryError, ExportParseError, parse_blogger_export
from .comment_threads import resolve_comment_threads
from .media_urls import extract_media_urls

__all__ = [
    "EntryError",
    "ExportParseError",
    "extract_media_urls",
    "parse_blogger_export",
    "resolve_comment_threads",
]
