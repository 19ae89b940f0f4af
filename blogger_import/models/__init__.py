"""
Typed entities produced by the Blogger export parser.
"""

from .entries import AssetRef, Author, CommentAuthor, CommentEntry, ContentEntry, EntryKind, EntryStatus

__all__ = [
    "AssetRef",
    "Author",
    "CommentAuthor",
    "CommentEntry",
    "ContentEntry",
    "EntryKind",
    "EntryStatus",
]
