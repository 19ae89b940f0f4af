from __future__ import annotations

from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from .entries import CommentEntry, ContentEntry


class IssueKind(str, Enum):
    ENTRY_SKIPPED = "entry_skipped"
    ORPHANED_COMMENT = "orphaned_comment"


class ParseIssue(BaseModel):
    """A non-fatal problem met while parsing one entry."""

    model_config = ConfigDict(frozen=True)

    entry_id: str = ""
    reason: str
    kind: IssueKind = IssueKind.ENTRY_SKIPPED


class ParseStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    post_count: int = Field(0, alias="postCount")
    page_count: int = Field(0, alias="pageCount")
    comment_count: int = Field(0, alias="commentCount")
    tag_count: int = Field(0, alias="tagCount")
    media_count: int = Field(0, alias="mediaCount")
    orphan_count: int = Field(0, alias="orphanCount")
    skipped_count: int = Field(0, alias="skippedCount")


class ExportData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    posts: List[ContentEntry] = Field(default_factory=list)
    pages: List[ContentEntry] = Field(default_factory=list)
    comments: List[CommentEntry] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    media_urls: List[str] = Field(default_factory=list, alias="mediaUrls")
    orphaned_comments: List[CommentEntry] = Field(default_factory=list, alias="orphanedComments")


class ParseResult(BaseModel):
    """Everything one export parse produced: data, stats and diagnostics."""

    data: ExportData = Field(default_factory=ExportData)
    stats: ParseStats = Field(default_factory=ParseStats)
    issues: List[ParseIssue] = Field(default_factory=list)

    @property
    def content_entries(self) -> List[ContentEntry]:
        return [*self.data.posts, *self.data.pages]
