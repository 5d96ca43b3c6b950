"""
kbfeed Data Models
==================

Models shared across the ingest pipeline. IngestRecord mirrors the
``rss_records`` table; the rest are transient values that live for the
processing of a single feed entry.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional, Dict
from dataclasses import dataclass, field

from pydantic import BaseModel, Field


class ContentType(str, Enum):
    """Content types accepted from linked documents, in match order."""
    HTML = "text/html"
    PLAIN_TEXT = "text/plain"
    MARKDOWN = "text/markdown"
    PDF = "application/pdf"

    @property
    def extension(self) -> str:
        """File extension used for cached copies."""
        return _EXTENSIONS[self]

    @classmethod
    def from_header(cls, header_value: Optional[str]) -> Optional["ContentType"]:
        """Classify a Content-Type header; first accepted type contained in it wins."""
        if not header_value:
            return None
        for content_type in cls:
            if content_type.value in header_value:
                return content_type
        return None


_EXTENSIONS = {
    ContentType.HTML: ".html",
    ContentType.PLAIN_TEXT: ".txt",
    ContentType.MARKDOWN: ".md",
    ContentType.PDF: ".pdf",
}


class EntryOutcome(str, Enum):
    """Terminal state of one entry's trip through the pipeline."""
    SKIPPED = "skipped"
    SUBMITTED = "submitted"
    FAILED = "failed"


@dataclass
class FeedMetadata:
    """Channel-level data of a parsed feed."""

    title: str
    link: str
    description: str


@dataclass
class FeedEntry:
    """One parsed feed item, read-only input to the pipeline."""

    guid: str
    title: str
    description: str
    link: str
    published: str = ""
    published_at: Optional[datetime] = None
    authors: List[str] = field(default_factory=list)


class IngestRecord(BaseModel):
    """Row of the dedup store: an entry that was fully submitted."""
    feed_id: str = Field(..., min_length=1, description="Configured feed id (rss_id column)")
    guid: str = Field(..., min_length=1, description="Entry GUID within the feed")
    content_hash: str = Field(..., min_length=64, max_length=64, description="sha256 hex of the identity pair")

    model_config = {"frozen": True}

    def __str__(self) -> str:
        return f"IngestRecord({self.feed_id}:{self.guid})"


@dataclass
class ResolvedContent:
    """Payload ready for caching and upload."""

    payload: bytes
    content_type: ContentType
    file_name: str


@dataclass(frozen=True)
class RemoteFileHandle:
    """Identifier returned by the file upload call."""

    file_id: str


@dataclass
class IngestStats:
    """Summary of one ingest run."""

    feeds_processed: int = 0
    feeds_failed: int = 0
    entries_seen: int = 0
    entries_skipped: int = 0
    entries_submitted: int = 0
    entries_failed: int = 0
    failures_by_kind: Dict[str, int] = field(default_factory=dict)

    def record_outcome(self, outcome: EntryOutcome, error_kind: Optional[str] = None) -> None:
        """Count one entry's terminal state."""
        self.entries_seen += 1
        if outcome == EntryOutcome.SKIPPED:
            self.entries_skipped += 1
        elif outcome == EntryOutcome.SUBMITTED:
            self.entries_submitted += 1
        else:
            self.entries_failed += 1
            kind = error_kind or "unknown"
            self.failures_by_kind[kind] = self.failures_by_kind.get(kind, 0) + 1
