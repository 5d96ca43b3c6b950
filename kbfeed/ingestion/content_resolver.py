"""
Content Resolver
================

Turns a feed entry into a document for the knowledge base, in one of two
modes chosen per feed:

- link following: download the entry's link (HTML, plain text, Markdown or PDF)
- synthesis: build a small Markdown document from the feed metadata

File names are ``<feed name> <published YYYY-MM-DD HH:MM:SS> <hash[:6]><ext>``.
"""

from typing import Optional

import requests

from kbfeed.config.settings import FeedEndpointConfig, LimitsSettings
from kbfeed.database.models import FeedEntry, FeedMetadata, ResolvedContent, ContentType
from kbfeed.utils.logging import get_logger_for_component
from kbfeed.utils.exceptions import FetchError, ErrorCode

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
HASH_PREFIX_LENGTH = 6

# Entries without real text: image-only or lone-link posts
EMPTY_DESCRIPTION = "<p></p>"
# Placeholder some feed software puts in place of a missing title
MISSING_TITLE_MARKER = "[No Title]"


class ContentResolver:
    """Produces the payload and file name for a feed entry."""

    def __init__(
        self,
        limits: Optional[LimitsSettings] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize content resolver.

        Args:
            limits: Network settings (timeout, user agent)
            session: HTTP session for link following; created if omitted
        """
        self.limits = limits or LimitsSettings()
        self.session = session or requests.Session()
        self.logger = get_logger_for_component("content_resolver")

    def resolve(
        self,
        feed: FeedEndpointConfig,
        feed_metadata: FeedMetadata,
        entry: FeedEntry,
        content_hash: str,
    ) -> Optional[ResolvedContent]:
        """Resolve content for an entry.

        Returns:
            ResolvedContent, or None when a synthesis filter drops the entry

        Raises:
            FetchError: If the linked document cannot be used or the entry has no timestamp
        """
        if feed.follow_link:
            return self.fetch_linked_content(feed, entry, content_hash)

        if self.should_skip_synthesis(entry):
            self.logger.debug(f"Skipping entry without usable text: {entry.guid}")
            return None
        return self.synthesize_markdown(feed, feed_metadata, entry, content_hash)

    def build_file_name(
        self, feed: FeedEndpointConfig, entry: FeedEntry, content_hash: str, extension: str
    ) -> str:
        """Cache/upload file name for an entry.

        Raises:
            FetchError: If the entry has no parseable publication time
        """
        if entry.published_at is None:
            raise FetchError(
                "Entry has no parseable publication timestamp",
                feed_id=feed.id,
                entry_guid=entry.guid,
                error_code=ErrorCode.ENTRY_MISSING_TIMESTAMP,
                recoverable=False,
            )
        timestamp = entry.published_at.strftime(TIMESTAMP_FORMAT)
        return f"{feed.name} {timestamp} {content_hash[:HASH_PREFIX_LENGTH]}{extension}"

    def fetch_linked_content(
        self, feed: FeedEndpointConfig, entry: FeedEntry, content_hash: str
    ) -> ResolvedContent:
        """Download the entry's linked document.

        Raises:
            FetchError: On network failure, non-200 status or unaccepted content type
        """
        # Fail on the timestamp before spending a request
        file_name_stem = self.build_file_name(feed, entry, content_hash, "")

        if not entry.link:
            raise FetchError("Entry has no link to follow", feed_id=feed.id, entry_guid=entry.guid)

        headers = {
            "Accept": ", ".join(content_type.value for content_type in ContentType),
            "User-Agent": self.limits.user_agent,
        }

        try:
            response = self.session.get(
                entry.link, headers=headers, timeout=self.limits.request_timeout
            )
        except requests.RequestException as e:
            raise FetchError(
                f"Failed to fetch {entry.link}: {e}",
                url=entry.link,
                feed_id=feed.id,
                entry_guid=entry.guid,
            ) from e

        if response.status_code != 200:
            raise FetchError(
                f"Non-200 response code {response.status_code} from {entry.link}",
                url=entry.link,
                feed_id=feed.id,
                entry_guid=entry.guid,
                error_code=ErrorCode.FEED_HTTP_STATUS,
            )

        header_value = response.headers.get("Content-Type", "")
        content_type = ContentType.from_header(header_value)
        if content_type is None:
            raise FetchError(
                f"Unreadable response content type '{header_value}' from {entry.link}",
                url=entry.link,
                feed_id=feed.id,
                entry_guid=entry.guid,
                error_code=ErrorCode.ENTRY_CONTENT_TYPE,
                recoverable=False,
            )

        self.logger.debug(
            f"Fetched {len(response.content)} bytes of {content_type.value} from {entry.link}"
        )
        return ResolvedContent(
            payload=response.content,
            content_type=content_type,
            file_name=file_name_stem + content_type.extension,
        )

    @staticmethod
    def should_skip_synthesis(entry: FeedEntry) -> bool:
        """True for entries that carry no text worth synthesizing.

        Either an empty-paragraph description or an empty title is enough,
        as is the missing-title marker anywhere in the title.
        """
        if entry.description == EMPTY_DESCRIPTION or entry.title == "":
            return True
        return MISSING_TITLE_MARKER in entry.title

    def synthesize_markdown(
        self,
        feed: FeedEndpointConfig,
        feed_metadata: FeedMetadata,
        entry: FeedEntry,
        content_hash: str,
    ) -> ResolvedContent:
        """Build a Markdown document from feed metadata."""
        file_name = self.build_file_name(feed, entry, content_hash, ContentType.MARKDOWN.extension)

        metadata_md = ""
        if entry.link:
            metadata_md += f"* **Link**: {entry.link}\n"

        if feed.author_override:
            metadata_md += f"* **Author**: {feed.author_override}\n"
        else:
            for author in entry.authors:
                metadata_md += f"* **Author**: {author}\n"

        body = (
            f"# {feed.name} [{feed_metadata.description}]\n\n"
            f"## {entry.published}\n\n"
            f"{metadata_md}\n"
            f"{entry.description}"
        )

        return ResolvedContent(
            payload=body.encode("utf-8"),
            content_type=ContentType.MARKDOWN,
            file_name=file_name,
        )
