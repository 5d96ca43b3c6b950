"""
RSS Feed Manager
================

Downloads RSS/Atom feeds with requests and parses them with feedparser into
FeedMetadata and FeedEntry values.
"""

import calendar
import time
from datetime import datetime, timezone
from typing import List, Any, Optional, Tuple

import feedparser
import requests

from kbfeed.config.settings import LimitsSettings
from kbfeed.database.models import FeedEntry, FeedMetadata
from kbfeed.utils.logging import get_logger_for_component
from kbfeed.utils.exceptions import FeedParseError, ErrorCode


class FeedManager:
    """Fetches and parses configured feeds."""

    def __init__(
        self,
        limits: Optional[LimitsSettings] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize feed manager.

        Args:
            limits: Network settings (timeout)
            session: HTTP session; a new one is created if omitted
        """
        self.limits = limits or LimitsSettings()
        self.logger = get_logger_for_component("feed_manager")

        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Accept": "application/rss+xml, application/atom+xml, application/xml, text/xml, */*",
            }
        )

    def fetch_feed(self, feed_url: str) -> Tuple[FeedMetadata, List[FeedEntry]]:
        """
        Fetch and parse a feed.

        Args:
            feed_url: RSS/Atom feed URL

        Returns:
            Tuple of (feed_metadata, entries in document order)

        Raises:
            FeedParseError: If the feed cannot be downloaded or parsed
        """
        self.logger.info(f"Fetching feed: {feed_url}")
        start_time = time.time()

        try:
            response = self.session.get(feed_url, timeout=self.limits.request_timeout)
            response.raise_for_status()
        except requests.HTTPError as e:
            raise FeedParseError(
                f"Failed to fetch feed {feed_url}: {e}",
                feed_url=feed_url,
                error_code=ErrorCode.FEED_HTTP_STATUS,
            ) from e
        except requests.RequestException as e:
            raise FeedParseError(
                f"Failed to fetch feed {feed_url}: {e}",
                feed_url=feed_url,
                error_code=ErrorCode.FEED_NETWORK_ERROR,
            ) from e

        self.logger.debug(
            f"Feed fetched in {time.time() - start_time:.2f}s, size: {len(response.content)} bytes"
        )

        return self.parse_feed(
            response.content, feed_url, response_headers=dict(response.headers)
        )

    def parse_feed(
        self, content: Any, feed_url: str, response_headers: Optional[dict] = None
    ) -> Tuple[FeedMetadata, List[FeedEntry]]:
        """Parse an already downloaded feed document.

        Raises:
            FeedParseError: If the document is not a usable feed
        """
        parsed_feed = feedparser.parse(content, response_headers=response_headers or {})

        if parsed_feed.bozo:
            if not parsed_feed.entries and not parsed_feed.feed:
                raise FeedParseError(
                    f"Feed parse error for {feed_url}: {parsed_feed.get('bozo_exception')}",
                    feed_url=feed_url,
                )
            # Many feeds have minor formatting issues but still carry entries
            self.logger.warning(
                f"Feed parsing warning for {feed_url}: {parsed_feed.get('bozo_exception')}"
            )

        feed_metadata = self._extract_feed_metadata(parsed_feed.feed)
        entries = [self._extract_entry(entry) for entry in parsed_feed.entries]

        self.logger.info(f"Parsed {len(entries)} entries from {feed_url}")
        return feed_metadata, entries

    def _extract_feed_metadata(self, feed: Any) -> FeedMetadata:
        return FeedMetadata(
            title=feed.get("title", ""),
            link=feed.get("link", ""),
            description=feed.get("description", "") or feed.get("subtitle", ""),
        )

    def _extract_entry(self, entry: Any) -> FeedEntry:
        # feedparser exposes <guid>/<id> as "id"; items without one are keyed by link
        guid = entry.get("id") or entry.get("guid") or entry.get("link") or ""

        authors = [a.get("name") for a in entry.get("authors", []) if a.get("name")]
        if not authors and entry.get("author"):
            authors = [entry.get("author")]

        published = entry.get("published") or entry.get("updated") or ""

        return FeedEntry(
            guid=guid,
            title=entry.get("title", ""),
            description=entry.get("description", "") or entry.get("summary", ""),
            link=entry.get("link", ""),
            published=published,
            published_at=self._parse_date(entry),
            authors=authors,
        )

    def _parse_date(self, entry: Any) -> Optional[datetime]:
        """Publication time in UTC, falling back to the update time."""
        for field in ("published_parsed", "updated_parsed"):
            date_tuple = entry.get(field)
            if date_tuple:
                try:
                    # feedparser normalizes to UTC struct_time
                    return datetime.fromtimestamp(calendar.timegm(date_tuple), tz=timezone.utc)
                except (ValueError, OverflowError):
                    continue
        return None
