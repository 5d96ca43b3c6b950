"""
Ingest Pipeline
===============

Single-pass ingest run: for every configured feed, in order, parse the feed
and push each new entry through

    dedup lookup -> hash -> resolve -> convert (optional) -> cache -> submit -> record

An entry is recorded only after both remote calls succeeded. Every per-entry
failure is logged and the run moves on; the entry is retried from scratch on
the next run because nothing was recorded for it.

Known gap: a crash between a successful submission and the record write
submits the entry again on the next run.
"""

import time
from typing import Callable, Optional

from ..config.settings import KbFeedSettings, FeedEndpointConfig
from ..database.models import FeedEntry, FeedMetadata, EntryOutcome, IngestStats
from ..storage.ingest_repository import IngestRepository
from ..storage.content_cache import ContentCache
from ..ingestion.feed_manager import FeedManager
from ..ingestion.content_resolver import ContentResolver
from ..ingestion.content_converter import ContentConverter
from ..delivery.knowledge_client import KnowledgeBaseClient
from ..utils.logging import get_logger_for_component, PerformanceLogger
from ..utils.exceptions import (
    KbFeedError,
    DatabaseError,
    FeedParseError,
    EntryProcessingError,
    DedupConflictError,
    FetchError,
    ErrorCode,
)


class IngestPipeline:
    """Drives feeds and entries through the ingest stages."""

    def __init__(
        self,
        settings: KbFeedSettings,
        repository: IngestRepository,
        feed_manager: Optional[FeedManager] = None,
        resolver: Optional[ContentResolver] = None,
        converter: Optional[ContentConverter] = None,
        cache: Optional[ContentCache] = None,
        client: Optional[KnowledgeBaseClient] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize ingest pipeline.

        Args:
            settings: Loaded application settings
            repository: Dedup store
            feed_manager: Feed adapter (default built from settings)
            resolver: Content resolver (default built from settings)
            converter: HTML to Markdown converter
            cache: Content cache (default: settings.content_dir)
            client: Knowledge base client (default built from settings)
            sleep: Pause function used between submissions
        """
        self.settings = settings
        self.repository = repository
        self.feed_manager = feed_manager or FeedManager(settings.limits)
        self.resolver = resolver or ContentResolver(settings.limits)
        self.converter = converter or ContentConverter()
        self.cache = cache or ContentCache(settings.content_dir)
        self.client = client or KnowledgeBaseClient(settings.open_webui, settings.limits)
        self.sleep = sleep
        self.logger = get_logger_for_component("pipeline")

    def run(self, dry_run: bool = False) -> IngestStats:
        """Process every configured feed once.

        Args:
            dry_run: Only report new entries; fetch, write, submit and record nothing

        Returns:
            Run statistics
        """
        stats = IngestStats()

        with PerformanceLogger(self.logger.logger, "ingest run", feeds=len(self.settings.rss)):
            for feed in self.settings.rss:
                self.process_feed(feed, stats, dry_run=dry_run)

        self.logger.info(
            f"Ingest run finished: {stats.feeds_processed} feeds "
            f"({stats.feeds_failed} failed), {stats.entries_submitted} submitted, "
            f"{stats.entries_skipped} skipped, {stats.entries_failed} failed"
        )
        return stats

    def process_feed(self, feed: FeedEndpointConfig, stats: IngestStats, dry_run: bool = False) -> None:
        """Parse one feed and process its entries in document order."""
        logger = get_logger_for_component("pipeline", feed_id=feed.id)
        stats.feeds_processed += 1

        try:
            feed_metadata, entries = self.feed_manager.fetch_feed(feed.url)
        except FeedParseError as e:
            stats.feeds_failed += 1
            logger.error(f"Error parsing feed {feed.url}: {e}", extra=e.to_dict())
            return

        for entry in entries:
            error_kind = None
            try:
                if dry_run:
                    outcome = self.check_entry(feed, entry)
                else:
                    outcome = self.process_entry(feed, feed_metadata, entry)
            except (EntryProcessingError, DatabaseError) as e:
                outcome = EntryOutcome.FAILED
                error_kind = e.kind
                self._log_entry_failure(feed, entry, e)

            stats.record_outcome(outcome, error_kind)

            if outcome == EntryOutcome.SUBMITTED and not dry_run:
                self.sleep(self.settings.limits.submission_delay_seconds)

    def check_entry(self, feed: FeedEndpointConfig, entry: FeedEntry) -> EntryOutcome:
        """Dry-run check: report whether an entry would be processed.

        Applies every check that needs no network: identity, dedup lookup
        and the synthesis filters.
        """
        logger = get_logger_for_component("pipeline", feed_id=feed.id, entry_guid=entry.guid)
        self._require_identity(feed, entry)

        if self.repository.lookup(feed.id, entry.guid) is not None:
            return EntryOutcome.SKIPPED
        if not feed.follow_link and self.resolver.should_skip_synthesis(entry):
            return EntryOutcome.SKIPPED

        logger.info(f"New entry: {entry.title or entry.link}")
        return EntryOutcome.SUBMITTED

    def process_entry(
        self, feed: FeedEndpointConfig, feed_metadata: FeedMetadata, entry: FeedEntry
    ) -> EntryOutcome:
        """Run one entry through all stages.

        Returns:
            SKIPPED if already ingested or filtered out, SUBMITTED on success

        Raises:
            EntryProcessingError: Any stage failure (entry is not recorded,
                except for DedupConflictError where submission already happened)
        """
        logger = get_logger_for_component("pipeline", feed_id=feed.id, entry_guid=entry.guid)

        self._require_identity(feed, entry)

        if self.repository.lookup(feed.id, entry.guid) is not None:
            return EntryOutcome.SKIPPED

        content_hash = self.repository.compute_hash(feed.id, entry.guid)

        content = self.resolver.resolve(feed, feed_metadata, entry, content_hash)
        if content is None:
            return EntryOutcome.SKIPPED

        if feed.follow_link and feed.convert_html_to_markdown:
            content = self.converter.normalize(content)

        path = self.cache.write(content)

        self.client.submit(feed.knowledge_base_id, path.name, content.payload)
        logger.info(f"Successfully added {path.name} to knowledge base {feed.knowledge_base_id}")

        self.repository.record(feed.id, entry.guid, content_hash)
        return EntryOutcome.SUBMITTED

    @staticmethod
    def _require_identity(feed: FeedEndpointConfig, entry: FeedEntry) -> None:
        if not entry.guid:
            raise FetchError(
                "Entry has neither GUID nor link",
                feed_id=feed.id,
                error_code=ErrorCode.ENTRY_MISSING_IDENTITY,
                recoverable=False,
            )

    def _log_entry_failure(
        self, feed: FeedEndpointConfig, entry: FeedEntry, error: KbFeedError
    ) -> None:
        logger = get_logger_for_component("pipeline", feed_id=feed.id, entry_guid=entry.guid)
        if isinstance(error, DedupConflictError):
            logger.error(
                f"Inconsistent ingest state: entry was submitted but could not be recorded: {error}",
                extra=error.to_dict(),
            )
        else:
            logger.error(f"{error.kind} processing entry: {error}", extra=error.to_dict())
