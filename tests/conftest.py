"""
PyTest Configuration and Fixtures
=================================

Shared fixtures for kbfeed tests. Every test gets its own temporary database
and content directory; HTTP is replaced with Mock sessions.
"""

import pytest
import sys
from pathlib import Path
from unittest.mock import Mock

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from kbfeed.config.settings import KbFeedSettings, FeedEndpointConfig
from kbfeed.database.connection import DatabaseConnection
from kbfeed.storage.ingest_repository import IngestRepository
from kbfeed.storage.content_cache import ContentCache


SAMPLE_ATOM_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
    <title>Blog</title>
    <id>urn:kbfeed:test:blog</id>
    <subtitle>Notes from the blog</subtitle>
    <updated>2024-01-02T03:04:05Z</updated>
    <entry>
        <title>Hello</title>
        <id>abc123</id>
        <published>2024-01-02T03:04:05Z</published>
        <updated>2024-01-02T03:04:05Z</updated>
        <summary>World</summary>
    </entry>
</feed>"""

SAMPLE_RSS_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
    <channel>
        <title>Test RSS Feed</title>
        <link>http://example.com</link>
        <description>Test feed for unit testing</description>
        <item>
            <title>Test Article 1</title>
            <link>http://example.com/article1</link>
            <description>&lt;p&gt;First article&lt;/p&gt;</description>
            <pubDate>Thu, 05 Sep 2024 12:00:00 GMT</pubDate>
            <guid>article-1-guid</guid>
            <author>alice@example.com (Alice)</author>
        </item>
        <item>
            <title>Test Article 2</title>
            <link>http://example.com/article2</link>
            <description>Second article</description>
            <pubDate>Wed, 04 Sep 2024 15:30:00 GMT</pubDate>
            <guid>article-2-guid</guid>
        </item>
    </channel>
</rss>"""


def make_response(status_code=200, content=b"", headers=None, json_data=None):
    """Build a Mock standing in for requests.Response."""
    response = Mock()
    response.status_code = status_code
    response.content = content
    response.headers = headers or {}
    response.raise_for_status.return_value = None
    if json_data is None:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = json_data
    return response


def make_session():
    """Mock requests.Session with a real headers dict."""
    session = Mock()
    session.headers = {}
    return session


@pytest.fixture
def content_dir(tmp_path):
    """Empty content directory."""
    path = tmp_path / "content"
    path.mkdir()
    return path


@pytest.fixture
def db_connection(tmp_path):
    """Connection to a fresh database file."""
    connection = DatabaseConnection(str(tmp_path / "kbfeed_test.db"))
    yield connection
    connection.close()


@pytest.fixture
def repository(db_connection):
    """Dedup store with schema in place."""
    repo = IngestRepository(db_connection)
    repo.ensure_schema()
    return repo


@pytest.fixture
def cache(content_dir):
    return ContentCache(str(content_dir))


@pytest.fixture
def synth_feed():
    """Feed that synthesizes Markdown from feed metadata."""
    return FeedEndpointConfig(
        id="blog",
        name="blog",
        url="https://example.com/blog.atom",
        follow_link=False,
        knowledge_base_id="kb-blog",
    )


@pytest.fixture
def link_feed():
    """Feed that follows entry links and converts HTML."""
    return FeedEndpointConfig(
        id="news",
        name="News",
        url="https://example.com/news.xml",
        follow_link=True,
        convert_html_to_markdown=True,
        knowledge_base_id="kb-news",
    )


@pytest.fixture
def make_settings(tmp_path, content_dir):
    """Factory for settings pointing at the temporary locations."""

    def _make(feeds, **overrides):
        values = {
            "db_file": str(tmp_path / "kbfeed_test.db"),
            "content_dir": str(content_dir),
            "open_webui": {"api_endpoint": "http://owui.test/api", "api_token": "test-token"},
            "rss": feeds,
        }
        values.update(overrides)
        return KbFeedSettings(**values)

    return _make


@pytest.fixture
def http_response():
    """Factory for Mock HTTP responses."""
    return make_response


@pytest.fixture
def http_session():
    """Fresh Mock HTTP session."""
    return make_session()


@pytest.fixture
def atom_feed_bytes():
    return SAMPLE_ATOM_FEED


@pytest.fixture
def rss_feed_bytes():
    return SAMPLE_RSS_FEED
