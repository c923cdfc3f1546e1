"""Unit tests for ingestion module."""

import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

import aiohttp

# Add src to path
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from src.ingestion.interfaces import (
    Article, FetchErrorKind, FetchTimeout, FetchNetworkError, FeedMalformed,
)
from src.ingestion.fetcher import FeedFetcher


RSS_WITH_MEDIA = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/"
     xmlns:content="http://purl.org/rss/1.0/modules/content/">
  <channel>
    <title>Journal de Lyon</title>
    <link>https://journal.example.fr/</link>
    <language>fr-FR</language>
    <item>
      <title>Le m&#233;tro ferm&#233; dimanche</title>
      <link>https://journal.example.fr/metro</link>
      <description>&lt;p&gt;Travaux sur la ligne A&lt;/p&gt;</description>
      <pubDate>Mon, 01 Jan 2024 12:00:00 GMT</pubDate>
      <enclosure url="https://journal.example.fr/metro.jpg" type="image/jpeg" length="1234"/>
    </item>
    <item>
      <title>Nouveau parc</title>
      <link>https://journal.example.fr/parc</link>
      <media:content url="https://journal.example.fr/parc.jpg" medium="image"/>
      <content:encoded><![CDATA[<p><img src="https://journal.example.fr/inline.jpg"></p>]]></content:encoded>
    </item>
  </channel>
</rss>
"""

EMPTY_CHANNEL = b"""<?xml version="1.0"?>
<rss version="2.0"><channel><title>Quiet feed</title><link>http://q.example/</link></channel></rss>
"""

LOOSE_XML = b"""<rss version="2.0"><channel><title>Loose</title>
<item><title>Fish & Chips</title><link>http://loose.example/1</link></item>
</channel></rss>
"""

LATIN1_FEED = (
    '<?xml version="1.0" encoding="ISO-8859-1"?>'
    '<rss version="2.0"><channel><title>Caf\xe9</title>'
    '<item><title>Caf\xe9 cr\xe8me</title><link>http://latin.example/1</link></item>'
    '</channel></rss>'
).encode("iso-8859-1")


class TestFeedParsing:
    """Tests for FeedFetcher.parse."""

    def test_browser_like_headers(self):
        """Should identify itself and accept any XML flavour."""
        fetcher = FeedFetcher()
        assert "Mozilla/5.0" in fetcher.headers["User-Agent"]
        assert "application/rss+xml" in fetcher.headers["Accept"]
        assert "*/*" in fetcher.headers["Accept"]

    def test_parses_items_and_language(self):
        """Should map entries onto FeedItems and pick up the channel language."""
        parsed = FeedFetcher().parse(RSS_WITH_MEDIA)

        assert parsed.language == "fr-FR"
        assert len(parsed.items) == 2

        first = parsed.items[0]
        assert first.title == "Le métro fermé dimanche"
        assert first.link == "https://journal.example.fr/metro"
        assert "Travaux" in first.summary
        assert first.published_at is not None
        assert first.published_at.year == 2024
        assert first.enclosures[0]["href"] == "https://journal.example.fr/metro.jpg"

    def test_media_and_encoded_content(self):
        """Should keep media:content and content:encoded."""
        second = FeedFetcher().parse(RSS_WITH_MEDIA).items[1]

        assert second.media_content[0]["url"] == "https://journal.example.fr/parc.jpg"
        assert "inline.jpg" in second.content
        assert second.published_at is None

    def test_empty_channel_is_not_an_error(self):
        """Should return an empty ParsedFeed for a valid feed without items."""
        parsed = FeedFetcher().parse(EMPTY_CHANNEL)
        assert parsed.items == []

    def test_loose_xml_still_parses(self):
        """Should recover entries from not-well-formed XML."""
        parsed = FeedFetcher().parse(LOOSE_XML)
        assert len(parsed.items) == 1
        assert parsed.items[0].link == "http://loose.example/1"

    def test_declared_latin1_encoding(self):
        """Should decode a feed declared as ISO-8859-1."""
        parsed = FeedFetcher().parse(LATIN1_FEED)
        assert parsed.items[0].title == "Café crème"

    def test_html_page_is_malformed(self):
        """Should reject a document that is not a feed."""
        with pytest.raises(FeedMalformed) as exc_info:
            FeedFetcher().parse(b"<html><body><p>Not a feed</p></body></html>", url="http://x")
        assert exc_info.value.kind is FetchErrorKind.MALFORMED
        assert exc_info.value.url == "http://x"


@pytest.mark.asyncio
class TestFeedFetch:
    """Tests for FeedFetcher.fetch with the network stubbed out."""

    async def test_fetch_returns_parsed_feed(self):
        """Should parse whatever the download returns."""
        fetcher = FeedFetcher(timeout=1)
        fetcher._download = AsyncMock(return_value=RSS_WITH_MEDIA)

        parsed = await fetcher.fetch("https://journal.example.fr/rss")

        assert len(parsed.items) == 2
        fetcher._download.assert_awaited_once_with("https://journal.example.fr/rss")

    async def test_timeout(self):
        """Should raise FetchTimeout when the download outlives the timeout."""
        fetcher = FeedFetcher(timeout=0.05)

        async def slow_download(url):
            await asyncio.sleep(5)
            return RSS_WITH_MEDIA

        fetcher._download = slow_download

        with pytest.raises(FetchTimeout) as exc_info:
            await fetcher.fetch("http://slow.example/rss")
        assert exc_info.value.kind is FetchErrorKind.TIMEOUT

    async def test_http_error_status(self):
        """Should raise FetchNetworkError carrying the HTTP status."""
        fetcher = FeedFetcher(timeout=1)
        fetcher._download = AsyncMock(side_effect=aiohttp.ClientResponseError(
            request_info=MagicMock(), history=(), status=403, message="Forbidden",
        ))

        with pytest.raises(FetchNetworkError) as exc_info:
            await fetcher.fetch("http://blocked.example/rss")
        assert exc_info.value.status == 403
        assert exc_info.value.kind is FetchErrorKind.NETWORK

    async def test_connection_error(self):
        """Should raise FetchNetworkError on transport failure."""
        fetcher = FeedFetcher(timeout=1)
        fetcher._download = AsyncMock(side_effect=aiohttp.ClientConnectionError("refused"))

        with pytest.raises(FetchNetworkError):
            await fetcher.fetch("http://down.example/rss")

    async def test_malformed_body(self):
        """Should raise FeedMalformed for a non-feed body."""
        fetcher = FeedFetcher(timeout=1)
        fetcher._download = AsyncMock(return_value=b"<html><body>Maintenance</body></html>")

        with pytest.raises(FeedMalformed):
            await fetcher.fetch("http://html.example/rss")


class TestArticle:
    """Tests for Article."""

    def test_article_to_dict(self, sample_article):
        """Should convert to dict."""
        data = sample_article.to_dict()
        assert data["url"] == sample_article.url
        assert data["translated_title"] is None
        assert data["published_at"].startswith("2024-01-01")
        assert "ingested_at" in data

    def test_article_defaults(self):
        """Should default to unknown language and no enrichment."""
        article = Article(source_id=1, url="https://example.com/a")
        assert article.language == "unknown"
        assert article.image_url is None
        assert article.ingested_at is not None
