"""RSS/Atom feed fetcher with a bounded wall-clock timeout."""

import asyncio
import calendar
import time
from datetime import datetime, timezone
from typing import Optional

import aiohttp
import feedparser
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential
import structlog

from .interfaces import (
    FeedItem, ParsedFeed, FetcherInterface,
    FetchTimeout, FetchNetworkError, FeedMalformed,
)
from ..config.settings import settings

logger = structlog.get_logger()


class FeedFetcher(FetcherInterface):
    """Fetches one feed at a time over a shared aiohttp session.

    The whole download, retries included, races against ``timeout``; on expiry
    the download task is cancelled so a late response can never be parsed or
    handed back to the caller.
    """

    def __init__(self, timeout: float = None, user_agent: str = None, accept: str = None):
        self.timeout = timeout if timeout is not None else settings.fetch_timeout_seconds
        self.headers = {
            "User-Agent": user_agent or settings.fetch_user_agent,
            "Accept": accept or settings.fetch_accept,
        }
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout),
            headers=self.headers,
        )
        return self

    async def __aexit__(self, *args):
        if self.session:
            await self.session.close()

    async def fetch(self, url: str) -> ParsedFeed:
        """Fetch and parse a feed, raising a FetchError subclass on failure."""
        start_time = time.monotonic()
        try:
            content = await asyncio.wait_for(self._download(url), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("feed_timeout", url=url, timeout_seconds=self.timeout)
            raise FetchTimeout(f"Feed timeout after {self.timeout}s", url=url)
        except aiohttp.ClientResponseError as e:
            raise FetchNetworkError(f"HTTP {e.status}: {e.message}", url=url, status=e.status) from e
        except aiohttp.ClientError as e:
            raise FetchNetworkError(f"{type(e).__name__}: {e}", url=url) from e

        parsed = self.parse(content, url)
        logger.info(
            "feed_fetched",
            url=url,
            items=len(parsed.items),
            language=parsed.language,
            time_ms=int((time.monotonic() - start_time) * 1000),
        )
        return parsed

    @retry(
        retry=retry_if_exception_type(aiohttp.ClientConnectionError),
        stop=stop_after_attempt(max(settings.fetch_max_retries, 1)),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
    )
    async def _download(self, url: str) -> bytes:
        """GET the raw feed body. Content-Type is not consulted; feedparser sniffs the format."""
        if self.session is None:
            raise RuntimeError("FeedFetcher must be used as an async context manager")
        async with self.session.get(url, allow_redirects=True) as response:
            response.raise_for_status()
            return await response.read()

    def parse(self, content: bytes, url: str = None) -> ParsedFeed:
        """Parse a feed body leniently.

        feedparser recovers from undeclared encodings and loose XML; only a body
        that is not recognisable as a feed at all is reported as malformed.
        """
        parsed = feedparser.parse(content)
        entries = parsed.entries or []

        if not parsed.get("version") and not entries:
            reason = parsed.get("bozo_exception") or "not a feed document"
            raise FeedMalformed(f"Unparseable feed: {reason}", url=url)

        if parsed.bozo:
            logger.debug("feed_parse_warning", url=url, error=str(parsed.get("bozo_exception")))

        language = parsed.feed.get("language")
        items = [self._parse_entry(entry) for entry in entries]
        return ParsedFeed(language=language or None, items=items)

    def _parse_entry(self, entry) -> FeedItem:
        """Map a feedparser entry onto a FeedItem."""
        content = None
        if entry.get("content"):
            content = entry.content[0].get("value") or None

        published_at = None
        for attr in ("published_parsed", "updated_parsed"):
            parsed = entry.get(attr)
            if parsed:
                try:
                    published_at = datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)
                    break
                except (TypeError, ValueError, OverflowError):
                    pass

        return FeedItem(
            title=entry.get("title"),
            link=entry.get("link"),
            summary=entry.get("summary") or entry.get("description"),
            content=content,
            published_at=published_at,
            enclosures=[dict(e) for e in entry.get("enclosures", [])],
            media_content=[dict(m) for m in entry.get("media_content", [])],
            media_thumbnail=[dict(m) for m in entry.get("media_thumbnail", [])],
            raw=dict(entry),
        )
