"""Interface definitions for feed ingestion."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any
from enum import Enum


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


@dataclass
class Source:
    """A configured feed endpoint plus its health state."""
    id: int
    rss_url: Optional[str]
    city_id: Optional[int] = None
    country_id: Optional[int] = None
    language_code: Optional[str] = None
    name: Optional[str] = None
    is_active: bool = True
    failure_count: int = 0
    last_success_at: Optional[datetime] = None
    last_failed_at: Optional[datetime] = None
    last_error: Optional[str] = None


@dataclass
class FeedItem:
    """A single entry as returned by feed parsing.

    The media fields keep the feed dialect's shape: lists of attribute dicts
    (``href``/``url``, ``type``, ``medium``) for enclosures, ``media:content``
    and ``media:thumbnail``.
    """
    title: Optional[str] = None
    link: Optional[str] = None
    summary: Optional[str] = None
    content: Optional[str] = None
    published_at: Optional[datetime] = None
    enclosures: List[Dict[str, Any]] = field(default_factory=list)
    media_content: List[Dict[str, Any]] = field(default_factory=list)
    media_thumbnail: List[Dict[str, Any]] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ParsedFeed:
    """Result of a successful fetch."""
    language: Optional[str] = None
    items: List[FeedItem] = field(default_factory=list)


@dataclass
class Article:
    """A normalized article, keyed on ``url``."""
    source_id: int
    url: str
    title: Optional[str] = None
    summary: Optional[str] = None
    content: Optional[str] = None
    language: str = "unknown"
    city_id: Optional[int] = None
    country_id: Optional[int] = None
    translated_title: Optional[str] = None
    translated_summary: Optional[str] = None
    image_url: Optional[str] = None
    published_at: Optional[datetime] = None
    ingested_at: datetime = field(default_factory=utcnow)
    raw_json: Optional[str] = None
    id: Optional[int] = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "source_id": self.source_id,
            "city_id": self.city_id,
            "country_id": self.country_id,
            "url": self.url,
            "title": self.title,
            "translated_title": self.translated_title,
            "summary": self.summary,
            "translated_summary": self.translated_summary,
            "content": self.content,
            "language": self.language,
            "image_url": self.image_url,
            "published_at": self.published_at.isoformat() if self.published_at else None,
            "ingested_at": self.ingested_at.isoformat() if self.ingested_at else None,
        }


class FetchErrorKind(Enum):
    """Why a fetch failed."""
    TIMEOUT = "timeout"
    NETWORK = "network"
    MALFORMED = "malformed"


class FetchError(Exception):
    """Base class for feed fetch failures."""
    kind: FetchErrorKind = FetchErrorKind.NETWORK

    def __init__(self, message: str, url: str = None):
        super().__init__(message)
        self.url = url


class FetchTimeout(FetchError):
    kind = FetchErrorKind.TIMEOUT


class FetchNetworkError(FetchError):
    kind = FetchErrorKind.NETWORK

    def __init__(self, message: str, url: str = None, status: Optional[int] = None):
        super().__init__(message, url=url)
        self.status = status


class FeedMalformed(FetchError):
    kind = FetchErrorKind.MALFORMED


class PersistenceError(Exception):
    """A storage write failed."""


class FetcherInterface:
    """Interface for feed fetching."""

    async def fetch(self, url: str) -> ParsedFeed:
        """Fetch and parse one feed, raising FetchError on failure."""
        raise NotImplementedError


class StorageInterface:
    """Interface for article and source persistence."""

    def list_active_sources(self) -> List[Source]:
        """Sources with is_active = true."""
        raise NotImplementedError

    def upsert_article(self, article: Article) -> None:
        """Insert by URL, refining enrichment fields on conflict."""
        raise NotImplementedError

    def get_by_url(self, url: str) -> Optional[Article]:
        """Get article by URL."""
        raise NotImplementedError

    def mark_source_success(self, source_id: int) -> None:
        raise NotImplementedError

    def increment_source_failure(self, source_id: int, error_message: Optional[str]) -> None:
        raise NotImplementedError

    def deactivate_if_exhausted(self, source_id: int, threshold: int) -> bool:
        raise NotImplementedError

    def append_error_log(
        self,
        source_id: int,
        source_url: Optional[str],
        error_type: str,
        error_message: Optional[str],
        stack_trace: Optional[str],
    ) -> None:
        raise NotImplementedError
