"""Feed ingestion - fetching and parsing RSS/Atom feeds."""

from .interfaces import (
    Source, FeedItem, ParsedFeed, Article,
    FetchErrorKind, FetchError, FetchTimeout, FetchNetworkError, FeedMalformed,
    PersistenceError, FetcherInterface, StorageInterface,
)
from .fetcher import FeedFetcher

__all__ = [
    "Source", "FeedItem", "ParsedFeed", "Article",
    "FetchErrorKind", "FetchError", "FetchTimeout", "FetchNetworkError", "FeedMalformed",
    "PersistenceError", "FetcherInterface", "StorageInterface", "FeedFetcher",
]
