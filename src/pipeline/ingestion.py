"""Ingestion run orchestration: fetch, normalize, translate, persist, track health."""

import asyncio
import json
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import structlog

from ..config.settings import settings
from ..health.tracker import HealthTracker
from ..ingestion.fetcher import FeedFetcher
from ..ingestion.interfaces import (
    Article, FeedItem, FetcherInterface, FetchError, ParsedFeed, PersistenceError, Source,
    StorageInterface, utcnow,
)
from ..normalization.images import extract_image
from ..normalization.text import clean_text
from ..translation.gateway import TranslationGateway, get_translation_circuit

logger = structlog.get_logger()

UNKNOWN_LANGUAGE = "unknown"


class SourceStatus(Enum):
    """How one source's pass ended."""
    SUCCESS = "success"
    SKIPPED = "skipped"  # not an error; health is left untouched
    FAILED = "failed"


@dataclass
class SourceOutcome:
    """Result of processing one source."""
    source_id: int
    status: SourceStatus
    reason: Optional[str] = None
    error_kind: Optional[str] = None
    items: int = 0
    upserted: int = 0
    missing_link: int = 0
    language: Optional[str] = None
    deactivated: bool = False


@dataclass
class RunStats:
    """Aggregate result of one run."""
    sources: int = 0
    succeeded: int = 0
    skipped: int = 0
    failed: int = 0
    deactivated: int = 0
    articles_upserted: int = 0
    items_missing_link: int = 0
    translations: int = 0
    elapsed_seconds: float = 0.0
    outcomes: List[SourceOutcome] = field(default_factory=list)

    @classmethod
    def from_outcomes(cls, outcomes: List[SourceOutcome], translations: int, elapsed: float) -> "RunStats":
        return cls(
            sources=len(outcomes),
            succeeded=sum(1 for o in outcomes if o.status is SourceStatus.SUCCESS),
            skipped=sum(1 for o in outcomes if o.status is SourceStatus.SKIPPED),
            failed=sum(1 for o in outcomes if o.status is SourceStatus.FAILED),
            deactivated=sum(1 for o in outcomes if o.deactivated),
            articles_upserted=sum(o.upserted for o in outcomes),
            items_missing_link=sum(o.missing_link for o in outcomes),
            translations=translations,
            elapsed_seconds=elapsed,
            outcomes=list(outcomes),
        )

    def to_dict(self) -> dict:
        return {
            "sources": self.sources,
            "succeeded": self.succeeded,
            "skipped": self.skipped,
            "failed": self.failed,
            "deactivated": self.deactivated,
            "articles_upserted": self.articles_upserted,
            "items_missing_link": self.items_missing_link,
            "translations": self.translations,
            "elapsed_seconds": self.elapsed_seconds,
        }


def effective_language(source: Source, parsed: ParsedFeed) -> str:
    """Configured language, else the feed's own, else "unknown"."""
    return (source.language_code or "").strip() or (parsed.language or "").strip() or UNKNOWN_LANGUAGE


def _error_kind(error: BaseException) -> str:
    if isinstance(error, FetchError):
        return error.kind.value
    if isinstance(error, PersistenceError):
        return "persistence"
    return "unexpected"


class IngestionPipeline:
    """Runs every active source once.

    A failure anywhere inside one source's pass is caught at the source boundary
    and routed to the health tracker; it never stops the other sources.
    """

    def __init__(
        self,
        storage: StorageInterface,
        translator: TranslationGateway = None,
        fetcher: FetcherInterface = None,
        health: HealthTracker = None,
        max_items_per_source: int = None,
        max_concurrent_sources: int = None,
    ):
        self.storage = storage
        self.translator = translator or TranslationGateway()
        self.fetcher = fetcher
        self.health = health or HealthTracker(storage)
        self.max_items_per_source = max_items_per_source or settings.max_items_per_source
        self.max_concurrent_sources = max(max_concurrent_sources or settings.max_concurrent_sources, 1)

    async def run(self) -> RunStats:
        """Visit all active sources once. Safe to re-run after a crash."""
        if self.fetcher is not None:
            return await self._run_sources()

        async with FeedFetcher() as fetcher:
            self.fetcher = fetcher
            try:
                return await self._run_sources()
            finally:
                self.fetcher = None

    async def _run_sources(self) -> RunStats:
        start = time.monotonic()
        translations_before = self.translator.translated_count

        sources = self.storage.list_active_sources()
        logger.info(
            "run_started",
            sources=len(sources),
            concurrency=self.max_concurrent_sources,
            translation_enabled=not self.translator.disabled,
        )

        semaphore = asyncio.Semaphore(self.max_concurrent_sources)

        async def bounded(source: Source) -> SourceOutcome:
            async with semaphore:
                return await self.process_source(source)

        outcomes = await asyncio.gather(*(bounded(source) for source in sources))

        stats = RunStats.from_outcomes(
            outcomes,
            translations=self.translator.translated_count - translations_before,
            elapsed=time.monotonic() - start,
        )
        logger.info("run_completed", **stats.to_dict())
        return stats

    async def process_source(self, source: Source) -> SourceOutcome:
        """One source's full pass, ending in exactly one health transition (or none when skipped)."""
        if not source.rss_url:
            logger.info("source_skipped", source_id=source.id, reason="no_url")
            return SourceOutcome(source_id=source.id, status=SourceStatus.SKIPPED, reason="no_url")

        try:
            outcome = await self._ingest(source)
            if outcome.status is SourceStatus.SUCCESS:
                self.health.record_success(source)
            return outcome
        except Exception as e:
            return self._fail(source, e)

    async def _ingest(self, source: Source) -> SourceOutcome:
        logger.info("source_fetching", source_id=source.id, url=source.rss_url)
        parsed = await self.fetcher.fetch(source.rss_url)

        if not parsed.items:
            logger.warning("feed_empty", source_id=source.id, url=source.rss_url)
            return SourceOutcome(source_id=source.id, status=SourceStatus.SKIPPED, reason="empty_feed")

        language = effective_language(source, parsed)
        translate = self.translator.needs_translation(language)
        items = parsed.items[: self.max_items_per_source]

        outcome = SourceOutcome(
            source_id=source.id,
            status=SourceStatus.SUCCESS,
            items=len(items),
            language=language,
        )
        for item in items:
            article = await self._build_article(source, item, language, translate)
            if article is None:
                outcome.missing_link += 1
                continue
            self.storage.upsert_article(article)
            outcome.upserted += 1

        logger.info(
            "source_ingested",
            source_id=source.id,
            items=outcome.items,
            capped=len(parsed.items) > len(items),
            upserted=outcome.upserted,
            missing_link=outcome.missing_link,
            language=language,
            translated=translate and not self.translator.disabled,
        )
        return outcome

    async def _build_article(
        self,
        source: Source,
        item: FeedItem,
        language: str,
        translate: bool,
    ) -> Optional[Article]:
        """Normalize one item; None when it has no link to key on."""
        url = (item.link or "").strip()
        if not url:
            return None

        title = clean_text(item.title)
        summary = clean_text(item.summary)

        translated_title = None
        translated_summary = None
        if translate:
            source_language = None if language == UNKNOWN_LANGUAGE else language
            translated_title = await self.translator.translate(title, source_language=source_language)
            translated_summary = await self.translator.translate(summary, source_language=source_language)

        return Article(
            source_id=source.id,
            city_id=source.city_id,
            country_id=source.country_id,
            url=url,
            title=title,
            translated_title=translated_title,
            summary=summary,
            translated_summary=translated_summary,
            content=item.content or None,
            language=language,
            image_url=extract_image(item),
            published_at=item.published_at,
            ingested_at=utcnow(),
            raw_json=json.dumps(item.raw, default=str),
        )

    def _fail(self, source: Source, error: Exception) -> SourceOutcome:
        kind = _error_kind(error)
        deactivated = False
        try:
            deactivated = self.health.record_failure(source, error)
        except Exception as health_error:
            logger.critical(
                "health_update_failed",
                source_id=source.id,
                error=str(health_error)[:200],
                original_error=str(error)[:200],
            )
        return SourceOutcome(
            source_id=source.id,
            status=SourceStatus.FAILED,
            reason=str(error)[:200] or type(error).__name__,
            error_kind=kind,
            deactivated=deactivated,
        )


async def run_ingestion(
    storage: StorageInterface = None,
    max_items_per_source: int = None,
    max_concurrent_sources: int = None,
) -> RunStats:
    """Run one ingestion pass with default collaborators.

    Args:
        storage: Storage to use; defaults to the shared factory instance
        max_items_per_source: Per-source item cap for this run
        max_concurrent_sources: Size of the source worker pool

    Returns:
        RunStats for the run
    """
    if storage is None:
        from ..storage.factory import get_storage
        storage = get_storage()

    async with TranslationGateway(circuit=get_translation_circuit()) as translator, FeedFetcher() as fetcher:
        pipeline = IngestionPipeline(
            storage=storage,
            translator=translator,
            fetcher=fetcher,
            max_items_per_source=max_items_per_source,
            max_concurrent_sources=max_concurrent_sources,
        )
        return await pipeline.run()
