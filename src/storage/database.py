"""Database operations for sources, articles and the feed error log."""

from typing import Optional, List
from pathlib import Path

from sqlalchemy import func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
import structlog

from .models import ArticleModel, SourceModel, FeedErrorLogModel, init_db
from ..ingestion.interfaces import Article, Source, StorageInterface, PersistenceError, utcnow
from ..config.settings import settings

logger = structlog.get_logger()

# Nullable columns a re-fetch may fill in but never overwrite.
ENRICHMENT_COLUMNS = ("translated_title", "translated_summary", "image_url")

_DIALECT_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class NewsStorage(StorageInterface):
    """SQLAlchemy-backed storage (SQLite locally, PostgreSQL in production)."""

    def __init__(self, database_url: str = None):
        if database_url is None:
            database_url = settings.database_url

        # Ensure data directory exists
        if database_url.startswith("sqlite:///"):
            db_path = database_url.replace("sqlite:///", "")
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self.engine = init_db(database_url)
        self.Session = sessionmaker(bind=self.engine)

    def _execute(self, statement) -> int:
        """Run one write statement in its own transaction; returns the row count."""
        session = self.Session()
        try:
            rowcount = session.execute(statement).rowcount
            session.commit()
            return rowcount or 0
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError(f"{type(e).__name__}: {e}") from e
        finally:
            session.close()

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------

    def add_source(
        self,
        rss_url: Optional[str],
        city_id: int = None,
        country_id: int = None,
        language_code: str = None,
        name: str = None,
        is_active: bool = True,
    ) -> int:
        """Create a source and return its ID."""
        session = self.Session()
        try:
            model = SourceModel(
                name=name,
                rss_url=rss_url,
                city_id=city_id,
                country_id=country_id,
                language_code=language_code,
                is_active=is_active,
                failure_count=0,
            )
            session.add(model)
            session.commit()
            logger.debug("source_added", id=model.id, url=(rss_url or "")[:80])
            return model.id
        finally:
            session.close()

    def get_source(self, source_id: int) -> Optional[Source]:
        session = self.Session()
        try:
            model = session.get(SourceModel, source_id)
            return self._model_to_source(model) if model else None
        finally:
            session.close()

    def get_source_by_url(self, rss_url: str) -> Optional[Source]:
        session = self.Session()
        try:
            model = session.execute(
                select(SourceModel).where(SourceModel.rss_url == rss_url)
            ).scalars().first()
            return self._model_to_source(model) if model else None
        finally:
            session.close()

    def list_active_sources(self) -> List[Source]:
        """Sources the next run should visit."""
        return self.list_sources(active=True)

    def list_sources(self, active: Optional[bool] = None) -> List[Source]:
        """All sources, or only active/inactive ones."""
        session = self.Session()
        try:
            query = select(SourceModel).order_by(SourceModel.id)
            if active is not None:
                query = query.where(SourceModel.is_active == active)
            return [self._model_to_source(m) for m in session.execute(query).scalars()]
        finally:
            session.close()

    def mark_source_success(self, source_id: int) -> None:
        """Reset the failure streak after a clean pass."""
        self._execute(
            update(SourceModel)
            .where(SourceModel.id == source_id)
            .values(failure_count=0, last_success_at=utcnow(), last_error=None)
        )

    def increment_source_failure(self, source_id: int, error_message: Optional[str]) -> None:
        """Count one more failure and remember the error."""
        self._execute(
            update(SourceModel)
            .where(SourceModel.id == source_id)
            .values(
                failure_count=func.coalesce(SourceModel.failure_count, 0) + 1,
                last_failed_at=utcnow(),
                last_error=error_message,
            )
        )

    def deactivate_if_exhausted(self, source_id: int, threshold: int) -> bool:
        """Deactivate the source once its streak reaches threshold. True if it flipped now."""
        rowcount = self._execute(
            update(SourceModel)
            .where(SourceModel.id == source_id)
            .where(SourceModel.failure_count >= threshold)
            .where(SourceModel.is_active.is_(True))
            .values(is_active=False)
        )
        return rowcount > 0

    def reactivate_source(self, source_id: int) -> bool:
        """Manual re-activation: back in rotation with a clean streak."""
        rowcount = self._execute(
            update(SourceModel)
            .where(SourceModel.id == source_id)
            .values(is_active=True, failure_count=0)
        )
        reactivated = rowcount > 0
        if reactivated:
            logger.info("source_reactivated", source_id=source_id)
        return reactivated

    # ------------------------------------------------------------------
    # Articles
    # ------------------------------------------------------------------

    def upsert_article(self, article: Article) -> None:
        """Insert by URL; on conflict only fill enrichment columns that are still null."""
        insert = _DIALECT_INSERTS.get(self.engine.dialect.name)
        if insert is None:
            raise PersistenceError(f"Upsert not supported for dialect {self.engine.dialect.name}")

        stmt = insert(ArticleModel).values(
            source_id=article.source_id,
            city_id=article.city_id,
            country_id=article.country_id,
            title=article.title,
            translated_title=article.translated_title,
            url=article.url,
            summary=article.summary,
            translated_summary=article.translated_summary,
            content=article.content,
            language=article.language,
            image_url=article.image_url,
            published_at=article.published_at,
            ingested_at=article.ingested_at or utcnow(),
            raw_json=article.raw_json,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[ArticleModel.url],
            set_={
                column: func.coalesce(getattr(stmt.excluded, column), getattr(ArticleModel, column))
                for column in ENRICHMENT_COLUMNS
            },
        )
        self._execute(stmt)
        logger.debug("article_upserted", url=article.url[:80])

    def get_by_url(self, url: str) -> Optional[Article]:
        """Get article by URL."""
        session = self.Session()
        try:
            model = session.execute(
                select(ArticleModel).where(ArticleModel.url == url)
            ).scalars().first()
            return self._model_to_article(model) if model else None
        finally:
            session.close()

    def list_articles(self, source_id: int = None, limit: int = 100) -> List[Article]:
        session = self.Session()
        try:
            query = select(ArticleModel).order_by(ArticleModel.id)
            if source_id is not None:
                query = query.where(ArticleModel.source_id == source_id)
            return [self._model_to_article(m) for m in session.execute(query.limit(limit)).scalars()]
        finally:
            session.close()

    # ------------------------------------------------------------------
    # Error log
    # ------------------------------------------------------------------

    def append_error_log(
        self,
        source_id: int,
        source_url: Optional[str],
        error_type: str,
        error_message: Optional[str],
        stack_trace: Optional[str],
    ) -> None:
        """Append one postmortem row; rows are never updated."""
        session = self.Session()
        try:
            session.add(FeedErrorLogModel(
                source_id=source_id,
                source_url=source_url,
                error_type=error_type,
                error_message=error_message,
                stack_trace=stack_trace,
                created_at=utcnow(),
            ))
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError(f"{type(e).__name__}: {e}") from e
        finally:
            session.close()

    def list_error_logs(self, source_id: int = None, limit: int = 50) -> List[dict]:
        """Most recent error-log rows first."""
        session = self.Session()
        try:
            query = select(FeedErrorLogModel).order_by(FeedErrorLogModel.id.desc())
            if source_id is not None:
                query = query.where(FeedErrorLogModel.source_id == source_id)
            return [
                {
                    "id": row.id,
                    "source_id": row.source_id,
                    "source_url": row.source_url,
                    "error_type": row.error_type,
                    "error_message": row.error_message,
                    "stack_trace": row.stack_trace,
                    "created_at": row.created_at,
                }
                for row in session.execute(query.limit(limit)).scalars()
            ]
        finally:
            session.close()

    def get_stats(self) -> dict:
        """Get database statistics."""
        session = self.Session()
        try:
            total_sources = session.scalar(select(func.count(SourceModel.id)))
            active_sources = session.scalar(
                select(func.count(SourceModel.id)).where(SourceModel.is_active.is_(True))
            )
            total_articles = session.scalar(select(func.count(ArticleModel.id)))
            translated = session.scalar(
                select(func.count(ArticleModel.id)).where(ArticleModel.translated_title.is_not(None))
            )
            return {
                "total_sources": total_sources,
                "active_sources": active_sources,
                "inactive_sources": total_sources - active_sources,
                "total_articles": total_articles,
                "translated_articles": translated,
            }
        finally:
            session.close()

    def _model_to_source(self, model: SourceModel) -> Source:
        return Source(
            id=model.id,
            rss_url=model.rss_url,
            city_id=model.city_id,
            country_id=model.country_id,
            language_code=model.language_code,
            name=model.name,
            is_active=bool(model.is_active),
            failure_count=model.failure_count or 0,
            last_success_at=model.last_success_at,
            last_failed_at=model.last_failed_at,
            last_error=model.last_error,
        )

    def _model_to_article(self, model: ArticleModel) -> Article:
        """Convert database model to Article."""
        return Article(
            id=model.id,
            source_id=model.source_id,
            city_id=model.city_id,
            country_id=model.country_id,
            url=model.url,
            title=model.title,
            translated_title=model.translated_title,
            summary=model.summary,
            translated_summary=model.translated_summary,
            content=model.content,
            language=model.language,
            image_url=model.image_url,
            published_at=model.published_at,
            ingested_at=model.ingested_at,
            raw_json=model.raw_json,
        )
