"""SQLAlchemy models for the news ingestion database."""

from datetime import datetime, timezone

from sqlalchemy import create_engine, Column, Integer, String, Text, Boolean, DateTime, Index
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SourceModel(Base):
    """Database model for configured feed sources."""
    __tablename__ = "news_sources"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255))
    rss_url = Column(String(2048))
    city_id = Column(Integer)
    country_id = Column(Integer)
    language_code = Column(String(16))

    # Health
    is_active = Column(Boolean, nullable=False, default=True)
    failure_count = Column(Integer, nullable=False, default=0)
    last_success_at = Column(DateTime(timezone=True))
    last_failed_at = Column(DateTime(timezone=True))
    last_error = Column(Text)

    __table_args__ = (
        Index('idx_sources_active', 'is_active'),
    )


class ArticleModel(Base):
    """Database model for ingested articles."""
    __tablename__ = "news_articles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    source_id = Column(Integer, nullable=False)
    city_id = Column(Integer)
    country_id = Column(Integer)

    # Content
    url = Column(String(2048), unique=True, nullable=False)
    title = Column(Text)
    summary = Column(Text)
    content = Column(Text)
    language = Column(String(32))

    # Enrichment (only ever filled in, never cleared)
    translated_title = Column(Text)
    translated_summary = Column(Text)
    image_url = Column(String(2048))

    # Timestamps
    published_at = Column(DateTime(timezone=True))
    ingested_at = Column(DateTime(timezone=True), default=_utcnow)

    raw_json = Column(Text)

    __table_args__ = (
        Index('idx_articles_source', 'source_id'),
        Index('idx_articles_city', 'city_id'),
        Index('idx_articles_published', 'published_at'),
    )


class FeedErrorLogModel(Base):
    """Append-only log of per-source ingestion failures."""
    __tablename__ = "rss_error_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    source_id = Column(Integer, nullable=False)
    source_url = Column(String(2048))
    error_type = Column(String(100))
    error_message = Column(Text)
    stack_trace = Column(Text)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        Index('idx_error_logs_source', 'source_id'),
        Index('idx_error_logs_created', 'created_at'),
    )


def init_db(database_url: str):
    """Initialize database and create all tables."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return engine
