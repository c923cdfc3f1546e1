"""Factory functions to create storage instances.

The database URL comes from DATABASE_URL (standard for cloud platforms),
then LNI_DATABASE_URL, then the SQLite default in settings. The same
SQLAlchemy storage serves both SQLite and PostgreSQL.
"""

import os
from functools import lru_cache

import structlog

logger = structlog.get_logger()


def get_database_url() -> str:
    """Get database URL from environment, with fallback to SQLite."""
    url = os.environ.get('DATABASE_URL')
    if url:
        return _normalize_url(url)

    url = os.environ.get('LNI_DATABASE_URL')
    if url:
        return _normalize_url(url)

    from ..config.settings import settings
    return settings.database_url


def _normalize_url(url: str) -> str:
    # Heroku/Supabase style URLs use the scheme SQLAlchemy dropped in 1.4
    if url.startswith('postgres://'):
        return 'postgresql://' + url[len('postgres://'):]
    return url


def is_postgres() -> bool:
    """Check if we're using PostgreSQL."""
    return get_database_url().startswith('postgresql')


@lru_cache(maxsize=1)
def get_storage():
    """Get the shared NewsStorage instance."""
    from .database import NewsStorage

    url = get_database_url()
    logger.info("using_storage", backend="postgres" if is_postgres() else "sqlite", url=url[:40] + "...")
    return NewsStorage(url)


def clear_cache():
    """Clear cached instances (useful for testing)."""
    get_storage.cache_clear()
