"""Database storage and models."""

from .database import NewsStorage, ENRICHMENT_COLUMNS
from .models import SourceModel, ArticleModel, FeedErrorLogModel, init_db

__all__ = [
    "NewsStorage", "ENRICHMENT_COLUMNS",
    "SourceModel", "ArticleModel", "FeedErrorLogModel", "init_db",
]
