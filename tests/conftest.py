"""Pytest configuration and shared fixtures."""

import pytest
import tempfile
import os
from pathlib import Path

# Add project root to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest.fixture
def temp_db():
    """Provide a temporary database file."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    yield f"sqlite:///{db_path}"
    # Cleanup
    try:
        os.unlink(db_path)
    except FileNotFoundError:
        pass


@pytest.fixture
def storage(temp_db):
    """Provide a NewsStorage on a temporary database."""
    from src.storage.database import NewsStorage
    return NewsStorage(temp_db)


@pytest.fixture
def sample_article():
    """Provide a sample Article."""
    from datetime import datetime, timezone
    from src.ingestion.interfaces import Article
    return Article(
        source_id=1,
        city_id=10,
        country_id=2,
        url="https://example.fr/2024/01/01/article-test/",
        title="Le conseil municipal vote le budget",
        summary="Le budget 2024 a été adopté hier soir.",
        content="<p>Le budget 2024 a été adopté hier soir.</p>",
        language="fr",
        published_at=datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc),
        raw_json="{}",
    )



@pytest.fixture(autouse=True)
def fresh_translation_circuit():
    """Each test starts with a closed process-wide translation circuit."""
    from src.translation.gateway import reset_translation_circuit
    reset_translation_circuit()
    yield
    reset_translation_circuit()
