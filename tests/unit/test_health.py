"""Unit tests for the source health tracker."""

import pytest
from unittest.mock import MagicMock

# Add src to path
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from src.health.tracker import HealthTracker, describe_error
from src.ingestion.interfaces import FetchTimeout, PersistenceError, Source


def make_source(**overrides) -> Source:
    fields = dict(id=1, rss_url="http://a.example/rss", city_id=1, country_id=1, language_code="fr")
    fields.update(overrides)
    return Source(**fields)


class TestHealthTrackerWithStorage:
    """Transitions against a real database."""

    def test_failure_then_success(self, storage):
        """Should count a failure and reset it on the next success."""
        source_id = storage.add_source("http://a.example/rss")
        source = storage.get_source(source_id)
        tracker = HealthTracker(storage, failure_threshold=10)

        assert tracker.record_failure(source, FetchTimeout("timed out after 15s", url=source.rss_url)) is False
        assert storage.get_source(source_id).failure_count == 1

        tracker.record_success(source)
        refreshed = storage.get_source(source_id)
        assert refreshed.failure_count == 0
        assert refreshed.last_error is None
        assert refreshed.last_success_at is not None

    def test_failure_writes_error_log(self, storage):
        """Should append one error-log row per failure."""
        source_id = storage.add_source("http://a.example/rss")
        source = storage.get_source(source_id)
        tracker = HealthTracker(storage)

        try:
            raise FetchTimeout("timed out after 15s", url=source.rss_url)
        except FetchTimeout as e:
            tracker.record_failure(source, e)

        rows = storage.list_error_logs(source_id=source_id)
        assert len(rows) == 1
        assert rows[0]["error_type"] == "FetchTimeout"
        assert rows[0]["error_message"] == "timed out after 15s"
        assert rows[0]["source_url"] == "http://a.example/rss"
        assert "Traceback" in rows[0]["stack_trace"]

    def test_deactivates_on_tenth_failure(self, storage):
        """Should deactivate exactly when the streak reaches the threshold."""
        source_id = storage.add_source("http://a.example/rss")
        source = storage.get_source(source_id)
        tracker = HealthTracker(storage, failure_threshold=10)

        results = [tracker.record_failure(source, RuntimeError("boom")) for _ in range(10)]

        assert results == [False] * 9 + [True]
        refreshed = storage.get_source(source_id)
        assert refreshed.is_active is False
        assert refreshed.failure_count == 10

    def test_truncation(self, storage):
        """Should cap the stored message and stack trace."""
        source_id = storage.add_source("http://a.example/rss")
        source = storage.get_source(source_id)
        tracker = HealthTracker(storage, error_message_max_chars=20, stack_trace_max_chars=50)

        tracker.record_failure(source, RuntimeError("x" * 500))

        row = storage.list_error_logs(source_id=source_id)[0]
        assert len(row["error_message"]) == 20
        assert len(row["stack_trace"]) <= 50
        assert len(storage.get_source(source_id).last_error) == 20


class TestHealthTrackerWrites:
    """Write ordering with a mocked storage."""

    def test_error_log_failure_still_counts(self):
        """Should increment the counter even when the error log cannot be written."""
        storage = MagicMock()
        storage.append_error_log.side_effect = PersistenceError("disk full")
        storage.deactivate_if_exhausted.return_value = False
        tracker = HealthTracker(storage, failure_threshold=10)

        tracker.record_failure(make_source(), RuntimeError("boom"))

        storage.increment_source_failure.assert_called_once_with(1, "boom")
        storage.deactivate_if_exhausted.assert_called_once_with(1, 10)

    def test_counter_failure_propagates(self):
        """Should surface a failed counter write to the caller."""
        storage = MagicMock()
        storage.increment_source_failure.side_effect = PersistenceError("connection lost")
        tracker = HealthTracker(storage)

        with pytest.raises(PersistenceError):
            tracker.record_failure(make_source(), RuntimeError("boom"))
        storage.deactivate_if_exhausted.assert_not_called()

    def test_success_touches_only_success_columns(self):
        storage = MagicMock()
        HealthTracker(storage).record_success(make_source(failure_count=4))

        storage.mark_source_success.assert_called_once_with(1)
        storage.increment_source_failure.assert_not_called()

    def test_describe_bare_exception(self):
        """Should fall back to the class name for message-less errors."""
        assert describe_error(TimeoutError()) == "TimeoutError"
