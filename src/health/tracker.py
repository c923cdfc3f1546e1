"""Per-source health tracking: failure streaks and auto-deactivation."""

import traceback
from typing import Optional

import structlog

from ..ingestion.interfaces import Source, StorageInterface, PersistenceError
from ..config.settings import settings

logger = structlog.get_logger()


def truncate(text: Optional[str], limit: int) -> Optional[str]:
    if text is None:
        return None
    return text[:limit]


def describe_error(error: BaseException) -> str:
    """Human-readable message, falling back to the class name for bare exceptions."""
    return str(error) or type(error).__name__


def format_trace(error: BaseException) -> str:
    return "".join(traceback.format_exception(type(error), error, error.__traceback__))


class HealthTracker:
    """Applies the success/failure transitions to a source.

    The failure path is three separate writes (error log, counter, deactivation)
    rather than one transaction. If the process dies between the counter and the
    deactivation, the next failure re-applies the threshold check.
    """

    def __init__(
        self,
        storage: StorageInterface,
        failure_threshold: int = None,
        error_message_max_chars: int = None,
        stack_trace_max_chars: int = None,
    ):
        self.storage = storage
        self.failure_threshold = failure_threshold or settings.failure_threshold
        self.error_message_max_chars = error_message_max_chars or settings.error_message_max_chars
        self.stack_trace_max_chars = stack_trace_max_chars or settings.stack_trace_max_chars

    def record_success(self, source: Source) -> None:
        """failure_count := 0, last_success_at := now, last_error := null."""
        self.storage.mark_source_success(source.id)
        logger.info("source_succeeded", source_id=source.id, previous_failures=source.failure_count)

    def record_failure(self, source: Source, error: BaseException) -> bool:
        """Count a failed pass. Returns True when this failure deactivated the source."""
        error_type = type(error).__name__
        message = truncate(describe_error(error), self.error_message_max_chars)

        logger.error(
            "source_failed",
            source_id=source.id,
            url=source.rss_url,
            error_type=error_type,
            error=message,
        )

        try:
            self.storage.append_error_log(
                source_id=source.id,
                source_url=source.rss_url,
                error_type=error_type,
                error_message=message,
                stack_trace=truncate(format_trace(error), self.stack_trace_max_chars),
            )
        except PersistenceError as e:
            logger.critical("error_log_write_failed", source_id=source.id, error=str(e)[:200])

        self.storage.increment_source_failure(source.id, message)

        deactivated = self.storage.deactivate_if_exhausted(source.id, self.failure_threshold)
        if deactivated:
            logger.error(
                "source_deactivated",
                source_id=source.id,
                url=source.rss_url,
                threshold=self.failure_threshold,
                last_error=message,
            )
        return deactivated
