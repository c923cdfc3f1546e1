"""Pipeline orchestration - one-shot ingestion runs."""

from .ingestion import IngestionPipeline, RunStats, SourceOutcome, SourceStatus, run_ingestion

__all__ = ["IngestionPipeline", "RunStats", "SourceOutcome", "SourceStatus", "run_ingestion"]
