#!/usr/bin/env python3
"""Run one ingestion pass over all active sources.

Scheduling is up to the caller (cron, a platform scheduler, or by hand);
each invocation is an independent, idempotent run.
"""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv
load_dotenv()

from src.config.logging_config import configure_logging
from src.pipeline.ingestion import run_ingestion


def main():
    parser = argparse.ArgumentParser(description="Run one news ingestion pass")
    parser.add_argument("--max-items", type=int, help="Per-source item cap")
    parser.add_argument("--concurrency", type=int, help="Sources processed in parallel")
    parser.add_argument("--log-format", choices=["console", "json"], help="Log renderer")
    args = parser.parse_args()

    configure_logging(log_format=args.log_format)

    print("\n" + "=" * 50)
    print("NEWS INGESTION")
    print("=" * 50 + "\n")

    stats = asyncio.run(run_ingestion(
        max_items_per_source=args.max_items,
        max_concurrent_sources=args.concurrency,
    ))

    print("\nRESULTS:")
    print(f"  Sources: {stats.sources} visited, {stats.succeeded} ok, "
          f"{stats.skipped} skipped, {stats.failed} failed")
    print(f"  Articles upserted: {stats.articles_upserted}")
    print(f"  Translations: {stats.translations}")
    if stats.items_missing_link:
        print(f"  Items without link: {stats.items_missing_link}")
    if stats.deactivated:
        print(f"  DEACTIVATED SOURCES: {stats.deactivated}")
        for outcome in stats.outcomes:
            if outcome.deactivated:
                print(f"    - source {outcome.source_id}: {outcome.reason}")
    print(f"TIME: {stats.elapsed_seconds:.1f}s\n")


if __name__ == "__main__":
    main()
