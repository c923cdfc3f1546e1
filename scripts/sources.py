#!/usr/bin/env python3
"""CLI tool to manage the source catalog and inspect source health."""

import sys
import argparse
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv
load_dotenv()

from src.config.sources import load_sources, seed_sources
from src.storage.factory import get_storage


def print_header(title):
    print(f"\n{'='*60}")
    print(f" {title}")
    print('='*60)


def cmd_seed(args):
    """Add sources from a JSON catalog file."""
    storage = get_storage()
    sources = load_sources(args.path)
    added = seed_sources(storage, sources)
    print(f"Added {added} of {len(sources)} sources")


def cmd_list(args):
    """List sources with their health state."""
    storage = get_storage()
    active = False if args.inactive else None
    sources = storage.list_sources(active=active)

    print_header("INACTIVE SOURCES" if args.inactive else "SOURCES")
    for source in sources:
        state = "active" if source.is_active else "INACTIVE"
        print(f"\n  [{source.id}] {source.name or source.rss_url}")
        print(f"    URL:      {source.rss_url}")
        print(f"    State:    {state}, failures={source.failure_count}")
        print(f"    Language: {source.language_code or '-'}")
        if source.last_success_at:
            print(f"    Last OK:  {source.last_success_at}")
        if source.last_error:
            print(f"    Error:    {source.last_error[:120]}")

    stats = storage.get_stats()
    print(f"\n{stats['active_sources']} active / {stats['inactive_sources']} inactive, "
          f"{stats['total_articles']} articles")


def cmd_reactivate(args):
    """Put a deactivated source back into rotation."""
    storage = get_storage()
    if storage.reactivate_source(args.source_id):
        print(f"Source {args.source_id} reactivated")
    else:
        print(f"Source {args.source_id} not found")
        sys.exit(1)


def cmd_errors(args):
    """Show the most recent error-log rows."""
    storage = get_storage()
    rows = storage.list_error_logs(source_id=args.source_id, limit=args.limit)

    print_header("RECENT FEED ERRORS")
    for row in rows:
        print(f"\n  {row['created_at']}  source={row['source_id']}  {row['error_type']}")
        print(f"    {row['source_url']}")
        print(f"    {(row['error_message'] or '')[:200]}")


def main():
    parser = argparse.ArgumentParser(
        description="Manage news sources"
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # seed
    p = subparsers.add_parser("seed", help="Add sources from a JSON file")
    p.add_argument("path", nargs="?", help="Catalog file (default: config/sources.json)")

    # list
    p = subparsers.add_parser("list", help="List sources")
    p.add_argument("--inactive", action="store_true", help="Only deactivated sources")

    # reactivate
    p = subparsers.add_parser("reactivate", help="Reactivate a source")
    p.add_argument("source_id", type=int, help="Source ID")

    # errors
    p = subparsers.add_parser("errors", help="Show recent feed errors")
    p.add_argument("--source-id", type=int, help="Filter by source")
    p.add_argument("--limit", type=int, default=20, help="Max results")

    args = parser.parse_args()

    if args.command == "seed":
        cmd_seed(args)
    elif args.command == "list":
        cmd_list(args)
    elif args.command == "reactivate":
        cmd_reactivate(args)
    elif args.command == "errors":
        cmd_errors(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
