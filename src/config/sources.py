"""Source catalog seed loader."""

import json
from pathlib import Path
from typing import List

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "sources.json"


def load_sources(config_path: str = None) -> List[dict]:
    """Load source definitions from a JSON file.

    The file holds ``{"sources": [{"rss_url": ..., "city_id": ..., ...}]}``;
    entries without ``rss_url`` are kept so they show up as skipped sources.
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    with open(path) as f:
        data = json.load(f)

    defaults = data.get("defaults", {})
    sources = []
    for entry in data.get("sources", []):
        sources.append({
            "name": entry.get("name"),
            "rss_url": entry.get("rss_url") or entry.get("url"),
            "city_id": entry.get("city_id", defaults.get("city_id")),
            "country_id": entry.get("country_id", defaults.get("country_id")),
            "language_code": entry.get("language_code", defaults.get("language_code")),
            "is_active": entry.get("is_active", True),
        })
    return sources


def seed_sources(storage, sources: List[dict]) -> int:
    """Add sources whose URL is not yet in the catalog. Returns how many were added."""
    added = 0
    for source in sources:
        if source["rss_url"] and storage.get_source_by_url(source["rss_url"]):
            continue
        storage.add_source(**source)
        added += 1
    return added
