"""Text cleanup for feed titles and summaries."""

import re
from typing import Optional

_TAG_RE = re.compile(r"<[^>]*>")


def clean_text(raw: Optional[str]) -> Optional[str]:
    """Strip markup tags and surrounding whitespace; None for empty input."""
    if not raw:
        return None
    cleaned = _TAG_RE.sub("", raw).strip()
    return cleaned or None
