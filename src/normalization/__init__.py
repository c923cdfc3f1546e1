"""Content normalization - text cleanup and image extraction."""

from .text import clean_text
from .images import (
    extract_image, from_enclosure, from_media_content, from_media_thumbnail, from_html,
    EXTRACTORS, FEATURED_IMAGE_CLASSES,
)

__all__ = [
    "clean_text", "extract_image",
    "from_enclosure", "from_media_content", "from_media_thumbnail", "from_html",
    "EXTRACTORS", "FEATURED_IMAGE_CLASSES",
]
