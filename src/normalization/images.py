"""Representative image extraction across feed dialects.

Each extractor inspects one shape of image signal and returns a URL or None.
``extract_image`` tries them in order of how much the signal can be trusted:
declared metadata first, HTML scraping last.
"""

from typing import Callable, Iterable, List, Optional, Tuple

from bs4 import BeautifulSoup
import structlog

from ..ingestion.interfaces import FeedItem

logger = structlog.get_logger()

# Classes WordPress and similar CMSs put on the post's lead image.
FEATURED_IMAGE_CLASSES = ("wp-post-image", "featured-image", "attachment-post-thumbnail")

ImageExtractor = Callable[[FeedItem], Optional[str]]


def _is_image_type(declared: Optional[str]) -> bool:
    """True when a declared MIME type is an image type or missing."""
    if not declared:
        return True
    return declared.strip().lower().startswith("image/")


def _first_url(candidates: Iterable[dict], keys: Tuple[str, ...]) -> Optional[str]:
    for candidate in candidates:
        for key in keys:
            value = (candidate.get(key) or "").strip()
            if value:
                return value
    return None


def from_enclosure(item: FeedItem) -> Optional[str]:
    """Standard RSS <enclosure> with an image (or unspecified) type."""
    images = [e for e in item.enclosures if _is_image_type(e.get("type"))]
    return _first_url(images, ("href", "url"))


def from_media_content(item: FeedItem) -> Optional[str]:
    """Media RSS <media:content>."""
    images = [
        m for m in item.media_content
        if _is_image_type(m.get("type")) and (m.get("medium") or "image") == "image"
    ]
    return _first_url(images, ("url", "href"))


def from_media_thumbnail(item: FeedItem) -> Optional[str]:
    """Media RSS <media:thumbnail>."""
    return _first_url(item.media_thumbnail, ("url", "href"))


def from_html(item: FeedItem) -> Optional[str]:
    """First <img src> in the item's HTML, preferring a featured-image class."""
    for html in (item.content, item.summary):
        if not html or "<img" not in html.lower():
            continue
        soup = BeautifulSoup(html, "html.parser")
        images = [img for img in soup.find_all("img") if (img.get("src") or "").strip()]
        if not images:
            continue
        for img in images:
            classes = img.get("class") or []
            if any(cls in FEATURED_IMAGE_CLASSES for cls in classes):
                return img["src"].strip()
        return images[0]["src"].strip()
    return None


EXTRACTORS: List[Tuple[str, ImageExtractor]] = [
    ("enclosure", from_enclosure),
    ("media_content", from_media_content),
    ("media_thumbnail", from_media_thumbnail),
    ("html", from_html),
]


def extract_image(item: FeedItem, extractors: List[Tuple[str, ImageExtractor]] = None) -> Optional[str]:
    """Return the first image URL any extractor finds, or None."""
    for name, extractor in extractors or EXTRACTORS:
        url = extractor(item)
        if url:
            logger.debug("image_extracted", strategy=name, url=url[:100])
            return url
    return None
