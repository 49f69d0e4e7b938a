"""Catalog Transformation Module

Converts accepted marketplace listings into normalized WineRecord rows.

Key responsibilities:
  - Clip listing names to a display-friendly length
  - Strip HTML and collapse newlines in captions, then clip them
  - Format the price label
  - Merge the classifier's extracted attributes into the row
"""

import html
import re
from typing import Optional

import logging

from .models import CatalogItem, ClassificationResult, WineRecord

logger = logging.getLogger(__name__)

# Regex patterns (define at module level for performance)
TAG_RE = re.compile(r"<[^>]*>")
NEWLINES_RE = re.compile(r"\r?\n")
MULTIPLE_SPACES = re.compile(r" {2,}")

MAX_NAME_CHARS = 100
MAX_DESCRIPTION_CHARS = 150
ELLIPSIS = "..."


def truncate(text: str, max_chars: int) -> str:
    """Clip to ``max_chars`` and append an ellipsis marker when clipped."""
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + ELLIPSIS


def clean_caption(caption: str) -> str:
    """
    Clean a listing caption for display and embedding.

    Steps:
    1. Strip HTML tags
    2. Unescape HTML entities (&amp; -> &)
    3. Replace newlines with spaces and squeeze runs of spaces
    4. Clip to MAX_DESCRIPTION_CHARS
    """
    if not caption:
        return ""

    text = TAG_RE.sub("", caption)
    text = html.unescape(text)
    text = NEWLINES_RE.sub(" ", text)
    text = MULTIPLE_SPACES.sub(" ", text).strip()

    return truncate(text, MAX_DESCRIPTION_CHARS)


def format_price_range(price: int) -> str:
    """Yen price label, e.g. 3980 -> '3,980円'."""
    return f"{price:,}円"


def to_wine_record(
    item: CatalogItem,
    classification: ClassificationResult,
) -> Optional[WineRecord]:
    """
    Build a catalog row from a listing the classifier accepted.

    Returns None (and logs) if the classification is a rejection; callers
    are expected to filter those out first.
    """
    if not classification.is_wine:
        logger.warning(
            "to_wine_record: refusing non-wine item %r (%s)",
            item.name[:50],
            classification.alcohol_type,
        )
        return None

    return WineRecord(
        name=truncate(item.name.strip(), MAX_NAME_CHARS),
        type=classification.type,
        region=classification.region,
        flavor_profile=classification.flavor_profile,
        country=classification.country,
        description=clean_caption(item.caption),
        image_url=item.image_urls[0] if item.image_urls else "",
        affiliate_url=item.item_url,
        price_range=format_price_range(item.price),
    )
