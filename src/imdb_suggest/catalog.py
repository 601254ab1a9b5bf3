"""
Aggregation of raw suggestion items into a Catalog.

Items come from many overlapping probes, so the same title usually shows up
several times. Normalization keeps titles only (``tt`` identifiers), drops
repeats, and orders what is left by the endpoint's popularity rank.
"""

import logging
import math
from collections.abc import Iterable
from typing import Any

from .models import Catalog, Entry

logger = logging.getLogger(__name__)

TITLE_ID_PREFIX = "tt"


def _number(value: Any) -> int | float | None:
    """Numeric field or None (bools are not numbers here)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _image_fields(image: Any) -> tuple[str | None, int | None, int | None]:
    """Read the ``i`` descriptor: {"imageUrl", "width", "height"}."""
    if not isinstance(image, dict):
        return None, None, None
    url = image.get("imageUrl")
    return (
        url if isinstance(url, str) and url else None,
        _number(image.get("width")) or None,
        _number(image.get("height")) or None,
    )


def is_title_id(value: Any) -> bool:
    """Check for a non-empty title identifier like ``tt0133093``."""
    return isinstance(value, str) and value.startswith(TITLE_ID_PREFIX)


def to_entry(item: Any, want_images: bool) -> Entry | None:
    """Map one raw item to an Entry, or None if it is not a title."""
    if not isinstance(item, dict):
        return None

    item_id = item.get("id")
    if not is_title_id(item_id):
        return None

    image_url = image_width = image_height = None
    if want_images:
        image_url, image_width, image_height = _image_fields(item.get("i"))

    return Entry(
        id=item_id,
        title=_text(item.get("l")),
        kind=_text(item.get("q")),
        year=_number(item.get("y")),
        rank=_number(item.get("rank")),
        image_url=image_url,
        image_width=image_width,
        image_height=image_height,
    )


def _rank_key(entry: Entry) -> float:
    return math.inf if entry.rank is None else entry.rank


def normalize(raw_items: Iterable[Any], want_images: bool) -> Catalog:
    """
    Build a Catalog from raw suggestion items.

    Args:
        raw_items: Items in arrival order; anything may be malformed
        want_images: Keep image fields; when False they are always None

    Returns:
        Catalog with unique ids (first occurrence wins), sorted by rank
        ascending with unranked titles last
    """
    seen: set[str] = set()
    unique: list[Entry] = []
    dropped = 0

    for item in raw_items:
        entry = to_entry(item, want_images)
        if entry is None:
            dropped += 1
            continue
        if entry.id in seen:
            continue
        seen.add(entry.id)
        unique.append(entry)

    # list.sort is stable, so equal ranks keep input order
    unique.sort(key=_rank_key)

    logger.debug(f"Normalized {len(unique)} unique titles ({dropped} items dropped)")
    return Catalog(entries=unique)
