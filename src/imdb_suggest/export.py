"""
JSON export of catalogs.
"""

import re
from datetime import UTC, datetime
from pathlib import Path

from .models import Catalog


def slugify(query: str | None) -> str:
    """Lowercase, spaces to underscores, drop anything else unusual."""
    slug = re.sub(r"\s+", "_", (query or "").lower())
    slug = re.sub(r"[^a-z0-9_]", "", slug)
    return slug or "query"


def export_filename(query: str | None, now: datetime | None = None) -> str:
    """e.g. ``the_matrix.2024-05-01_12_30_45.imdb.json``"""
    now = now or datetime.now(UTC)
    stamp = now.strftime("%Y-%m-%d_%H_%M_%S")
    return f"{slugify(query)}.{stamp}.imdb.json"


def export_json(catalog: Catalog) -> str:
    return catalog.to_json(indent=2)


def write_export(
    catalog: Catalog,
    query: str | None,
    directory: Path,
    now: datetime | None = None,
) -> Path:
    """Write the catalog to ``directory`` and return the file path."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / export_filename(query, now)
    path.write_text(export_json(catalog), encoding="utf-8")
    return path
