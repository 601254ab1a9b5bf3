"""
Local persistence for imdb-suggest.

A small sqlite key/value table holds the latest catalog, the latest session
metadata and a capped search history. Writes that fail are kept in memory so
the current process still sees them.
"""

import json
import logging
import sqlite3
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from .models import Catalog, HistoryEntry, SessionMeta

logger = logging.getLogger(__name__)

# Storage keys
LAST_RESULTS_KEY = "imdb:last_results:v1"
LAST_META_KEY = "imdb:last_meta:v1"
HISTORY_KEY = "imdb:history:v1"

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value_json TEXT NOT NULL,
    updated_ts TEXT NOT NULL
)
"""


class CatalogStore:
    """Persistence for catalogs, session metadata and history."""

    def __init__(self, db_path: Path | None = None, history_limit: int = 15):
        """
        Args:
            db_path: sqlite file; None keeps everything in memory
            history_limit: Maximum history entries kept
        """
        self.db_path = db_path
        self.history_limit = history_limit
        self._memory: dict[str, Any] = {}
        self._schema_ready = False

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        if not self._schema_ready:
            conn.execute(SCHEMA)
            conn.commit()
            self._schema_ready = True
        return conn

    # -------------------------------------------------------------------------
    # Key/value primitives
    # -------------------------------------------------------------------------

    def safe_set(self, key: str, value: Any) -> bool:
        """Store a JSON-serializable value. Returns False if it was not persisted."""
        self._memory[key] = value
        if self.db_path is None:
            return True

        try:
            value_json = json.dumps(value)
            conn = self._connect()
            try:
                conn.execute(
                    """
                    INSERT INTO kv_store (key, value_json, updated_ts)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value_json = excluded.value_json,
                        updated_ts = excluded.updated_ts
                    """,
                    (key, value_json, datetime.now(UTC).isoformat()),
                )
                conn.commit()
            finally:
                conn.close()
            return True
        except (sqlite3.Error, OSError, TypeError, ValueError) as e:
            logger.warning(f"Storage write failed for {key}: {e}")
            return False

    def safe_get(self, key: str, default: Any = None) -> Any:
        """Read a value, preferring what this process wrote."""
        if key in self._memory:
            return self._memory[key]
        if self.db_path is None:
            return default

        try:
            conn = self._connect()
            try:
                row = conn.execute(
                    "SELECT value_json FROM kv_store WHERE key = ?", (key,)
                ).fetchone()
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            logger.warning(f"Storage read failed for {key}: {e}")
            return default

        if row is None:
            return default
        try:
            return json.loads(row["value_json"])
        except ValueError:
            logger.warning(f"Stored value for {key} is not valid JSON")
            return default

    # -------------------------------------------------------------------------
    # Catalog and history
    # -------------------------------------------------------------------------

    def autosave(self, catalog: Catalog, meta: SessionMeta) -> bool:
        """Save the latest catalog and metadata, and record them in history.

        Returns True only if both latest values were persisted.
        """
        ok_results = self.safe_set(LAST_RESULTS_KEY, catalog.to_dict())
        ok_meta = self.safe_set(LAST_META_KEY, meta.to_dict())
        self.push_history(HistoryEntry(meta=meta, results=catalog.count))
        return ok_results and ok_meta

    def load_last(self) -> tuple[Catalog | None, SessionMeta | None]:
        """Load the latest saved catalog and its metadata."""
        saved = self.safe_get(LAST_RESULTS_KEY)
        meta = self.safe_get(LAST_META_KEY)

        catalog = None
        if isinstance(saved, dict):
            try:
                catalog = Catalog.from_dict(saved)
            except (KeyError, TypeError, AttributeError):
                logger.warning("Saved catalog is malformed, ignoring it")

        return catalog, SessionMeta.from_dict(meta) if isinstance(meta, dict) else None

    def history(self) -> list[HistoryEntry]:
        """History, newest first."""
        raw = self.safe_get(HISTORY_KEY, [])
        if not isinstance(raw, list):
            return []
        return [HistoryEntry.from_dict(h) for h in raw if isinstance(h, dict)]

    def push_history(self, entry: HistoryEntry) -> list[HistoryEntry]:
        """Add an entry at the front, dedup by query+flags, cap the list."""
        seen: set[str] = set()
        deduped: list[HistoryEntry] = []
        for item in [entry, *self.history()]:
            key = item.meta.history_key
            if key in seen:
                continue
            seen.add(key)
            deduped.append(item)
        deduped = deduped[: self.history_limit]

        self.safe_set(HISTORY_KEY, [h.to_dict() for h in deduped])
        return deduped

    def clear_history(self) -> bool:
        return self.safe_set(HISTORY_KEY, [])
