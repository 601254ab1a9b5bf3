"""
Session orchestration for imdb-suggest.

One ``SuggestApp`` is built by the host and owns everything a session needs:
config, the fetch pool, the store, and the callbacks that show status and
rendered results. Only one session runs at a time; a submit while busy is
ignored.
"""

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import Path

from .catalog import normalize
from .config import SuggestConfig
from .export import write_export
from .models import (
    Catalog,
    HistoryEntry,
    ProgressEvent,
    SessionMeta,
    SessionResult,
    SessionStatus,
)
from .pool import Fetcher, WorkerPool
from .queries import expand_for_config
from .render import FAILED_HTML, render_cards_html
from .storage import CatalogStore
from .suggest import SuggestClient

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str], None]
RenderCallback = Callable[[str], None]

LOADING_MESSAGE = "Loading…"
FAILED_MESSAGE = "Error while loading data."


def _describe_timestamp(timestamp: str | None) -> str:
    if not timestamp:
        return "previous session"
    try:
        return datetime.fromisoformat(timestamp).strftime("%Y-%m-%d %H:%M:%S")
    except (TypeError, ValueError):
        return "previous session"


class SuggestApp:
    """Single-flight expand → fetch → normalize → publish controller."""

    def __init__(
        self,
        config: SuggestConfig | None = None,
        store: CatalogStore | None = None,
        fetcher: Fetcher | None = None,
        on_status: StatusCallback | None = None,
        on_render: RenderCallback | None = None,
    ):
        self.config = config or SuggestConfig()
        self.store = store or CatalogStore(
            self.config.db_path, history_limit=self.config.history_limit
        )
        self.fetcher = fetcher or SuggestClient.from_config(self.config)
        self.pool = WorkerPool.from_config(self.fetcher, self.config)
        self._on_status = on_status
        self._on_render = on_render

        self._busy = False
        self._last_catalog = Catalog()
        self._last_meta: SessionMeta | None = None
        self.status_message = ""

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def status(self) -> SessionStatus:
        return SessionStatus.BUSY if self._busy else SessionStatus.IDLE

    @property
    def last_catalog(self) -> Catalog:
        return self._last_catalog

    @property
    def last_meta(self) -> SessionMeta | None:
        return self._last_meta

    def _report(self, message: str) -> None:
        self.status_message = message
        if self._on_status is not None:
            self._on_status(message)

    def _publish(self, html: str) -> None:
        if self._on_render is not None:
            self._on_render(html)

    def _on_progress(self, event: ProgressEvent) -> None:
        self._report(f"{LOADING_MESSAGE} {event.percent}%")

    async def submit(
        self,
        term: str | None,
        use_variations: bool = False,
        want_images: bool = False,
    ) -> SessionResult | None:
        """
        Run one session.

        Args:
            term: Search term; empty means discovery mode
            use_variations: Probe suffix/letter/digit variations of the term
            want_images: Keep image fields on entries

        Returns:
            SessionResult, or None if another session was already running
        """
        if self._busy:
            logger.debug("Submit ignored: a session is already running")
            return None
        self._busy = True

        query = (term or "").strip()
        meta = SessionMeta(
            query=query, use_variations=use_variations, want_images=want_images
        )
        queries: list[str] = []

        try:
            self._report(LOADING_MESSAGE)
            self._publish("")

            queries = expand_for_config(query, use_variations, self.config)
            logger.info(
                f"Session started: {query or '(discovery)'}, "
                f"{len(queries)} queries, variations={use_variations}"
            )

            raw = await self.pool.run_all(queries, self._on_progress)
            catalog = normalize(raw, want_images)

            self._publish(render_cards_html(catalog))
            self._last_catalog = catalog
            self._last_meta = meta
            message = f"Found {catalog.count} unique titles (capped)"
            self._report(message)

            persisted = self.store.autosave(catalog, meta)
            if not persisted:
                logger.warning("Autosave failed; results kept in memory only")

            logger.info(
                f"Session completed: {catalog.count} titles from "
                f"{self.pool.last_run.succeeded}/{len(queries)} queries"
            )
            return SessionResult(
                status=SessionStatus.COMPLETED,
                catalog=catalog,
                message=message,
                query_count=len(queries),
                meta=meta,
                persisted=persisted,
            )

        except Exception:
            logger.exception(f"Session failed for {query!r}")
            self._report(FAILED_MESSAGE)
            self._publish(FAILED_HTML)
            return SessionResult(
                status=SessionStatus.FAILED,
                catalog=Catalog(),
                message=FAILED_MESSAGE,
                query_count=len(queries),
                meta=meta,
            )

        finally:
            self._busy = False

    def save(self, meta: SessionMeta | None = None) -> bool:
        """Persist the current catalog with fresh (or given) metadata."""
        if meta is None:
            base = self._last_meta or SessionMeta(query="")
            meta = replace(base, timestamp=datetime.now(UTC).isoformat())
        ok = self.store.autosave(self._last_catalog, meta)
        self._report("Saved locally." if ok else "Save failed (storage).")
        return ok

    def restore(self) -> Catalog | None:
        """Show the last saved catalog, if there is one."""
        catalog, meta = self.store.load_last()
        if catalog is None:
            self._report("No local data found.")
            return None

        self._last_catalog = catalog
        self._last_meta = meta
        self._publish(render_cards_html(catalog))
        if meta is not None:
            when = _describe_timestamp(meta.timestamp)
            self._report(f"Restored {catalog.count} titles from local cache ({when})")
        else:
            self._report(f"Restored {catalog.count} titles from local cache")
        return catalog

    def history(self) -> list[HistoryEntry]:
        """Past sessions, newest first."""
        return self.store.history()

    def clear_history(self) -> bool:
        ok = self.store.clear_history()
        self._report("History cleared.")
        return ok

    def export(self, directory: Path, now: datetime | None = None) -> Path:
        """Write the current catalog as a JSON file in directory."""
        query = self._last_meta.query if self._last_meta else ""
        path = write_export(self._last_catalog, query, directory, now)
        logger.info(f"Exported {self._last_catalog.count} titles to {path}")
        return path
