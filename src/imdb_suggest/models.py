"""
Data models for imdb-suggest.
"""

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

TITLE_URL = "https://www.imdb.com/title/{id}/"


class SessionStatus(str, Enum):
    """Status of a fetch session."""

    IDLE = "idle"
    BUSY = "busy"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class Entry:
    """A normalized title from the suggestion endpoint."""

    id: str  # e.g., "tt0133093"
    title: str = ""
    kind: str = ""  # e.g., "feature", "TV series"
    year: int | None = None
    rank: int | float | None = None
    image_url: str | None = None
    image_width: int | None = None
    image_height: int | None = None

    @property
    def href(self) -> str:
        """Link to the title page."""
        return TITLE_URL.format(id=self.id)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "kind": self.kind,
            "year": self.year,
            "rank": self.rank,
            "href": self.href,
            "image_url": self.image_url,
            "image_width": self.image_width,
            "image_height": self.image_height,
        }

    def to_raw_item(self) -> dict[str, Any]:
        """Rebuild the suggestion-endpoint record this entry came from."""
        raw: dict[str, Any] = {"id": self.id, "l": self.title, "q": self.kind}
        if self.year is not None:
            raw["y"] = self.year
        if self.rank is not None:
            raw["rank"] = self.rank
        if self.image_url or self.image_width or self.image_height:
            raw["i"] = {
                "imageUrl": self.image_url,
                "width": self.image_width,
                "height": self.image_height,
            }
        return raw

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Entry":
        """Create from dictionary (href is derived, not read)."""
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            kind=data.get("kind", ""),
            year=data.get("year"),
            rank=data.get("rank"),
            image_url=data.get("image_url"),
            image_width=data.get("image_width"),
            image_height=data.get("image_height"),
        )


@dataclass
class Catalog:
    """The deduplicated, rank-ordered result of one session."""

    entries: list[Entry] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.entries)

    @property
    def ids(self) -> list[str]:
        return [e.id for e in self.entries]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "count": self.count,
            "entries": [e.to_dict() for e in self.entries],
        }

    def to_json(self, indent: int | None = None) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Catalog":
        """Create from dictionary.

        Also accepts the older ``{"len": ..., "titles": [...]}`` layout.
        """
        items = data.get("entries")
        if items is None:
            items = data.get("titles", [])
        return cls(entries=[Entry.from_dict(item) for item in items])


@dataclass(frozen=True)
class ProgressEvent:
    """Progress of one fetch session."""

    completed: int
    total: int
    percent: int


@dataclass(frozen=True)
class SessionMeta:
    """What the user asked for in a session."""

    query: str
    use_variations: bool = False
    want_images: bool = False
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    @property
    def history_key(self) -> str:
        """Dedup key for the history list (query plus flags)."""
        return (
            f"{self.query}::{'1' if self.use_variations else '0'}"
            f"::{'1' if self.want_images else '0'}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "use_variations": self.use_variations,
            "want_images": self.want_images,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionMeta":
        """Rebuild from a stored dict.

        Also reads the older layout: ``variations``/``images`` flags and
        a timestamp in epoch milliseconds.
        """
        return cls(
            query=data.get("query", "") if isinstance(data.get("query"), str) else "",
            use_variations=bool(data.get("use_variations", data.get("variations", False))),
            want_images=bool(data.get("want_images", data.get("images", False))),
            timestamp=_parse_timestamp(data.get("timestamp")),
        )


def _parse_timestamp(value: Any) -> str:
    if isinstance(value, str) and value:
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, UTC).isoformat()
        except (OverflowError, OSError, ValueError):
            pass
    return datetime.now(UTC).isoformat()


@dataclass(frozen=True)
class HistoryEntry:
    """A past session: its metadata plus how many titles it found."""

    meta: SessionMeta
    results: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {**self.meta.to_dict(), "results": self.results}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HistoryEntry":
        results = data.get("results", 0)
        return cls(
            meta=SessionMeta.from_dict(data),
            results=results if isinstance(results, int) else 0,
        )


@dataclass
class SessionResult:
    """Outcome of one submit."""

    status: SessionStatus
    catalog: Catalog
    message: str
    query_count: int = 0
    meta: SessionMeta | None = None
    persisted: bool = False
