"""
Configuration for imdb-suggest.
"""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

DEFAULT_SUGGEST_BASE_URL = "https://sg.media-imdb.com/suggests"

# Option names as they appear in config files, mapped to dataclass fields.
OPTION_ALIASES = {
    "maxQueriesSearch": "max_queries_search",
    "maxQueriesDiscover": "max_queries_discover",
    "concurrency": "concurrency",
    "perRequestTimeoutMs": "per_request_timeout_ms",
    "globalTimeoutMs": "global_timeout_ms",
    "interRequestDelayMs": "inter_request_delay_ms",
    "historyLimit": "history_limit",
    "suggestBaseUrl": "suggest_base_url",
    "dbPath": "db_path",
    "preserveQueryOrder": "preserve_query_order",
}

INT_OPTIONS = (
    "max_queries_search",
    "max_queries_discover",
    "concurrency",
    "per_request_timeout_ms",
    "global_timeout_ms",
    "inter_request_delay_ms",
    "history_limit",
)

# Options that must be at least 1; the rest may be 0.
POSITIVE_OPTIONS = ("concurrency", "max_queries_search", "max_queries_discover")


def _coerce_int(name: str, value: Any) -> int:
    """Validate an integer option (bools are rejected)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    minimum = 1 if name in POSITIVE_OPTIONS else 0
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


@dataclass
class SuggestConfig:
    """Complete imdb-suggest configuration."""

    max_queries_search: int = 40  # cap on term variations
    max_queries_discover: int = 40  # cap on discovery seeds (empty term)
    concurrency: int = 6
    per_request_timeout_ms: int = 2500
    global_timeout_ms: int = 12000  # hard stop for new work
    inter_request_delay_ms: int = 30
    history_limit: int = 15

    suggest_base_url: str = DEFAULT_SUGGEST_BASE_URL
    db_path: Path | None = field(default_factory=lambda: Path("imdb_suggest.db"))
    preserve_query_order: bool = False

    def __post_init__(self) -> None:
        for name in INT_OPTIONS:
            _coerce_int(name, getattr(self, name))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SuggestConfig":
        """Create config from a dictionary (e.g., from YAML).

        Accepts both the camelCase option names and the field names.
        Unknown keys are ignored.
        """
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}

        for key, value in data.items():
            name = OPTION_ALIASES.get(key, key)
            if name not in known:
                continue
            kwargs[name] = value

        if "db_path" in kwargs and kwargs["db_path"] is not None:
            kwargs["db_path"] = Path(kwargs["db_path"])
        if "suggest_base_url" in kwargs:
            kwargs["suggest_base_url"] = str(kwargs["suggest_base_url"]).rstrip("/")
        if "preserve_query_order" in kwargs:
            kwargs["preserve_query_order"] = bool(kwargs["preserve_query_order"])

        return cls(**kwargs)

    @classmethod
    def from_yaml(cls, path: Path) -> "SuggestConfig":
        """Load config from a YAML file.

        Options may sit at the top level or under an ``imdb_suggest`` key.
        """
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")

        section = data.get("imdb_suggest", data)
        if not isinstance(section, dict):
            raise ValueError(f"imdb_suggest section in {path} must be a mapping")

        return cls.from_dict(section)

    def with_overrides(self, **overrides: Any) -> "SuggestConfig":
        """Return a copy with the given non-None fields replaced."""
        data = self.to_dict()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return SuggestConfig.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary for JSON serialization."""
        return {
            "max_queries_search": self.max_queries_search,
            "max_queries_discover": self.max_queries_discover,
            "concurrency": self.concurrency,
            "per_request_timeout_ms": self.per_request_timeout_ms,
            "global_timeout_ms": self.global_timeout_ms,
            "inter_request_delay_ms": self.inter_request_delay_ms,
            "history_limit": self.history_limit,
            "suggest_base_url": self.suggest_base_url,
            "db_path": str(self.db_path) if self.db_path is not None else None,
            "preserve_query_order": self.preserve_query_order,
        }
