"""Shared pytest fixtures for imdb-suggest tests."""

import asyncio

import pytest

from imdb_suggest.config import SuggestConfig
from imdb_suggest.storage import CatalogStore


class FakeFetcher:
    """Stand-in for SuggestClient that answers from a dict.

    ``responses`` maps query -> payload (or None). ``delays`` maps
    query -> seconds to wait before answering.
    """

    def __init__(self, responses=None, delays=None, default=None):
        self.responses = responses or {}
        self.delays = delays or {}
        self.default = default
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch(self, query, timeout_ms=None):
        self.calls.append(query)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(query, 0))
            return self.responses.get(query, self.default)
        finally:
            self.in_flight -= 1


@pytest.fixture
def make_fetcher():
    """Factory for FakeFetcher instances."""
    return FakeFetcher


@pytest.fixture
def db_path(tmp_path):
    """Path for a temporary storage database."""
    return tmp_path / "test_suggest.db"


@pytest.fixture
def store(db_path):
    return CatalogStore(db_path, history_limit=15)


@pytest.fixture
def fast_config(db_path):
    """Config with short timers so tests run quickly."""
    return SuggestConfig(
        per_request_timeout_ms=200,
        global_timeout_ms=5000,
        inter_request_delay_ms=0,
        db_path=db_path,
    )


@pytest.fixture
def matrix_payload():
    """Suggestion payload for "matrix", with one non-title item."""
    return {
        "v": 1,
        "q": "matrix",
        "d": [
            {"id": "tt0133093", "l": "The Matrix", "rank": 1},
            {"id": "tt0234215", "l": "The Matrix Reloaded", "rank": 2},
            {"id": "bad_id"},
        ],
    }
