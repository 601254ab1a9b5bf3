"""
Bounded-concurrency fetching for imdb-suggest.

A fixed number of workers pull query indexes from a shared cursor. A global
deadline stops workers from claiming new queries; lookups already in flight
finish on their own, bounded by the per-call timeout.
"""

import asyncio
import logging
import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from .config import SuggestConfig
from .models import ProgressEvent

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], None]


class Fetcher(Protocol):
    async def fetch(self, query: str, timeout_ms: int | None = None) -> dict[str, Any] | None: ...


def progress_percent(completed: int, total: int) -> int:
    """Whole percent, rounding halves up."""
    if total <= 0:
        return 100
    return min(100, math.floor(completed * 100 / total + 0.5))


@dataclass
class PoolRunStats:
    """Counters from the most recent run_all call."""

    total: int = 0
    dispatched: int = 0
    completed: int = 0
    succeeded: int = 0
    workers: int = 0
    deadline_hit: bool = False


class WorkerPool:
    """Run suggestion lookups concurrently under a global deadline."""

    def __init__(
        self,
        fetcher: Fetcher,
        concurrency: int = 6,
        per_request_timeout_ms: int = 2500,
        global_timeout_ms: int = 12000,
        inter_request_delay_ms: int = 30,
        preserve_query_order: bool = False,
    ):
        self.fetcher = fetcher
        self.concurrency = max(1, concurrency)
        self.per_request_timeout_ms = per_request_timeout_ms
        self.global_timeout_ms = global_timeout_ms
        self.inter_request_delay_ms = inter_request_delay_ms
        self.preserve_query_order = preserve_query_order
        self.last_run = PoolRunStats()

    @classmethod
    def from_config(cls, fetcher: Fetcher, config: SuggestConfig) -> "WorkerPool":
        return cls(
            fetcher,
            concurrency=config.concurrency,
            per_request_timeout_ms=config.per_request_timeout_ms,
            global_timeout_ms=config.global_timeout_ms,
            inter_request_delay_ms=config.inter_request_delay_ms,
            preserve_query_order=config.preserve_query_order,
        )

    async def run_all(
        self,
        queries: Sequence[str],
        on_progress: ProgressCallback | None = None,
    ) -> list[Any]:
        """
        Fetch every query (until the deadline) and flatten the results.

        Args:
            queries: Probes to send, each at most once
            on_progress: Called after every finished lookup

        Returns:
            Raw items from every successful lookup, in completion order
            (or query order when preserve_query_order is set)
        """
        total = len(queries)
        stats = PoolRunStats(total=total)
        self.last_run = stats
        if total == 0:
            return []

        results: dict[int, list[Any]] = {}
        cursor = 0
        cancelled = False

        def on_deadline() -> None:
            nonlocal cancelled
            cancelled = True
            stats.deadline_hit = True
            logger.info(
                f"Global deadline reached after {stats.completed}/{total} lookups; "
                "no new lookups will start"
            )

        async def worker() -> None:
            nonlocal cursor
            while not cancelled and cursor < total:
                index = cursor
                cursor += 1
                stats.dispatched += 1

                data = await self.fetcher.fetch(
                    queries[index], self.per_request_timeout_ms
                )
                if data and isinstance(data.get("d"), list):
                    results[index] = data["d"]
                    stats.succeeded += 1

                stats.completed += 1
                if on_progress is not None:
                    on_progress(
                        ProgressEvent(
                            completed=stats.completed,
                            total=total,
                            percent=progress_percent(stats.completed, total),
                        )
                    )
                await asyncio.sleep(self.inter_request_delay_ms / 1000)

        stats.workers = min(self.concurrency, total)
        loop = asyncio.get_running_loop()
        deadline = loop.call_later(self.global_timeout_ms / 1000, on_deadline)
        tasks = [asyncio.create_task(worker()) for _ in range(stats.workers)]
        try:
            await asyncio.gather(*tasks)
        finally:
            deadline.cancel()
            # a failed worker must not leave its siblings claiming queries
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        logger.debug(
            f"Fetched {stats.succeeded}/{total} queries "
            f"({stats.completed} completed, {stats.workers} workers)"
        )

        # dicts keep insertion order, which is completion order here
        order = sorted(results) if self.preserve_query_order else list(results)
        return [item for index in order for item in results[index]]
