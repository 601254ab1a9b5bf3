"""Tests for the bounded-concurrency worker pool."""

import asyncio

import pytest

from imdb_suggest.config import SuggestConfig
from imdb_suggest.pool import WorkerPool, progress_percent


def payload(*ids):
    return {"d": [{"id": i} for i in ids]}


class TestProgressPercent:
    def test_rounds_half_up(self):
        assert progress_percent(1, 8) == 13  # 12.5
        assert progress_percent(1, 3) == 33
        assert progress_percent(2, 3) == 67

    def test_bounds(self):
        assert progress_percent(0, 5) == 0
        assert progress_percent(5, 5) == 100
        assert progress_percent(0, 0) == 100


class TestWorkerPool:
    """Test WorkerPool.run_all."""

    @pytest.mark.asyncio
    async def test_empty_queries(self, make_fetcher):
        """No queries: nothing fetched, no progress."""
        fetcher = make_fetcher()
        events = []
        pool = WorkerPool(fetcher, inter_request_delay_ms=0)

        result = await pool.run_all([], events.append)

        assert result == []
        assert events == []
        assert fetcher.calls == []

    @pytest.mark.asyncio
    async def test_flattens_results(self, make_fetcher):
        fetcher = make_fetcher(
            responses={"a": payload("tt1", "tt2"), "b": None, "c": payload("tt3")}
        )
        pool = WorkerPool(fetcher, concurrency=1, inter_request_delay_ms=0)

        result = await pool.run_all(["a", "b", "c"])

        assert result == [{"id": "tt1"}, {"id": "tt2"}, {"id": "tt3"}]
        assert pool.last_run.succeeded == 2
        assert pool.last_run.completed == 3

    @pytest.mark.asyncio
    async def test_payload_without_list_is_ignored(self, make_fetcher):
        fetcher = make_fetcher(responses={"a": {"d": "oops"}, "b": {}})
        pool = WorkerPool(fetcher, inter_request_delay_ms=0)
        assert await pool.run_all(["a", "b"]) == []

    @pytest.mark.asyncio
    async def test_each_query_fetched_once(self, make_fetcher):
        queries = [f"q{i}" for i in range(25)]
        fetcher = make_fetcher(delays={q: 0.001 * (i % 4) for i, q in enumerate(queries)})
        pool = WorkerPool(fetcher, concurrency=4, inter_request_delay_ms=0)

        await pool.run_all(queries)

        assert sorted(fetcher.calls) == sorted(queries)
        assert len(fetcher.calls) == len(set(fetcher.calls))

    @pytest.mark.asyncio
    async def test_claims_in_index_order(self, make_fetcher):
        queries = [f"q{i}" for i in range(10)]
        fetcher = make_fetcher()
        pool = WorkerPool(fetcher, concurrency=3, inter_request_delay_ms=0)

        await pool.run_all(queries)

        assert fetcher.calls == queries

    @pytest.mark.asyncio
    async def test_concurrency_bounded(self, make_fetcher):
        queries = [f"q{i}" for i in range(20)]
        fetcher = make_fetcher(delays={q: 0.01 for q in queries})
        pool = WorkerPool(fetcher, concurrency=4, inter_request_delay_ms=0)

        await pool.run_all(queries)

        assert fetcher.max_in_flight == 4
        assert pool.last_run.workers == 4

    @pytest.mark.asyncio
    async def test_width_capped_by_query_count(self, make_fetcher):
        queries = ["a", "b"]
        fetcher = make_fetcher(delays={q: 0.01 for q in queries})
        pool = WorkerPool(fetcher, concurrency=6, inter_request_delay_ms=0)

        await pool.run_all(queries)

        assert pool.last_run.workers == 2
        assert fetcher.max_in_flight == 2

    @pytest.mark.asyncio
    async def test_progress_non_decreasing_and_ends_at_100(self, make_fetcher):
        queries = [f"q{i}" for i in range(7)]
        fetcher = make_fetcher(delays={q: 0.001 * (7 - i) for i, q in enumerate(queries)})
        events = []
        pool = WorkerPool(fetcher, concurrency=3, inter_request_delay_ms=0)

        await pool.run_all(queries, events.append)

        assert len(events) == 7
        percents = [e.percent for e in events]
        assert percents == sorted(percents)
        assert percents[-1] == 100
        assert [e.completed for e in events] == list(range(1, 8))
        assert all(e.total == 7 for e in events)

    @pytest.mark.asyncio
    async def test_deadline_stops_new_claims(self, make_fetcher):
        """After the deadline no new lookups start; in-flight ones finish."""
        queries = [f"q{i}" for i in range(10)]
        fetcher = make_fetcher(
            responses={q: payload(f"tt{i}") for i, q in enumerate(queries)},
            delays={q: 0.1 for q in queries},
        )
        pool = WorkerPool(
            fetcher, concurrency=2, global_timeout_ms=50, inter_request_delay_ms=0
        )

        result = await pool.run_all(queries)

        # two workers each claimed one query before the deadline
        assert fetcher.calls == ["q0", "q1"]
        assert sorted(item["id"] for item in result) == ["tt0", "tt1"]
        assert pool.last_run.deadline_hit is True
        assert pool.last_run.completed == 2

    @pytest.mark.asyncio
    async def test_inter_request_delay(self, make_fetcher):
        fetcher = make_fetcher()
        pool = WorkerPool(fetcher, concurrency=1, inter_request_delay_ms=20)
        loop = asyncio.get_running_loop()

        started = loop.time()
        await pool.run_all(["a", "b", "c"])

        assert loop.time() - started >= 0.05

    @pytest.mark.asyncio
    async def test_completion_order_by_default(self, make_fetcher):
        fetcher = make_fetcher(
            responses={"slow": payload("tt1"), "fast": payload("tt2")},
            delays={"slow": 0.05, "fast": 0},
        )
        pool = WorkerPool(fetcher, concurrency=2, inter_request_delay_ms=0)

        result = await pool.run_all(["slow", "fast"])

        assert [item["id"] for item in result] == ["tt2", "tt1"]

    @pytest.mark.asyncio
    async def test_preserve_query_order(self, make_fetcher):
        fetcher = make_fetcher(
            responses={"slow": payload("tt1"), "fast": payload("tt2")},
            delays={"slow": 0.05, "fast": 0},
        )
        pool = WorkerPool(
            fetcher, concurrency=2, inter_request_delay_ms=0, preserve_query_order=True
        )

        result = await pool.run_all(["slow", "fast"])

        assert [item["id"] for item in result] == ["tt1", "tt2"]

    @pytest.mark.asyncio
    async def test_worker_failure_stops_siblings(self, make_fetcher):
        """A raising lookup ends the run; no other worker keeps fetching."""
        queries = [f"q{i}" for i in range(12)]
        fetcher = make_fetcher(delays={q: 0.05 for q in queries[1:]})
        answer = fetcher.fetch

        async def fetch(query, timeout_ms=None):
            if query == "q0":
                fetcher.calls.append(query)
                raise RuntimeError("boom")
            return await answer(query, timeout_ms)

        fetcher.fetch = fetch
        events = []
        pool = WorkerPool(fetcher, concurrency=3, inter_request_delay_ms=0)

        with pytest.raises(RuntimeError):
            await pool.run_all(queries, events.append)
        calls = list(fetcher.calls)
        await asyncio.sleep(0.2)

        assert len(calls) == 3
        assert fetcher.calls == calls
        assert events == []
        assert fetcher.in_flight == 0

    def test_from_config(self, make_fetcher):
        config = SuggestConfig(
            concurrency=3,
            per_request_timeout_ms=100,
            global_timeout_ms=900,
            inter_request_delay_ms=5,
            preserve_query_order=True,
            db_path=None,
        )
        pool = WorkerPool.from_config(make_fetcher(), config)
        assert pool.concurrency == 3
        assert pool.per_request_timeout_ms == 100
        assert pool.global_timeout_ms == 900
        assert pool.inter_request_delay_ms == 5
        assert pool.preserve_query_order is True
