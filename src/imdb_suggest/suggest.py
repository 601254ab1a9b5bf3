"""
IMDb suggestion endpoint client for imdb-suggest.

The endpoint answers ``GET /suggests/<first-letter>/<query>.json`` with a
JSONP body that calls a query-derived callback with ``{"d": [...]}``. We
never execute the callback; the payload between the parentheses is decoded
as JSON.

Every lookup is best-effort: network errors, HTTP errors, timeouts and
malformed bodies all come back as None.
"""

import asyncio
import json
import logging
import secrets
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

from .config import DEFAULT_SUGGEST_BASE_URL, SuggestConfig

logger = logging.getLogger(__name__)

# Characters encodeURIComponent leaves alone (on top of quote's "_.-~")
URI_COMPONENT_SAFE = "!*'()"


def build_suggest_url(query: str, base_url: str = DEFAULT_SUGGEST_BASE_URL) -> str:
    """Build the lookup URL: ``<base>/<first char>/<encoded query>.json``."""
    first = query.strip()[:1].lower() or "a"
    encoded = quote(query, safe=URI_COMPONENT_SAFE)
    return f"{base_url.rstrip('/')}/{quote(first, safe='')}/{encoded}.json"


def parse_suggest_payload(text: str) -> dict[str, Any] | None:
    """
    Decode a suggestion response body.

    Accepts ``callback({...})`` or a bare JSON object. Returns the payload
    only when it is a dict whose ``d`` is a list.
    """
    body = (text or "").strip()
    if not body:
        return None

    if not body.startswith("{"):
        start = body.find("(")
        end = body.rfind(")")
        if start < 0 or end <= start:
            return None
        body = body[start + 1 : end]

    try:
        data = json.loads(body)
    except ValueError:
        return None

    if not isinstance(data, dict) or not isinstance(data.get("d"), list):
        return None
    return data


@dataclass
class PendingCall:
    """Bookkeeping for one unsettled lookup."""

    query: str
    future: asyncio.Future
    timer: asyncio.TimerHandle | None = None
    task: asyncio.Task | None = None


class SuggestClient:
    """
    Client for the IMDb suggestion endpoint.

    Each call gets its own token in a pending table. The transport task and
    a timeout timer race to settle it; the first one wins and tears down the
    other, later arrivals find no entry and do nothing.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_SUGGEST_BASE_URL,
        timeout_ms: int = 2500,
        http_client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the suggestion client.

        Args:
            base_url: Endpoint root, without the trailing letter segment
            timeout_ms: Default per-call timeout in milliseconds
            http_client: Shared client to use instead of one per call
        """
        self.base_url = base_url.rstrip("/")
        self.timeout_ms = timeout_ms
        self._http_client = http_client
        self._pending: dict[str, PendingCall] = {}

    @classmethod
    def from_config(
        cls, config: SuggestConfig, http_client: httpx.AsyncClient | None = None
    ) -> "SuggestClient":
        return cls(
            base_url=config.suggest_base_url,
            timeout_ms=config.per_request_timeout_ms,
            http_client=http_client,
        )

    @property
    def pending_count(self) -> int:
        """Number of lookups not yet settled."""
        return len(self._pending)

    def build_url(self, query: str) -> str:
        return build_suggest_url(query, self.base_url)

    async def fetch(self, query: str, timeout_ms: int | None = None) -> dict[str, Any] | None:
        """
        Look up one query.

        Args:
            query: Probe string
            timeout_ms: Override the default per-call timeout

        Returns:
            Decoded payload with a ``d`` list, or None on any failure
        """
        timeout = (self.timeout_ms if timeout_ms is None else timeout_ms) / 1000
        loop = asyncio.get_running_loop()

        token = secrets.token_hex(8)
        call = PendingCall(query=query, future=loop.create_future())
        self._pending[token] = call
        call.timer = loop.call_later(timeout, self._on_timeout, token)
        call.task = asyncio.create_task(self._load(token, query))

        try:
            return await call.future
        finally:
            # No-op when already settled; otherwise the caller was cancelled
            self._settle(token, None)

    def _on_timeout(self, token: str) -> None:
        call = self._pending.get(token)
        if call is not None:
            logger.debug(f"Suggest lookup timed out: {call.query!r}")
        self._settle(token, None)

    def _settle(self, token: str, value: dict[str, Any] | None) -> None:
        """Resolve a pending call exactly once and release its resources."""
        call = self._pending.pop(token, None)
        if call is None:
            return

        if call.timer is not None:
            call.timer.cancel()
        if (
            call.task is not None
            and not call.task.done()
            and call.task is not asyncio.current_task()
        ):
            call.task.cancel()
        if not call.future.done():
            call.future.set_result(value)

    async def _load(self, token: str, query: str) -> None:
        """Transport side of the race."""
        url = self.build_url(query)
        payload = None
        try:
            response = await self._get(url)
            response.raise_for_status()
            payload = parse_suggest_payload(response.text)
            if payload is None:
                logger.debug(f"No usable suggest payload for {query!r}")
        except httpx.HTTPStatusError as e:
            logger.debug(f"HTTP error for suggest lookup {query!r}: {e}")
        except httpx.HTTPError as e:
            logger.debug(f"Transport error for suggest lookup {query!r}: {e}")
        except Exception:
            logger.warning(f"Unexpected error in suggest lookup {query!r}", exc_info=True)
        self._settle(token, payload)

    async def _get(self, url: str) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.get(url)
        async with httpx.AsyncClient(follow_redirects=True) as client:
            return await client.get(url)
