"""In-memory request coalescing for idempotent GET routes.

Identical reads (same method, path and query) that arrive within the debounce
window share one computation instead of hitting the database again.
"""
import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from starlette.requests import Request

logger = logging.getLogger("chat.cache")


def request_cache_key(request: Request) -> str:
    """Build ``METHOD:path?sorted-query`` for a request."""
    query = "&".join(
        f"{key}={value}" for key, value in sorted(request.query_params.multi_items())
    )
    return f"{request.method}:{request.url.path}?{query}"


@dataclass
class _Entry:
    created_at: float
    task: "asyncio.Task[Any]"


class RequestCoalescer:
    """Coalesce identical requests within a short window.

    ``window_ms`` is how long a result is shared with newcomers; ``ttl_seconds``
    is the hard age after which an entry is evicted; ``max_entries`` bounds
    the number of keys kept (oldest first out).
    """

    def __init__(
        self,
        window_ms: int = 500,
        ttl_seconds: float = 60.0,
        max_entries: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.window = window_ms / 1000.0
        self.ttl = max(ttl_seconds, self.window)
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, _Entry]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    async def run(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        """Return the shared result for ``key``, computing it if needed."""
        now = self._clock()
        self.evict_expired(now)

        entry = self._entries.get(key)
        if entry is not None and now - entry.created_at < self.window:
            logger.debug("Coalesced request %s", key)
            return await asyncio.shield(entry.task)

        task = asyncio.ensure_future(factory())
        self._entries[key] = _Entry(created_at=now, task=task)
        self._entries.move_to_end(key)
        task.add_done_callback(lambda t, k=key: self._forget_failed(k, t))
        self._enforce_bound()
        return await asyncio.shield(task)

    def evict_expired(self, now: Optional[float] = None) -> int:
        """Drop entries older than the TTL; returns how many were removed."""
        now = self._clock() if now is None else now
        expired = [
            key
            for key, entry in self._entries.items()
            if now - entry.created_at >= self.ttl and entry.task.done()
        ]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        """Drop every entry; called after mutating requests."""
        self._entries.clear()

    def _forget_failed(self, key: str, task: "asyncio.Task[Any]") -> None:
        entry = self._entries.get(key)
        if entry is None or entry.task is not task:
            return
        if task.cancelled() or task.exception() is not None:
            del self._entries[key]

    def _enforce_bound(self) -> None:
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
