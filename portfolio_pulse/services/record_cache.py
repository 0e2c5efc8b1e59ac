"""In-memory caches for record-store reads, injected into the data collector."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Protocol

logger = logging.getLogger(__name__)

Fetcher = Callable[[], Awaitable[Any]]


class RecordCache(Protocol):
    async def get_or_fetch(self, key: str, fetcher: Fetcher) -> Any: ...

    def invalidate(self, company_id: str) -> int: ...

    def clear(self) -> None: ...


@dataclass(slots=True)
class _CacheEntry:
    value: Any
    expires_at: float


class TTLRecordCache:
    """Cache fetched records for ``ttl_seconds``.

    Keys follow ``"<kind>:<company_id>"``. When a refresh fails and an expired
    entry is still held, the stale value is served instead of the error.
    """

    def __init__(
        self,
        ttl_seconds: float = 900,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, _CacheEntry] = {}

    async def get_or_fetch(self, key: str, fetcher: Fetcher) -> Any:
        entry = self._entries.get(key)
        now = self._clock()
        if entry is not None and entry.expires_at > now:
            return entry.value

        try:
            value = await fetcher()
        except Exception as exc:
            if entry is None:
                raise
            logger.warning("Refreshing %s failed (%s); serving stale value", key, exc)
            return entry.value

        self._entries[key] = _CacheEntry(value=value, expires_at=self._clock() + self._ttl)
        return value

    def invalidate(self, company_id: str) -> int:
        """Drop every entry cached for ``company_id``; return how many were dropped."""
        suffix = f":{company_id}"
        keys = [key for key in self._entries if key.endswith(suffix)]
        for key in keys:
            del self._entries[key]
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class NullRecordCache:
    """Cache that never stores anything."""

    async def get_or_fetch(self, key: str, fetcher: Fetcher) -> Any:
        return await fetcher()

    def invalidate(self, company_id: str) -> int:
        return 0

    def clear(self) -> None:
        return None


__all__ = ["NullRecordCache", "RecordCache", "TTLRecordCache"]
