"""
Process-local record of recently attempted external ids.

Entries hold the timestamp of the last attempt. Whether an entry still counts
is decided at lookup time against the configured TTL; `sweep()` drops stale
entries and the underlying `TTLCache` caps the number of entries held.
"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from functools import lru_cache

from cachetools import TTLCache

from newsdesk.core.config import get_settings
from newsdesk.core.time import now_utc


class DedupCache:
    def __init__(
        self,
        ttl: timedelta,
        maxsize: int = 50_000,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.ttl = ttl
        self._clock = clock
        self._entries: TTLCache = TTLCache(
            maxsize=maxsize,
            ttl=ttl.total_seconds(),
            timer=lambda: self._clock().replace(tzinfo=UTC).timestamp(),
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, external_id: str) -> bool:
        return self.is_recently_processed(external_id)

    def is_recently_processed(self, external_id: str) -> bool:
        marked_at = self._entries.get(external_id)
        if marked_at is None:
            return False
        return self._clock() - marked_at < self.ttl

    def mark_processed(self, external_id: str, timestamp: datetime | None = None) -> None:
        self._entries[external_id] = timestamp or self._clock()

    def sweep(self) -> int:
        removed = len(self._entries.expire())
        now = self._clock()
        # Entries marked with an explicit past timestamp can be stale before TTLCache expires them.
        stale = [key for key, marked_at in list(self._entries.items()) if now - marked_at >= self.ttl]
        for key in stale:
            self._entries.pop(key, None)
        return removed + len(stale)


@lru_cache
def get_dedup_cache() -> DedupCache:
    settings = get_settings()
    return DedupCache(
        ttl=timedelta(hours=settings.dedup_ttl_hours),
        maxsize=settings.dedup_max_entries,
    )
