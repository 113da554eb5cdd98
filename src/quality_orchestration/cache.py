"""In-memory report cache.

Entries expire a fixed window after insertion and, once capacity is exceeded,
the oldest-inserted entry is evicted first (not LRU: reads do not refresh
position). The cache is best-effort; callers recompute on a miss.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_TTL_SECONDS = 300
DEFAULT_MAX_ENTRIES = 100


@dataclass
class CacheEntry:
    """Cache entry with metadata."""

    key: str
    data: Any
    created_at: float


class ReportCache:
    """TTL-bounded, insertion-ordered cache for computed reports."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def build_key(overall_score: float, risk_count: int) -> str:
        """Cheap fingerprint from summary statistics.

        Distinct inputs sharing score and count collide on purpose.
        """
        return f"{overall_score}:{risk_count}"

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None
        if self._is_expired(entry):
            self.delete(key)
            self.misses += 1
            logger.debug("Cache entry expired", key=key)
            return None
        self.hits += 1
        return entry.data

    def set(self, key: str, value: Any) -> None:
        # Re-setting a key counts as a fresh insertion
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(key=key, data=value, created_at=self._clock())
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Cache entry evicted", key=evicted)

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        entry = self._entries.get(key)  # type: ignore[arg-type]
        return entry is not None and not self._is_expired(entry)

    def _is_expired(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.created_at >= self.ttl_seconds

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        total_entries = len(self._entries)
        expired_entries = sum(1 for entry in self._entries.values() if self._is_expired(entry))
        return {
            "total_entries": total_entries,
            "expired_entries": expired_entries,
            "active_entries": total_entries - expired_entries,
            "max_entries": self.max_entries,
            "hits": self.hits,
            "misses": self.misses,
        }


__all__ = ["CacheEntry", "DEFAULT_MAX_ENTRIES", "DEFAULT_TTL_SECONDS", "ReportCache"]
