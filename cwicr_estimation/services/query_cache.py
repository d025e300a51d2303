"""Time-bounded cache for catalog similarity queries.

Entries are keyed by (language, region, case-folded query text) and expire
a fixed TTL after insertion. Expiry is checked lazily on read; ``purge_expired``
sweeps stale entries on demand.
"""

import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, List, NamedTuple, Optional, Tuple, TypeVar

import structlog

logger = structlog.get_logger(__name__)

# One hour
DEFAULT_TTL_SECONDS = 3600.0

T = TypeVar("T")


class CacheKey(NamedTuple):
    """Normalized key for a similarity query."""

    language: str
    region: str
    query: str

    @classmethod
    def build(cls, language: str, region: str, query: str) -> "CacheKey":
        return cls(language=language, region=region, query=query.casefold())


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """Cached ranked list and its insertion time."""

    key: CacheKey
    value: Tuple[T, ...]
    inserted_at: float


class QueryCache(Generic[T]):
    """Keyed store of ranked result lists with per-entry expiry.

    Entries are never refreshed in place: ``put`` replaces the entry for a
    key with a new one carrying its own insertion time. The cache runs on
    the event loop thread, so concurrent coroutines never interleave inside
    a single operation and the last writer for a key wins.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic
    ):
        """Initialize QueryCache.

        Args:
            ttl_seconds: Lifetime of an entry after insertion.
            clock: Monotonic time source (injectable for tests).
        """
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[CacheKey, CacheEntry[T]] = {}

    def _is_expired(self, entry: CacheEntry[T], now: float) -> bool:
        return now - entry.inserted_at >= self.ttl_seconds

    def get(self, key: CacheKey) -> Optional[List[T]]:
        """Get a copy of the cached list for a key, or None if missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        if self._is_expired(entry, self._clock()):
            # Only drop the entry we inspected; a newer put may have replaced it
            if self._entries.get(key) is entry:
                del self._entries[key]
            logger.debug("query_cache_expired", language=key.language, region=key.region)
            return None

        return list(entry.value)

    def put(self, key: CacheKey, value: List[T]) -> None:
        """Store a copy of a ranked list under a key, starting a fresh TTL."""
        self._entries[key] = CacheEntry(key=key, value=tuple(value), inserted_at=self._clock())

    def clear(self) -> None:
        """Remove all entries immediately."""
        count = len(self._entries)
        self._entries.clear()
        logger.info("query_cache_cleared", entries_removed=count)

    def purge_expired(self) -> int:
        """Remove every expired entry.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if self._is_expired(entry, now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, CacheKey) and self.get(key) is not None
