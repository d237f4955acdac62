"""
Result Cache for the Property Comparison Engine

Bounded, TTL-based in-memory cache of comparison results keyed by a
deterministic request fingerprint. Size is tracked as the UTF-8 byte
length of each result's JSON serialization.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from .models import ComparisonResult


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Constants
# =============================================================================

DEFAULT_MAX_CACHE_BYTES = 10 * 1024 * 1024  # 10 MB
DEFAULT_EXPIRATION_MS = 24 * 60 * 60 * 1000  # 24 hours

CACHE_KEY_PREFIX = "comparison"
CACHE_KEY_DELIMITER = ":"


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def make_cache_key(
    subject_id: str,
    comparable_ids: Sequence[str],
    dashboard_id: str,
) -> str:
    """
    Build the fingerprint for a comparison request.

    Comparable ids are sorted so the key does not depend on request order.
    """
    parts = [CACHE_KEY_PREFIX, subject_id, *sorted(comparable_ids), dashboard_id]
    return CACHE_KEY_DELIMITER.join(parts)


def estimate_size(result: ComparisonResult) -> int:
    """Serialized byte length of a result."""
    payload = json.dumps(result.to_dict(), separators=(",", ":"), ensure_ascii=False)
    return len(payload.encode("utf-8"))


@dataclass
class CacheEntry:
    """A cached comparison result."""
    key: str
    result: ComparisonResult
    created_at: int
    expires_at: int
    size: int

    def is_expired(self, now: int) -> bool:
        return self.expires_at <= now


# =============================================================================
# Cache
# =============================================================================


class ComparisonCache:
    """
    Size-bounded, time-limited cache of comparison results.

    Eviction when a put would exceed the budget:
    1. Drop every expired entry
    2. Drop live entries oldest-first until the new entry fits

    Not thread-safe; the engine runs on a single event loop.
    """

    def __init__(
        self,
        max_size_bytes: int = DEFAULT_MAX_CACHE_BYTES,
        default_expiration_ms: int = DEFAULT_EXPIRATION_MS,
        clock: Optional[Callable[[], int]] = None,
    ):
        """
        Initialize cache.

        Args:
            max_size_bytes: Upper bound on the sum of entry sizes
            default_expiration_ms: Lifetime of an entry after insertion
            clock: Millisecond clock (default: wall clock)
        """
        self._max_size = max_size_bytes
        self._expiration_ms = default_expiration_ms
        self._clock = clock or now_ms
        self._entries: dict[str, CacheEntry] = {}
        self._size = 0

    @property
    def size(self) -> int:
        """Current total size in bytes."""
        return self._size

    @property
    def max_size(self) -> int:
        return self._max_size

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and not entry.is_expired(self._clock())

    def get(self, key: str) -> Optional[ComparisonResult]:
        """
        Return the cached result, or None on a miss.

        An expired entry is removed when it is looked up.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None

        if entry.is_expired(self._clock()):
            self._remove(key)
            logger.debug("Cache entry expired: %s", key)
            return None

        return entry.result

    def put(
        self,
        key: str,
        result: ComparisonResult,
        expiration_ms: Optional[int] = None,
    ) -> bool:
        """
        Cache a result.

        Args:
            key: Fingerprint from make_cache_key
            result: Result to cache
            expiration_ms: Override for the default lifetime

        Returns:
            True if cached, False if the result alone exceeds the budget
        """
        size = estimate_size(result)

        if size > self._max_size:
            logger.warning(
                "Comparison result %s (%d bytes) exceeds cache budget of %d bytes",
                result.id, size, self._max_size,
            )
            return False

        # Replacing a key releases its old size first
        if key in self._entries:
            self._remove(key)

        if self._size + size > self._max_size:
            self._evict(size)

        now = self._clock()
        lifetime = self._expiration_ms if expiration_ms is None else expiration_ms
        self._entries[key] = CacheEntry(
            key=key,
            result=result,
            created_at=now,
            expires_at=now + lifetime,
            size=size,
        )
        self._size += size

        logger.debug(
            "Cached %s (%d bytes, total %.2f MB)",
            key, size, self._size / 1024 / 1024,
        )
        return True

    def invalidate(self, key: str) -> bool:
        """Remove one entry. Returns True if it was present."""
        if key not in self._entries:
            return False
        self._remove(key)
        return True

    def clear(self) -> None:
        self._entries.clear()
        self._size = 0

    def purge_expired(self) -> int:
        """Remove every expired entry. Returns number removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for key in expired:
            self._remove(key)
        return len(expired)

    def stats(self) -> dict:
        return {
            "entries": len(self._entries),
            "size_bytes": self._size,
            "max_size_bytes": self._max_size,
            "default_expiration_ms": self._expiration_ms,
        }

    def _remove(self, key: str) -> None:
        entry = self._entries.pop(key)
        self._size -= entry.size

    def _evict(self, needed: int) -> None:
        """Free space for an entry of `needed` bytes."""
        expired = self.purge_expired()
        if expired:
            logger.debug("Evicted %d expired cache entries", expired)

        if self._size + needed <= self._max_size:
            return

        by_age = sorted(self._entries.values(), key=lambda e: e.created_at)
        evicted = 0
        for entry in by_age:
            self._remove(entry.key)
            evicted += 1
            if self._size + needed <= self._max_size:
                break

        logger.info("Evicted %d cache entries to free %d bytes", evicted, needed)
