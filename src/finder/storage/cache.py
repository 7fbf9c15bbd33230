"""Keyword-keyed response cache with per-entry expiry.

Entries are valid while now - stored_at < ttl. Expired entries are treated
as absent and evicted lazily on read. Keys are raw keyword strings; callers
must use consistent casing.
"""

from typing import Any

from finder.clock import Clock, SystemClock
from finder.exceptions import PersistenceError
from finder.logging import get_logger
from finder.models import CacheEntry
from finder.storage.snapshot import SnapshotStore

logger = get_logger(__name__)

SNAPSHOT_NAME = "response_cache"


class TTLCache:
    """In-memory TTL cache with snapshot load/save.

    Args:
        ttl_seconds: Entry lifetime (default 24h).
        clock: Time source (injected in tests).
    """

    def __init__(self, ttl_seconds: float = 24 * 60 * 60, clock: Clock | None = None) -> None:
        self._ttl = ttl_seconds
        self._clock = clock or SystemClock()
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> Any | None:
        """Return the cached payload, or None if missing or expired (evicting it)."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        age = self._clock.now() - entry.stored_at
        if age >= self._ttl:
            del self._entries[key]
            logger.debug("cache_expired", key=key, age_minutes=round(age / 60))
            return None

        logger.debug("cache_hit", key=key, age_minutes=round(age / 60))
        return entry.payload

    def set(self, key: str, value: Any) -> None:
        """Store value under key, stamped with the current instant."""
        self._entries[key] = CacheEntry(payload=value, stored_at=self._clock.now())

    def discard(self, key: str) -> None:
        """Drop key if present."""
        self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        """Raw membership, expired or not. Does not evict."""
        return key in self._entries

    def to_snapshot(self) -> dict[str, Any]:
        return {
            key: {"payload": entry.payload, "stored_at": entry.stored_at}
            for key, entry in self._entries.items()
        }

    def restore(self, snapshot: dict[str, Any]) -> None:
        """Replace contents from a snapshot, skipping malformed entries."""
        entries: dict[str, CacheEntry] = {}
        for key, raw in snapshot.items():
            try:
                entries[key] = CacheEntry(
                    payload=raw["payload"], stored_at=float(raw["stored_at"])
                )
            except (KeyError, TypeError, ValueError):
                logger.warning("cache_entry_malformed", key=key)
        self._entries = entries

    async def load_from(self, store: SnapshotStore) -> None:
        """Load entries from durable storage. An unusable snapshot leaves the cache empty."""
        self.restore(await store.load(SNAPSHOT_NAME))
        logger.info("cache_loaded", entries=len(self._entries))

    async def save_to(self, store: SnapshotStore) -> bool:
        """Persist entries. Failure is logged and reported, never raised."""
        try:
            await store.save(SNAPSHOT_NAME, self.to_snapshot())
        except PersistenceError as e:
            logger.error("cache_save_failed", error=str(e))
            return False
        return True
