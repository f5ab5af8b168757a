"""
In-memory cache manager with Time-To-Live (TTL) support.
"""
import time
from typing import Any, Callable, Dict, Optional

from signal_agent.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_ENTRIES = 1000


class CacheManager:
    """
    A simple in-memory cache with Time-To-Live (TTL) support.

    This manager stores data in a dictionary and automatically handles the
    expiration of cached items. Used for LLM responses and short-lived price
    quotes; nothing here survives a restart.

    Expired items are purged on every write, and once ``max_entries`` live
    items are stored the one closest to expiry is evicted, so keys that are
    never read again do not accumulate in a long-running process.
    """

    def __init__(self, clock: Callable[[], float] = time.time, max_entries: int = DEFAULT_MAX_ENTRIES):
        """
        Initializes the cache.

        Args:
            clock: Time source in seconds, injectable for tests.
            max_entries: Upper bound on stored items.
        """
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._cache: Dict[str, Dict[str, Any]] = {}
        self._clock = clock
        self.max_entries = max_entries

    def set(self, key: str, value: Any, ttl_seconds: int):
        """
        Adds an item to the cache with a specified TTL.

        Args:
            key: The key to store the item under.
            value: The item to store.
            ttl_seconds: The time-to-live for the item, in seconds.
        """
        if ttl_seconds <= 0:
            return  # Do not cache if TTL is non-positive

        now = self._clock()
        self.purge_expired(now)
        if key not in self._cache and len(self._cache) >= self.max_entries:
            oldest = min(self._cache, key=lambda k: self._cache[k]["expires_at"])
            del self._cache[oldest]
            logger.debug("Cache EVICTED", key=oldest)

        self._cache[key] = {"value": value, "expires_at": now + ttl_seconds}
        logger.debug("Cache SET", key=key, ttl_seconds=ttl_seconds)

    def get(self, key: str) -> Optional[Any]:
        """
        Retrieves an item from the cache if it exists and has not expired.

        Args:
            key: The key of the item to retrieve.

        Returns:
            The cached item, or None if it is not found or has expired.
        """
        item = self._cache.get(key)
        if item is None:
            logger.debug("Cache MISS", key=key)
            return None

        if self._clock() > item["expires_at"]:
            del self._cache[key]
            logger.debug("Cache EXPIRED", key=key)
            return None

        logger.debug("Cache HIT", key=key)
        return item["value"]

    def purge_expired(self, now: Optional[float] = None) -> int:
        """
        Drop every expired item.

        Returns:
            The number of items removed.
        """
        now = self._clock() if now is None else now
        expired = [key for key, item in self._cache.items() if now > item["expires_at"]]
        for key in expired:
            del self._cache[key]
        return len(expired)

    def clear(self):
        """Clears all items from the cache."""
        self._cache.clear()
        logger.info("Cache CLEARED")

    def __len__(self) -> int:
        return len(self._cache)
