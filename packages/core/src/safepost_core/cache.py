"""Short-lived cache of usage and history.

Only used to skip refetching on every load; it is never the system of
record. Any mutation that could change the underlying truth invalidates the
affected keys so the next reader goes back to the store.
"""

from __future__ import annotations

import json
import logging
import time
from enum import Enum
from typing import Callable, Generic, TypeVar

from safepost_core.storage import KeyValueStorage

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60.0

V = TypeVar("V")


class CacheKey(str, Enum):
    USAGE = "usage"
    HISTORY = "history"


class TTLCache(Generic[V]):
    """Typed get/set/invalidate over a KeyValueStorage with a fixed staleness window.

    Entries are stored as ``{"timestamp": <epoch seconds>, "data": <encoded>}``
    under ``<namespace>:<key>:<scope>``. ``scope`` keeps one user's entries
    apart from another's when the storage is shared.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        encode: Callable[[V], object],
        decode: Callable[[object], V],
        ttl: float = DEFAULT_TTL_SECONDS,
        namespace: str = "safepost_cache",
        clock: Callable[[], float] = time.time,
    ):
        self._storage = storage
        self._encode = encode
        self._decode = decode
        self.ttl = ttl
        self._namespace = namespace
        self._clock = clock

    def _storage_key(self, key: CacheKey, scope: str) -> str:
        return f"{self._namespace}:{key.value}:{scope}"

    def get(self, key: CacheKey, scope: str = "") -> V | None:
        """Return the cached value, or None if missing, stale or unreadable."""
        try:
            raw = self._storage.get_item(self._storage_key(key, scope))
        except OSError as e:
            logger.warning("Cache read failed for %s (%s: %s)", key.value, type(e).__name__, e)
            return None
        if raw is None:
            return None
        try:
            entry = json.loads(raw)
            age = self._clock() - float(entry["timestamp"])
            if age >= self.ttl:
                return None
            return self._decode(entry["data"])
        except (ValueError, TypeError, KeyError) as e:
            logger.debug("Discarding unreadable cache entry %s: %s", key.value, e)
            return None

    def set(self, key: CacheKey, data: V, scope: str = "") -> None:
        """Best effort: a failed write leaves the key absent, never stale."""
        entry = {"timestamp": self._clock(), "data": self._encode(data)}
        try:
            self._storage.set_item(self._storage_key(key, scope), json.dumps(entry))
        except OSError as e:
            logger.warning("Cache write failed for %s (%s: %s)", key.value, type(e).__name__, e)
            self._remove_quietly(key, scope)

    def invalidate(self, key: CacheKey, scope: str = "") -> None:
        try:
            self._storage.remove_item(self._storage_key(key, scope))
        except OSError as e:
            logger.warning("Cache invalidation failed for %s (%s: %s)", key.value, type(e).__name__, e)

    def _remove_quietly(self, key: CacheKey, scope: str) -> None:
        try:
            self._storage.remove_item(self._storage_key(key, scope))
        except OSError:
            logger.debug("Could not remove cache entry %s after a failed write", key.value)
