from __future__ import annotations

import logging
import typing as tp
from dataclasses import replace

import anyio

from pahest._core.models import CachedEntry
from pahest._lfu_cache import LFUCache
from pahest._utils import now_ms

logger = logging.getLogger("pahest.storages")

__all__ = (
    "AsyncBaseStorage",
    "AsyncInMemoryStorage",
)

DEFAULT_MAX_SIZE = 64 * 1024 * 1024


class AsyncBaseStorage:
    """
    The key-value store that holds cached responses.

    Exactly one entry exists per key; a later ``set`` replaces the earlier one.
    Expiry and eviction are the store's business: callers only pass a TTL hint.
    """

    async def get(self, key: str) -> tp.Optional[CachedEntry]:
        raise NotImplementedError()

    async def set(self, key: str, entry: CachedEntry, *, size_hint: int, ttl: int) -> None:
        raise NotImplementedError()

    async def close(self) -> None:
        pass


class AsyncInMemoryStorage(AsyncBaseStorage):
    """
    A simple in-memory storage.

    Entries are kept in a least-frequently-used cache bounded by the sum of
    their size hints. An entry stops being returned once its TTL has passed; a
    TTL of 0 stores an entry that is already expired.

    Concurrent misses for the same key are not coalesced: each of them runs
    the handler and the last write wins.

    :param max_size: The maximum total size of the stored entries, defaults to 64 MiB
    :type max_size: int, optional
    """

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE) -> None:
        self._cache: LFUCache[str, tp.Tuple[CachedEntry, float]] = LFUCache(capacity=max_size)
        self._lock = anyio.Lock()

    @property
    def max_size(self) -> int:
        return self._cache.capacity

    async def set(self, key: str, entry: CachedEntry, *, size_hint: int, ttl: int) -> None:
        """
        Stores the entry in the cache.

        :param key: The cache key of the entry
        :type key: str
        :param entry: The response to store
        :type entry: CachedEntry
        :param size_hint: The size charged against ``max_size``, usually the body length
        :type size_hint: int
        :param ttl: Milliseconds until the entry expires
        :type ttl: int
        """

        if size_hint > self.max_size:
            logger.info("Entry is larger than the storage: key=%s size=%d", key, size_hint)
            async with self._lock:
                self._cache.remove_key(key)
            return

        expires_at = now_ms() + max(ttl, 0)
        stored = replace(entry, headers=entry.headers.copy())

        async with self._lock:
            self._cache.put(key, (stored, expires_at), size=size_hint)
        logger.debug("Stored entry: key=%s size=%d ttl=%d", key, size_hint, ttl)

    async def get(self, key: str) -> tp.Optional[CachedEntry]:
        """
        Retrieves the entry stored under the key, unless it has expired.

        :param key: The cache key of the entry
        :type key: str
        :return: The stored entry
        :rtype: tp.Optional[CachedEntry]
        """

        async with self._lock:
            try:
                entry, expires_at = self._cache.get(key)
            except KeyError:
                return None

            if now_ms() >= expires_at:
                logger.debug("Dropping expired entry: key=%s", key)
                self._cache.remove_key(key)
                return None

        return replace(entry, headers=entry.headers.copy())
