"""
Caching store implementation for keytree.

Provides a transparent lookup cache that can wrap any record store.
Because any write may change any node's children or ancestors, the
cache is not invalidated per key: every change notification from the
wrapped store clears it completely.
"""

import logging
import threading
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, Tuple, Union

from cachetools import LRUCache, TTLCache

from ..config import CacheConfig, CacheStrategy
from ..core.node import TreeNode
from ..core.store import ChangeCallback, RecordStore

logger = logging.getLogger(__name__)

_MISSING = object()


class CachingRecordStore(RecordStore):
    """
    Optional caching layer for any record store.

    Caches point lookups, lookup-all results and counts. Writes,
    transactions, the change feed and the generation counter all
    delegate to the wrapped store, so a tree sees exactly one
    generation no matter how many wrappers are stacked.

    Example:
        base = MemoryRecordStore(Menu)
        store = CachingRecordStore(base, CacheConfig(strategy=CacheStrategy.LRU))
        store.find_all_by_field("ParentID", 1)   # miss
        store.find_all_by_field("ParentID", 1)   # hit
    """

    def __init__(self, base_store: RecordStore, config: Optional[CacheConfig] = None):
        """
        Initialize caching store.

        Args:
            base_store: The underlying record store to wrap
            config: Cache settings; the strategy must not be CacheStrategy.NONE
        """
        super().__init__(base_store.node_class)
        self._store = base_store
        self.config = config or CacheConfig()
        self._cache = self._create_cache(self.config)
        self._cache_lock = threading.RLock()

        # Statistics
        self.cache_hits = 0
        self.cache_misses = 0
        self.invalidations = 0

        self._store.subscribe(self._on_store_change)

    @staticmethod
    def _create_cache(config: CacheConfig):
        if config.strategy is CacheStrategy.TTL:
            return TTLCache(maxsize=config.max_size, ttl=config.ttl)
        if config.strategy is CacheStrategy.LRU:
            return LRUCache(maxsize=config.max_size)
        raise ValueError(f"CachingRecordStore needs a caching strategy, got {config.strategy}")

    @property
    def base_store(self) -> RecordStore:
        return self._store

    # Lookups

    def _cached(self, cache_key: Tuple[Hashable, ...], fetch: Callable[[], Any]) -> Any:
        """
        Return a cached lookup result, fetching and storing it on a miss.

        A result is only stored if no change notification arrived while
        it was being fetched.
        """
        with self._cache_lock:
            result = self._cache.get(cache_key, _MISSING)
            if result is not _MISSING:
                self.cache_hits += 1
                return result
            self.cache_misses += 1
            generation = self._store.generation

        result = fetch()

        with self._cache_lock:
            if self._store.generation == generation:
                self._cache[cache_key] = result
        return result

    # Cached nodes are never handed out; callers get copies they may mutate.

    def find_by_key(self, field_name: str, value: Any) -> Optional[TreeNode]:
        result = self._cached(
            ("key", field_name, value),
            lambda: self._store.find_by_key(field_name, value),
        )
        return result.copy() if result is not None else None

    def find_all_by_field(self, field_name: str, value: Any) -> List[TreeNode]:
        result = self._cached(
            ("all", field_name, value),
            lambda: tuple(self._store.find_all_by_field(field_name, value)),
        )
        return [node.copy() for node in result]

    def find_count_by_field(self, field_name: str, value: Any) -> int:
        return self._cached(
            ("count", field_name, value),
            lambda: self._store.find_count_by_field(field_name, value),
        )

    # Writes delegate to the wrapped store, which runs its own hooks and
    # notifies; this wrapper's hooks run in insert()/update()/delete().

    def _insert(self, node: TreeNode) -> int:
        return self._store.insert(node)

    def _update(self, node: TreeNode) -> int:
        return self._store.update(node)

    def _delete(self, node: TreeNode) -> int:
        return self._store.delete(node)

    def _notify_change(self) -> None:
        pass

    def load(self, rows: Iterable[Union[Dict[str, Any], TreeNode]]) -> int:
        return self._store.load(rows)

    # Transactions

    def begin_transaction(self) -> int:
        return self._store.begin_transaction()

    def commit(self) -> int:
        return self._store.commit()

    def rollback(self) -> int:
        return self._store.rollback()

    @property
    def transaction_level(self) -> int:
        return self._store.transaction_level

    # Change feed

    def subscribe(self, callback: ChangeCallback) -> None:
        self._store.subscribe(callback)

    def unsubscribe(self, callback: ChangeCallback) -> None:
        self._store.unsubscribe(callback)

    @property
    def generation(self) -> int:
        return self._store.generation

    def _on_store_change(self, store: RecordStore) -> None:
        self.clear_cache(reset_stats=False)
        self.invalidations += 1

    # Cache management

    def clear_cache(self, reset_stats: bool = True) -> None:
        """
        Clear all cached entries.
        """
        with self._cache_lock:
            size = len(self._cache)
            self._cache.clear()
            if reset_stats:
                self.cache_hits = 0
                self.cache_misses = 0
                self.invalidations = 0
        if size:
            logger.debug("cleared %d cached lookup(s)", size)

    def get_cache_stats(self) -> dict:
        """
        Get cache statistics for monitoring and debugging.
        """
        total_requests = self.cache_hits + self.cache_misses
        hit_rate = self.cache_hits / total_requests if total_requests > 0 else 0

        return {
            'cache_hits': self.cache_hits,
            'cache_misses': self.cache_misses,
            'hit_rate': hit_rate,
            'invalidations': self.invalidations,
            'cache_size': len(self._cache),
            'max_size': self._cache.maxsize,
            'strategy': self.config.strategy.value,
        }

    def close(self) -> None:
        self._store.unsubscribe(self._on_store_change)
        self.clear_cache()

    def __repr__(self) -> str:
        return f"CachingRecordStore({self._store!r}, strategy={self.config.strategy.value})"
