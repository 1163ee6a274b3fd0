"""Root singleton cache for keytree.

Every node class gets one process-wide sentinel "root" node: an unkeyed
instance whose children are the root-level records. It is built lazily
and discarded whenever the store reports a change, so the next access
rebuilds it.
"""

import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Type

from .node import TreeNode
from .store import RecordStore

logger = logging.getLogger(__name__)


class RootCache:
    """Lazily built, resettable holder for one root instance.

    Readers racing a reset see either the old instance or a fully built
    new one, never a partially built one: the instance is published by a
    single attribute assignment after construction completes.
    """

    def __init__(self, factory: Callable[[], Any]):
        """
        Args:
            factory: Zero-argument callable building the root instance
        """
        self._factory = factory
        self._instance: Optional[Any] = None
        self._lock = threading.Lock()
        # id(store) -> [store, number of attach() calls not yet detached]
        self._stores: Dict[int, List[Any]] = {}

    def get(self) -> Any:
        """Return the cached instance, building it on first access."""
        instance = self._instance
        if instance is not None:
            return instance
        with self._lock:
            if self._instance is None:
                self._instance = self._factory()
                logger.debug("built root %r", self._instance)
            return self._instance

    def reset(self, *_: Any) -> None:
        """Discard the cached instance. Accepts and ignores callback arguments."""
        self._instance = None

    @property
    def is_built(self) -> bool:
        return self._instance is not None

    def attach(self, store: RecordStore) -> None:
        """Reset on every change notification from store.

        The store is subscribed on the first attach() only; later calls
        just count, and the subscription ends when every attach() has
        been matched by a detach().
        """
        with self._lock:
            entry = self._stores.get(id(store))
            if entry is not None:
                entry[1] += 1
                return
            self._stores[id(store)] = [store, 1]
        store.subscribe(self.reset)

    def detach(self, store: RecordStore, force: bool = False) -> None:
        """Undo one attach(), or all of them when force is true."""
        with self._lock:
            entry = self._stores.get(id(store))
            if entry is None:
                return
            entry[1] -= 1
            if entry[1] > 0 and not force:
                return
            del self._stores[id(store)]
        store.unsubscribe(self.reset)

    @property
    def attached_stores(self) -> List[RecordStore]:
        with self._lock:
            return [entry[0] for entry in self._stores.values()]


_registry: Dict[Type[TreeNode], RootCache] = {}
_registry_lock = threading.Lock()


def root_cache_for(node_class: Type[TreeNode], store: Optional[RecordStore] = None) -> RootCache:
    """Return the process-wide RootCache for node_class.

    The cache is created on first request. When a store is given, the
    cache is attached to it (see RootCache.attach); the caller owns that
    attachment and should detach() when done.
    """
    with _registry_lock:
        cache = _registry.get(node_class)
        if cache is None:
            cache = RootCache(node_class.sentinel)
            _registry[node_class] = cache
    if store is not None:
        cache.attach(store)
    return cache


def clear_root_caches() -> None:
    """Detach and forget every registered RootCache."""
    with _registry_lock:
        caches = list(_registry.values())
        _registry.clear()
    for cache in caches:
        for store in cache.attached_stores:
            cache.detach(store, force=True)
        cache.reset()
