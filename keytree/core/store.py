"""RecordStore abstraction for keytree.

The RecordStore is the only way the tree logic touches data. It offers
coarse lookups (point lookup by key, lookup-all by field value), single
record writes, nesting-safe transactions and a store-wide "data changed"
feed. No recursive query support is assumed.

Concrete stores implement the lookup, write and transaction primitives;
this base class layers write hooks, change notification and the
generation counter on top.
"""

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Type, Union

from .node import TreeNode

logger = logging.getLogger(__name__)

WriteHook = Callable[[str, TreeNode], None]
ChangeCallback = Callable[["RecordStore"], None]


class RecordStore(ABC):
    """Abstract store holding the records of one node class.

    Writes go through insert()/update()/delete(), which run every
    registered write hook before touching data and fire a change
    notification afterwards. Hooks are where structural validation
    plugs in; a hook that raises aborts the write.

    Every notification increments `generation`, which per-node view
    caches use to detect staleness.
    """

    def __init__(self, node_class: Type[TreeNode]):
        """Initialize the store.

        Args:
            node_class: TreeNode subclass whose records this store holds
        """
        if not node_class.field_names:
            raise TypeError(f"{node_class.__name__} declares no field_names")
        self.node_class = node_class
        self._write_hooks: List[WriteHook] = []
        self._subscribers: List[ChangeCallback] = []
        self._generation = 0
        self._notify_lock = threading.Lock()

    # Lookups

    @abstractmethod
    def find_by_key(self, field_name: str, value: Any) -> Optional[TreeNode]:
        """Return the first record whose field equals value, or None."""
        pass

    @abstractmethod
    def find_all_by_field(self, field_name: str, value: Any) -> List[TreeNode]:
        """Return every record whose field equals value, in store order."""
        pass

    @abstractmethod
    def find_count_by_field(self, field_name: str, value: Any) -> int:
        """Return how many records have field equal to value."""
        pass

    # Write primitives

    @abstractmethod
    def _insert(self, node: TreeNode) -> int:
        """Insert a record, assigning a key when it has none.

        Returns:
            Number of rows affected
        """
        pass

    @abstractmethod
    def _update(self, node: TreeNode) -> int:
        """Update the record with node's key.

        Returns:
            Number of rows affected (0 when the key is unknown)
        """
        pass

    @abstractmethod
    def _delete(self, node: TreeNode) -> int:
        """Delete the record with node's key.

        Returns:
            Number of rows affected (0 when the key is unknown)
        """
        pass

    # Transactions

    @abstractmethod
    def begin_transaction(self) -> int:
        """Open a transaction, nested inside any open one.

        Returns:
            The new nesting level (1 for the outermost transaction)
        """
        pass

    @abstractmethod
    def commit(self) -> int:
        """Commit the innermost transaction.

        Only the outermost commit makes changes durable.

        Returns:
            The remaining nesting level

        Raises:
            TransactionError: If no transaction is open
        """
        pass

    @abstractmethod
    def rollback(self) -> int:
        """Undo everything written since the matching begin_transaction().

        Returns:
            The remaining nesting level

        Raises:
            TransactionError: If no transaction is open
        """
        pass

    @property
    @abstractmethod
    def transaction_level(self) -> int:
        """Current transaction nesting depth (0 outside any transaction)."""
        pass

    @contextmanager
    def transaction(self) -> Iterator["RecordStore"]:
        """Run a block inside one transaction.

        Commits when the block completes. On any exception, including a
        failing commit, rolls back and re-raises the original exception.

        Example:
            with store.transaction():
                store.insert(a)
                store.insert(b)
        """
        self.begin_transaction()
        try:
            yield self
            self.commit()
        except BaseException:
            self.rollback()
            raise

    # Writes

    def insert(self, node: TreeNode) -> int:
        """Insert a record after running write hooks."""
        self._run_write_hooks("insert", node)
        count = self._insert(node)
        logger.debug("insert %r -> %d row(s)", node, count)
        self._notify_change()
        return count

    def update(self, node: TreeNode) -> int:
        """Update a record after running write hooks."""
        self._run_write_hooks("update", node)
        count = self._update(node)
        logger.debug("update %r -> %d row(s)", node, count)
        self._notify_change()
        return count

    def delete(self, node: TreeNode) -> int:
        """Delete a record after running write hooks."""
        self._run_write_hooks("delete", node)
        count = self._delete(node)
        logger.debug("delete %r -> %d row(s)", node, count)
        self._notify_change()
        return count

    def save(self, node: TreeNode) -> int:
        """Insert a new record or update an existing one.

        A record is new when its key is nullish or no record with that
        key exists yet.
        """
        if node.is_new or self.find_count_by_field(node.key_name, node.key) <= 0:
            return self.insert(node)
        return self.update(node)

    def load(self, rows: Iterable[Union[Dict[str, Any], TreeNode]]) -> int:
        """Bulk-load raw rows, bypassing write hooks and validation.

        Intended for importing existing (possibly inconsistent) data.
        Rows may be dicts or TreeNode instances; rows without a key get
        one assigned. Fires a single change notification at the end.

        Returns:
            Number of rows loaded
        """
        count = 0
        for row in rows:
            node = row if isinstance(row, TreeNode) else self.node_class(**row)
            count += self._insert(node)
        logger.debug("loaded %d row(s) into %s", count, self.node_class.__name__)
        self._notify_change()
        return count

    # Hooks and change feed

    def add_write_hook(self, hook: WriteHook) -> None:
        """Register a callable run as hook(action, node) before each write."""
        if hook not in self._write_hooks:
            self._write_hooks.append(hook)

    def remove_write_hook(self, hook: WriteHook) -> None:
        if hook in self._write_hooks:
            self._write_hooks.remove(hook)

    def _run_write_hooks(self, action: str, node: TreeNode) -> None:
        for hook in list(self._write_hooks):
            hook(action, node)

    def subscribe(self, callback: ChangeCallback) -> None:
        """Register a callable run as callback(store) after every change."""
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: ChangeCallback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    @property
    def generation(self) -> int:
        """Change epoch, incremented on every change notification."""
        return self._generation

    def _notify_change(self) -> None:
        """Bump the generation and notify subscribers synchronously."""
        with self._notify_lock:
            self._generation += 1
        for callback in list(self._subscribers):
            callback(self)

    def close(self) -> None:
        """Release any resources held by the store."""
        pass

    def __enter__(self) -> "RecordStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.node_class.__name__})"
