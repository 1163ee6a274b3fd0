"""Test fixtures for keytree consumers.

These helpers build stores from compact row lists and inject write
failures, so test suites can exercise traversal, validation and
rollback without a real database.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence, Type, Union

from ..adapters.memory import MemoryRecordStore
from ..core.node import TreeNode
from ..core.store import RecordStore


class InjectedWriteError(RuntimeError):
    """Raised by FailingRecordStore on the configured write."""

    pass


def make_store(node_class: Type[TreeNode],
               rows: Iterable[Union[Dict[str, Any], Sequence[Any]]] = (),
               store_class: Type[RecordStore] = MemoryRecordStore,
               **store_kwargs: Any) -> RecordStore:
    """Build a store pre-filled with rows, bypassing validation.

    Rows may be dicts, or tuples in field_names order:

        make_store(Menu, [(1, "root", 0, 10), (2, "child", 1, 5)])

    Corrupt data (cycles, dangling parents) is loaded as-is through
    store.load(), which notifies subscribers once.
    """
    store = store_class(node_class, **store_kwargs)
    store.load([_row_to_node(node_class, row) for row in rows])
    return store


def _row_to_node(node_class: Type[TreeNode], row: Union[Dict[str, Any], Sequence[Any]]) -> TreeNode:
    if isinstance(row, dict):
        return node_class(**row)
    if len(row) > len(node_class.field_names):
        raise ValueError(f"Row {row!r} has more values than {node_class.__name__}.field_names")
    return node_class(**dict(zip(node_class.field_names, row)))


def node_keys(nodes: Optional[Iterable[TreeNode]]) -> List[Any]:
    """Return the keys of nodes, in order."""
    return [node.key for node in nodes or ()]


class FailingRecordStore(RecordStore):
    """Wrapper that raises InjectedWriteError on the n-th write.

    Everything else, including transactions and the change feed,
    delegates to the wrapped store.

    Example:
        store = FailingRecordStore(make_store(Menu, rows), fail_on=2)
        tree = EntityTree(store)
        tree.batch_save(node)   # second write raises, batch rolls back
    """

    def __init__(self, base_store: RecordStore, fail_on: int = 1):
        super().__init__(base_store.node_class)
        self._store = base_store
        self.fail_on = fail_on
        self.writes = 0

    def _write(self, method: str, node: TreeNode) -> int:
        self.writes += 1
        if self.writes == self.fail_on:
            raise InjectedWriteError(f"injected failure on write #{self.writes} ({method} {node!r})")
        return getattr(self._store, method)(node)

    def _insert(self, node: TreeNode) -> int:
        return self._write("insert", node)

    def _update(self, node: TreeNode) -> int:
        return self._write("update", node)

    def _delete(self, node: TreeNode) -> int:
        return self._write("delete", node)

    def _notify_change(self) -> None:
        pass

    def find_by_key(self, field_name: str, value: Any) -> Optional[TreeNode]:
        return self._store.find_by_key(field_name, value)

    def find_all_by_field(self, field_name: str, value: Any) -> List[TreeNode]:
        return self._store.find_all_by_field(field_name, value)

    def find_count_by_field(self, field_name: str, value: Any) -> int:
        return self._store.find_count_by_field(field_name, value)

    def begin_transaction(self) -> int:
        return self._store.begin_transaction()

    def commit(self) -> int:
        return self._store.commit()

    def rollback(self) -> int:
        return self._store.rollback()

    @property
    def transaction_level(self) -> int:
        return self._store.transaction_level

    def subscribe(self, callback) -> None:
        self._store.subscribe(callback)

    def unsubscribe(self, callback) -> None:
        self._store.unsubscribe(callback)

    @property
    def generation(self) -> int:
        return self._store.generation
