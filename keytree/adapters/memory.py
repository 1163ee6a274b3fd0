"""In-memory record store for keytree.

MemoryRecordStore keeps one table of rows as plain field dicts. It is the
default store for open_tree() and the workhorse of the test suite.
"""

import logging
import threading
from typing import Any, Dict, Iterable, List, Optional, Type, Union

from ..core.node import TreeNode
from ..core.store import RecordStore
from ..exceptions import DuplicateKeyError, TransactionError

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


class MemoryRecordStore(RecordStore):
    """Record store backed by an insertion-ordered dict of rows.

    Every lookup returns fresh node instances built from the stored rows,
    so mutating a returned node never changes stored state until it is
    written back.

    Transactions are savepoints: begin_transaction() pushes a snapshot of
    the rows, commit() drops it and rollback() restores it. The
    transaction stack belongs to the store, not to a thread.

    Example:
        >>> store = MemoryRecordStore(Menu)
        >>> store.insert(Menu(Name="root"))
        1
        >>> store.find_by_key("ID", 1)
        Menu(ID=1, ParentID=0)
    """

    def __init__(self, node_class: Type[TreeNode],
                 rows: Optional[Iterable[Union[Row, TreeNode]]] = None):
        """Initialize the store.

        Args:
            node_class: TreeNode subclass whose records this store holds
            rows: Optional initial rows, loaded without hooks or validation
        """
        super().__init__(node_class)
        self._rows: Dict[Any, Row] = {}
        self._snapshots: List[Dict[Any, Row]] = []
        self._lock = threading.RLock()
        if rows is not None:
            self.load(rows)

    def _check_field(self, field_name: str) -> None:
        if field_name not in self.node_class.field_names:
            raise KeyError(f"Unknown field for {self.node_class.__name__}: {field_name}")

    def _make_node(self, row: Row) -> TreeNode:
        return self.node_class(**row)

    # Lookups

    def find_by_key(self, field_name: str, value: Any) -> Optional[TreeNode]:
        self._check_field(field_name)
        with self._lock:
            if field_name == self.node_class.key_name:
                row = self._rows.get(value)
                return self._make_node(row) if row is not None else None
            for row in self._rows.values():
                if row[field_name] == value:
                    return self._make_node(row)
        return None

    def find_all_by_field(self, field_name: str, value: Any) -> List[TreeNode]:
        self._check_field(field_name)
        with self._lock:
            return [self._make_node(row) for row in self._rows.values()
                    if row[field_name] == value]

    def find_count_by_field(self, field_name: str, value: Any) -> int:
        self._check_field(field_name)
        with self._lock:
            if field_name == self.node_class.key_name:
                return 1 if value in self._rows else 0
            return sum(1 for row in self._rows.values() if row[field_name] == value)

    def all(self) -> List[TreeNode]:
        """Return every record in insertion order."""
        with self._lock:
            return [self._make_node(row) for row in self._rows.values()]

    def __len__(self) -> int:
        return len(self._rows)

    # Write primitives

    def _insert(self, node: TreeNode) -> int:
        with self._lock:
            if node.is_new:
                node.key = node.key_kind.new_key(self._rows.keys())
            elif node.key in self._rows:
                raise DuplicateKeyError(node.key, self.node_class.__name__)
            self._rows[node.key] = node.metadata()
        return 1

    def _update(self, node: TreeNode) -> int:
        with self._lock:
            if node.is_new or node.key not in self._rows:
                return 0
            self._rows[node.key] = node.metadata()
        return 1

    def _delete(self, node: TreeNode) -> int:
        with self._lock:
            if self._rows.pop(node.key, None) is None:
                return 0
        return 1

    def load(self, rows: Iterable[Union[Row, TreeNode]]) -> int:
        """Bulk-load raw rows, bypassing write hooks and validation.

        Intended for importing existing (possibly inconsistent) data.
        Rows may be dicts or TreeNode instances; rows without a key get
        one assigned. Existing keys are overwritten.

        Returns:
            Number of rows loaded
        """
        count = 0
        with self._lock:
            for row in rows:
                node = row if isinstance(row, TreeNode) else self.node_class(**row)
                if node.is_new:
                    node.key = node.key_kind.new_key(self._rows.keys())
                self._rows[node.key] = node.metadata()
                count += 1
        logger.debug("loaded %d row(s) into %s", count, self.node_class.__name__)
        self._notify_change()
        return count

    # Transactions

    @property
    def transaction_level(self) -> int:
        return len(self._snapshots)

    def begin_transaction(self) -> int:
        with self._lock:
            self._snapshots.append({key: dict(row) for key, row in self._rows.items()})
            level = len(self._snapshots)
        logger.debug("begin transaction level %d", level)
        return level

    def commit(self) -> int:
        with self._lock:
            if not self._snapshots:
                raise TransactionError("commit() without begin_transaction()")
            self._snapshots.pop()
            level = len(self._snapshots)
        logger.debug("commit -> level %d", level)
        return level

    def rollback(self) -> int:
        with self._lock:
            if not self._snapshots:
                raise TransactionError("rollback() without begin_transaction()")
            self._rows = self._snapshots.pop()
            level = len(self._snapshots)
        logger.debug("rollback -> level %d", level)
        self._notify_change()
        return level
