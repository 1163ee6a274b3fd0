"""SQLite record store for keytree.

SQLiteRecordStore maps one node class onto one table, one column per
field. Nested transactions are implemented with savepoints so that an
inner begin/commit pair never finalizes the outer transaction.
"""

import logging
import sqlite3
import threading
import uuid
from typing import Any, Dict, Iterable, List, Optional, Type, Union

from ..core.node import TreeNode
from ..core.store import RecordStore
from ..exceptions import DuplicateKeyError, TransactionError

logger = logging.getLogger(__name__)


class SQLiteRecordStore(RecordStore):
    """Record store backed by a single SQLite table.

    The connection runs in autocommit mode (isolation_level=None): a write
    outside an explicit transaction commits immediately, and transactions
    are driven by explicit BEGIN / SAVEPOINT statements.

    Example:
        store = SQLiteRecordStore(Menu, "menus.db")
        with store.transaction():
            store.insert(Menu(Name="root"))
    """

    def __init__(self, node_class: Type[TreeNode], path: str = ":memory:",
                 table: Optional[str] = None):
        """Open (and create if needed) the table for node_class.

        Args:
            node_class: TreeNode subclass whose records this store holds
            path: Database file path, ":memory:" for a private database
            table: Table name, defaults to the node class name
        """
        super().__init__(node_class)
        self.path = path
        self.table = table or node_class.__name__
        self._level = 0
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(path, isolation_level=None, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._create_table()

    def _quote(self, field_name: str) -> str:
        """Quote a field name after checking it against the schema."""
        if field_name not in self.node_class.field_names:
            raise KeyError(f"Unknown field for {self.node_class.__name__}: {field_name}")
        return '"' + field_name + '"'

    def _create_table(self) -> None:
        key_name = self.node_class.key_name
        key_type = "INTEGER" if self.node_class.key_kind.python_type is int else "TEXT"
        columns = []
        for name in self.node_class.field_names:
            if name == key_name:
                columns.append(f"{self._quote(name)} {key_type} PRIMARY KEY")
            else:
                columns.append(self._quote(name))
        with self._lock:
            self._conn.execute(
                f'CREATE TABLE IF NOT EXISTS "{self.table}" ({", ".join(columns)})'
            )
            self._conn.execute(
                f'CREATE INDEX IF NOT EXISTS "ix_{self.table}_parent" '
                f'ON "{self.table}" ({self._quote(self.node_class.parent_key_name)})'
            )

    def _make_node(self, row: sqlite3.Row) -> TreeNode:
        return self.node_class(**{name: row[name] for name in row.keys()})

    # Lookups

    def find_by_key(self, field_name: str, value: Any) -> Optional[TreeNode]:
        sql = f'SELECT * FROM "{self.table}" WHERE {self._quote(field_name)} = ? LIMIT 1'
        with self._lock:
            row = self._conn.execute(sql, (value,)).fetchone()
        return self._make_node(row) if row is not None else None

    def find_all_by_field(self, field_name: str, value: Any) -> List[TreeNode]:
        sql = f'SELECT * FROM "{self.table}" WHERE {self._quote(field_name)} = ? ORDER BY rowid'
        with self._lock:
            rows = self._conn.execute(sql, (value,)).fetchall()
        return [self._make_node(row) for row in rows]

    def find_count_by_field(self, field_name: str, value: Any) -> int:
        sql = f'SELECT COUNT(*) FROM "{self.table}" WHERE {self._quote(field_name)} = ?'
        with self._lock:
            return self._conn.execute(sql, (value,)).fetchone()[0]

    def all(self) -> List[TreeNode]:
        """Return every record in rowid order."""
        with self._lock:
            rows = self._conn.execute(f'SELECT * FROM "{self.table}" ORDER BY rowid').fetchall()
        return [self._make_node(row) for row in rows]

    def __len__(self) -> int:
        with self._lock:
            return self._conn.execute(f'SELECT COUNT(*) FROM "{self.table}"').fetchone()[0]

    # Write primitives

    def _insert(self, node: TreeNode) -> int:
        fields = node.metadata()
        key_name = node.key_name
        auto_key = node.is_new and node.key_kind.python_type is int
        if auto_key:
            del fields[key_name]
        elif node.is_new:
            fields[key_name] = uuid.uuid4().hex

        names = list(fields)
        sql = (
            f'INSERT INTO "{self.table}" ({", ".join(self._quote(n) for n in names)}) '
            f'VALUES ({", ".join("?" for _ in names)})'
        )
        with self._lock:
            try:
                cursor = self._conn.execute(sql, [fields[n] for n in names])
            except sqlite3.IntegrityError as e:
                raise DuplicateKeyError(fields.get(key_name), self.table) from e
        node.key = cursor.lastrowid if auto_key else fields[key_name]
        return cursor.rowcount

    def _update(self, node: TreeNode) -> int:
        if node.is_new:
            return 0
        fields = node.metadata()
        key_name = node.key_name
        names = [n for n in fields if n != key_name]
        sql = (
            f'UPDATE "{self.table}" SET {", ".join(self._quote(n) + " = ?" for n in names)} '
            f'WHERE {self._quote(key_name)} = ?'
        )
        with self._lock:
            cursor = self._conn.execute(sql, [fields[n] for n in names] + [node.key])
        return cursor.rowcount

    def _delete(self, node: TreeNode) -> int:
        sql = f'DELETE FROM "{self.table}" WHERE {self._quote(node.key_name)} = ?'
        with self._lock:
            cursor = self._conn.execute(sql, (node.key,))
        return cursor.rowcount

    def load(self, rows: Iterable[Union[Dict[str, Any], TreeNode]]) -> int:
        """Bulk-load rows in one transaction, bypassing write hooks.

        Unlike MemoryRecordStore.load, an existing key is not overwritten:
        it raises DuplicateKeyError and nothing from this call is kept.
        """
        with self.transaction():
            return super().load(rows)

    # Transactions

    @property
    def transaction_level(self) -> int:
        return self._level

    def begin_transaction(self) -> int:
        with self._lock:
            if self._level == 0:
                self._conn.execute("BEGIN")
            else:
                self._conn.execute(f"SAVEPOINT sp_{self._level}")
            self._level += 1
            level = self._level
        logger.debug("begin transaction level %d on %s", level, self.table)
        return level

    def commit(self) -> int:
        with self._lock:
            if self._level == 0:
                raise TransactionError("commit() without begin_transaction()")
            if self._level == 1:
                self._conn.execute("COMMIT")
            else:
                self._conn.execute(f"RELEASE sp_{self._level - 1}")
            self._level -= 1
            level = self._level
        logger.debug("commit -> level %d on %s", level, self.table)
        return level

    def rollback(self) -> int:
        with self._lock:
            if self._level == 0:
                raise TransactionError("rollback() without begin_transaction()")
            if self._level == 1:
                self._conn.execute("ROLLBACK")
            else:
                savepoint = f"sp_{self._level - 1}"
                self._conn.execute(f"ROLLBACK TO {savepoint}")
                self._conn.execute(f"RELEASE {savepoint}")
            self._level -= 1
            level = self._level
        logger.debug("rollback -> level %d on %s", level, self.table)
        self._notify_change()
        return level

    def close(self) -> None:
        """Close the connection, rolling back any open transaction."""
        with self._lock:
            if self._level:
                logger.warning("closing %s with %d open transaction level(s)", self.table, self._level)
                self._conn.execute("ROLLBACK")
                self._level = 0
            self._conn.close()
