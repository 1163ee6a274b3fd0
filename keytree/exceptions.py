"""Exceptions raised by keytree."""

from typing import Any, Optional


class KeyTreeError(Exception):
    """Base exception for keytree errors."""

    pass


class TreeStructureError(KeyTreeError, ValueError):
    """Raised when a write would break the tree structure.

    Structural errors are raised before anything is written and are never
    retried or corrected automatically.

    Attributes:
        node: The node whose write was rejected
        key: The node's key at validation time
        parent_key: The proposed parent key
    """

    def __init__(self, message: str, node: Any = None,
                 key: Any = None, parent_key: Any = None):
        super().__init__(message)
        self.node = node
        self.key = key
        self.parent_key = parent_key


class InvalidParentError(TreeStructureError):
    """Raised when a parent key references a record that does not exist."""

    pass


class SelfParentError(TreeStructureError):
    """Raised when a node names itself as its own parent."""

    pass


class CycleError(TreeStructureError):
    """Raised when the proposed parent is one of the node's descendants."""

    pass


class StoreError(KeyTreeError):
    """Base exception for record store failures."""

    pass


class TransactionError(StoreError):
    """Raised on commit or rollback without a matching begin."""

    pass


class DuplicateKeyError(StoreError):
    """Raised when inserting a record whose key already exists."""

    def __init__(self, key: Any, table: Optional[str] = None):
        where = f" in {table}" if table else ""
        super().__init__(f"Duplicate key {key!r}{where}")
        self.key = key
