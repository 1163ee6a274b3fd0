"""keytree - Tree semantics over flat keyed records.

keytree turns a collection of records that each carry a key, a parent
key and an optional sort key into a consistent, cycle-free tree:
children, descendants, ancestors and full paths on demand, structural
validation before every write, and whole-subtree saves inside a single
transaction.

Quick start:
━━━━━━━━━━━━━━━━━━━━━━━━━━
    from keytree import TreeNode, open_tree

    class Menu(TreeNode):
        field_names = ("ID", "Name", "ParentID", "Sorting")

    tree = open_tree(Menu)
━━━━━━━━━━━━━━━━━━━━━━━━━━

Any store implementing RecordStore can back a tree; MemoryRecordStore
and SQLiteRecordStore are included.
"""

import logging

__version__ = "0.1.0"

from .config import CacheConfig, CacheStrategy, TraversalConfig, TreeConfig
from .exceptions import (
    CycleError,
    DuplicateKeyError,
    InvalidParentError,
    KeyTreeError,
    SelfParentError,
    StoreError,
    TransactionError,
    TreeStructureError,
)
from .core import (
    INT_KEY,
    STR_KEY,
    KeyKind,
    RecordStore,
    TreeNode,
    TreeTraverser,
    TreeValidator,
    batch_save,
)
from .adapters import CachingRecordStore, MemoryRecordStore, SQLiteRecordStore
from .tree import EntityTree
from .export import TreeItem, clear_relation, make_tree
from .api import find_nodes, get_leaf_nodes, get_tree_stats, iter_tree, open_tree

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "__version__",
    # Core
    "TreeNode",
    "KeyKind",
    "INT_KEY",
    "STR_KEY",
    "RecordStore",
    "TreeTraverser",
    "TreeValidator",
    "batch_save",
    "EntityTree",
    # Adapters
    "MemoryRecordStore",
    "SQLiteRecordStore",
    "CachingRecordStore",
    # Config
    "TreeConfig",
    "CacheConfig",
    "CacheStrategy",
    "TraversalConfig",
    # Export
    "TreeItem",
    "make_tree",
    "clear_relation",
    # API
    "open_tree",
    "iter_tree",
    "find_nodes",
    "get_leaf_nodes",
    "get_tree_stats",
    # Exceptions
    "KeyTreeError",
    "TreeStructureError",
    "InvalidParentError",
    "SelfParentError",
    "CycleError",
    "StoreError",
    "TransactionError",
    "DuplicateKeyError",
]
