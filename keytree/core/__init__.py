"""Core components of keytree.

The node contract, the record store interface and the algorithms that
work on top of them: traversal, validation, batch persistence and the
root singleton cache.
"""

from .keys import INT_KEY, STR_KEY, KeyKind, key_kind_for
from .node import TreeNode
from .store import RecordStore
from .traverser import TreeTraverser, node_identity, sort_siblings
from .validator import TreeValidator
from .persistence import batch_save
from .root import RootCache, root_cache_for, clear_root_caches

__all__ = [
    'INT_KEY',
    'STR_KEY',
    'KeyKind',
    'key_kind_for',
    'TreeNode',
    'RecordStore',
    'TreeTraverser',
    'node_identity',
    'sort_siblings',
    'TreeValidator',
    'batch_save',
    'RootCache',
    'root_cache_for',
    'clear_root_caches',
]
