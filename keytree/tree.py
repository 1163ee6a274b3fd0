"""EntityTree - tree operations bound to one node class and one store.

This is the main entry point of keytree. It wires the traversal engine,
the validator, batch persistence, the root singleton and the export
helpers to a RecordStore, and caches derived views on each node keyed
by the store and its change generation.
"""

import logging
import threading
from typing import Any, Iterable, List, Optional, Tuple

from .adapters.caching import CachingRecordStore
from .config import TreeConfig
from .core import persistence
from .core.node import TreeNode
from .core.root import RootCache, root_cache_for
from .core.store import RecordStore
from .core.traverser import TreeTraverser
from .core.validator import TreeValidator
from . import export

logger = logging.getLogger(__name__)


class _ViewTraverser(TreeTraverser):
    """Traverser that reads children and parents through the node view cache."""

    def __init__(self, tree: "EntityTree"):
        super().__init__(tree.store, tree.config.traversal)
        self._tree = tree

    def children(self, node: TreeNode) -> List[TreeNode]:
        return self._tree.children(node)

    def parent(self, node: TreeNode) -> Optional[TreeNode]:
        return self._tree.parent(node)


class EntityTree:
    """Tree semantics over the records of a RecordStore.

    Derived views (children, parent, all_children, all_parents) are
    cached on the node instance that asked for them and recomputed as
    soon as the store generation moves, i.e. after any write anywhere
    in the store. Entries are also tagged with the store, so a node
    shared between trees (the root) never serves one store's view to
    another.

    Example:
        >>> tree = EntityTree(MemoryRecordStore(Menu))
        >>> top = Menu(Name="top")
        >>> tree.insert(top)
        1
        >>> tree.insert(Menu(Name="child", ParentID=top.key))
        1
        >>> [n["Name"] for n in tree.children(top)]
        ['child']
    """

    def __init__(self, store: RecordStore, config: Optional[TreeConfig] = None):
        """
        Args:
            store: RecordStore holding the records; wrapped in a
                CachingRecordStore unless the cache strategy is NONE
            config: Tree configuration, defaults to TreeConfig()
        """
        self.config = config or TreeConfig()
        self.config.validate()
        self.node_class = store.node_class
        # The store as given, before any caching wrapper
        self._source = store

        self._owns_cache = False
        if self.config.cache.enabled and not isinstance(store, CachingRecordStore):
            store = CachingRecordStore(store, self.config.cache)
            self._owns_cache = True
        self.store = store

        self.traverser = TreeTraverser(store, self.config.traversal)
        self.validator = TreeValidator(self.traverser)
        self._views = _ViewTraverser(self)
        self._root_cache: Optional[RootCache] = None
        self._root_lock = threading.Lock()

        if self.config.validate_on_write:
            self.store.add_write_hook(self._before_write)

    # Derived views

    def view_stamp(self) -> Tuple[int, int]:
        """Return the (store identity, generation) pair node views are keyed by."""
        return (id(self._source), self.store.generation)

    def children(self, node: TreeNode) -> List[TreeNode]:
        """Return node's children, ordered."""
        return list(node.get_view(
            "children", self.view_stamp(), lambda: self.traverser.children(node)
        ))

    def set_children(self, node: TreeNode, children: Optional[Iterable[TreeNode]]) -> None:
        """Pin node's children view, or unpin it with None."""
        node.set_view("children", None if children is None else list(children))

    def parent(self, node: TreeNode) -> Optional[TreeNode]:
        """Return node's parent, None for a root or dangling parent key."""
        return node.get_view(
            "parent", self.view_stamp(), lambda: self.traverser.parent(node)
        )

    def all_children(self, node: TreeNode) -> List[TreeNode]:
        """Return all descendants of node, parents before children."""
        return list(node.get_view(
            "all_children", self.view_stamp(), lambda: self._views.descendants(node)
        ))

    def all_parents(self, node: TreeNode) -> List[TreeNode]:
        """Return all ancestors of node, root-most first."""
        return list(node.get_view(
            "all_parents", self.view_stamp(), lambda: self._views.ancestors(node)
        ))

    def full_path(self, node: TreeNode, include_self: bool = False) -> List[TreeNode]:
        """Return node's ancestors, optionally followed by node itself."""
        path = self.all_parents(node)
        if include_self:
            path.append(node)
        return path

    def depth(self, node: TreeNode) -> int:
        """Return 1 + number of ancestors; root nodes have depth 1."""
        return 1 + len(self.all_parents(node))

    # Queries

    def find(self, key: Any) -> Optional[TreeNode]:
        """Return the record with the given key, or None."""
        return self.store.find_by_key(self.node_class.key_name, key)

    def find_all_by_parent(self, parent_key: Any) -> List[TreeNode]:
        """Return every record under parent_key, ordered."""
        return self.traverser.find_all_by_parent(parent_key)

    # Validation and writes

    def validate(self, node: TreeNode) -> None:
        """Run structural validation; see TreeValidator.validate()."""
        self.validator.validate(node)

    def _before_write(self, action: str, node: TreeNode) -> None:
        if action in ("insert", "update") and isinstance(node, self.node_class):
            self.validator.validate(node)

    def insert(self, node: TreeNode) -> int:
        return self.store.insert(node)

    def update(self, node: TreeNode) -> int:
        return self.store.update(node)

    def save(self, node: TreeNode) -> int:
        return self.store.save(node)

    def delete(self, node: TreeNode) -> int:
        return self.store.delete(node)

    def batch_save(self, node: TreeNode, save_self: bool = True) -> int:
        """Save node and its whole subtree in one transaction.

        Returns:
            Number of records written
        """
        return persistence.batch_save(self, node, save_self)

    # Export

    def clear_relation(self, node: TreeNode) -> int:
        """Zero keys below node in memory; see export.clear_relation()."""
        return export.clear_relation(self, node)

    def make_tree(self, nodes: Iterable[TreeNode], url: Optional[str] = None,
                  factory: Optional[export.NodeFactory] = None) -> List[Any]:
        """Build an external hierarchy; see export.make_tree()."""
        return export.make_tree(self, nodes, url=url, factory=factory)

    # Root singleton

    @property
    def root_cache(self) -> RootCache:
        """The node class's RootCache, attached to this tree's store once."""
        cache = root_cache_for(self.node_class)
        if self._root_cache is not cache:
            with self._root_lock:
                if self._root_cache is not cache:
                    cache.attach(self._source)
                    self._root_cache = cache
        return cache

    @property
    def root(self) -> TreeNode:
        """Process-wide sentinel root node for this node class.

        Built lazily and discarded on any store change, so the next read
        returns a fresh instance. It is never saved automatically.
        """
        return self.root_cache.get()

    @root.setter
    def root(self, value: Any) -> None:
        # Assigning anything clears the cached root
        self.root_cache.reset()

    def reset_root(self) -> None:
        self.root_cache.reset()

    # Lifecycle

    def close(self) -> None:
        """Detach from the store."""
        self.store.remove_write_hook(self._before_write)
        with self._root_lock:
            if self._root_cache is not None:
                self._root_cache.detach(self._source)
                self._root_cache = None
        if self._owns_cache:
            self.store.close()

    def __enter__(self) -> "EntityTree":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"EntityTree({self.node_class.__name__}, store={self.store!r})"
