"""Tree traversal for keytree.

The TreeTraverser turns a flat keyed collection into tree views:
children, parent, descendants, ancestors, full path and depth. Every
relationship is resolved through RecordStore lookups, and every walk is
iterative with an explicit visited set, so a corrupt (cyclic) store can
never make a traversal loop forever or overflow the stack. Corruption
degrades the result instead of raising.
"""

import logging
from typing import Any, Hashable, Iterator, List, Optional, Set, Tuple

from ..config import TraversalConfig
from .node import TreeNode
from .store import RecordStore

logger = logging.getLogger(__name__)


def node_identity(node: TreeNode) -> Hashable:
    """Identity used by visited sets.

    Keyed nodes are identified by key, so two lookups of the same record
    count as the same node. Unkeyed nodes fall back to object identity.
    """
    if node.is_new:
        return ("object", id(node))
    return ("key", node.key)


def sort_siblings(nodes: List[TreeNode]) -> List[TreeNode]:
    """Order siblings: descending sort value, ties by ascending key.

    With no sort field the order is ascending key. None sort values
    come after every real value.
    """
    ordered = sorted(nodes, key=lambda n: n.key)
    if not ordered or ordered[0].sort_key_name is None:
        return ordered
    # reverse=True keeps the stable ascending-key order among equal values
    return sorted(ordered, key=_sort_value_key, reverse=True)


def _sort_value_key(node: TreeNode) -> Tuple[int, Any]:
    value = node.sort_value
    if value is None:
        return (0, 0)
    return (1, value)


class TreeTraverser:
    """Traversal engine over one RecordStore.

    The traverser holds no per-node state; derived-view caching is the
    caller's business (see EntityTree).

    Example:
        traverser = TreeTraverser(store)
        for node in traverser.descendants(store.find_by_key("ID", 1)):
            print(node["Name"])
    """

    def __init__(self, store: RecordStore, config: Optional[TraversalConfig] = None):
        """Initialize traverser with a store.

        Args:
            store: RecordStore for the node class being traversed
            config: Traversal options, defaults to TraversalConfig()
        """
        self.store = store
        self.config = config or TraversalConfig()
        self.node_class = store.node_class

    def find_all_by_parent(self, parent_key: Any) -> List[TreeNode]:
        """Return all records whose parent key equals parent_key, ordered."""
        nodes = self.store.find_all_by_field(self.node_class.parent_key_name, parent_key)
        if not nodes:
            return []
        if self.config.sort_children:
            return sort_siblings(nodes)
        return list(nodes)

    def children(self, node: TreeNode) -> List[TreeNode]:
        """Return the immediate children of node, ordered.

        An unkeyed node has no stored children; only the sentinel root
        looks up the records whose parent key is nullish.
        """
        if node.is_new and not node.is_sentinel:
            return []
        return self.find_all_by_parent(node.key)

    def parent(self, node: TreeNode) -> Optional[TreeNode]:
        """Return the parent record, or None for a root or a dangling parent key."""
        if not node.has_parent:
            return None
        return self.store.find_by_key(node.key_name, node.parent_key)

    def descendants(self, node: TreeNode) -> List[TreeNode]:
        """Return every descendant of node, parents before their children.

        Uses an explicit LIFO work list instead of recursion. Children are
        pushed in reverse so they come out in sibling order; a child
        already in the result or already waiting in the work list is not
        pushed again. The seed node is never part of the result.

        Args:
            node: Node whose subtree to collect

        Returns:
            Descendants in depth-first pre-order, empty if none
        """
        result: List[TreeNode] = []
        seen: Set[Hashable] = set()
        stack: List[TreeNode] = [node]
        queued: Set[Hashable] = {node_identity(node)}
        corrupt = False

        while stack:
            item = stack.pop()
            ident = node_identity(item)
            queued.discard(ident)
            if ident in seen:
                continue
            seen.add(ident)
            result.append(item)

            for child in reversed(self.children(item)):
                child_ident = node_identity(child)
                if child_ident in seen:
                    corrupt = True
                    continue
                if child_ident in queued:
                    continue
                stack.append(child)
                queued.add(child_ident)

        if corrupt and self.config.warn_on_cycle:
            logger.warning("cycle detected below %r; descendants truncated", node)

        # First entry is the seed itself
        return result[1:]

    def ancestors(self, node: TreeNode) -> List[TreeNode]:
        """Return the ancestor chain of node, root-most first.

        Follows parent lookups until one misses or a node repeats. A
        repeat means the stored data contains a cycle: the walk stops
        there and returns what it has.

        Args:
            node: Node whose ancestors to collect

        Returns:
            Ancestors from the most distant down to the immediate parent,
            empty if node has no parent
        """
        chain: List[TreeNode] = []
        seen: Set[Hashable] = set()
        item: Optional[TreeNode] = node

        while item is not None:
            ident = node_identity(item)
            if ident in seen:
                if self.config.warn_on_cycle:
                    logger.warning("cycle detected above %r at %r; ancestors truncated", node, item)
                break
            seen.add(ident)
            chain.append(item)
            item = self.parent(item)

        # Drop the seed, then put the root-most ancestor first
        del chain[0]
        chain.reverse()
        return chain

    def full_path(self, node: TreeNode, include_self: bool = False) -> List[TreeNode]:
        """Return ancestors of node, optionally followed by node itself."""
        path = self.ancestors(node)
        if include_self:
            path.append(node)
        return path

    def depth(self, node: TreeNode) -> int:
        """Return 1 + number of ancestors; root nodes have depth 1."""
        return 1 + len(self.ancestors(node))

    def iter_subtree(self, node: TreeNode) -> Iterator[Tuple[TreeNode, int]]:
        """Walk node's subtree pre-order.

        Yields:
            Tuples of (node, depth) where depth is relative to the seed (0)
        """
        seen: Set[Hashable] = set()
        stack: List[Tuple[TreeNode, int]] = [(node, 0)]

        while stack:
            item, depth = stack.pop()
            ident = node_identity(item)
            if ident in seen:
                continue
            seen.add(ident)
            yield item, depth
            for child in reversed(self.children(item)):
                if node_identity(child) not in seen:
                    stack.append((child, depth + 1))
