"""High-level API for keytree.

This module provides simple, functional interfaces for common tree
operations. These functions wrap the EntityTree object API for ease of
use in simple cases.
"""

from typing import Any, Callable, Dict, Iterator, Optional, Type

from .adapters.memory import MemoryRecordStore
from .config import TreeConfig
from .core.node import TreeNode
from .core.store import RecordStore
from .tree import EntityTree


def open_tree(
    node_class: Type[TreeNode],
    store: Optional[RecordStore] = None,
    **kwargs: Any
) -> EntityTree:
    """Simple interface for creating an EntityTree.

    Args:
        node_class: TreeNode subclass describing the records
        store: Record store to use; a fresh MemoryRecordStore when None
        **kwargs: Flat configuration options (see TreeConfig.from_kwargs)

    Returns:
        EntityTree bound to the store

    Raises:
        TypeError: On unknown configuration options
        ValueError: If store holds a different node class

    Example:
        >>> tree = open_tree(Menu, cache_strategy="lru")
        >>> tree.insert(Menu(Name="home"))
        1
    """
    config = TreeConfig.from_kwargs(**kwargs)
    if store is None:
        store = MemoryRecordStore(node_class)
    elif store.node_class is not node_class:
        raise ValueError(
            f"Store holds {store.node_class.__name__} records, not {node_class.__name__}"
        )
    return EntityTree(store, config)


def iter_tree(tree: EntityTree, node: Optional[TreeNode] = None) -> Iterator[TreeNode]:
    """Iterate over the subtree below node, parents before children.

    When node is None the walk starts at tree.root, which itself is
    not yielded. A given node is yielded first.
    """
    start = tree.root if node is None else node
    for item, depth in tree.traverser.iter_subtree(start):
        if node is None and depth == 0:
            continue
        yield item


def find_nodes(
    tree: EntityTree,
    predicate: Callable[[TreeNode], bool],
    node: Optional[TreeNode] = None
) -> Iterator[TreeNode]:
    """Find nodes in a subtree that match a predicate.

    Example:
        >>> for menu in find_nodes(tree, lambda n: n["Name"].startswith("A")):
        ...     print(menu.key)
    """
    for item in iter_tree(tree, node):
        if predicate(item):
            yield item


def get_leaf_nodes(tree: EntityTree, node: Optional[TreeNode] = None) -> Iterator[TreeNode]:
    """Get all leaf nodes (nodes with no children) in a subtree."""
    for item in iter_tree(tree, node):
        if not tree.children(item):
            yield item


def get_tree_stats(tree: EntityTree, node: Optional[TreeNode] = None) -> Dict[str, Any]:
    """Get statistics about a tree.

    Depths follow the tree's convention: root-level records have
    depth 1. When node is given its depth is counted relative to it,
    starting at 1.

    Args:
        tree: EntityTree to inspect
        node: Subtree root; the whole tree when None

    Returns:
        Dictionary with tree statistics

    Example:
        >>> stats = get_tree_stats(tree)
        >>> print(f"Total nodes: {stats['total_nodes']}")
    """
    stats: Dict[str, Any] = {
        'total_nodes': 0,
        'leaf_nodes': 0,
        'max_depth': 0,
        'depths': {}
    }

    start = tree.root if node is None else node
    offset = 0 if node is None else 1

    for item, depth in tree.traverser.iter_subtree(start):
        depth += offset
        if depth == 0:
            continue
        stats['total_nodes'] += 1

        if not tree.children(item):
            stats['leaf_nodes'] += 1

        stats['max_depth'] = max(stats['max_depth'], depth)
        stats['depths'][depth] = stats['depths'].get(depth, 0) + 1

    stats['internal_nodes'] = stats['total_nodes'] - stats['leaf_nodes']
    # Every counted node below depth 1 hangs off one counted parent
    edges = stats['total_nodes'] - stats['depths'].get(1, 0)
    stats['average_branching'] = (
        edges / stats['internal_nodes']
        if stats['internal_nodes'] > 0 else 0
    )

    return stats
