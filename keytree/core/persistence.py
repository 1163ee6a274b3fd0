"""Batch persistence for keytree.

batch_save() writes a node and its whole subtree inside one transaction:
either every record is written or none is.
"""

import logging
from typing import TYPE_CHECKING

from .node import TreeNode

if TYPE_CHECKING:
    from ..tree import EntityTree

logger = logging.getLogger(__name__)


def batch_save(tree: "EntityTree", node: TreeNode, save_self: bool = True) -> int:
    """Save node and every node below it in one transaction.

    The children view is captured before node itself is saved: saving
    bumps the store generation, which makes every derived view stale,
    and the subtree being saved must not shift under the loop.

    Each child gets its parent key set to node's key (which may have
    just been assigned by the insert) before it is saved recursively.
    Validation runs as part of every save through the store's write
    hook.

    Concurrent batch saves over overlapping subtrees are not coordinated
    here; they rely on the store's transaction isolation.

    Args:
        tree: EntityTree giving access to the store and children views
        node: Root of the subtree to save
        save_self: Whether to save node itself or only its descendants

    Returns:
        Number of records written

    Raises:
        Any exception from validation or the store, after rolling back
        the entire batch
    """
    store = tree.store
    parent_key_name = node.parent_key_name
    count = 0

    store.begin_transaction()
    try:
        children = list(tree.children(node))
        if save_self:
            count += tree.save(node)

        for child in children:
            child[parent_key_name] = node.key
            count += batch_save(tree, child, True)

        store.commit()
    except BaseException as e:
        if store.transaction_level == 1:
            logger.warning("batch save of %r failed, rolling back: %s", node, e)
        store.rollback()
        raise

    return count
