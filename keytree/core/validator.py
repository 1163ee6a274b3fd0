"""Structural validation for keytree.

The TreeValidator runs before every insert and update and rejects writes
that would corrupt the tree: a parent key that points nowhere, a node
parenting itself, or a parent chosen from the node's own subtree.
"""

from typing import Any

from ..exceptions import CycleError, InvalidParentError, SelfParentError
from .node import TreeNode
from .traverser import TreeTraverser


class TreeValidator:
    """Pre-write structural checks against the current store state.

    Validation only reads. It is safe to call any number of times and
    never changes the node or the store.
    """

    def __init__(self, traverser: TreeTraverser):
        self.traverser = traverser
        self.store = traverser.store

    def validate(self, node: TreeNode) -> None:
        """Check that writing node keeps the tree consistent.

        Args:
            node: The node about to be inserted or updated

        Raises:
            InvalidParentError: If the parent key matches no record
            SelfParentError: If node's parent key equals its own key
            CycleError: If the parent key belongs to one of node's descendants
        """
        key = node.key
        pkey = node.parent_key
        key_is_null = node.key_kind.is_null(key)
        pkey_is_null = node.key_kind.is_null(pkey)

        if pkey_is_null:
            # Root-level write, or a fresh insert with no parent
            return

        if self.store.find_count_by_field(node.key_name, pkey) <= 0:
            raise InvalidParentError(
                f"Invalid parent {pkey!r} for {node.__class__.__name__} {key!r}: no such record",
                node=node, key=key, parent_key=pkey,
            )

        if not key_is_null and pkey == key:
            raise SelfParentError(
                f"{node.__class__.__name__} {key!r} cannot be its own parent",
                node=node, key=key, parent_key=pkey,
            )

        if key_is_null:
            # New record: nothing can be below it yet
            return

        if self._is_descendant(node, pkey):
            raise CycleError(
                f"Parent {pkey!r} is a descendant of {node.__class__.__name__} {key!r}",
                node=node, key=key, parent_key=pkey,
            )

    def _is_descendant(self, node: TreeNode, key: Any) -> bool:
        return any(d.key == key for d in self.traverser.descendants(node))

    def is_valid(self, node: TreeNode) -> bool:
        """Return True if validate() would accept node."""
        try:
            self.validate(node)
        except (SelfParentError, InvalidParentError, CycleError):
            return False
        return True
