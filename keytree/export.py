"""Tree export helpers for keytree.

make_tree() turns an ordered list of nodes into an external hierarchy
(TreeItem objects by default, or whatever a caller-supplied factory
builds). clear_relation() strips keys from a subtree snapshot before it
is exported and re-imported elsewhere.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, Hashable, Iterable, List, Optional, Set, Tuple

from .core.node import TreeNode
from .core.traverser import node_identity

if TYPE_CHECKING:
    from .tree import EntityTree

NodeFactory = Callable[[TreeNode], Any]


@dataclass
class TreeItem:
    """Default external representation of one exported node."""

    text: str
    value: str
    navigate_url: Optional[str] = None
    children: List["TreeItem"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Return a nested plain-dict form, children included."""
        result: Dict[str, Any] = {'text': self.text, 'value': self.value}
        if self.navigate_url is not None:
            result['url'] = self.navigate_url
        result['children'] = [child.to_dict() for child in self.children]
        return result


def format_url(template: str, node: TreeNode) -> str:
    """Replace every {Field} placeholder in template with node's field value."""
    url = template
    for name in node.field_names:
        placeholder = "{" + name + "}"
        if placeholder in url:
            value = node[name]
            url = url.replace(placeholder, "" if value is None else str(value))
    return url


def _label_field(node: TreeNode) -> str:
    if node.name_field in node.field_names:
        return node.name_field
    names = node.field_names
    return names[1] if len(names) > 1 else names[0]


def default_item(node: TreeNode, url: Optional[str] = None) -> TreeItem:
    """Build a TreeItem for node, labelled by its name field."""
    label = node[_label_field(node)]
    return TreeItem(
        text="" if label is None else str(label),
        value=str(node.key),
        navigate_url=format_url(url, node) if url else None,
    )


def make_tree(tree: "EntityTree", nodes: Iterable[TreeNode],
              url: Optional[str] = None,
              factory: Optional[NodeFactory] = None) -> List[Any]:
    """Build an external hierarchy from nodes and their descendants.

    Each node is converted by factory (or into a TreeItem), and its
    children, taken from tree.children(), are converted into the new
    object's `children` list, depth-first.

    A node is emitted at most once in the whole output, matched by key
    or by object identity, so cyclic input cannot recurse forever.

    Args:
        tree: EntityTree used to look up children
        nodes: Top-level nodes, in output order
        url: Optional template with {Field} placeholders, used for the
            default TreeItem navigate_url
        factory: Optional callable node -> object exposing a `children`
            list; returning None drops the node and its subtree

    Returns:
        The top-level converted objects
    """
    result: List[Any] = []
    emitted: Set[Hashable] = set()
    # Keeps visited nodes alive so object ids stay unique during the walk
    visited: List[TreeNode] = []
    # Work items: (node, list the converted node is appended to)
    stack: List[Tuple[TreeNode, List[Any]]] = [(n, result) for n in reversed(list(nodes))]

    while stack:
        node, sink = stack.pop()
        ident = node_identity(node)
        if ident in emitted or ("object", id(node)) in emitted:
            continue
        emitted.add(ident)
        emitted.add(("object", id(node)))
        visited.append(node)

        item = factory(node) if factory is not None else default_item(node, url)
        if item is None:
            continue
        sink.append(item)

        for child in reversed(tree.children(node)):
            stack.append((child, item.children))

    return result


def clear_relation(tree: "EntityTree", node: TreeNode) -> int:
    """Zero the key and parent key of every node below node.

    Children views are pinned on each node before its descendants lose
    their keys, so the snapshot stays navigable in memory and can later
    be written elsewhere with batch_save(). node's own fields are left
    alone. Nothing is persisted.

    Args:
        tree: EntityTree used to look up children
        node: Root of the subtree snapshot

    Returns:
        Number of nodes cleared
    """
    zero = node.key_kind.zero
    seen: Set[Hashable] = {node_identity(node)}
    stack: List[TreeNode] = [node]
    cleared: List[TreeNode] = []

    while stack:
        item = stack.pop()
        children = [c for c in tree.children(item) if node_identity(c) not in seen]
        tree.set_children(item, children)
        for child in children:
            seen.add(node_identity(child))
            cleared.append(child)
            stack.append(child)

    for item in cleared:
        item[item.key_name] = zero
        item[item.parent_key_name] = zero

    return len(cleared)
