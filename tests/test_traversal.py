"""Tests for tree traversal over flat records.

Checks sibling ordering, descendant closure, ancestor chains, depth and
full paths, and that corrupt (cyclic) data never makes a walk loop.
"""

import logging
import random

import pytest

from keytree import EntityTree, TreeConfig, TreeNode, TreeTraverser
from keytree.config import TraversalConfig
from keytree.core.traverser import sort_siblings
from keytree.testing import make_store, node_keys

from conftest import Menu


class Plain(TreeNode):
    field_names = ("ID", "Label", "ParentID")


class TestSiblingOrder:
    """Children come out by descending sort value, ties by key."""

    def test_descending_sort_value(self, sample_tree):
        root = sample_tree.find(1)
        # Sorting: A=3, C=2, B=1
        assert node_keys(sample_tree.children(root)) == [2, 4, 3]

    def test_ties_broken_by_ascending_key(self):
        store = make_store(Menu, [(1, "r", 0, 0), (9, "x", 1, 5), (4, "y", 1, 5), (6, "z", 1, 5)])
        tree = EntityTree(store)
        assert node_keys(tree.children(tree.find(1))) == [4, 6, 9]

    def test_reordered_by_sort_value(self):
        store = make_store(Menu, [(1, "r", 0, 0), (2, "a", 1, 3), (3, "b", 1, 1), (4, "c", 1, 2)])
        tree = EntityTree(store)
        assert node_keys(tree.children(tree.find(1))) == [2, 4, 3]

    def test_no_sort_field_orders_by_key(self):
        store = make_store(Plain, [(1, "r", 0), (7, "x", 1), (3, "y", 1), (5, "z", 1)])
        tree = EntityTree(store)
        assert node_keys(tree.children(tree.find(1))) == [3, 5, 7]

    def test_missing_sort_values_go_last(self):
        nodes = [Menu(ID=1, Sorting=None), Menu(ID=2, Sorting=1), Menu(ID=3, Sorting=None), Menu(ID=4, Sorting=5)]
        assert node_keys(sort_siblings(nodes)) == [4, 2, 1, 3]

    def test_unsorted_when_disabled(self):
        store = make_store(Menu, [(1, "r", 0, 0), (2, "a", 1, 1), (3, "b", 1, 9)])
        tree = EntityTree(store, TreeConfig(traversal=TraversalConfig(sort_children=False)))
        assert node_keys(tree.children(tree.find(1))) == [2, 3]

    def test_leaf_has_no_children(self, sample_tree):
        assert sample_tree.children(sample_tree.find(7)) == []

    def test_unsaved_node_has_no_children(self, sample_tree):
        assert sample_tree.children(Menu(Name="draft")) == []


class TestDescendants:

    def test_preorder_closure(self, sample_tree):
        root = sample_tree.find(1)
        assert node_keys(sample_tree.all_children(root)) == [2, 5, 7, 6, 4, 3]

    def test_seed_not_included(self, sample_tree):
        node = sample_tree.find(2)
        keys = node_keys(sample_tree.all_children(node))
        assert keys == [5, 7, 6]
        assert 2 not in keys

    def test_leaf_has_no_descendants(self, sample_tree):
        assert sample_tree.all_children(sample_tree.find(6)) == []

    def test_parents_before_children(self, sample_tree):
        order = node_keys(sample_tree.all_children(sample_tree.find(1)))
        for node in sample_tree.all_children(sample_tree.find(1)):
            if node.parent_key != 1:
                assert order.index(node.parent_key) < order.index(node.key)


class TestAncestors:

    def test_root_most_first(self, sample_tree):
        node = sample_tree.find(7)
        assert node_keys(sample_tree.all_parents(node)) == [1, 2, 5]

    def test_root_has_no_ancestors(self, sample_tree):
        assert sample_tree.all_parents(sample_tree.find(1)) == []

    def test_parent(self, sample_tree):
        assert sample_tree.parent(sample_tree.find(5)).key == 2
        assert sample_tree.parent(sample_tree.find(1)) is None

    def test_dangling_parent_key(self):
        store = make_store(Menu, [(1, "orphan", 42, 0)])
        tree = EntityTree(store)
        node = tree.find(1)
        assert tree.parent(node) is None
        assert tree.all_parents(node) == []
        assert tree.depth(node) == 1

    def test_full_path(self, sample_tree):
        node = sample_tree.find(7)
        assert node_keys(sample_tree.full_path(node)) == [1, 2, 5]
        assert node_keys(sample_tree.full_path(node, include_self=True)) == [1, 2, 5, 7]

    def test_depth(self, sample_tree):
        assert sample_tree.depth(sample_tree.find(1)) == 1
        assert sample_tree.depth(sample_tree.find(4)) == 2
        assert sample_tree.depth(sample_tree.find(7)) == 4


class TestViewCache:
    """Derived views follow store changes."""

    def test_children_view_refreshed_after_write(self, sample_tree):
        node = sample_tree.find(2)
        assert node_keys(sample_tree.children(node)) == [5, 6]

        sample_tree.insert(Menu(Name="A3", ParentID=2, Sorting=0))
        assert node_keys(sample_tree.children(node)) == [5, 6, 8]

    def test_children_view_is_a_copy(self, sample_tree):
        node = sample_tree.find(2)
        sample_tree.children(node).clear()
        assert node_keys(sample_tree.children(node)) == [5, 6]

    def test_unchanged_store_reuses_view(self, sample_tree):
        node = sample_tree.find(1)
        first = sample_tree.all_children(node)
        stats = sample_tree.store.get_cache_stats()
        second = sample_tree.all_children(node)
        assert node_keys(first) == node_keys(second)
        assert sample_tree.store.get_cache_stats()['cache_misses'] == stats['cache_misses']

    def test_ancestors_refreshed_after_move(self, sample_tree):
        node = sample_tree.find(7)
        assert node_keys(sample_tree.all_parents(node)) == [1, 2, 5]

        # Move A1 (the parent of A1x) under C
        moved = sample_tree.find(5)
        moved["ParentID"] = 4
        sample_tree.update(moved)
        assert node_keys(sample_tree.all_parents(node)) == [1, 4, 5]


class TestCorruptData:
    """Cyclic stored data degrades results but always terminates."""

    @pytest.fixture
    def cyclic_tree(self):
        # A(1) -> B(2) -> C(3) -> A(1), loaded without validation
        store = make_store(Menu, [(1, "A", 2, 0), (2, "B", 3, 0), (3, "C", 1, 0)])
        tree = EntityTree(store)
        yield tree
        tree.close()

    def test_descendants_terminate(self, cyclic_tree):
        node = cyclic_tree.find(1)
        keys = node_keys(cyclic_tree.all_children(node))
        assert keys == [3, 2]
        assert len(keys) == len(set(keys))

    def test_ancestors_terminate(self, cyclic_tree):
        node = cyclic_tree.find(1)
        assert node_keys(cyclic_tree.all_parents(node)) == [3, 2]
        assert cyclic_tree.depth(node) == 3

    def test_self_parent_terminates(self):
        tree = EntityTree(make_store(Menu, [(5, "loop", 5, 0)]))
        node = tree.find(5)
        assert tree.all_parents(node) == []
        assert tree.all_children(node) == []

    def test_cycle_logs_warning(self, cyclic_tree, caplog):
        with caplog.at_level(logging.WARNING, logger="keytree"):
            cyclic_tree.all_parents(cyclic_tree.find(1))
        assert any("cycle detected" in r.getMessage() for r in caplog.records)

    def test_warning_can_be_disabled(self, caplog):
        store = make_store(Menu, [(1, "A", 2, 0), (2, "B", 1, 0)])
        tree = EntityTree(store, TreeConfig(traversal=TraversalConfig(warn_on_cycle=False)))
        with caplog.at_level(logging.WARNING, logger="keytree"):
            tree.all_parents(tree.find(1))
            tree.all_children(tree.find(1))
        assert not [r for r in caplog.records if "cycle detected" in r.getMessage()]


def test_plain_traverser_without_view_cache(sample_store):
    """TreeTraverser works directly on a store, with no EntityTree."""
    traverser = TreeTraverser(sample_store)
    node = sample_store.find_by_key("ID", 5)
    assert node_keys(traverser.ancestors(node)) == [1, 2]
    assert node_keys(traverser.descendants(node)) == [7]
    assert traverser.depth(node) == 3
    assert [(n.key, d) for n, d in traverser.iter_subtree(node)] == [(5, 0), (7, 1)]


def _random_forest(seed, size=40):
    """Rows where every node's parent has a smaller key (so no cycles)."""
    rng = random.Random(seed)
    rows = []
    for key in range(1, size + 1):
        parent = rng.randint(0, key - 1)
        rows.append((key, f"n{key}", parent, rng.randint(0, 3)))
    return rows


def _closure(rows, key):
    children = {}
    for k, _, parent, _ in rows:
        children.setdefault(parent, []).append(k)
    found, todo = set(), [key]
    while todo:
        for child in children.get(todo.pop(), []):
            found.add(child)
            todo.append(child)
    return found


@pytest.mark.parametrize("seed", [1, 7, 42, 2024])
def test_random_forest_properties(seed):
    rows = _random_forest(seed)
    tree = EntityTree(make_store(Menu, rows))
    parents = {k: p for k, _, p, _ in rows}

    for key, _, _, _ in rows:
        node = tree.find(key)
        descendants = node_keys(tree.all_children(node))
        assert len(descendants) == len(set(descendants))
        assert set(descendants) == _closure(rows, key)

        path = node_keys(tree.full_path(node, include_self=True))
        assert path[-1] == key
        assert tree.depth(node) == len(path)
        for parent, child in zip(path, path[1:]):
            assert parents[child] == parent
        assert parents[path[0]] == 0
