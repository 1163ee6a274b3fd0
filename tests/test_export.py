"""Tests for exporting trees into external hierarchies."""

from dataclasses import dataclass, field
from typing import List

import pytest

from keytree import EntityTree, TreeItem, make_tree
from keytree.export import format_url
from keytree.testing import make_store, node_keys

from conftest import Menu


@dataclass
class Link:
    """Minimal caller-defined target type."""

    title: str
    children: List["Link"] = field(default_factory=list)


def _shape(items):
    return [(item.text, _shape(item.children)) for item in items]


class TestMakeTree:

    def test_default_items(self, sample_tree):
        items = sample_tree.make_tree([sample_tree.find(1)])
        assert _shape(items) == [
            ("Root", [
                ("A", [("A1", [("A1x", [])]), ("A2", [])]),
                ("C", []),
                ("B", []),
            ]),
        ]
        assert items[0].value == "1"
        assert items[0].navigate_url is None

    def test_from_root_children(self, sample_tree):
        items = make_tree(sample_tree, sample_tree.children(sample_tree.find(2)))
        assert [item.text for item in items] == ["A1", "A2"]
        assert [child.text for child in items[0].children] == ["A1x"]

    def test_url_template_per_node(self, sample_tree):
        items = sample_tree.make_tree([sample_tree.find(2)], url="/menu?id={ID}&name={Name}")
        assert items[0].navigate_url == "/menu?id=2&name=A"
        assert items[0].children[0].navigate_url == "/menu?id=5&name=A1"
        assert items[0].children[1].navigate_url == "/menu?id=6&name=A2"

    def test_factory(self, sample_tree):
        items = sample_tree.make_tree(
            [sample_tree.find(2)],
            factory=lambda node: Link(title=node["Name"].lower()),
        )
        assert items[0].title == "a"
        assert [link.title for link in items[0].children] == ["a1", "a2"]

    def test_factory_none_drops_subtree(self, sample_tree):
        def skip_a1(node):
            if node["Name"] == "A1":
                return None
            return Link(title=node["Name"])

        items = sample_tree.make_tree([sample_tree.find(2)], factory=skip_a1)
        assert [link.title for link in items[0].children] == ["A2"]

    def test_duplicate_inputs_emitted_once(self, sample_tree):
        items = sample_tree.make_tree([sample_tree.find(5), sample_tree.find(5), sample_tree.find(7)])
        # 7 is already emitted below 5
        assert _shape(items) == [("A1", [("A1x", [])])]

    def test_cycle_terminates(self):
        store = make_store(Menu, [(1, "A", 2, 0), (2, "B", 1, 0)])
        tree = EntityTree(store)
        items = tree.make_tree([tree.find(1)])
        assert _shape(items) == [("A", [("B", [])])]

    def test_empty_input(self, sample_tree):
        assert sample_tree.make_tree([]) == []

    def test_to_dict(self, sample_tree):
        items = sample_tree.make_tree([sample_tree.find(5)], url="/m/{ID}")
        assert items[0].to_dict() == {
            'text': "A1",
            'value': "5",
            'url': "/m/5",
            'children': [{'text': "A1x", 'value': "7", 'url': "/m/7", 'children': []}],
        }


def test_format_url():
    node = Menu(ID=3, Name="x", ParentID=1, Sorting=None)
    assert format_url("/a/{ID}/{ParentID}?s={Sorting}&u={Unknown}", node) == "/a/3/1?s=&u={Unknown}"


def test_tree_item_defaults():
    item = TreeItem(text="t", value="1")
    assert item.children == []
    assert item.to_dict() == {'text': "t", 'value': "1", 'children': []}


class TestClearRelation:

    def test_zeroes_descendant_keys_only(self, sample_tree):
        node = sample_tree.find(2)
        assert sample_tree.clear_relation(node) == 3

        assert node.key == 2
        children = sample_tree.children(node)
        assert [c["Name"] for c in children] == ["A1", "A2"]
        assert all(c.key == 0 and c.parent_key == 0 for c in children)
        grandchildren = sample_tree.children(children[0])
        assert [c["Name"] for c in grandchildren] == ["A1x"]
        assert grandchildren[0].key == 0

    def test_nothing_persisted(self, sample_tree, sample_store):
        sample_tree.clear_relation(sample_tree.find(1))
        assert node_keys(sample_store.find_all_by_field("ParentID", 2)) == [5, 6]

    def test_snapshot_survives_store_changes(self, sample_tree):
        node = sample_tree.find(2)
        sample_tree.clear_relation(node)
        sample_tree.insert(Menu(Name="late", ParentID=2))
        assert [c["Name"] for c in sample_tree.children(node)] == ["A1", "A2"]

    def test_leaf(self, sample_tree):
        assert sample_tree.clear_relation(sample_tree.find(7)) == 0

    def test_cycle_terminates(self):
        store = make_store(Menu, [(1, "A", 2, 0), (2, "B", 1, 0)])
        tree = EntityTree(store)
        node = tree.find(1)
        assert tree.clear_relation(node) == 1
        assert tree.children(tree.children(node)[0]) == []

    def test_export_after_clear(self, sample_tree):
        node = sample_tree.find(2)
        sample_tree.clear_relation(node)
        items = sample_tree.make_tree([node])
        assert _shape(items) == [("A", [("A1", [("A1x", [])]), ("A2", [])])]
        assert [c.value for c in items[0].children] == ["0", "0"]


@pytest.mark.parametrize("start,expected", [
    (3, [("B", [])]),
    (6, [("A2", [])]),
])
def test_single_leaf_export(sample_tree, start, expected):
    assert _shape(sample_tree.make_tree([sample_tree.find(start)])) == expected
