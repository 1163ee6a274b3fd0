#!/usr/bin/env python3
"""Demo script for keytree.

Builds a small site menu in SQLite, prints it, shows validation
rejecting a bad move, and copies a subtree under a new parent.
"""

import logging
import sys
from pathlib import Path

# Add parent directory to path for development
sys.path.insert(0, str(Path(__file__).parent.parent))

from keytree import (
    CycleError,
    SQLiteRecordStore,
    TreeNode,
    get_tree_stats,
    iter_tree,
    open_tree,
)


class Menu(TreeNode):
    field_names = ("ID", "Name", "ParentID", "Sorting", "Url")


def build_menu(tree):
    """Insert a two-level menu and return the top-level nodes."""
    home = Menu(Name="Home", Sorting=30, Url="/")
    docs = Menu(Name="Docs", Sorting=20, Url="/docs")
    about = Menu(Name="About", Sorting=10, Url="/about")
    for node in (home, docs, about):
        tree.insert(node)

    for i, name in enumerate(["Install", "Tutorial", "Reference"]):
        tree.insert(Menu(Name=name, ParentID=docs.key, Sorting=-i))
    return home, docs, about


def print_menu(tree):
    for node in iter_tree(tree):
        indent = "  " * (tree.depth(node) - 1)
        print(f"{indent}- {node['Name']} (ID {node.key})")


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    store = SQLiteRecordStore(Menu)
    with open_tree(Menu, store, cache_strategy="lru") as tree:
        home, docs, about = build_menu(tree)

        print("\n=== Menu ===")
        print_menu(tree)

        print("\n=== Validation ===")
        docs["ParentID"] = tree.children(docs)[0].key
        try:
            tree.update(docs)
        except CycleError as e:
            print(f"Rejected: {e}")
        docs["ParentID"] = 0

        print("\n=== Copy Docs under About ===")
        snapshot = tree.find(docs.key)
        copied = tree.clear_relation(snapshot)
        snapshot.key = 0
        snapshot["ParentID"] = about.key
        saved = tree.batch_save(snapshot)
        print(f"Cleared {copied} descendant(s), saved {saved} record(s)")
        print_menu(tree)

        print("\n=== Export ===")
        for item in tree.make_tree(tree.children(tree.root), url="/menu?id={ID}"):
            print(item.to_dict())

        stats = get_tree_stats(tree)
        print(f"\nTotal nodes: {stats['total_nodes']}, max depth: {stats['max_depth']}")

    store.close()


if __name__ == "__main__":
    main()
