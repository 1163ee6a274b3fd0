"""Shared fixtures for the keytree test suite."""

import sys
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from keytree import EntityTree, TreeNode
from keytree.core.root import clear_root_caches
from keytree.testing import make_store


class Menu(TreeNode):
    """Menu record used throughout the tests."""

    field_names = ("ID", "Name", "ParentID", "Sorting")


# Sample tree (ID, Name, ParentID, Sorting):
#
#   1 Root
#   ├── 2 A   (3)
#   │   ├── 5 A1
#   │   │   └── 7 A1x
#   │   └── 6 A2
#   ├── 4 C   (2)
#   └── 3 B   (1)
SAMPLE_ROWS = [
    (1, "Root", 0, 0),
    (2, "A", 1, 3),
    (3, "B", 1, 1),
    (4, "C", 1, 2),
    (5, "A1", 2, 0),
    (6, "A2", 2, 0),
    (7, "A1x", 5, 0),
]


@pytest.fixture(autouse=True)
def fresh_roots():
    """Forget every root singleton between tests."""
    clear_root_caches()
    yield
    clear_root_caches()


@pytest.fixture
def sample_store():
    return make_store(Menu, SAMPLE_ROWS)


@pytest.fixture
def sample_tree(sample_store):
    tree = EntityTree(sample_store)
    yield tree
    tree.close()
