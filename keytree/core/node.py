"""TreeNode record contract for keytree.

The TreeNode is intentionally kept simple - it's a flat record with a
primary key, a parent key and an optional sort key. Navigation logic
(children, ancestors, ...) lives in the TreeTraverser, which resolves
every relationship through the record store instead of holding live
references between nodes.
"""

import threading
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

from .keys import INT_KEY, KeyKind


class TreeNode:
    """Base class for records that take part in a tree.

    Subclasses describe their schema with class attributes:

        class Menu(TreeNode):
            field_names = ("ID", "Name", "ParentID", "Sorting")

    key_name defaults to "ID" and parent_key_name to "Parent" + key_name.
    The sort field is sort_key_name when given, otherwise the first of
    sorting_candidates present in field_names, otherwise none.

    Besides its fields, every node owns a cache of derived views
    (children, ancestors, ...). Each entry remembers the stamp (store
    identity and generation) it was computed at and goes stale as soon as
    it is read through another store or the store reports a change.
    """

    field_names: Tuple[str, ...] = ()
    key_name: str = "ID"
    parent_key_name: Optional[str] = None
    sort_key_name: Optional[str] = None
    sorting_candidates: Tuple[str, ...] = ("Sorting", "Rank")
    name_field: str = "Name"
    key_kind: KeyKind = INT_KEY

    def __init_subclass__(cls, **kwargs):
        """Resolve derived schema attributes when a subclass is created."""
        super().__init_subclass__(**kwargs)
        if 'parent_key_name' not in cls.__dict__ or cls.parent_key_name is None:
            cls.parent_key_name = "Parent" + cls.key_name
        if not cls.field_names:
            return
        for name in (cls.key_name, cls.parent_key_name):
            if name not in cls.field_names:
                raise TypeError(f"{cls.__name__}.field_names is missing {name!r}")
        if cls.sort_key_name is None:
            for name in cls.sorting_candidates:
                if name in cls.field_names:
                    cls.sort_key_name = name
                    break
        elif cls.sort_key_name not in cls.field_names:
            raise TypeError(f"{cls.__name__}.field_names is missing {cls.sort_key_name!r}")

    def __init__(self, **fields: Any):
        """Create a record.

        Args:
            **fields: Field values by name. Missing fields default to None,
                the key and parent key default to the key kind's zero.

        Raises:
            TypeError: If the class declares no field_names
            KeyError: If an unknown field name is given
        """
        cls = self.__class__
        if not cls.field_names:
            raise TypeError(f"{cls.__name__} declares no field_names")
        unknown = set(fields) - set(cls.field_names)
        if unknown:
            raise KeyError(f"Unknown fields for {cls.__name__}: {', '.join(sorted(unknown))}")

        self._fields: Dict[str, Any] = {name: fields.get(name) for name in cls.field_names}
        for name in (cls.key_name, cls.parent_key_name):
            if self._fields[name] is None:
                self._fields[name] = cls.key_kind.zero

        self._views: Dict[str, Tuple[Optional[Hashable], Any]] = {}
        self._view_lock = threading.Lock()
        self._sentinel = False

    @classmethod
    def sentinel(cls) -> "TreeNode":
        """Create the unkeyed anchor whose children are the root-level records."""
        node = cls()
        node._sentinel = True
        return node

    # Field access

    def __getitem__(self, name: str) -> Any:
        return self._fields[name]

    def __setitem__(self, name: str, value: Any) -> None:
        if name not in self._fields:
            raise KeyError(f"Unknown field for {self.__class__.__name__}: {name}")
        self._fields[name] = value

    @property
    def key(self) -> Any:
        return self._fields[self.key_name]

    @key.setter
    def key(self, value: Any) -> None:
        self._fields[self.key_name] = value

    @property
    def parent_key(self) -> Any:
        return self._fields[self.parent_key_name]

    @parent_key.setter
    def parent_key(self, value: Any) -> None:
        self._fields[self.parent_key_name] = value

    @property
    def sort_value(self) -> Any:
        """Value of the sort field, or None when the class has none."""
        if self.sort_key_name is None:
            return None
        return self._fields[self.sort_key_name]

    @property
    def is_new(self) -> bool:
        """True if this record has no key yet."""
        return self.key_kind.is_null(self.key)

    @property
    def has_parent(self) -> bool:
        return not self.key_kind.is_null(self.parent_key)

    @property
    def is_sentinel(self) -> bool:
        """True for the root anchor created by sentinel()."""
        return self._sentinel

    def identifier(self) -> str:
        """Return the key as a string, stable across lookups."""
        return str(self.key)

    def metadata(self) -> Dict[str, Any]:
        """Return a copy of all field values."""
        return dict(self._fields)

    def copy(self) -> "TreeNode":
        """Return a detached copy with the same fields and no cached views."""
        return self.__class__(**self._fields)

    # Derived view cache

    def get_view(self, name: str, stamp: Hashable, compute: Callable[[], Any]) -> Any:
        """Fetch a derived view, computing it when missing or stale.

        A view is fresh when it was computed at the given stamp or was
        pinned with set_view(). The first value stored for a stamp wins;
        a racing caller may compute again but gets the stored value back.

        Args:
            name: View name ("children", "all_parents", ...)
            stamp: Identifies the store and its generation, see
                EntityTree.view_stamp()
            compute: Zero-argument callable producing the view

        Returns:
            The cached or freshly computed view
        """
        entry = self._views.get(name)
        if entry is not None and (entry[0] is None or entry[0] == stamp):
            return entry[1]

        value = compute()

        with self._view_lock:
            entry = self._views.get(name)
            if entry is not None and (entry[0] is None or entry[0] == stamp):
                return entry[1]
            self._views[name] = (stamp, value)
        return value

    def set_view(self, name: str, value: Any) -> None:
        """Pin a view so it survives store changes until cleared.

        Passing None removes the view instead.
        """
        with self._view_lock:
            if value is None:
                self._views.pop(name, None)
            else:
                self._views[name] = (None, value)

    def clear_views(self) -> None:
        """Drop every cached and pinned view."""
        with self._view_lock:
            self._views.clear()

    def __repr__(self) -> str:
        """Detailed representation for debugging."""
        return f"{self.__class__.__name__}({self.key_name}={self.key!r}, {self.parent_key_name}={self.parent_key!r})"
