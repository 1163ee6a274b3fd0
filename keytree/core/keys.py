"""Key kinds for keytree.

A KeyKind bundles everything the tree logic needs to know about a key
type: its zero value, what counts as "no key", and how to mint a new
key for an insert. Node classes declare their kind instead of the tree
code inspecting values at runtime.
"""

import uuid
from dataclasses import dataclass
from typing import Any, Iterable


@dataclass(frozen=True)
class KeyKind:
    """Description of a primary/parent key type.

    Attributes:
        name: Human readable name ("int", "str")
        python_type: The Python type keys are stored as
    """

    name: str
    python_type: type

    @property
    def zero(self) -> Any:
        """The type's default value, used as "no parent"."""
        return self.python_type()

    def is_null(self, value: Any) -> bool:
        """Check whether a key value means "no key".

        None and the type's zero value (0, "") are both nullish.
        """
        if value is None:
            return True
        return value == self.zero

    def new_key(self, existing: Iterable[Any]) -> Any:
        """Mint a key for a record inserted with a nullish key.

        Args:
            existing: Keys already present in the store

        Returns:
            max(existing) + 1 for integer keys, a uuid4 hex string otherwise
        """
        if self.python_type is int:
            return max((k for k in existing if isinstance(k, int)), default=0) + 1
        return uuid.uuid4().hex


INT_KEY = KeyKind("int", int)
STR_KEY = KeyKind("str", str)


def key_kind_for(python_type: type) -> KeyKind:
    """Return the KeyKind for a Python type.

    Raises:
        ValueError: If the type is not int or str
    """
    kinds = {
        int: INT_KEY,
        str: STR_KEY,
    }
    if python_type not in kinds:
        raise ValueError(
            f"Unsupported key type: {python_type.__name__}. "
            f"Choose from: {', '.join(t.__name__ for t in kinds)}"
        )
    return kinds[python_type]
