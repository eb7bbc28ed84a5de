# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""FlatTree node classes."""

from __future__ import annotations

ROOT_KEY = '__ROOT__'


class TreeEntry:
    """A node record in a TreeDatabase hierarchy.

    Each entry has:
    - key: The node's unique key across the whole database
    - children: None for a leaf, or the ordered list of child keys for a
      branch. An empty list is a branch with no children, not a leaf.
    - parent: Key of the containing branch, ROOT_KEY for root nodes, or None
      for entries that are not placed anywhere

    Example:
        >>> entry = TreeEntry('Fruits', ['Apple', 'Orange'])
        >>> entry.is_branch
        True
        >>> TreeEntry('Apple').is_leaf
        True
    """

    __slots__ = ('key', 'children', 'parent')

    def __init__(
        self,
        key: str,
        children: list[str] | None = None,
        parent: str | None = None,
    ) -> None:
        self.key = key
        self.children = children
        self.parent = parent

    def __repr__(self) -> str:
        kind = f"branch({len(self.children)})" if self.is_branch else 'leaf'
        return f"TreeEntry({self.key!r}, {kind}, parent={self.parent!r})"

    @property
    def is_branch(self) -> bool:
        """True if this entry can hold children (even when it holds none)."""
        return self.children is not None

    @property
    def is_leaf(self) -> bool:
        """True if this entry cannot hold children."""
        return self.children is None

    @property
    def is_placed(self) -> bool:
        """True if the entry sits in the Root Sequence or under a parent."""
        return self.parent is not None

    def make_branch(self) -> list[str]:
        """Turn a leaf into an empty branch and return the children list."""
        if self.children is None:
            self.children = []
        return self.children


class FlatNode:
    """One visible row of a flattened tree.

    Attributes:
        key: The database key this row shows.
        level: Depth in the tree, 0 for roots (-1 for the virtual root).
        expandable: True if the key was a branch when the row was built.
        loading: True only while a child fetch for this row is in flight.

    Example:
        >>> node = FlatNode('Fruits', 0, True)
        >>> node.loading
        False
    """

    __slots__ = ('key', 'level', 'expandable', 'loading')

    def __init__(
        self,
        key: str,
        level: int = 0,
        expandable: bool = False,
        loading: bool = False,
    ) -> None:
        self.key = key
        self.level = level
        self.expandable = expandable
        self.loading = loading

    def __repr__(self) -> str:
        flags = ''
        if self.expandable:
            flags += '+'
        if self.loading:
            flags += '~'
        return f"FlatNode({self.key!r}, L{self.level}{flags})"

    def as_tuple(self) -> tuple[str, int]:
        """Return (key, level), the shape used to compare projections."""
        return self.key, self.level

    @property
    def is_virtual_root(self) -> bool:
        """True for the placeholder node standing for the Root Sequence."""
        return self.key == ROOT_KEY

    @classmethod
    def virtual_root(cls) -> FlatNode:
        """Create the placeholder node used as a root-level move endpoint."""
        return cls(ROOT_KEY, -1, True)
