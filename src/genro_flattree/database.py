# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""TreeDatabase - the adjacency-list store behind a flat tree view.

The database owns two structures:

- the **hierarchy**: one TreeEntry per known key, tagged leaf or branch,
  with branches holding their ordered child keys
- the **root sequence**: the ordered list of top-level keys

It knows nothing about what is visible. FlatTreeDataSource queries it to
build rows and delegates every structural change to it.

Every entry also records the key of its container (``TreeEntry.parent``),
so ``find_parent`` is O(1) and a key can never be placed twice.

Example:
    >>> db = TreeDatabase({'Fruits': ['Apple', 'Orange']}, ['Fruits'])
    >>> db.get_children('Fruits')
    ['Apple', 'Orange']
    >>> db.is_expandable('Apple')
    False
    >>> db.add_child('Apple', 'Fuji')
    True
    >>> db.is_expandable('Apple')
    True
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterator, Mapping, Sequence

from .config import FlatTreeConfig
from .exceptions import CycleError
from .node import ROOT_KEY, FlatNode, TreeEntry

logger = logging.getLogger(__name__)

DEFAULT_TREE: dict[str, list[str]] = {
    'Fruits': ['Apple', 'Orange', 'Banana'],
    'Vegetables': ['Tomato', 'Potato', 'Onion'],
    'Apple': ['Fuji', 'Macintosh'],
    'Onion': ['Yellow', 'White', 'Purple'],
}

DEFAULT_ROOTS: list[str] = ['Fruits', 'Vegetables']


class TreeDatabase:
    """Hierarchy map plus root sequence, with pure data operations.

    Attributes:
        latency: Seconds ``get_children_async`` waits before resolving.
    """

    __slots__ = ('_entries', '_roots', 'latency')

    def __init__(
        self,
        source: Mapping[str, Sequence[str]] | None = None,
        roots: Sequence[str] | None = None,
        latency: float | None = None,
        config: FlatTreeConfig | None = None,
    ) -> None:
        """Initialize a TreeDatabase.

        Args:
            source: Optional mapping of parent key to ordered child keys.
                Every parent becomes a branch, even with an empty list.
            roots: Ordered top-level keys. If None, the parents in source
                that are nobody's child, in mapping order.
            latency: Simulated fetch latency in seconds. Overrides config.
            config: Settings; defaults to ``FlatTreeConfig()``.

        Raises:
            ValueError: If a key would be placed twice (as two parents'
                child, or as both a root and a child).

        Example:
            >>> TreeDatabase({'a': ['b'], 'b': []}).roots
            ['a']
        """
        config = config or FlatTreeConfig()
        self._entries: dict[str, TreeEntry] = {}
        self._roots: list[str] = []
        self.latency = config.fetch_latency if latency is None else latency

        if source is not None:
            self._load_source(source, roots)
        elif roots is not None:
            for key in roots:
                self._place(key, ROOT_KEY, self._roots)

    @classmethod
    def default(cls, latency: float | None = None) -> TreeDatabase:
        """Build a database from the built-in fruits/vegetables seed."""
        return cls(DEFAULT_TREE, DEFAULT_ROOTS, latency=latency)

    @classmethod
    def from_mapping(
        cls,
        mapping: Mapping[str, Sequence[str]],
        roots: Sequence[str] | None = None,
        **kwargs,
    ) -> TreeDatabase:
        """Alternate constructor, same arguments as ``__init__``."""
        return cls(mapping, roots, **kwargs)

    def _load_source(
        self,
        source: Mapping[str, Sequence[str]],
        roots: Sequence[str] | None,
    ) -> None:
        if roots is None:
            children = {child for kids in source.values() for child in kids}
            roots = [key for key in source if key not in children]

        for key in roots:
            self._place(key, ROOT_KEY, self._roots)

        for parent_key, kids in source.items():
            siblings = self._ensure(parent_key).make_branch()
            for child_key in kids:
                self._place(child_key, parent_key, siblings)

        for key in source:
            seen = {key}
            parent = self._entries[key].parent
            while parent is not None and parent != ROOT_KEY:
                if parent in seen:
                    raise ValueError(f"cycle in hierarchy through '{parent}'")
                seen.add(parent)
                parent = self._entries[parent].parent

    def _place(self, key: str, parent_key: str, siblings: list[str]) -> None:
        entry = self._ensure(key)
        if entry.is_placed:
            raise ValueError(
                f"'{key}' is already placed under '{entry.parent}', "
                f"cannot place it under '{parent_key}'"
            )
        siblings.append(key)
        entry.parent = parent_key

    def _ensure(self, key: str) -> TreeEntry:
        entry = self._entries.get(key)
        if entry is None:
            entry = TreeEntry(key)
            self._entries[key] = entry
        return entry

    def _siblings_of(self, parent_key: str, create: bool = False) -> list[str] | None:
        """Return the live children list of parent_key (the root sequence for ROOT_KEY).

        With create=True an unknown or leaf parent is turned into a branch.
        """
        if parent_key == ROOT_KEY:
            return self._roots
        if create:
            return self._ensure(parent_key).make_branch()
        entry = self._entries.get(parent_key)
        if entry is None:
            return None
        return entry.children

    def _detach(self, key: str, parent_key: str | None) -> bool:
        if parent_key is None:
            return False
        siblings = self._siblings_of(parent_key)
        if not siblings or key not in siblings:
            return False
        siblings.remove(key)
        entry = self._entries.get(key)
        if entry is not None and entry.parent == parent_key:
            entry.parent = None
        return True

    # ==================== Special Methods ====================

    def __repr__(self) -> str:
        return f"TreeDatabase(roots={self._roots!r}, keys={len(self._entries)})"

    def __len__(self) -> int:
        """Return the number of known keys, placed or dangling."""
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[str]:
        """Iterate placed keys in pre-order, starting from the roots."""
        for root in self._roots:
            yield root
            yield from self.descendants(root)

    # ==================== Queries ====================

    @property
    def roots(self) -> list[str]:
        """Copy of the root sequence."""
        return list(self._roots)

    def get_entry(self, key: str) -> TreeEntry | None:
        """Return the TreeEntry for key, or None if unknown."""
        return self._entries.get(key)

    def get_children(self, key: str) -> list[str] | None:
        """Return a copy of key's children, or None if key is not a branch."""
        entry = self._entries.get(key)
        if entry is None or entry.is_leaf:
            return None
        return list(entry.children)

    async def get_children_async(self, key: str) -> list[str] | None:
        """Like get_children, resolved after the simulated fetch latency.

        Other coroutines keep running while this one sleeps. Nothing here
        prevents two overlapping fetches for the same key; callers coalesce.
        """
        logger.debug("Fetching children of %r (latency %.3fs)", key, self.latency)
        await asyncio.sleep(self.latency)
        return self.get_children(key)

    def is_expandable(self, key: str) -> bool:
        """True if key is a branch. An empty branch is still expandable."""
        entry = self._entries.get(key)
        return entry is not None and entry.is_branch

    def find_parent(self, key: str) -> str | None:
        """Return key's parent, or None for root nodes and unplaced keys."""
        entry = self._entries.get(key)
        if entry is None or entry.parent == ROOT_KEY:
            return None
        return entry.parent

    def descendants(self, key: str) -> list[str]:
        """Return every transitive descendant of key in pre-order."""
        result: list[str] = []
        seen = {key}
        stack = list(reversed(self.get_children(key) or []))
        while stack:
            child = stack.pop()
            if child in seen:
                continue
            seen.add(child)
            result.append(child)
            stack.extend(reversed(self.get_children(child) or []))
        return result

    def would_create_cycle(self, node_key: str, new_parent_key: str) -> bool:
        """True if placing node_key under new_parent_key would form a cycle."""
        if new_parent_key == ROOT_KEY:
            return False
        if node_key == new_parent_key:
            return True
        return new_parent_key in self.descendants(node_key)

    def possible_parents(self) -> list[str]:
        """Return every branch key, placed or dangling."""
        return [key for key, entry in self._entries.items() if entry.is_branch]

    def initial_data(self) -> list[FlatNode]:
        """Project the root sequence into level-0 rows."""
        return [FlatNode(key, 0, self.is_expandable(key)) for key in self._roots]

    def as_dict(self) -> dict[str, list[str]]:
        """Return a plain parent -> children mapping of every branch."""
        return {
            key: list(entry.children)
            for key, entry in self._entries.items()
            if entry.is_branch
        }

    # ==================== Mutations ====================

    def add_child(self, parent_key: str, child_key: str) -> bool:
        """Append child_key to parent_key's children.

        An unknown or leaf parent becomes a branch. ROOT_KEY appends to the
        root sequence.

        Returns:
            False, leaving the database untouched, if child_key is already
            placed somewhere or adding it would form a cycle.
        """
        existing = self._entries.get(child_key)
        if existing is not None and existing.is_placed:
            logger.warning(
                "add_child: %r is already placed under %r, ignoring",
                child_key, existing.parent,
            )
            return False
        if self.would_create_cycle(child_key, parent_key):
            logger.warning("add_child: %r under %r would form a cycle", child_key, parent_key)
            return False

        siblings = self._siblings_of(parent_key, create=True)
        siblings.append(child_key)
        self._ensure(child_key).parent = parent_key
        logger.debug("Added %r under %r", child_key, parent_key)
        return True

    def move_node(
        self,
        node_key: str,
        new_parent_key: str,
        old_parent_key: str,
        index: int | None = None,
    ) -> None:
        """Move node_key from old_parent_key to new_parent_key.

        The node is inserted at index when ``0 <= index <= len(children)``
        (counted after removal), otherwise appended. Either parent may be
        ROOT_KEY. A leaf destination becomes a branch.

        If node_key is not among old_parent_key's children it is detached
        from wherever it actually is, so it never ends up placed twice.

        Raises:
            CycleError: If new_parent_key is node_key or one of its
                descendants. Nothing is changed.
        """
        if self.would_create_cycle(node_key, new_parent_key):
            raise CycleError(node_key, new_parent_key)

        entry = self._ensure(node_key)
        if not self._detach(node_key, old_parent_key) and entry.is_placed:
            logger.warning(
                "move_node: %r is not a child of %r, detaching it from %r",
                node_key, old_parent_key, entry.parent,
            )
            self._detach(node_key, entry.parent)

        siblings = self._siblings_of(new_parent_key, create=True)
        if index is not None and 0 <= index <= len(siblings):
            siblings.insert(index, node_key)
        else:
            siblings.append(node_key)
        entry.parent = new_parent_key
        logger.debug(
            "Moved %r from %r to %r at %s", node_key, old_parent_key, new_parent_key,
            'end' if index is None else index,
        )

    def move_node_within_parent(self, node_key: str, parent_key: str, new_index: int) -> bool:
        """Reorder node_key inside parent_key's children.

        Returns:
            False if the parent has no children list, node_key is not one of
            them, or new_index is outside ``[0, len(children))``.
        """
        siblings = self._siblings_of(parent_key)
        if siblings is None or node_key not in siblings:
            return False
        if not 0 <= new_index < len(siblings):
            return False
        siblings.remove(node_key)
        siblings.insert(new_index, node_key)
        return True

    def remove_node(self, key: str) -> bool:
        """Remove key from its container and drop its entry.

        Descendant entries stay in the database, unplaced: their keys remain
        known (and a dangling branch remains expandable) but they are no
        longer reachable from the roots.

        Returns:
            False if key is unknown.
        """
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("remove_node: %r is unknown, ignoring", key)
            return False

        self._detach(key, entry.parent)
        for child_key in entry.children or ():
            child = self._entries.get(child_key)
            if child is not None and child.parent == key:
                child.parent = None
        del self._entries[key]
        logger.debug("Removed %r", key)
        return True
