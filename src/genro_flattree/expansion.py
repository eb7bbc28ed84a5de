# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Expansion tracking for flat tree rows.

ExpansionModel records which rows are expanded, by key, and publishes an
ExpansionChange to its subscribers for every call that changes something.
Tracking by key means a row rebuilt by a refresh keeps its state.
"""

from __future__ import annotations

import logging
from typing import NamedTuple

from .node import FlatNode
from .subscription import SubscriptionMixin

logger = logging.getLogger(__name__)


class ExpansionChange(NamedTuple):
    """One batch of expansion changes, rows in the order they were given."""

    added: tuple[FlatNode, ...] = ()
    removed: tuple[FlatNode, ...] = ()


def _key(node: FlatNode | str) -> str:
    return node if isinstance(node, str) else node.key


class ExpansionModel(SubscriptionMixin):
    """Key-based set of expanded rows with change notifications.

    Example:
        >>> model = ExpansionModel()
        >>> model.expand(FlatNode('Fruits', 0, True))
        ExpansionChange(added=(FlatNode('Fruits', L0+),), removed=())
        >>> model.is_expanded('Fruits')
        True
    """

    __slots__ = ('_expanded', '_subscribers')

    def __init__(self) -> None:
        self._expanded: set[str] = set()
        self._subscribers = {}

    def __repr__(self) -> str:
        return f"ExpansionModel({sorted(self._expanded)!r})"

    def __len__(self) -> int:
        return len(self._expanded)

    def __contains__(self, node: FlatNode | str) -> bool:
        return _key(node) in self._expanded

    def is_expanded(self, node: FlatNode | str) -> bool:
        """True if the row (or key) is currently expanded."""
        return _key(node) in self._expanded

    def expanded_keys(self) -> set[str]:
        """Return a copy of the expanded keys."""
        return set(self._expanded)

    def expand(self, *nodes: FlatNode) -> ExpansionChange | None:
        """Mark rows expanded. Returns the published change, or None."""
        added = []
        for node in nodes:
            if node.key not in self._expanded:
                self._expanded.add(node.key)
                added.append(node)
        return self._publish(ExpansionChange(added=tuple(added)))

    def collapse(self, *nodes: FlatNode) -> ExpansionChange | None:
        """Mark rows collapsed. Returns the published change, or None."""
        removed = []
        for node in nodes:
            if node.key in self._expanded:
                self._expanded.discard(node.key)
                removed.append(node)
        return self._publish(ExpansionChange(removed=tuple(removed)))

    def toggle(self, node: FlatNode) -> ExpansionChange | None:
        """Collapse the row if expanded, expand it otherwise."""
        if node.key in self._expanded:
            return self.collapse(node)
        return self.expand(node)

    def clear(self) -> ExpansionChange | None:
        """Collapse everything.

        Only keys are tracked, so the published rows are rebuilt as
        placeholders carrying the key alone.
        """
        removed = tuple(FlatNode(key) for key in sorted(self._expanded))
        self._expanded.clear()
        return self._publish(ExpansionChange(removed=removed))

    def _publish(self, change: ExpansionChange) -> ExpansionChange | None:
        if not change.added and not change.removed:
            return None
        logger.debug(
            "Expansion change: +%s -%s",
            [n.key for n in change.added], [n.key for n in change.removed],
        )
        self._notify(change)
        return change
