# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Drop planning: turn a flat drop index into a structural move.

A drag over a flat list ends with a row index, not a parent. The planner
reads the visible sequence around that index to decide where the dragged
row goes:

- an expanded branch at the drop index adopts the row as its first child
- any other row gets the dragged row as its next sibling

Moves under the dragged row itself or its descendants are rejected, as are
root-level moves unless ``FlatTreeConfig.allow_root_drops`` is set.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, NamedTuple

from .node import FlatNode

if TYPE_CHECKING:
    from .datasource import FlatTreeDataSource

logger = logging.getLogger(__name__)


class DropPlan(NamedTuple):
    """A validated move, ready for ``FlatTreeDataSource.move_node``."""

    node: FlatNode
    new_parent: FlatNode
    old_parent: FlatNode
    index: int


def _parent_or_root(source: FlatTreeDataSource, node: FlatNode) -> FlatNode | None:
    """Visible parent row, the virtual root for level-0 rows, None if not visible."""
    index = source.index_of(node)
    if index is None:
        return None
    if source[index].level == 0:
        return FlatNode.virtual_root()
    return source.find_parent_node(node)


def _resolve_target(
    source: FlatTreeDataSource,
    dragged: FlatNode,
    target_index: int,
) -> tuple[FlatNode, int] | None:
    data = source.data
    if target_index >= len(data):
        # past the last row: append at root level
        return FlatNode.virtual_root(), len(source.database.roots)

    target = data[target_index]
    if target.expandable and source.expansion.is_expanded(target):
        return target, 0

    parent = _parent_or_root(source, target)
    if parent is None:
        return None
    # positions count siblings with the dragged row already taken out
    siblings = [row.key for row in source.children_of(parent) if row.key != dragged.key]
    return parent, siblings.index(target.key) + 1


def plan_drop(
    source: FlatTreeDataSource,
    dragged: FlatNode,
    previous_index: int,
    current_index: int,
) -> DropPlan | None:
    """Work out the move for dropping dragged at current_index.

    Args:
        source: The data source the rows belong to.
        dragged: The row being dropped.
        previous_index: Index the row was dragged from.
        current_index: Index the row was dropped at.

    Returns:
        The move to perform, or None if the drop changes nothing or is not
        allowed.
    """
    if previous_index == current_index:
        return None
    allow_root = source.config.allow_root_drops

    old_parent = _parent_or_root(source, dragged)
    if old_parent is None:
        logger.debug("drop: %r is not visible", dragged.key)
        return None
    if old_parent.is_virtual_root and not allow_root:
        logger.debug("drop: root rows cannot be moved")
        return None

    target = _resolve_target(source, dragged, current_index)
    if target is None:
        return None
    new_parent, index = target
    if new_parent.is_virtual_root and not allow_root:
        logger.debug("drop: root-level drops are not allowed")
        return None

    if source.database.would_create_cycle(dragged.key, new_parent.key):
        logger.debug("drop: %r cannot go under %r", dragged.key, new_parent.key)
        return None

    return DropPlan(dragged, new_parent, old_parent, index)


def apply_drop(source: FlatTreeDataSource, plan: DropPlan | None) -> bool:
    """Perform a planned drop. Returns False for a None plan."""
    if plan is None:
        return False
    source.move_node(plan.node, plan.new_parent, plan.old_parent, plan.index)
    return True
