# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""FlatTreeDataSource - the visible sequence of a lazily expanded tree.

The data source turns a TreeDatabase into an ordered list of FlatNode rows
(the visible sequence) and keeps it consistent while rows are expanded,
collapsed, added, moved and removed.

Invariant:
    For a row at index i with level L, the rows after it with level > L,
    up to the next row with level <= L, are exactly its currently visible
    descendants, in database order. Spans are found by a forward scan on
    every operation; no subtree sizes are cached.

Expanding is asynchronous: the row is flagged ``loading`` while
``TreeDatabase.get_children_async`` sleeps, and other operations may run
in the meantime. When the fetch resolves the row is looked up again by key;
if it is gone, or was collapsed in the meantime, nothing is spliced. The
loading flag is always cleared.

Example:
    >>> db = TreeDatabase({'Fruits': ['Apple'], 'Vegetables': []}, latency=0)
    >>> source = FlatTreeDataSource(db)
    >>> [n.key for n in source.data]
    ['Fruits', 'Vegetables']
    >>> await source.toggle_node(source.data[0], True)
    >>> [(n.key, n.level) for n in source.data]
    [('Fruits', 0), ('Apple', 1), ('Vegetables', 0)]
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Iterable, Iterator

from .config import FlatTreeConfig
from .database import TreeDatabase
from .expansion import ExpansionChange, ExpansionModel
from .node import FlatNode
from .subscription import SubscriptionMixin

logger = logging.getLogger(__name__)

Snapshot = tuple[FlatNode, ...]


class FlatTreeDataSource(SubscriptionMixin):
    """Flat projection of a TreeDatabase driven by an ExpansionModel.

    Subscribers receive a tuple snapshot of the visible rows: once when they
    subscribe, then after every change.

    Attributes:
        config: Settings shared with the drop planner.
    """

    __slots__ = (
        '_database', '_expansion', '_data', '_subscribers',
        '_fetches', '_tasks', 'config',
    )

    def __init__(
        self,
        database: TreeDatabase,
        expansion: ExpansionModel | None = None,
        config: FlatTreeConfig | None = None,
    ) -> None:
        """Initialize the data source with the database's root rows.

        Args:
            database: The store to project. It is shared, not copied.
            expansion: Expansion state to follow; a fresh model if None.
            config: Settings; defaults to ``FlatTreeConfig()``.
        """
        self._database = database
        self._expansion = expansion if expansion is not None else ExpansionModel()
        self._data: list[FlatNode] = database.initial_data()
        self._subscribers = {}
        # key -> fetch whose result is still wanted
        self._fetches: dict[str, asyncio.Task] = {}
        self._tasks: set[asyncio.Task] = set()
        self.config = config or FlatTreeConfig()

    # ==================== Special Methods ====================

    def __repr__(self) -> str:
        return f"FlatTreeDataSource({[n.key for n in self._data]!r})"

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[FlatNode]:
        return iter(list(self._data))

    def __getitem__(self, index: int) -> FlatNode:
        return self._data[index]

    # ==================== Visible sequence ====================

    @property
    def database(self) -> TreeDatabase:
        return self._database

    @property
    def expansion(self) -> ExpansionModel:
        return self._expansion

    @property
    def data(self) -> list[FlatNode]:
        """Copy of the visible rows, top to bottom."""
        return list(self._data)

    @data.setter
    def data(self, value: Iterable[FlatNode]) -> None:
        self._data = list(value)
        self._emit()

    def snapshot(self) -> Snapshot:
        """Return the visible rows as an immutable tuple."""
        return tuple(self._data)

    def subscribe(self, subscriber_id: str, callback: Callable[[Snapshot], object]) -> None:
        """Register callback and call it right away with the current snapshot."""
        super().subscribe(subscriber_id, callback)
        callback(self.snapshot())

    def _emit(self) -> None:
        self._notify(self.snapshot())

    # ==================== Lookup ====================

    def index_of(self, node: FlatNode | str) -> int | None:
        """Return the index of the row showing node's key, or None."""
        key = node if isinstance(node, str) else node.key
        for index, row in enumerate(self._data):
            if row.key == key:
                return index
        return None

    def _span_end(self, index: int) -> int:
        level = self._data[index].level
        end = index + 1
        while end < len(self._data) and self._data[end].level > level:
            end += 1
        return end

    def descendant_span(self, index: int) -> tuple[int, int]:
        """Return (start, end) slice bounds of the row's visible descendants."""
        return index + 1, self._span_end(index)

    def find_parent_node(self, node: FlatNode) -> FlatNode | None:
        """Return the visible row that is node's parent.

        Scans backwards for the first row one level up. None for root rows
        and rows that are not visible.
        """
        index = self.index_of(node)
        if index is None:
            return None
        level = self._data[index].level
        if level == 0:
            return None
        for i in range(index - 1, -1, -1):
            if self._data[i].level == level - 1:
                return self._data[i]
        return None

    def children_of(self, node: FlatNode) -> list[FlatNode]:
        """Return the visible direct children of node (roots for the virtual root)."""
        if node.is_virtual_root:
            return [row for row in self._data if row.level == 0]
        index = self.index_of(node)
        if index is None:
            return []
        level = self._data[index].level
        start, end = self.descendant_span(index)
        return [row for row in self._data[start:end] if row.level == level + 1]

    def is_descendant(self, candidate: FlatNode, ancestor: FlatNode) -> bool:
        """True if candidate is shown inside ancestor's visible subtree."""
        if candidate.is_virtual_root:
            return False
        if ancestor.is_virtual_root:
            return self.index_of(candidate) is not None
        ancestor_index = self.index_of(ancestor)
        candidate_index = self.index_of(candidate)
        if ancestor_index is None or candidate_index is None:
            return False
        start, end = self.descendant_span(ancestor_index)
        return start <= candidate_index < end

    def is_loading(self, node: FlatNode | str) -> bool:
        """True while a wanted child fetch for node's key is in flight."""
        key = node if isinstance(node, str) else node.key
        return key in self._fetches

    # ==================== Projection ====================

    def _materialize(self, keys: Iterable[str], level: int) -> list[FlatNode]:
        """Build rows for keys, recursing into the ones that are expanded."""
        db = self._database
        rows: list[FlatNode] = []
        for key in keys:
            row = FlatNode(key, level, db.is_expandable(key), key in self._fetches)
            rows.append(row)
            if row.expandable and self._expansion.is_expanded(key):
                rows.extend(self._materialize(db.get_children(key) or (), level + 1))
        return rows

    def _replace_children(self, index: int, children: Iterable[str] | None) -> None:
        row = self._data[index]
        start, end = self.descendant_span(index)
        self._data[start:end] = self._materialize(children or (), row.level + 1)

    def _sync_expandable(self, node: FlatNode) -> bool:
        index = self.index_of(node)
        if index is None:
            return False
        row = self._data[index]
        expandable = self._database.is_expandable(row.key)
        if row.expandable == expandable:
            return False
        row.expandable = expandable
        return True

    def refresh_root_level(self) -> None:
        """Rebuild the whole visible sequence from the root sequence outward."""
        self._data = self._materialize(self._database.roots, 0)
        logger.debug("Rebuilt visible sequence: %d rows", len(self._data))
        self._emit()

    def refresh_children(self, parent: FlatNode) -> bool:
        """Replace parent's visible block with rows rebuilt from the database.

        Returns:
            False if parent is not visible.
        """
        index = self.index_of(parent)
        if index is None:
            return False
        row = self._data[index]
        row.expandable = self._database.is_expandable(row.key)
        self._replace_children(index, self._database.get_children(row.key))
        self._emit()
        return True

    def _refresh_endpoint(self, endpoint: FlatNode) -> None:
        if endpoint.is_virtual_root:
            self.refresh_root_level()
        elif self._expansion.is_expanded(endpoint):
            self.refresh_children(endpoint)
        elif self._sync_expandable(endpoint):
            self._emit()

    def _remove_from_display(self, node: FlatNode) -> bool:
        index = self.index_of(node)
        if index is None:
            return False
        del self._data[index:self._span_end(index)]
        self._emit()
        return True

    # ==================== Expand / collapse ====================

    def connect(self) -> Snapshot:
        """Start following the expansion model. Returns the current snapshot."""
        self._expansion.subscribe(self._subscriber_id, self.handle_expansion_change)
        return self.snapshot()

    def disconnect(self) -> None:
        """Stop following the expansion model. In-flight fetches still resolve."""
        self._expansion.unsubscribe(self._subscriber_id)

    @property
    def _subscriber_id(self) -> str:
        return f"datasource-{id(self):x}"

    def handle_expansion_change(self, change: ExpansionChange) -> None:
        """React to an expansion batch.

        Added rows start an expand (needs a running event loop); removed rows
        are collapsed at once, last first.
        """
        for node in change.added:
            self.expand_node(node)
        for node in reversed(change.removed):
            self.collapse_node(node)

    async def toggle_node(self, node: FlatNode, expand: bool) -> None:
        """Expand (awaiting the fetch) or collapse node."""
        if not expand:
            self.collapse_node(node)
            return
        task = self.expand_node(node)
        if task is not None:
            await task

    def collapse_node(self, node: FlatNode) -> bool:
        """Remove node's visible descendants.

        A fetch still in flight for node is abandoned: it will clear the
        loading flag but splice nothing.

        Returns:
            False if node is not visible.
        """
        self._fetches.pop(node.key, None)
        index = self.index_of(node)
        if index is None:
            logger.debug("collapse: %r is not visible, ignoring", node.key)
            return False
        start, end = self.descendant_span(index)
        del self._data[start:end]
        logger.debug("Collapsed %r (%d rows)", node.key, end - start)
        self._emit()
        return True

    def expand_node(self, node: FlatNode) -> asyncio.Task | None:
        """Start loading node's children and return the fetch task.

        A second expand of the same key while its fetch is in flight joins
        that fetch instead of starting another.

        Returns:
            None, doing nothing, if node is not visible or not a branch.

        Raises:
            RuntimeError: If no event loop is running.
        """
        pending = self._fetches.get(node.key)
        if pending is not None and not pending.done():
            logger.debug("expand: joining in-flight fetch for %r", node.key)
            return pending

        index = self.index_of(node)
        if index is None or not self._database.is_expandable(node.key):
            logger.debug("expand: %r is not visible or not expandable, ignoring", node.key)
            return None

        row = self._data[index]
        task = asyncio.get_running_loop().create_task(self._expand(row))
        self._fetches[row.key] = task
        self._tasks.add(task)
        task.add_done_callback(lambda t, key=row.key: self._fetch_done(key, t))
        row.loading = True
        self._emit()
        return task

    async def _expand(self, row: FlatNode) -> None:
        try:
            children = await self._database.get_children_async(row.key)
        except Exception:
            logger.exception("Fetching children of %r failed", row.key)
            raise
        else:
            if self._fetches.get(row.key) is not asyncio.current_task():
                logger.debug("expand: %r was collapsed while loading", row.key)
                return
            index = self.index_of(row)
            if index is None:
                logger.debug("expand: %r disappeared while loading", row.key)
                return
            self._replace_children(index, children)
            logger.debug("Expanded %r (%d children)", row.key, len(children or ()))
        finally:
            if self._fetches.get(row.key) is asyncio.current_task():
                del self._fetches[row.key]
            # a newer fetch for the same key clears the flag when it resolves
            if row.key not in self._fetches:
                row.loading = False
                # a refresh may have rebuilt the row while it was loading
                index = self.index_of(row)
                if index is not None:
                    self._data[index].loading = False
            self._emit()

    def _fetch_done(self, key: str, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if self._fetches.get(key) is task:
            del self._fetches[key]
        if not task.cancelled():
            # already logged in _expand; mark it retrieved
            task.exception()

    async def wait_idle(self) -> None:
        """Wait until every child fetch started so far has resolved."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ==================== Mutations ====================

    def add_child_node(self, parent: FlatNode, name: str) -> bool:
        """Add name as the last child of parent.

        An expanded parent gets its whole visible block rebuilt, so sibling
        order always matches the database.

        Returns:
            False if the database refused the key (already placed, or cycle).
        """
        if not self._database.add_child(parent.key, name):
            return False
        self._refresh_endpoint(parent)
        return True

    def move_node(
        self,
        node: FlatNode,
        new_parent: FlatNode,
        old_parent: FlatNode,
        index: int | None = None,
    ) -> None:
        """Move node (with its subtree) under new_parent at index.

        Either parent may be ``FlatNode.virtual_root()``; a root endpoint
        rebuilds the whole visible sequence.

        Raises:
            CycleError: If new_parent is node or one of its descendants.
                Neither the database nor the visible rows change.
        """
        self._database.move_node(node.key, new_parent.key, old_parent.key, index)
        self._remove_from_display(node)
        self._refresh_endpoint(old_parent)
        if new_parent.key != old_parent.key:
            self._refresh_endpoint(new_parent)

    def remove_node(self, node: FlatNode) -> bool:
        """Remove node from the database and its rows from the display.

        Returns:
            False if the database did not know node's key.
        """
        parent = self.find_parent_node(node)
        removed = self._database.remove_node(node.key)
        self._remove_from_display(node)
        if parent is not None and self._expansion.is_expanded(parent):
            self.refresh_children(parent)
        return removed
