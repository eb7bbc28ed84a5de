# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Tests for TreeDatabase and TreeEntry."""

import asyncio

import pytest

from genro_flattree import (
    DEFAULT_ROOTS,
    ROOT_KEY,
    CycleError,
    FlatNode,
    TreeDatabase,
    TreeEntry,
)


def placed_keys(db):
    """Every key in the root sequence or in some children list."""
    keys = list(db.roots)
    for children in db.as_dict().values():
        keys.extend(children)
    return keys


class TestTreeEntry:
    """Tests for TreeEntry."""

    def test_leaf_by_default(self):
        entry = TreeEntry('Apple')
        assert entry.is_leaf is True
        assert entry.is_branch is False
        assert entry.is_placed is False

    def test_empty_branch_is_branch(self):
        """An empty children list is a branch, not a leaf."""
        entry = TreeEntry('Basket', [])
        assert entry.is_branch is True

    def test_make_branch(self):
        entry = TreeEntry('Apple')
        children = entry.make_branch()
        children.append('Fuji')
        assert entry.children == ['Fuji']
        assert entry.make_branch() is children

    def test_repr(self):
        assert 'leaf' in repr(TreeEntry('Apple'))
        assert 'branch(2)' in repr(TreeEntry('Fruits', ['a', 'b']))


class TestTreeDatabaseSource:
    """Tests for building a database from a seed."""

    def test_roots_and_children(self, db):
        assert db.roots == ['Fruits', 'Vegetables']
        assert db.get_children('Fruits') == ['Apple', 'Orange']

    def test_roots_inferred(self):
        db = TreeDatabase({'a': ['b'], 'b': ['c'], 'x': []})
        assert db.roots == ['a', 'x']

    def test_roots_only(self):
        db = TreeDatabase(roots=['a', 'b'])
        assert db.roots == ['a', 'b']
        assert db.is_expandable('a') is False

    def test_default_seed(self):
        db = TreeDatabase.default(latency=0)
        assert db.roots == DEFAULT_ROOTS
        assert db.get_children('Apple') == ['Fuji', 'Macintosh']
        assert db.latency == 0

    def test_from_mapping(self):
        db = TreeDatabase.from_mapping({'a': ['b']}, ['a'], latency=0.5)
        assert db.get_children('a') == ['b']
        assert db.latency == 0.5

    def test_duplicate_child_raises(self):
        with pytest.raises(ValueError, match="already placed"):
            TreeDatabase({'a': ['c'], 'b': ['c']}, ['a', 'b'])

    def test_root_and_child_raises(self):
        with pytest.raises(ValueError, match="already placed"):
            TreeDatabase({'a': ['b']}, ['a', 'b'])

    def test_cycle_raises(self):
        with pytest.raises(ValueError, match="cycle"):
            TreeDatabase({'a': ['b'], 'b': ['a']})

    def test_len_contains_iter(self, db):
        assert len(db) == 5
        assert 'Carrot' in db
        assert 'Banana' not in db
        assert list(db) == ['Fruits', 'Apple', 'Orange', 'Vegetables', 'Carrot']


class TestTreeDatabaseQueries:
    """Tests for read-only operations."""

    def test_get_children_returns_copy(self, db):
        children = db.get_children('Fruits')
        children.append('Banana')
        assert db.get_children('Fruits') == ['Apple', 'Orange']

    def test_get_children_leaf_and_unknown(self, db):
        assert db.get_children('Apple') is None
        assert db.get_children('Nope') is None

    def test_get_entry(self, db):
        entry = db.get_entry('Apple')
        assert entry.is_leaf
        assert entry.parent == 'Fruits'
        assert db.get_entry('Fruits').parent == ROOT_KEY
        assert db.get_entry('Nope') is None

    def test_is_expandable(self, db):
        assert db.is_expandable('Fruits') is True
        assert db.is_expandable('Apple') is False
        assert db.is_expandable('Nope') is False

    def test_find_parent(self, db):
        assert db.find_parent('Apple') == 'Fruits'
        assert db.find_parent('Fruits') is None
        assert db.find_parent('Nope') is None

    def test_descendants_preorder(self):
        db = TreeDatabase({'a': ['b', 'e'], 'b': ['c', 'd']})
        assert db.descendants('a') == ['b', 'c', 'd', 'e']
        assert db.descendants('e') == []

    def test_would_create_cycle(self):
        db = TreeDatabase({'a': ['b'], 'b': ['c']})
        assert db.would_create_cycle('a', 'a') is True
        assert db.would_create_cycle('a', 'c') is True
        assert db.would_create_cycle('c', 'a') is False
        assert db.would_create_cycle('a', ROOT_KEY) is False

    def test_possible_parents(self, db):
        assert db.possible_parents() == ['Fruits', 'Vegetables']

    def test_initial_data(self, db):
        rows = db.initial_data()
        assert [(n.key, n.level, n.expandable) for n in rows] == [
            ('Fruits', 0, True),
            ('Vegetables', 0, True),
        ]
        assert all(isinstance(n, FlatNode) and not n.loading for n in rows)

    def test_as_dict(self, db):
        assert db.as_dict() == {'Fruits': ['Apple', 'Orange'], 'Vegetables': ['Carrot']}

    @pytest.mark.asyncio
    async def test_get_children_async(self, db):
        assert await db.get_children_async('Fruits') == ['Apple', 'Orange']
        assert await db.get_children_async('Apple') is None

    @pytest.mark.asyncio
    async def test_get_children_async_does_not_block(self):
        db = TreeDatabase({'a': ['b']}, latency=0.05)
        order = []

        async def fetch():
            order.append(await db.get_children_async('a'))

        async def other():
            order.append('other')

        await asyncio.gather(fetch(), other())
        assert order == ['other', ['b']]


class TestTreeDatabaseAddChild:
    """Tests for add_child."""

    def test_appends(self, db):
        assert db.add_child('Fruits', 'Banana') is True
        assert db.get_children('Fruits') == ['Apple', 'Orange', 'Banana']
        assert db.find_parent('Banana') == 'Fruits'

    def test_leaf_parent_becomes_branch(self, db):
        db.add_child('Apple', 'Fuji')
        assert db.is_expandable('Apple') is True
        assert db.get_children('Apple') == ['Fuji']

    def test_unknown_parent_is_created(self, db):
        db.add_child('Nuts', 'Almond')
        assert db.is_expandable('Nuts') is True
        assert 'Nuts' not in db.roots

    def test_root(self, db):
        db.add_child(ROOT_KEY, 'Grains')
        assert db.roots == ['Fruits', 'Vegetables', 'Grains']
        assert db.find_parent('Grains') is None

    def test_already_placed_is_ignored(self, db):
        assert db.add_child('Vegetables', 'Apple') is False
        assert db.get_children('Vegetables') == ['Carrot']
        assert db.find_parent('Apple') == 'Fruits'

    def test_cycle_is_ignored(self, db):
        db.remove_node('Fruits')
        # Fruits is gone; Apple is unplaced but still known
        assert db.add_child('Apple', 'Apple') is False


class TestTreeDatabaseMove:
    """Tests for move_node and move_node_within_parent."""

    def test_move_at_index(self, db):
        db.move_node('Apple', 'Vegetables', 'Fruits', 0)
        assert db.get_children('Fruits') == ['Orange']
        assert db.get_children('Vegetables') == ['Apple', 'Carrot']
        assert db.find_parent('Apple') == 'Vegetables'

    def test_move_index_at_end(self, db):
        db.move_node('Apple', 'Vegetables', 'Fruits', 1)
        assert db.get_children('Vegetables') == ['Carrot', 'Apple']

    @pytest.mark.parametrize('index', [None, -1, 5])
    def test_move_out_of_range_appends(self, db, index):
        db.move_node('Apple', 'Vegetables', 'Fruits', index)
        assert db.get_children('Vegetables') == ['Carrot', 'Apple']

    def test_move_within_same_parent(self, db):
        db.move_node('Apple', 'Fruits', 'Fruits', 1)
        assert db.get_children('Fruits') == ['Orange', 'Apple']

    def test_move_to_root(self, db):
        db.move_node('Apple', ROOT_KEY, 'Fruits', 1)
        assert db.roots == ['Fruits', 'Apple', 'Vegetables']
        assert db.get_children('Fruits') == ['Orange']
        assert db.find_parent('Apple') is None

    def test_move_from_root(self, db):
        db.move_node('Vegetables', 'Fruits', ROOT_KEY)
        assert db.roots == ['Fruits']
        assert db.get_children('Fruits') == ['Apple', 'Orange', 'Vegetables']

    def test_move_into_leaf_makes_branch(self, db):
        db.move_node('Orange', 'Apple', 'Fruits')
        assert db.get_children('Apple') == ['Orange']

    def test_move_keeps_subtree(self):
        db = TreeDatabase({'a': ['b'], 'b': ['c'], 'x': []})
        db.move_node('b', 'x', 'a')
        assert db.descendants('x') == ['b', 'c']

    def test_move_empties_parent_but_keeps_branch(self, db):
        db.move_node('Carrot', 'Fruits', 'Vegetables')
        assert db.get_children('Vegetables') == []
        assert db.is_expandable('Vegetables') is True

    def test_move_under_itself_raises(self, db):
        with pytest.raises(CycleError):
            db.move_node('Fruits', 'Fruits', ROOT_KEY)
        assert db.roots == ['Fruits', 'Vegetables']

    def test_move_under_descendant_raises(self):
        db = TreeDatabase({'a': ['b'], 'b': ['c']})
        with pytest.raises(CycleError) as exc_info:
            db.move_node('a', 'c', ROOT_KEY)
        assert exc_info.value.node_key == 'a'
        assert exc_info.value.new_parent_key == 'c'
        assert db.roots == ['a']
        assert db.get_children('c') is None

    def test_wrong_old_parent_does_not_duplicate(self, db):
        db.move_node('Apple', 'Vegetables', 'Nope')
        assert db.get_children('Fruits') == ['Orange']
        assert db.get_children('Vegetables') == ['Carrot', 'Apple']
        assert sorted(placed_keys(db)) == sorted(set(placed_keys(db)))

    def test_within_parent(self, db):
        assert db.move_node_within_parent('Orange', 'Fruits', 0) is True
        assert db.get_children('Fruits') == ['Orange', 'Apple']

    def test_within_root(self, db):
        assert db.move_node_within_parent('Vegetables', ROOT_KEY, 0) is True
        assert db.roots == ['Vegetables', 'Fruits']

    def test_within_parent_invalid(self, db):
        assert db.move_node_within_parent('Orange', 'Fruits', 2) is False
        assert db.move_node_within_parent('Orange', 'Fruits', -1) is False
        assert db.move_node_within_parent('Carrot', 'Fruits', 0) is False
        assert db.move_node_within_parent('Orange', 'Nope', 0) is False
        assert db.get_children('Fruits') == ['Apple', 'Orange']


class TestTreeDatabaseRemove:
    """Tests for remove_node."""

    def test_remove_leaf(self, db):
        assert db.remove_node('Apple') is True
        assert db.get_children('Fruits') == ['Orange']
        assert 'Apple' not in db

    def test_remove_last_child_keeps_branch(self, db):
        """Membership, not emptiness, makes a node expandable."""
        db.remove_node('Carrot')
        assert db.get_children('Vegetables') == []
        assert db.is_expandable('Vegetables') is True

    def test_remove_branch_leaves_dangling_descendants(self):
        db = TreeDatabase({'a': ['b'], 'b': ['c']})
        db.remove_node('b')
        assert db.get_children('a') == []
        assert 'b' not in db
        assert 'c' in db
        assert db.find_parent('c') is None
        assert list(db) == ['a']

    def test_remove_root(self, db):
        db.remove_node('Fruits')
        assert db.roots == ['Vegetables']
        assert db.find_parent('Apple') is None

    def test_remove_unknown(self, db):
        assert db.remove_node('Nope') is False


class TestNoDuplication:
    """Keys stay placed at most once across a sequence of mutations."""

    def test_sequence(self, db):
        db.add_child('Fruits', 'Banana')
        db.add_child('Vegetables', 'Banana')
        db.move_node('Banana', 'Vegetables', 'Fruits', 0)
        db.move_node('Carrot', ROOT_KEY, 'Vegetables')
        db.move_node('Apple', 'Carrot', 'Vegetables')
        db.remove_node('Orange')
        db.add_child('Carrot', 'Orange')
        keys = placed_keys(db)
        assert len(keys) == len(set(keys))
        assert db.roots == ['Fruits', 'Vegetables', 'Carrot']
        assert db.get_children('Carrot') == ['Apple', 'Orange']
