# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Tests for ExpansionModel and the subscription registry."""

from genro_flattree import ExpansionChange, ExpansionModel, FlatNode


def node(key):
    return FlatNode(key, 0, True)


class TestExpansionModel:
    """Tests for ExpansionModel."""

    def test_expand_publishes(self):
        model = ExpansionModel()
        received = []
        model.subscribe('t', received.append)
        fruits = node('Fruits')
        change = model.expand(fruits)
        assert change == ExpansionChange(added=(fruits,))
        assert received == [change]
        assert model.is_expanded('Fruits') is True
        assert model.is_expanded(fruits) is True
        assert fruits in model

    def test_repeated_expand_publishes_nothing(self):
        model = ExpansionModel()
        received = []
        model.expand(node('Fruits'))
        model.subscribe('t', received.append)
        assert model.expand(node('Fruits')) is None
        assert received == []

    def test_tracked_by_key(self):
        model = ExpansionModel()
        model.expand(node('Fruits'))
        assert model.is_expanded(FlatNode('Fruits', 3))

    def test_collapse(self):
        model = ExpansionModel()
        model.expand(node('a'), node('b'))
        change = model.collapse(node('a'), node('c'))
        assert [n.key for n in change.removed] == ['a']
        assert change.added == ()
        assert model.expanded_keys() == {'b'}

    def test_toggle(self):
        model = ExpansionModel()
        model.toggle(node('a'))
        assert model.is_expanded('a')
        model.toggle(node('a'))
        assert not model.is_expanded('a')

    def test_clear(self):
        model = ExpansionModel()
        model.expand(node('b'), node('a'))
        change = model.clear()
        assert [n.key for n in change.removed] == ['a', 'b']
        assert len(model) == 0
        assert model.clear() is None

    def test_expanded_keys_is_copy(self):
        model = ExpansionModel()
        model.expand(node('a'))
        model.expanded_keys().clear()
        assert model.is_expanded('a')


class TestSubscriptionMixin:
    """Tests for subscriber registration."""

    def test_replace_and_unsubscribe(self):
        model = ExpansionModel()
        first, second = [], []
        model.subscribe('view', first.append)
        model.subscribe('view', second.append)
        assert model.subscriber_ids == ['view']
        model.expand(node('a'))
        assert first == []
        assert len(second) == 1
        assert model.unsubscribe('view') is True
        assert model.unsubscribe('view') is False

    def test_unsubscribe_during_notify(self):
        model = ExpansionModel()
        calls = []

        def once(change):
            calls.append(change)
            model.unsubscribe('once')

        model.subscribe('once', once)
        model.expand(node('a'))
        model.expand(node('b'))
        assert len(calls) == 1
