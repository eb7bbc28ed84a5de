# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Shared fixtures: a small fruits/vegetables tree with no fetch latency."""

import pytest

from genro_flattree import ExpansionModel, FlatTreeDataSource, TreeDatabase


@pytest.fixture
def db():
    return TreeDatabase(
        {'Fruits': ['Apple', 'Orange'], 'Vegetables': ['Carrot']},
        ['Fruits', 'Vegetables'],
        latency=0,
    )


@pytest.fixture
def expansion():
    return ExpansionModel()


@pytest.fixture
def source(db, expansion):
    source = FlatTreeDataSource(db, expansion)
    source.connect()
    yield source
    source.disconnect()
