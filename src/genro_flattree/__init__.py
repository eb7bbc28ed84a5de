# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Genro-FlatTree - Lazy flat projection of an adjacency-list tree.

A TreeDatabase holds the hierarchy; a FlatTreeDataSource keeps the ordered
list of visible rows in sync with it while rows are expanded (with
asynchronous child loading), collapsed, added, moved and removed.
"""

__version__ = "0.1.0"

from .config import FlatTreeConfig
from .database import DEFAULT_ROOTS, DEFAULT_TREE, TreeDatabase
from .datasource import FlatTreeDataSource
from .drop import DropPlan, apply_drop, plan_drop
from .exceptions import CycleError, FlatTreeError
from .expansion import ExpansionChange, ExpansionModel
from .node import ROOT_KEY, FlatNode, TreeEntry

__all__ = [
    # Core classes
    "TreeDatabase",
    "FlatTreeDataSource",
    "ExpansionModel",
    "ExpansionChange",
    # Nodes
    "FlatNode",
    "TreeEntry",
    "ROOT_KEY",
    # Seed data
    "DEFAULT_TREE",
    "DEFAULT_ROOTS",
    # Drop planning
    "DropPlan",
    "plan_drop",
    "apply_drop",
    # Config
    "FlatTreeConfig",
    # Exceptions
    "FlatTreeError",
    "CycleError",
]
