# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""FlatTree exceptions."""

from __future__ import annotations


class FlatTreeError(Exception):
    """Base exception for FlatTree errors."""

    pass


class CycleError(FlatTreeError):
    """Raised when a move would place a node under itself or a descendant."""

    def __init__(self, node_key: str, new_parent_key: str) -> None:
        self.node_key = node_key
        self.new_parent_key = new_parent_key
        super().__init__(
            f"cannot move '{node_key}' under '{new_parent_key}': "
            f"'{new_parent_key}' is '{node_key}' or one of its descendants"
        )
