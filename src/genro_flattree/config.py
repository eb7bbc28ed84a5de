# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""FlatTree configuration.

Settings are plain constructor values. ``FlatTreeConfig.from_env()`` reads
overrides from the process environment:

- ``GENRO_FLATTREE_FETCH_LATENCY``: seconds of simulated latency per child fetch
- ``GENRO_FLATTREE_ALLOW_ROOT_DROPS``: allow drops that land at root level
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from typing import Any, Mapping

logger = logging.getLogger(__name__)

ENV_PREFIX = 'GENRO_FLATTREE_'

_TRUE_VALUES = frozenset({'1', 'true', 'yes', 'on'})
_FALSE_VALUES = frozenset({'0', 'false', 'no', 'off', ''})


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _parse_latency(name: str, raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value < 0:
        raise ValueError(f"{name} must be >= 0, got {value}")
    return value


@dataclass(frozen=True)
class FlatTreeConfig:
    """Runtime settings shared by the database and the drop planner.

    Attributes:
        fetch_latency: Seconds ``get_children_async`` waits before resolving.
        allow_root_drops: If False, drops that would land at root level
            (or move a root node) are rejected by the drop planner.
    """

    fetch_latency: float = 1.0
    allow_root_drops: bool = False

    def __post_init__(self) -> None:
        if self.fetch_latency < 0:
            raise ValueError(f"fetch_latency must be >= 0, got {self.fetch_latency}")

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> FlatTreeConfig:
        """Build a config from environment variables.

        Args:
            environ: Mapping to read from (defaults to ``os.environ``).
            **overrides: Explicit values, applied after the environment.

        Raises:
            ValueError: If a variable holds an unparsable value.
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}

        name = ENV_PREFIX + 'FETCH_LATENCY'
        if name in env:
            values['fetch_latency'] = _parse_latency(name, env[name])

        name = ENV_PREFIX + 'ALLOW_ROOT_DROPS'
        if name in env:
            values['allow_root_drops'] = _parse_bool(name, env[name])

        if values:
            logger.debug("Config overrides from environment: %s", values)
        return replace(cls(**values), **overrides)
