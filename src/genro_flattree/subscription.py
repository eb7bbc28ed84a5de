# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Subscription support for publishers of change events.

Subscribers are registered under an explicit id, so the same callback can
be replaced or removed without keeping a handle around. Callbacks are
invoked synchronously, in registration order, on the publisher's thread
of control.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)

SubscriberCallback = Callable[..., Any]


class SubscriptionMixin:
    """Mixin holding a registry of subscribers keyed by id.

    Classes using the mixin must initialize ``self._subscribers`` to an
    empty dict and call ``_notify`` whenever they publish.
    """

    __slots__ = ()

    _subscribers: dict[str, SubscriberCallback]

    def subscribe(self, subscriber_id: str, callback: SubscriberCallback) -> None:
        """Register a callback under subscriber_id.

        Registering an id twice replaces the previous callback.
        """
        if subscriber_id in self._subscribers:
            logger.debug("Replacing subscriber %r", subscriber_id)
        self._subscribers[subscriber_id] = callback

    def unsubscribe(self, subscriber_id: str) -> bool:
        """Remove a subscriber. Returns False if the id was not registered."""
        return self._subscribers.pop(subscriber_id, None) is not None

    @property
    def subscriber_ids(self) -> list[str]:
        """Registered subscriber ids in registration order."""
        return list(self._subscribers)

    def _notify(self, *args: Any, **kwargs: Any) -> None:
        # copy: callbacks may subscribe/unsubscribe while being notified
        for callback in list(self._subscribers.values()):
            callback(*args, **kwargs)
