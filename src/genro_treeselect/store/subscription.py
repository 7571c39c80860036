# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Event subscription and notification for NodeStore.

Subscribers register callbacks under an id and are notified when nodes are
inserted or updated. Nodes are never deleted from a NodeStore, so there is
no delete event.

Callbacks receive keyword arguments:
    - node: the SelectNode involved
    - evt: 'ins' or 'upd'
    - reason: optional reason string passed by the caller of merge()
"""

from __future__ import annotations

import logging
from typing import Any, Callable, TYPE_CHECKING

if TYPE_CHECKING:
    from ..node import SelectNode

logger = logging.getLogger(__name__)

SubscriberCallback = Callable[..., Any]


class SubscriptionMixin:
    """Mixin adding subscribe/unsubscribe and event dispatch.

    The host class must initialize ``_ins_subscribers`` and
    ``_upd_subscribers`` as empty dicts.
    """

    _ins_subscribers: dict[str, SubscriberCallback]
    _upd_subscribers: dict[str, SubscriberCallback]

    def subscribe(
        self,
        subscriber_id: str,
        insert: SubscriberCallback | None = None,
        update: SubscriberCallback | None = None,
        any: SubscriberCallback | None = None,
    ) -> None:
        """Register callbacks for store events.

        Args:
            subscriber_id: Key identifying the subscriber. Subscribing again
                with the same id replaces the previous callbacks.
            insert: Called when a new node is merged.
            update: Called when an existing node changes.
            any: Called for every event (shortcut for insert and update).

        Example:
            >>> store.subscribe('view', any=lambda node, evt, reason: print(evt, node.id))
        """
        if any is not None:
            insert = insert or any
            update = update or any
        if insert is not None:
            self._ins_subscribers[subscriber_id] = insert
        if update is not None:
            self._upd_subscribers[subscriber_id] = update

    def unsubscribe(
        self,
        subscriber_id: str,
        insert: bool = False,
        update: bool = False,
        any: bool = False,
    ) -> None:
        """Remove callbacks registered under subscriber_id.

        With no flags set, all callbacks of the subscriber are removed.
        """
        if any or not (insert or update):
            insert = update = True
        if insert:
            self._ins_subscribers.pop(subscriber_id, None)
        if update:
            self._upd_subscribers.pop(subscriber_id, None)

    def _on_node_inserted(self, node: SelectNode, reason: str | None = None) -> None:
        self._notify(self._ins_subscribers, node, 'ins', reason)

    def _on_node_updated(self, node: SelectNode, reason: str | None = None) -> None:
        self._notify(self._upd_subscribers, node, 'upd', reason)

    def _notify(
        self,
        subscribers: dict[str, SubscriberCallback],
        node: SelectNode,
        evt: str,
        reason: str | None,
    ) -> None:
        # Copy: a callback may unsubscribe itself
        for subscriber_id, callback in list(subscribers.items()):
            logger.debug("notify %s of %s on %r", subscriber_id, evt, node.id)
            callback(node=node, evt=evt, reason=reason)
