# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""NodeStore package - flat container for lazily loaded hierarchies.

The package is organized into:
- core: NodeStore class with the parent -> children index and traversals
- loading: Conversion of dicts, tuples and nested items into SelectNode
- subscription: Insert/update event notification

Example:
    >>> from genro_treeselect import NodeStore
    >>> store = NodeStore()
    >>> store.merge({'id': 'eng', 'parent_id': None, 'label': 'Engineering'})
    >>> store['eng'].label
    'Engineering'
"""

from .core import NodeStore
from .loading import normalize_source
from .subscription import SubscriberCallback, SubscriptionMixin

__all__ = ["NodeStore", "SubscriberCallback", "SubscriptionMixin", "normalize_source"]
