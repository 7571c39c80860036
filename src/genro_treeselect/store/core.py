# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""NodeStore - a flat, growing collection of parent-linked nodes.

This module provides the NodeStore class, the container that holds the part
of a hierarchy loaded so far. Nodes are stored flat, keyed by id, and an
auxiliary parent -> children index is maintained on every merge so that
child lookup costs O(children) instead of a full scan.

Key Features:
    - **Flat storage**: id -> SelectNode mapping in insertion order
    - **Children index**: updated incrementally, also when a node moves
    - **Upsert merge**: nodes are added or updated by id, never removed
    - **Cycle-safe walks**: every traversal tracks visited ids
    - **Reactive subscriptions**: insert/update notifications
    - **Versioning**: a counter bumped on every change, usable as memo key

Root Nodes:
    A node is a root when its parent_id is None, equals the store's root_id
    sentinel, or names a node that is not loaded (yet).

Example:
    Basic usage::

        store = NodeStore()
        store.merge([
            {'id': 'eng', 'parent_id': None, 'label': 'Engineering'},
            {'id': 'api', 'parent_id': 'eng', 'label': 'API docs'},
        ])

        store.children('eng')     # [SelectNode('api', ...)]
        store.ancestors('api')    # ['eng']
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Hashable, Iterator

from ..node import SelectNode
from .loading import normalize_source
from .subscription import SubscriptionMixin, SubscriberCallback

logger = logging.getLogger(__name__)


class NodeStore(SubscriptionMixin):
    """A flat node container with a parent -> children index.

    NodeStore provides:
    - merge(source): Upsert nodes by id
    - store[id] / get(id): Node access
    - children(id) / roots(): Index lookups
    - ancestors(id) / descendants(id) / walk(): Traversals

    Attributes:
        root_id: Sentinel parent id marking top-level nodes, in addition
            to None.

    Example:
        >>> store = NodeStore([('a', None, 'A'), ('b', 'a', 'B')])
        >>> [n.id for n in store.children('a')]
        ['b']
    """

    __slots__ = (
        '_nodes', '_children', 'root_id', '_version',
        '_ins_subscribers', '_upd_subscribers',
    )

    def __init__(self, source: Any = None, root_id: Hashable | None = None) -> None:
        """Initialize a NodeStore.

        Args:
            source: Optional initial nodes, in any shape accepted by merge().
            root_id: Sentinel parent id that marks top-level nodes.
        """
        self._nodes: dict[Hashable, SelectNode] = {}
        self._children: dict[Hashable, list[Hashable]] = {}
        self.root_id = root_id
        self._version = 0
        self._ins_subscribers: dict[str, SubscriberCallback] = {}
        self._upd_subscribers: dict[str, SubscriberCallback] = {}

        if source is not None:
            self.merge(source, reason='init')

    # ==================== Special Methods ====================

    def __repr__(self) -> str:
        return f"NodeStore({len(self._nodes)} nodes)"

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[SelectNode]:
        """Iterate over all nodes in insertion order."""
        return iter(list(self._nodes.values()))

    def __contains__(self, node_id: Hashable) -> bool:
        return node_id in self._nodes

    def __getitem__(self, node_id: Hashable) -> SelectNode:
        return self._nodes[node_id]

    @property
    def version(self) -> int:
        """Counter incremented whenever a merge changes the store."""
        return self._version

    def get(self, node_id: Hashable, default: Any = None) -> SelectNode | None:
        """Get node by id, with default."""
        return self._nodes.get(node_id, default)

    def ids(self) -> list[Hashable]:
        """Return all node ids in insertion order."""
        return list(self._nodes)

    # ==================== Merge ====================

    def merge(self, source: Any, reason: str | None = None) -> list[SelectNode]:
        """Upsert nodes by id.

        New ids are appended; known ids get parent, label and payload from
        the incoming node (last write wins). A node whose parent changes is
        moved between child lists of the index.

        Args:
            source: Nodes as SelectNode, dict, tuple, list of those, an
                ``{id: item}`` mapping or another NodeStore.
            reason: Optional reason string forwarded to subscribers.

        Returns:
            The stored nodes that were inserted or changed.

        Raises:
            NodeSourceError: If the source cannot be normalized. Nothing is
                merged in that case.
        """
        incoming = normalize_source(source)
        touched: list[SelectNode] = []
        events: list[tuple[str, SelectNode]] = []

        for node in incoming:
            current = self._nodes.get(node.id)
            if current is None:
                self._nodes[node.id] = node
                self._children.setdefault(node.parent_id, []).append(node.id)
                touched.append(node)
                events.append(('ins', node))
                continue

            old_parent = current.parent_id
            if current.update_from(node):
                if old_parent != current.parent_id:
                    self._move_in_index(current.id, old_parent, current.parent_id)
                touched.append(current)
                events.append(('upd', current))

        if touched:
            self._version += 1
            logger.debug(
                "merged %d nodes (%d changed) into %r, version %d",
                len(incoming), len(touched), self, self._version,
            )
        for evt, node in events:
            if evt == 'ins':
                self._on_node_inserted(node, reason=reason)
            else:
                self._on_node_updated(node, reason=reason)
        return touched

    def _move_in_index(
        self, node_id: Hashable, old_parent: Hashable | None, new_parent: Hashable | None
    ) -> None:
        siblings = self._children.get(old_parent)
        if siblings is not None:
            siblings.remove(node_id)
            if not siblings:
                del self._children[old_parent]
        self._children.setdefault(new_parent, []).append(node_id)

    # ==================== Index Lookups ====================

    def is_root(self, node: SelectNode) -> bool:
        """True if node is top-level for traversal purposes."""
        parent_id = node.parent_id
        return (
            parent_id is None
            or parent_id == self.root_id
            or parent_id == node.id
            or parent_id not in self._nodes
        )

    def child_ids(self, node_id: Hashable | None) -> list[Hashable]:
        """Return ids of the loaded children of node_id, in insertion order.

        ``child_ids(None)`` or ``child_ids(store.root_id)`` return the ids
        filed under that parent key, which are not all the roots: see roots().
        """
        return [cid for cid in self._children.get(node_id, ()) if cid != node_id]

    def children(self, node_id: Hashable | None) -> list[SelectNode]:
        """Return the loaded children of node_id."""
        return [self._nodes[cid] for cid in self.child_ids(node_id)]

    def has_children(self, node_id: Hashable) -> bool:
        """True if at least one child of node_id is loaded."""
        return bool(self.child_ids(node_id))

    def roots(self) -> list[SelectNode]:
        """Return the top-level nodes (see is_root) in insertion order."""
        return [node for node in self._nodes.values() if self.is_root(node)]

    # ==================== Traversals ====================

    def ancestors(self, node_id: Hashable) -> list[Hashable]:
        """Return the ids of the loaded ancestors of node_id, nearest first.

        Stops at the first parent that is not loaded, and at the first id
        already seen if the parent links form a cycle.

        Raises:
            KeyError: If node_id is not in the store.
        """
        node = self._nodes[node_id]
        result: list[Hashable] = []
        seen = {node_id}
        while not self.is_root(node):
            parent_id = node.parent_id
            if parent_id in seen:
                break
            seen.add(parent_id)
            result.append(parent_id)
            node = self._nodes[parent_id]
        return result

    def descendants(self, node_id: Hashable) -> list[Hashable]:
        """Return the ids of every loaded descendant of node_id, preorder.

        Raises:
            KeyError: If node_id is not in the store.
        """
        if node_id not in self._nodes:
            raise KeyError(node_id)
        return [n.id for _, n in self._iter_subtree(node_id, 0, {node_id})]

    def _iter_subtree(
        self, node_id: Hashable, depth: int, seen: set[Hashable]
    ) -> Iterator[tuple[int, SelectNode]]:
        """Yield (depth, node) for the descendants of node_id, preorder.

        Iterative, so deep hierarchies do not hit the recursion limit.
        """
        stack = [(depth + 1, cid) for cid in reversed(self.child_ids(node_id))]
        while stack:
            child_depth, cid = stack.pop()
            if cid in seen:
                continue
            seen.add(cid)
            yield child_depth, self._nodes[cid]
            stack.extend((child_depth + 1, gid) for gid in reversed(self.child_ids(cid)))

    def walk(
        self,
        callback: Callable[[SelectNode], Any] | None = None,
    ) -> Iterator[tuple[int, SelectNode]] | None:
        """Walk the forest top-down, every node after its parent.

        Nodes unreachable from any root (only possible with cyclic parent
        links) are visited last, each one starting a new subtree.

        Args:
            callback: Optional function to call on each node.
                      If provided, walk returns None.

        Yields:
            Tuples of (depth, node) if no callback provided.

        Example:
            >>> for depth, node in store.walk():
            ...     print('  ' * depth + node.label)
        """
        if callback is not None:
            for _, node in self._walk_gen():
                callback(node)
            return None
        return self._walk_gen()

    def _walk_gen(self) -> Iterator[tuple[int, SelectNode]]:
        seen: set[Hashable] = set()
        for root in self.roots():
            if root.id in seen:
                continue
            seen.add(root.id)
            yield 0, root
            yield from self._iter_subtree(root.id, 0, seen)
        if len(seen) < len(self._nodes):
            for node in list(self._nodes.values()):
                if node.id in seen:
                    continue
                logger.debug("node %r is not reachable from a root, walking it as one", node.id)
                seen.add(node.id)
                yield 0, node
                yield from self._iter_subtree(node.id, 0, seen)

    # ==================== Conversion ====================

    def as_tree(self) -> list[dict[str, Any]]:
        """Return the loaded forest as nested dicts.

        Each dict has 'id', 'label', the payload attributes and a 'children'
        list.

        Example:
            >>> NodeStore([('a', None, 'A'), ('b', 'a', 'B')]).as_tree()
            [{'id': 'a', 'label': 'A', 'children': [{'id': 'b', 'label': 'B', 'children': []}]}]
        """
        built: dict[Hashable, dict[str, Any]] = {}
        forest: list[dict[str, Any]] = []
        for depth, node in self._walk_gen():
            entry = {'id': node.id, 'label': node.label, **node.attr, 'children': []}
            built[node.id] = entry
            if depth == 0:
                forest.append(entry)
            else:
                built[node.parent_id]['children'].append(entry)
        return forest
