# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Derivation of effective and aggregated selection state.

Two pure functions turn (NodeStore, OverrideRecord) into display state:

- resolve_effective(): top-down inheritance. Every node takes the state of
  its nearest overridden ancestor (or its own override), default off.
- compute_node_states(): bottom-up aggregation over the loaded children,
  producing a NodeState(checked, indeterminate) for every node.

Children that are not loaded yet do not take part in aggregation: a node
with no loaded children reports its own effective state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Hashable, Iterable, TYPE_CHECKING

if TYPE_CHECKING:
    from .overrides import OverrideRecord
    from .store import NodeStore


@dataclass(frozen=True)
class NodeState:
    """Display state of a node.

    indeterminate=True means the loaded children are mixed; checked is
    False in that case.
    """

    checked: bool = False
    indeterminate: bool = False

    @property
    def is_full(self) -> bool:
        return self.checked and not self.indeterminate

    @property
    def is_empty(self) -> bool:
        return not self.checked and not self.indeterminate


UNCHECKED = NodeState(False, False)
CHECKED = NodeState(True, False)
MIXED = NodeState(False, True)


def resolve_effective(store: NodeStore, record: OverrideRecord) -> dict[Hashable, bool]:
    """Map every loaded node id to its effective on/off state.

    Single top-down pass: the state inherited from the parent is replaced
    by the node's own override, if any, and handed down to its children.
    A node whose parent is not loaded starts from the default (off).

    Example:
        >>> store = NodeStore([('a', None, 'A'), ('b', 'a', 'B'), ('c', 'b', 'C')])
        >>> resolve_effective(store, OverrideRecord({'a'}, {'b'}))
        {'a': True, 'b': False, 'c': False}
    """
    effective: dict[Hashable, bool] = {}
    for depth, node in store.walk():
        if depth == 0:
            inherited = False
        else:
            inherited = effective[node.parent_id]
        if node.id in record.force_on:
            inherited = True
        elif node.id in record.force_off:
            inherited = False
        effective[node.id] = inherited
    return effective


def checked_ids(store: NodeStore, record: OverrideRecord) -> set[Hashable]:
    """Return the ids of the loaded nodes that are effectively on."""
    return {node_id for node_id, on in resolve_effective(store, record).items() if on}


def aggregate(child_states: Iterable[NodeState]) -> NodeState | None:
    """Combine the states of a node's children.

    Returns:
        CHECKED if all children are fully checked, UNCHECKED if all are
        fully unchecked, MIXED otherwise; None if there are no children.
    """
    all_full = True
    all_empty = True
    seen_any = False
    for state in child_states:
        seen_any = True
        all_full = all_full and state.is_full
        all_empty = all_empty and state.is_empty
        if not all_full and not all_empty:
            return MIXED
    if not seen_any:
        return None
    return CHECKED if all_full else UNCHECKED


def compute_node_states(store: NodeStore, checked: set[Hashable] | frozenset) -> dict[Hashable, NodeState]:
    """Compute the NodeState of every loaded node from the checked-id set.

    Nodes are processed in reverse top-down order, so every child is done
    before its parent.
    """
    order = [(depth, node) for depth, node in store.walk()]
    states: dict[Hashable, NodeState] = {}
    for depth, node in reversed(order):
        child_states = (states[cid] for cid in store.child_ids(node.id) if cid in states)
        state = aggregate(child_states)
        if state is None:
            state = CHECKED if node.id in checked else UNCHECKED
        states[node.id] = state
    return states
