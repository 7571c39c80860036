# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""SelectionSession - reconciliation of user edits and override records.

This module provides the SelectionSession class, which owns every piece of
selection state for one view of a lazily loaded hierarchy:

    - the NodeStore, grown by merge_nodes() and by the loader
    - the EditTracker, the explicit decisions behind the override record
    - the checked-id set, the effective selection of the loaded nodes
    - the last override record emitted (or applied)

Data comes in through three doors: merge_nodes() for node supply,
apply_override_record() for an externally stored record, toggle() for user
edits. It goes out through the on_change callback (debounced, only on a
real change) and the read-only node_states / loading properties.

State Machine:
    - IDLE -> APPLYING_EXTERNAL -> IDLE: an incoming record replaces the
      tracker and the checked set; nothing is emitted
    - IDLE -> EDITING: a toggle updates checked set and tracker, then
      schedules the emission
    - EDITING -> EDITING: further toggles restart the timer
    - EDITING -> IDLE: the timer fires, the record is synthesized and
      emitted if it differs from the last one

Example:
    Basic usage::

        async def load_children(parent_id):
            session.merge_nodes(await api.children(parent_id))

        session = SelectionSession(load_children, on_change=save_record)
        session.apply_override_record({'forceOn': ['eng'], 'forceOff': []})
        session.start()               # loads the top level

        session.expand('eng')         # loads the children of 'eng'
        session.toggle('eng-archive') # emitted ~100ms later
"""

from __future__ import annotations

import logging
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Hashable, Iterator, Mapping

from .debounce import Debouncer
from .exceptions import SessionClosedError
from .lazyload import LazyLoader, LoadErrorCallback, Loader
from .node import SelectNode
from .options import SelectionOptions
from .overrides import OverrideRecord
from .resolver import NodeState, UNCHECKED, checked_ids, compute_node_states
from .store import NodeStore
from .tracker import EditTracker

logger = logging.getLogger(__name__)

RecordCallback = Callable[[OverrideRecord], Any]
ExpandedCallback = Callable[[frozenset], Any]

_SUBSCRIBER_ID = 'selection_session'


class SessionState(str, Enum):
    """Phase of the reconciliation loop."""

    IDLE = 'idle'
    APPLYING_EXTERNAL = 'applying_external'
    EDITING = 'editing'


class SelectionSession:
    """Selection state of one tree view, kept minimal and in sync.

    Attributes:
        options: The SelectionOptions in use.

    Example:
        >>> session = SelectionSession(nodes=[('root', None, 'Root')])
        >>> session.toggle('root')
        True
        >>> session.record.as_dict()
        {'forceOn': ['root'], 'forceOff': []}
    """

    def __init__(
        self,
        loader: Loader | None = None,
        on_change: RecordCallback | None = None,
        *,
        options: SelectionOptions | None = None,
        on_load_error: LoadErrorCallback | None = None,
        on_expanded_change: ExpandedCallback | None = None,
        nodes: Any = None,
        record: Any = None,
    ) -> None:
        """Initialize a SelectionSession.

        Args:
            loader: Callback(parent_id) fetching children. It may be
                synchronous or return an awaitable; the nodes it fetches
                must be passed to merge_nodes().
            on_change: Callback receiving each emitted OverrideRecord.
            options: SelectionOptions; defaults are used if None.
            on_load_error: Optional callback(parent_id, exc) for failed loads.
            on_expanded_change: Optional callback receiving the expanded-id
                set whenever it changes.
            nodes: Optional initial nodes (pre-seeded tree).
            record: Optional initial override record.
        """
        self.options = options or SelectionOptions()
        self._on_change = on_change
        self._on_expanded_change = on_expanded_change

        self._store = NodeStore(root_id=self.options.root_id)
        self._tracker = EditTracker()
        self._checked: set[Hashable] = set()
        self._checked_dirty = False
        self._checked_version = 0
        self._states_cache: tuple[tuple[int, int], Mapping[Hashable, NodeState]] | None = None
        self._expanded: set[Hashable] = set()
        self._last_record = OverrideRecord()
        self._state = SessionState.IDLE
        self._closed = False

        self._loader = LazyLoader(loader, on_error=on_load_error)
        self._debouncer = Debouncer(self._emit, self.options.debounce_seconds)
        self._store.subscribe(_SUBSCRIBER_ID, any=self._on_store_changed)

        if nodes is not None:
            self.merge_nodes(nodes)
        if record is not None:
            self.apply_override_record(record)

    def __repr__(self) -> str:
        return (
            f"SelectionSession({len(self._store)} nodes, {len(self._tracker)} edits, "
            f"state={self._state.value})"
        )

    # ==================== Read Access ====================

    @property
    def store(self) -> NodeStore:
        """The NodeStore. Nodes merged into it directly are picked up too."""
        return self._store

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def edits(self) -> EditTracker:
        """The explicit decisions, as a read-only mapping id -> EditAction."""
        return self._tracker

    @property
    def record(self) -> OverrideRecord:
        """The override record synthesized from the current edits."""
        return self._tracker.to_record()

    @property
    def last_record(self) -> OverrideRecord:
        """The last record emitted, or applied from outside."""
        return self._last_record

    @property
    def checked(self) -> frozenset:
        """Ids of the loaded nodes that are effectively on."""
        return frozenset(self._current_checked())

    @property
    def node_states(self) -> Mapping[Hashable, NodeState]:
        """Read-only mapping id -> NodeState for every loaded node.

        Recomputed only when the store or the checked set changed.
        """
        checked = self._current_checked()
        key = (self._store.version, self._checked_version)
        if self._states_cache is None or self._states_cache[0] != key:
            states = compute_node_states(self._store, checked)
            self._states_cache = (key, MappingProxyType(states))
        return self._states_cache[1]

    def state_of(self, node_id: Hashable) -> NodeState:
        """NodeState of node_id; unknown ids are unchecked."""
        return self.node_states.get(node_id, UNCHECKED)

    @property
    def loading(self) -> frozenset:
        """Parent ids whose children request has not completed."""
        return self._loader.loading

    def is_loading(self, node_id: Hashable) -> bool:
        return node_id in self._loader.loading

    @property
    def expanded(self) -> frozenset:
        return frozenset(self._expanded)

    def is_expandable(self, node_id: Hashable) -> bool:
        """True if node_id has loaded children, is loading, or may get children."""
        if self._store.has_children(node_id) or self.is_loading(node_id):
            return True
        return node_id not in self._expanded and self._loader.enabled

    def iter_visible(self) -> Iterator[tuple[SelectNode, int, NodeState]]:
        """Yield (node, depth, state) for the rows a tree widget shows.

        Roots are always visible; children only below expanded nodes.
        """
        states = self.node_states
        seen: set[Hashable] = set()
        stack = [(0, node) for node in reversed(self._store.roots())]
        while stack:
            depth, node = stack.pop()
            if node.id in seen:
                continue
            seen.add(node.id)
            yield node, depth, states.get(node.id, UNCHECKED)
            if node.id in self._expanded:
                children = self._store.children(node.id)
                stack.extend((depth + 1, child) for child in reversed(children))

    # ==================== Node Supply ====================

    def start(self) -> bool:
        """Request the top level from the loader. Safe to call repeatedly."""
        return self._loader.request(self.options.root_id)

    def merge_nodes(self, nodes: Any, reason: str | None = None) -> list[SelectNode]:
        """Upsert nodes into the store.

        Never touches the edit tracker: new nodes take their state from
        their ancestors' decisions. Ignored after close().

        Returns:
            The stored nodes that were inserted or changed.
        """
        if self._closed:
            logger.debug("session closed, ignoring merge")
            return []
        return self._store.merge(nodes, reason=reason)

    def expand(self, node_id: Hashable) -> bool:
        """Mark node_id expanded, loading its children if none are loaded.

        Returns:
            True if a load was requested.
        """
        if node_id not in self._store:
            logger.debug("expand on unknown node %r ignored", node_id)
            return False
        if node_id not in self._expanded:
            self._expanded.add(node_id)
            self._notify_expanded()
        if self.options.autoload and not self._store.has_children(node_id):
            return self._loader.request(node_id)
        return False

    def collapse(self, node_id: Hashable) -> None:
        """Mark node_id collapsed. Selection state is not affected."""
        if node_id in self._expanded:
            self._expanded.discard(node_id)
            self._notify_expanded()

    def toggle_expand(self, node_id: Hashable) -> bool:
        """Collapse node_id if expanded, expand it otherwise.

        Returns:
            True if a load was requested.
        """
        if node_id in self._expanded:
            self.collapse(node_id)
            return False
        return self.expand(node_id)

    def _notify_expanded(self) -> None:
        if self._on_expanded_change is not None:
            self._on_expanded_change(frozenset(self._expanded))

    def _on_store_changed(self, node: SelectNode, evt: str, reason: str | None = None) -> None:
        self._checked_dirty = True

    def _current_checked(self) -> set[Hashable]:
        if self._checked_dirty:
            self._checked = checked_ids(self._store, self._tracker.to_record())
            self._checked_dirty = False
            self._checked_version += 1
        return self._checked

    # ==================== Edits ====================

    def apply_override_record(self, record: Any) -> OverrideRecord:
        """Replace the selection with an externally stored record.

        The tracker becomes a copy of the record and the checked set is
        recomputed. Nothing is emitted and a pending emission is dropped.
        Applying the same record twice gives the same state.

        Args:
            record: OverrideRecord, ``{'forceOn': [...], 'forceOff': [...]}``
                mapping or (force_on, force_off) pair.

        Returns:
            The record as applied (ids in both sets kept on).

        Raises:
            OverrideRecordError: If record has an unusable shape.
            SessionClosedError: If the session is closed.
        """
        self._check_open()
        record = OverrideRecord.coerce(record)
        self._state = SessionState.APPLYING_EXTERNAL
        try:
            if self._debouncer.cancel():
                logger.debug("pending emission dropped by incoming record")
            self._tracker.load(record)
            self._checked = checked_ids(self._store, record)
            self._checked_dirty = False
            self._checked_version += 1
            self._last_record = record
        finally:
            self._state = SessionState.IDLE
        logger.debug("applied record with %d entries", len(record))
        return record

    def toggle(self, node_id: Hashable) -> bool | None:
        """Flip the selection of node_id and its loaded descendants.

        The toggled node becomes an explicit decision; explicit decisions
        below it are dropped, they inherit from it again. The record is
        emitted once the debounce window passes without further toggles.

        Returns:
            The new checked value, or None if node_id is not loaded.

        Raises:
            SessionClosedError: If the session is closed.
        """
        self._check_open()
        if node_id not in self._store:
            logger.debug("toggle on unknown node %r ignored", node_id)
            return None

        value = not self.state_of(node_id).checked
        descendants = self._store.descendants(node_id)

        checked = self._current_checked()
        if value:
            checked.add(node_id)
            checked.update(descendants)
        else:
            checked.discard(node_id)
            checked.difference_update(descendants)
        self._checked_version += 1

        self._tracker.record_toggle(node_id, value, descendants)
        self._state = SessionState.EDITING
        logger.debug("toggled %r to %s (%d descendants)", node_id, value, len(descendants))
        self._debouncer.schedule()
        return value

    def flush(self) -> bool:
        """Emit a pending record now instead of waiting for the timer.

        Returns:
            True if an emission was pending.
        """
        return self._debouncer.flush()

    def _emit(self) -> None:
        self._state = SessionState.IDLE
        record = self._tracker.to_record()
        if record == self._last_record:
            logger.debug("record unchanged, not emitting")
            return
        self._last_record = record
        logger.debug("emitting record with %d entries", len(record))
        if self._on_change is not None:
            self._on_change(record)

    # ==================== Teardown ====================

    def close(self) -> None:
        """Tear the session down.

        The pending emission is dropped, outstanding loads are cancelled
        and their late results ignored. Further edits raise
        SessionClosedError; merges are ignored.
        """
        if self._closed:
            return
        self._closed = True
        self._debouncer.cancel()
        self._loader.close()
        self._store.unsubscribe(_SUBSCRIBER_ID)
        self._state = SessionState.IDLE
        logger.debug("session closed")

    def _check_open(self) -> None:
        if self._closed:
            raise SessionClosedError("SelectionSession is closed")
