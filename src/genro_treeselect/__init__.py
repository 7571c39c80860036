# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Genro-TreeSelect - Inherited selection state for lazily loaded hierarchies.

A lightweight, zero-dependency library that keeps "which nodes of a tree
are selected" as a minimal override record (explicit on/off decisions),
derives checked/indeterminate state for every loaded node, and emits the
record, debounced, when the user edits the selection.
"""

__version__ = "0.1.0"

from .debounce import Debouncer
from .exceptions import (
    NodeSourceError,
    OverrideRecordError,
    SessionClosedError,
    TreeSelectError,
)
from .lazyload import LazyLoader
from .node import SelectNode
from .options import SelectionOptions
from .overrides import OverrideRecord, optimize_record
from .resolver import NodeState, checked_ids, compute_node_states, resolve_effective
from .session import SelectionSession, SessionState
from .store import NodeStore
from .tracker import EditAction, EditTracker

__all__ = [
    # Core classes
    "NodeStore",
    "SelectNode",
    "SelectionSession",
    "SessionState",
    "SelectionOptions",
    # Selection model
    "OverrideRecord",
    "optimize_record",
    "EditTracker",
    "EditAction",
    "NodeState",
    "resolve_effective",
    "checked_ids",
    "compute_node_states",
    # Scheduling and loading
    "Debouncer",
    "LazyLoader",
    # Exceptions
    "TreeSelectError",
    "NodeSourceError",
    "OverrideRecordError",
    "SessionClosedError",
]
