# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""EditTracker - which ids hold an explicit, non-inherited decision."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum
from typing import Hashable, Iterable, Iterator

from .overrides import OverrideRecord

logger = logging.getLogger(__name__)


class EditAction(str, Enum):
    """Explicit decision held for a node."""

    ON = 'on'
    OFF = 'off'

    @classmethod
    def for_value(cls, value: bool) -> EditAction:
        return cls.ON if value else cls.OFF


class EditTracker(Mapping):
    """Read-only mapping id -> EditAction, mutated only by its two operations.

    Keys come from a copied override record (load) or from user toggles
    (record_toggle). Nodes whose state is merely inherited are never keys,
    which is what keeps the synthesized record minimal.

    Example:
        >>> tracker = EditTracker.from_record(OverrideRecord({'a'}, {'b'}))
        >>> tracker.record_toggle('a', False, descendants=['b'])
        >>> tracker.to_record()
        OverrideRecord(force_on=frozenset(), force_off=frozenset({'a'}))
    """

    __slots__ = ('_edits',)

    def __init__(self) -> None:
        self._edits: dict[Hashable, EditAction] = {}

    @classmethod
    def from_record(cls, record: OverrideRecord) -> EditTracker:
        tracker = cls()
        tracker.load(record)
        return tracker

    def __getitem__(self, node_id: Hashable) -> EditAction:
        return self._edits[node_id]

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._edits)

    def __len__(self) -> int:
        return len(self._edits)

    def __repr__(self) -> str:
        edits = {k: v.value for k, v in self._edits.items()}
        return f"EditTracker({edits!r})"

    def load(self, record: OverrideRecord) -> None:
        """Replace every entry with a direct copy of record."""
        edits = {node_id: EditAction.ON for node_id in record.force_on}
        edits.update((node_id, EditAction.OFF) for node_id in record.force_off)
        self._edits = edits
        logger.debug("edit tracker loaded with %d entries", len(edits))

    def record_toggle(
        self,
        node_id: Hashable,
        value: bool,
        descendants: Iterable[Hashable] = (),
    ) -> int:
        """Record an explicit decision on node_id and drop superseded ones.

        Args:
            node_id: The toggled node.
            value: Its new state.
            descendants: Ids below node_id. Their entries are removed, they
                inherit from node_id again.

        Returns:
            Number of descendant entries removed.
        """
        self._edits[node_id] = EditAction.for_value(value)
        dropped = 0
        for descendant_id in descendants:
            if self._edits.pop(descendant_id, None) is not None:
                dropped += 1
        if dropped:
            logger.debug("toggle on %r superseded %d descendant entries", node_id, dropped)
        return dropped

    def to_record(self) -> OverrideRecord:
        """Project the entries into an OverrideRecord."""
        force_on = [k for k, v in self._edits.items() if v is EditAction.ON]
        force_off = [k for k, v in self._edits.items() if v is EditAction.OFF]
        return OverrideRecord(frozenset(force_on), frozenset(force_off))
