# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""OverrideRecord - the minimal, externally visible selection state.

An override record is two disjoint sets of node ids: ``force_on`` and
``force_off``. Everything else about the selection is derived from it and
from the loaded nodes. Records are immutable and compared as sets.

Serialized form::

    {'forceOn': ['eng'], 'forceOff': ['eng-archive']}

The legacy ``enabled``/``disabled`` keys are accepted on input.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Hashable, Iterable, Mapping, TYPE_CHECKING

from .exceptions import OverrideRecordError

if TYPE_CHECKING:
    from .store import NodeStore

logger = logging.getLogger(__name__)

_ON_KEYS = ('forceOn', 'force_on', 'enabled')
_OFF_KEYS = ('forceOff', 'force_off', 'disabled')


def _sort_key(value: Any) -> tuple[str, str]:
    return (type(value).__name__, str(value))


@dataclass(frozen=True)
class OverrideRecord:
    """Pair of disjoint id sets: explicit on and explicit off decisions.

    An id given in both sets is kept in force_on only.

    Example:
        >>> record = OverrideRecord({'a'}, {'a', 'b'})
        >>> record.force_off
        frozenset({'b'})
    """

    force_on: frozenset = field(default_factory=frozenset)
    force_off: frozenset = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        force_on = frozenset(self.force_on)
        force_off = frozenset(self.force_off)
        both = force_on & force_off
        if both:
            logger.warning(
                "ids present in both forceOn and forceOff, keeping them on: %s",
                sorted(both, key=_sort_key),
            )
            force_off = force_off - both
        object.__setattr__(self, 'force_on', force_on)
        object.__setattr__(self, 'force_off', force_off)

    def __bool__(self) -> bool:
        return bool(self.force_on or self.force_off)

    def __len__(self) -> int:
        return len(self.force_on) + len(self.force_off)

    def __contains__(self, node_id: Hashable) -> bool:
        return node_id in self.force_on or node_id in self.force_off

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> OverrideRecord:
        """Build a record from its serialized form.

        Raises:
            OverrideRecordError: If a member is not an iterable of ids.
        """
        return cls(_read_ids(data, _ON_KEYS), _read_ids(data, _OFF_KEYS))

    @classmethod
    def coerce(cls, value: Any) -> OverrideRecord:
        """Return value as an OverrideRecord.

        Accepts a record, a mapping (see from_dict), a (force_on, force_off)
        pair, or None for the empty record.

        Raises:
            OverrideRecordError: If value has none of those shapes.
        """
        if value is None:
            return cls()
        if isinstance(value, OverrideRecord):
            return value
        if isinstance(value, Mapping):
            return cls.from_dict(value)
        if isinstance(value, (tuple, list)) and len(value) == 2:
            return cls(_as_id_set(value[0], 'forceOn'), _as_id_set(value[1], 'forceOff'))
        raise OverrideRecordError(
            f"override record must be a mapping or a (force_on, force_off) pair, "
            f"not {type(value).__name__}"
        )

    def as_dict(self) -> dict[str, list]:
        """Return the serialized form, ids sorted for stable output."""
        return {
            'forceOn': sorted(self.force_on, key=_sort_key),
            'forceOff': sorted(self.force_off, key=_sort_key),
        }

    def state_of(self, node_id: Hashable) -> bool | None:
        """True if forced on, False if forced off, None if not overridden."""
        if node_id in self.force_on:
            return True
        if node_id in self.force_off:
            return False
        return None


def _as_id_set(value: Any, member: str) -> frozenset:
    if value is None:
        return frozenset()
    if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
        raise OverrideRecordError(f"{member} must be an iterable of ids, not {type(value).__name__}")
    return frozenset(value)


def _read_ids(data: Mapping[str, Any], keys: tuple[str, ...]) -> frozenset:
    for key in keys:
        if key in data:
            return _as_id_set(data[key], keys[0])
    return frozenset()


def optimize_record(store: NodeStore, record: OverrideRecord) -> OverrideRecord:
    """Drop the entries of record that loaded ancestors already imply.

    An entry is redundant when the nearest overridden loaded ancestor has
    the same state, or when no ancestor is overridden, the node's chain
    reaches a real top-level node and the entry is force_off (off is the
    default). Entries whose state differs from what they would inherit are
    kept, so the effective state of every node is unchanged.

    Ids that are not in the store are kept, and so are entries whose chain
    stops at a parent that is not loaded yet: their ancestors are unknown.

    Example:
        >>> store = NodeStore([('a', None, 'A'), ('b', 'a', 'B')])
        >>> optimize_record(store, OverrideRecord({'a', 'b'}, set())).force_on
        frozenset({'a'})
    """
    force_on: set = set()
    force_off: set = set()
    for node_id in record.force_on | record.force_off:
        own = record.state_of(node_id)
        if node_id in store and _inherited_state(store, record, node_id) == own:
            continue
        (force_on if own else force_off).add(node_id)

    optimized = OverrideRecord(force_on, force_off)
    if len(optimized) != len(record):
        logger.debug("optimized record from %d to %d entries", len(record), len(optimized))
    return optimized


def _inherited_state(store: NodeStore, record: OverrideRecord, node_id: Hashable) -> bool | None:
    """State node_id would get from its ancestors, None when unknowable."""
    ancestors = store.ancestors(node_id)
    for ancestor_id in ancestors:
        state = record.state_of(ancestor_id)
        if state is not None:
            return state
    top = store[ancestors[-1]] if ancestors else store[node_id]
    if top.parent_id is None or top.parent_id == store.root_id:
        return False
    return None
