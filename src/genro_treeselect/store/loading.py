# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Conversion of merge sources into SelectNode instances.

A NodeStore accepts several shapes of input:

- SelectNode instances, used as they are
- dicts: ``{'id': ..., 'parent_id': ..., 'label': ..., **payload}``.
  ``parentId`` and ``title`` are accepted as aliases, and an optional
  ``children`` list holds nested items whose parent defaults to the dict's id
- tuples: ``(id, parent_id, label)`` or ``(id, parent_id, label, attr)``
- a mapping ``{id: item}`` where each item is a dict or a label string. A
  dict with an ``id`` key is always read as a single node, so a mapping
  cannot use ``'id'`` as a node id
- another NodeStore (copied)

Normalization is all-or-nothing: the whole source is converted before any
node reaches the store, so a bad item leaves the store untouched.
"""

from __future__ import annotations

from typing import Any, Hashable, Iterable, Iterator, TYPE_CHECKING

from ..exceptions import NodeSourceError
from ..node import SelectNode

if TYPE_CHECKING:
    from .core import NodeStore

_ID_KEYS = ('id',)
_PARENT_KEYS = ('parent_id', 'parentId')
_LABEL_KEYS = ('label', 'title')
_MISSING = object()


def _pop_first(data: dict[str, Any], keys: tuple[str, ...], default: Any = _MISSING) -> Any:
    found = _MISSING
    for key in keys:
        if key in data:
            value = data.pop(key)
            if found is _MISSING:
                found = value
    return default if found is _MISSING else found


def node_from_dict(item: dict[str, Any], parent_id: Any = _MISSING) -> Iterator[SelectNode]:
    """Yield the node described by item, then its nested children.

    A parent or label the dict does not carry is listed in node.unset,
    so an upsert leaves the stored value alone.

    Args:
        item: Dict with at least an 'id' key.
        parent_id: Parent used when the dict carries no parent key
            (set for items found in a 'children' list).

    Raises:
        NodeSourceError: If the dict has no id.
    """
    data = dict(item)
    node_id = _pop_first(data, _ID_KEYS)
    if node_id is _MISSING or node_id is None:
        raise NodeSourceError(f"Node item has no 'id': {item!r}")
    node_parent = _pop_first(data, _PARENT_KEYS, parent_id)
    label = _pop_first(data, _LABEL_KEYS)
    children = data.pop('children', None) or []
    node = SelectNode(
        node_id,
        None if node_parent is _MISSING else node_parent,
        None if label is _MISSING else label,
        data,
    )
    node.unset = frozenset(
        field for field, value in (('parent_id', node_parent), ('label', label))
        if value is _MISSING
    )
    yield node
    for child in children:
        yield from iter_source_item(child, parent_id=node_id)


def node_from_tuple(item: tuple) -> SelectNode:
    """Build a node from (id, parent_id, label) or (id, parent_id, label, attr).

    Raises:
        NodeSourceError: If the tuple has the wrong length or attr is not a dict.
    """
    if len(item) == 3:
        node_id, parent_id, label = item
        attr = None
    elif len(item) == 4:
        node_id, parent_id, label, attr = item
        if attr is not None and not isinstance(attr, dict):
            raise NodeSourceError(f"Node attr must be a dict, not {type(attr).__name__}")
    else:
        raise NodeSourceError(
            f"Node tuple must be (id, parent_id, label) or (id, parent_id, label, attr), "
            f"got {len(item)} items"
        )
    return SelectNode(node_id, parent_id, label, dict(attr) if attr else None)


def iter_source_item(item: Any, parent_id: Any = _MISSING) -> Iterator[SelectNode]:
    """Yield the SelectNode(s) described by a single source item."""
    if isinstance(item, SelectNode):
        yield SelectNode(item.id, item.parent_id, item.label, dict(item.attr))
    elif isinstance(item, dict):
        yield from node_from_dict(item, parent_id=parent_id)
    elif isinstance(item, tuple):
        yield node_from_tuple(item)
    else:
        raise NodeSourceError(
            f"Node item must be SelectNode, dict or tuple, not {type(item).__name__}"
        )


def load_from_list(items: Iterable[Any]) -> list[SelectNode]:
    """Normalize a list of items (see module docstring) into nodes."""
    nodes: list[SelectNode] = []
    for item in items:
        nodes.extend(iter_source_item(item))
    return nodes


def load_from_dict(source: dict[Hashable, Any]) -> list[SelectNode]:
    """Normalize an ``{id: item}`` mapping into nodes.

    Each value is a dict of node fields (its 'id' key, if any, must match the
    mapping key) or a plain label string.

    Example:
        >>> load_from_dict({'a': 'Alpha', 'b': {'parent_id': 'a', 'label': 'Beta'}})
    """
    nodes: list[SelectNode] = []
    for node_id, value in source.items():
        if isinstance(value, str):
            node = SelectNode(node_id, None, value)
            node.unset = frozenset(('parent_id',))
            nodes.append(node)
        elif isinstance(value, dict):
            if value.get('id', node_id) != node_id:
                raise NodeSourceError(
                    f"Node id {value['id']!r} does not match its key {node_id!r}"
                )
            nodes.extend(node_from_dict({**value, 'id': node_id}))
        else:
            raise NodeSourceError(
                f"Node value for {node_id!r} must be dict or str, not {type(value).__name__}"
            )
    return nodes


def load_from_nodestore(source: NodeStore) -> list[SelectNode]:
    """Copy every node of another NodeStore, in insertion order."""
    return [SelectNode(n.id, n.parent_id, n.label, dict(n.attr)) for n in source]


def normalize_source(source: Any) -> list[SelectNode]:
    """Convert any supported source into a list of detached SelectNode copies.

    Raises:
        NodeSourceError: If the source or one of its items is not supported.
    """
    from .core import NodeStore

    if isinstance(source, NodeStore):
        return load_from_nodestore(source)
    if isinstance(source, dict):
        if _looks_like_node_dict(source):
            return load_from_list([source])
        return load_from_dict(source)
    if isinstance(source, (SelectNode, tuple)):
        return load_from_list([source])
    if isinstance(source, (str, bytes)):
        raise NodeSourceError(f"Node source must not be a string: {source!r}")
    if isinstance(source, Iterable):
        return load_from_list(source)
    raise NodeSourceError(
        f"Node source must be an iterable, dict or NodeStore, not {type(source).__name__}"
    )


def _looks_like_node_dict(source: dict) -> bool:
    # An 'id' key always means a single node, never a node called 'id'
    return 'id' in source
