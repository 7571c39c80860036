# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""SelectNode - one entry of a flat, parent-linked hierarchy."""

from __future__ import annotations

from typing import Any, Hashable


class SelectNode:
    """A node in a NodeStore.

    Each node has:
    - id: Identifier, unique within the store
    - parent_id: Identifier of the parent, or None for a top-level node
    - label: Display label
    - attr: Dictionary of opaque payload attributes

    Nodes do not hold their children: the store keeps a parent -> children
    index, so a node can arrive before or after its parent.

    Example:
        >>> node = SelectNode('docs', None, 'Documents', {'space': 'ENG'})
        >>> node.label
        'Documents'
        >>> node.get_attr('space')
        'ENG'
    """

    __slots__ = ('id', 'parent_id', 'label', 'attr', 'unset')

    def __init__(
        self,
        id: Hashable,
        parent_id: Hashable | None = None,
        label: str | None = None,
        attr: dict[str, Any] | None = None,
    ) -> None:
        """Initialize a SelectNode.

        Args:
            id: The node identifier.
            parent_id: Identifier of the parent node, None for top-level.
            label: Display label. Defaults to str(id).
            attr: Optional dictionary of payload attributes.
        """
        self.id = id
        self.parent_id = parent_id
        self.label = str(id) if label is None else label
        self.attr = attr or {}
        # Fields ('parent_id', 'label') the source did not supply
        self.unset: frozenset[str] = frozenset()

    def __repr__(self) -> str:
        return f"SelectNode({self.id!r}, parent={self.parent_id!r}, label={self.label!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SelectNode):
            return NotImplemented
        return (
            self.id == other.id
            and self.parent_id == other.parent_id
            and self.label == other.label
            and self.attr == other.attr
        )

    __hash__ = None  # type: ignore[assignment]

    def get_attr(self, attr: str | None = None, default: Any = None) -> Any:
        """Get payload attribute value or all attributes.

        Args:
            attr: Attribute name. If None, returns all attributes.
            default: Default value if attribute not found.

        Returns:
            Attribute value, default, or dict of all attributes.
        """
        if attr is None:
            return self.attr
        return self.attr.get(attr, default)

    def set_attr(self, _attr: dict[str, Any] | None = None, **kwargs: Any) -> None:
        """Set payload attributes on the node.

        Args:
            _attr: Dictionary of attributes to set.
            **kwargs: Additional attributes as keyword arguments.
        """
        if _attr:
            self.attr.update(_attr)
        self.attr.update(kwargs)

    def update_from(self, other: SelectNode) -> bool:
        """Copy parent, label and payload from another node with the same id.

        Payload keys are merged, later values win. Fields listed in
        other.unset keep their current value.

        Returns:
            True if anything changed.
        """
        changed = False
        if 'parent_id' not in other.unset and other.parent_id != self.parent_id:
            self.parent_id = other.parent_id
            changed = True
        if 'label' not in other.unset and other.label != self.label:
            self.label = other.label
            changed = True
        for key, value in other.attr.items():
            if key not in self.attr or self.attr[key] != value:
                self.attr[key] = value
                changed = True
        return changed

    def as_dict(self) -> dict[str, Any]:
        """Return a plain dict with id, parent_id, label and the payload."""
        return {'id': self.id, 'parent_id': self.parent_id, 'label': self.label, **self.attr}
