# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Options for SelectionSession."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Hashable

DEFAULT_DEBOUNCE_MS = 100


@dataclass(frozen=True)
class SelectionOptions:
    """Configuration of a SelectionSession.

    Attributes:
        debounce_ms: Quiet period before an edited record is emitted.
        root_id: Parent id passed to the loader for the top level. Nodes
            whose parent_id equals it are top-level too.
        autoload: If True, expanding a node with no loaded children asks
            the loader for them.
    """

    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    root_id: Hashable | None = None
    autoload: bool = True

    def __post_init__(self) -> None:
        if self.debounce_ms < 0:
            raise ValueError(f"debounce_ms must be >= 0, got {self.debounce_ms}")

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0
