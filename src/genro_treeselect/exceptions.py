# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""TreeSelect exceptions."""

from __future__ import annotations


class TreeSelectError(Exception):
    """Base exception for TreeSelect errors."""

    pass


class NodeSourceError(TreeSelectError, TypeError):
    """Raised when a merge item cannot be turned into a SelectNode."""

    pass


class OverrideRecordError(TreeSelectError, ValueError):
    """Raised when an override record has an unusable shape."""

    pass


class SessionClosedError(TreeSelectError):
    """Raised when a closed SelectionSession receives an edit."""

    pass
