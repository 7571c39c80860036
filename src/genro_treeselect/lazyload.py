# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""LazyLoader - one children request per parent id.

The loader callback receives a parent id and may complete synchronously
(return anything that is not awaitable) or asynchronously (return an
awaitable, run as a task on the running loop). Its result is ignored:
nodes reach the store through SelectionSession.merge_nodes().

Bookkeeping:
    - requested: parent ids asked for, outstanding or completed. A parent is
      never asked for twice unless its request failed.
    - loading: parent ids whose request has not completed yet.

After close(), outstanding tasks are cancelled and late completions are
ignored. Exceptions raised by the on_error callback are logged, not
propagated.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from functools import partial
from typing import Any, Callable, Hashable

logger = logging.getLogger(__name__)

Loader = Callable[[Hashable], Any]
LoadErrorCallback = Callable[[Hashable, BaseException], Any]


class LazyLoader:
    """Deduplicating front-end for a load-children callback."""

    __slots__ = ('_loader', '_on_error', '_requested', '_loading', '_tasks', '_alive')

    def __init__(
        self,
        loader: Loader | None,
        on_error: LoadErrorCallback | None = None,
    ) -> None:
        """Initialize a LazyLoader.

        Args:
            loader: Callback fetching the children of a parent id. None
                disables loading (pre-seeded trees).
            on_error: Optional callback(parent_id, exc) for failed loads.
        """
        self._loader = loader
        self._on_error = on_error
        self._requested: set[Hashable] = set()
        self._loading: set[Hashable] = set()
        self._tasks: dict[Hashable, asyncio.Future] = {}
        self._alive = True

    def __repr__(self) -> str:
        return f"LazyLoader(requested={len(self._requested)}, loading={len(self._loading)})"

    @property
    def enabled(self) -> bool:
        return self._loader is not None

    @property
    def alive(self) -> bool:
        return self._alive

    @property
    def requested(self) -> frozenset:
        return frozenset(self._requested)

    @property
    def loading(self) -> frozenset:
        return frozenset(self._loading)

    def is_requested(self, parent_id: Hashable) -> bool:
        return parent_id in self._requested

    def request(self, parent_id: Hashable) -> bool:
        """Ask the loader for the children of parent_id, once.

        Returns:
            True if a request was issued, False if it was skipped (no loader,
            closed, already requested) or failed synchronously.
        """
        if self._loader is None or not self._alive:
            return False
        if parent_id in self._requested:
            logger.debug("children of %r already requested", parent_id)
            return False

        self._requested.add(parent_id)
        self._loading.add(parent_id)
        logger.debug("requesting children of %r", parent_id)
        try:
            result = self._loader(parent_id)
        except Exception as exc:
            self._fail(parent_id, exc)
            return False

        if not inspect.isawaitable(result):
            self._loading.discard(parent_id)
            return True

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            if inspect.iscoroutine(result):
                result.close()
            self._fail(parent_id, RuntimeError(f"asynchronous loader needs a running event loop: {exc}"))
            return False

        task = asyncio.ensure_future(result, loop=loop)
        self._tasks[parent_id] = task
        task.add_done_callback(partial(self._on_done, parent_id))
        return True

    def close(self) -> None:
        """Stop accepting completions and cancel outstanding tasks.

        Cancelled parents leave the loading set at once.
        """
        self._alive = False
        for task in list(self._tasks.values()):
            task.cancel()
        self._tasks.clear()
        self._loading.clear()

    def _on_done(self, parent_id: Hashable, task: asyncio.Future) -> None:
        if not self._alive:
            logger.debug("discarding completion for %r after close", parent_id)
            return
        self._tasks.pop(parent_id, None)
        if task.cancelled():
            self._fail(parent_id, asyncio.CancelledError())
            return
        exc = task.exception()
        if exc is not None:
            self._fail(parent_id, exc)
            return
        self._loading.discard(parent_id)
        logger.debug("children of %r loaded", parent_id)

    def _fail(self, parent_id: Hashable, exc: BaseException) -> None:
        # Forget the request so a later expand can retry
        self._requested.discard(parent_id)
        self._loading.discard(parent_id)
        logger.warning("loading children of %r failed: %r", parent_id, exc)
        if self._on_error is not None:
            try:
                self._on_error(parent_id, exc)
            except Exception:
                logger.exception("load error callback failed for %r", parent_id)
