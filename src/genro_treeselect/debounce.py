# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Debouncer - trailing-edge call coalescing on the asyncio loop.

Each schedule() cancels the pending timer and starts a new one, so the
callback runs once, ``delay`` seconds after the last schedule() of a burst.
At most one call is pending at any time.

Without a running event loop there is no timer: the call stays pending
until flush() runs it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)


class Debouncer:
    """Coalesce bursts of schedule() calls into one callback invocation.

    Example:
        >>> debouncer = Debouncer(emit, delay=0.1)
        >>> debouncer.schedule()
        >>> debouncer.schedule()   # restarts the timer, emit runs once
    """

    __slots__ = ('_callback', 'delay', '_loop', '_handle', '_pending')

    def __init__(
        self,
        callback: Callable[[], Any],
        delay: float,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        """Initialize a Debouncer.

        Args:
            callback: Function called with no arguments when the timer fires.
            delay: Quiet period in seconds.
            loop: Event loop for the timer. Defaults to the loop running
                when schedule() is called.
        """
        self._callback = callback
        self.delay = delay
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None
        self._pending = False

    @property
    def pending(self) -> bool:
        """True if a call is waiting for its timer (or for flush())."""
        return self._pending

    def schedule(self) -> None:
        """Start or restart the timer."""
        self._cancel_timer()
        self._pending = True
        loop = self._loop
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                logger.debug("no running event loop, call stays pending until flush()")
                return
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> bool:
        """Drop the pending call. Returns True if one was pending."""
        was_pending = self._pending
        self._cancel_timer()
        self._pending = False
        return was_pending

    def flush(self) -> bool:
        """Run the pending call now. Returns True if there was one."""
        if not self._pending:
            return False
        self._fire()
        return True

    def _cancel_timer(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._cancel_timer()
        self._pending = False
        self._callback()
