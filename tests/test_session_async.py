# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Tests for debounced emission and asynchronous loading."""

import asyncio

import pytest

from genro_treeselect import (
    Debouncer,
    LazyLoader,
    NodeState,
    OverrideRecord,
    SelectionOptions,
    SelectionSession,
    SessionState,
)

CHECKED = NodeState(True, False)

NODES = [
    ('eng', None, 'Engineering'),
    ('api', 'eng', 'API'),
    ('hr', None, 'HR'),
]


async def settle(seconds=0.01):
    """Let pending tasks and callbacks run."""
    await asyncio.sleep(seconds)


class TestDebouncer:
    """Tests for Debouncer."""

    @pytest.mark.asyncio
    async def test_burst_runs_once(self):
        """Test repeated schedule() calls run the callback once."""
        calls = []
        debouncer = Debouncer(lambda: calls.append(1), delay=0.02)
        debouncer.schedule()
        debouncer.schedule()
        debouncer.schedule()
        assert debouncer.pending is True
        await settle(0.1)
        assert calls == [1]
        assert debouncer.pending is False

    @pytest.mark.asyncio
    async def test_cancel(self):
        """Test cancel() drops the pending call."""
        calls = []
        debouncer = Debouncer(lambda: calls.append(1), delay=0.01)
        debouncer.schedule()
        assert debouncer.cancel() is True
        assert debouncer.cancel() is False
        await settle(0.05)
        assert calls == []

    @pytest.mark.asyncio
    async def test_flush_runs_now_and_stops_timer(self):
        """Test flush() runs the call at once and only once."""
        calls = []
        debouncer = Debouncer(lambda: calls.append(1), delay=0.01)
        debouncer.schedule()
        assert debouncer.flush() is True
        await settle(0.05)
        assert calls == [1]

    def test_without_loop_waits_for_flush(self):
        """Test the call stays pending when no loop is running."""
        calls = []
        debouncer = Debouncer(lambda: calls.append(1), delay=0.01)
        debouncer.schedule()
        assert calls == []
        assert debouncer.flush() is True
        assert debouncer.flush() is False
        assert calls == [1]


class TestDebouncedEmission:
    """Tests for SelectionSession emission timing."""

    @pytest.mark.asyncio
    async def test_two_quick_toggles_emit_once(self):
        """Test toggles 10ms apart produce a single emission with both edits."""
        emitted = []
        session = SelectionSession(on_change=emitted.append, nodes=NODES)
        session.toggle('eng')
        await settle(0.01)
        session.toggle('hr')
        assert emitted == []
        await settle(0.2)
        assert emitted == [OverrideRecord({'eng', 'hr'}, set())]
        assert session.state is SessionState.IDLE

    @pytest.mark.asyncio
    async def test_nothing_emitted_inside_window(self):
        """Test the record waits for the debounce window."""
        emitted = []
        session = SelectionSession(on_change=emitted.append, nodes=NODES,
                                   options=SelectionOptions(debounce_ms=100))
        session.toggle('eng')
        await settle(0.03)
        assert emitted == []
        assert session.state is SessionState.EDITING
        await settle(0.15)
        assert len(emitted) == 1

    @pytest.mark.asyncio
    async def test_separate_bursts_emit_separately(self):
        """Test edits after an emission produce a new emission."""
        emitted = []
        session = SelectionSession(on_change=emitted.append, nodes=NODES,
                                   options=SelectionOptions(debounce_ms=10))
        session.toggle('eng')
        await settle(0.05)
        session.toggle('api')
        await settle(0.05)
        assert [r.as_dict() for r in emitted] == [
            {'forceOn': ['eng'], 'forceOff': []},
            {'forceOn': ['eng'], 'forceOff': ['api']},
        ]

    @pytest.mark.asyncio
    async def test_incoming_record_cancels_pending(self):
        """Test an applied record drops the pending emission."""
        emitted = []
        session = SelectionSession(on_change=emitted.append, nodes=NODES,
                                   options=SelectionOptions(debounce_ms=20))
        session.toggle('eng')
        session.apply_override_record({'forceOn': ['hr']})
        await settle(0.1)
        assert emitted == []
        assert session.record == OverrideRecord({'hr'}, set())

    @pytest.mark.asyncio
    async def test_close_cancels_pending(self):
        """Test close() drops the pending emission."""
        emitted = []
        session = SelectionSession(on_change=emitted.append, nodes=NODES,
                                   options=SelectionOptions(debounce_ms=20))
        session.toggle('eng')
        session.close()
        await settle(0.1)
        assert emitted == []


class TestAsyncLoading:
    """Tests for asynchronous loaders."""

    @pytest.mark.asyncio
    async def test_loading_set_and_inherited_state(self):
        """Test children loaded under a forced-on parent inherit without new edits."""
        gate = asyncio.Event()
        calls = []

        async def loader(parent_id):
            calls.append(parent_id)
            await gate.wait()
            session.merge_nodes([('c1', parent_id, 'C1'), ('c2', parent_id, 'C2')])

        session = SelectionSession(loader, nodes=[('p', None, 'P')], record={'forceOn': ['p']})
        assert session.expand('p') is True
        assert session.loading == {'p'}
        assert session.is_loading('p') is True
        session.collapse('p')
        assert session.expand('p') is False

        gate.set()
        await settle()
        assert session.loading == frozenset()
        assert calls == ['p']
        assert session.state_of('c1') == CHECKED
        assert session.state_of('c2') == CHECKED
        assert session.record == OverrideRecord({'p'}, set())
        assert dict(session.edits) == {'p': 'on'}

    @pytest.mark.asyncio
    async def test_completed_load_not_requested_again(self):
        """Test a completed parent is never requested again."""
        calls = []

        async def loader(parent_id):
            calls.append(parent_id)

        session = SelectionSession(loader, nodes=[('p', None, 'P')])
        session.start()
        session.expand('p')
        await settle()
        session.collapse('p')
        session.expand('p')
        session.start()
        await settle()
        assert calls == [None, 'p']

    @pytest.mark.asyncio
    async def test_failed_load_can_be_retried(self):
        """Test a rejected load clears its bookkeeping and reports the error."""
        errors = []
        attempts = []

        async def loader(parent_id):
            attempts.append(parent_id)
            await asyncio.sleep(0)
            if len(attempts) == 1:
                raise ConnectionError('timeout')
            session.merge_nodes([('c', parent_id, 'C')])

        session = SelectionSession(loader, nodes=[('p', None, 'P')],
                                   on_load_error=lambda pid, exc: errors.append((pid, str(exc))))
        session.expand('p')
        await settle()
        assert errors == [('p', 'timeout')]
        assert session.loading == frozenset()
        assert session.store.children('p') == []

        session.collapse('p')
        assert session.expand('p') is True
        await settle()
        assert [n.id for n in session.store.children('p')] == ['c']

    @pytest.mark.asyncio
    async def test_late_completion_after_close_discarded(self):
        """Test a load finishing after close() mutates nothing."""
        gate = asyncio.Event()

        async def loader(parent_id):
            await gate.wait()
            session.merge_nodes([('late', parent_id, 'Late')])

        session = SelectionSession(loader, nodes=[('p', None, 'P')])
        session.expand('p')
        session.close()
        gate.set()
        await settle()
        assert 'late' not in session.store

    @pytest.mark.asyncio
    async def test_close_clears_loading(self):
        """Test parents whose loads were cancelled stop being reported as loading."""
        gate = asyncio.Event()

        async def loader(parent_id):
            await gate.wait()

        session = SelectionSession(loader, nodes=[('p', None, 'P')])
        session.expand('p')
        assert session.loading == {'p'}
        session.close()
        assert session.loading == frozenset()
        assert session.is_loading('p') is False
        await settle()
        assert session.loading == frozenset()

    @pytest.mark.asyncio
    async def test_lazy_loader_ignores_result(self):
        """Test the loader's return value is not interpreted."""
        async def loader(parent_id):
            return [('x', parent_id, 'X')]

        lazy = LazyLoader(loader)
        assert lazy.request('p') is True
        await settle()
        assert lazy.loading == frozenset()
        assert lazy.requested == {'p'}


class TestAsyncLoaderWithoutLoop:
    """Tests for asynchronous loaders called outside an event loop."""

    def test_coroutine_without_loop_fails_cleanly(self):
        """Test an async loader outside a loop is reported and can be retried."""
        errors = []

        async def loader(parent_id):
            return None

        lazy = LazyLoader(loader, on_error=lambda pid, exc: errors.append(pid))
        assert lazy.request('p') is False
        assert errors == ['p']
        assert lazy.requested == frozenset()
        assert lazy.loading == frozenset()
