"""Tests for the debounced sync queue and its schedulers."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest

from tabsync.sync.gist import GistStore
from tabsync.sync.queue import FlushResult, Idle, Intent, Pending, SyncQueue
from tabsync.sync.scheduler import AsyncioScheduler, ManualScheduler


class TestManualScheduler:
    def test_fires_in_deadline_order(self) -> None:
        sched = ManualScheduler()
        fired: list[str] = []
        sched.call_later(2, lambda: fired.append("b"))
        sched.call_later(1, lambda: fired.append("a"))
        assert sched.advance(1.5) == 1
        assert fired == ["a"]
        assert sched.now() == 1.5
        sched.advance(1)
        assert fired == ["a", "b"]

    def test_cancelled_timer_never_fires(self) -> None:
        sched = ManualScheduler()
        fired: list[int] = []
        handle = sched.call_later(1, lambda: fired.append(1))
        handle.cancel()
        assert sched.pending == 0
        assert sched.advance(5) == 0
        assert fired == []


class TestDebounce:
    @pytest.mark.asyncio
    async def test_nothing_sent_before_quiet_period(self, remote, scheduler) -> None:
        queue = SyncQueue(remote, scheduler=scheduler)
        queue.enqueue_set("todos", [1])
        scheduler.advance(1.99)
        await queue.wait_idle()
        assert remote.writes() == []
        assert isinstance(queue.state, Pending)

    @pytest.mark.asyncio
    async def test_flushes_after_quiet_period(self, remote, scheduler) -> None:
        queue = SyncQueue(remote, scheduler=scheduler)
        queue.enqueue_set("todos", [1])
        assert queue.state == Pending(2.0)
        scheduler.advance(2.0)
        await queue.wait_idle()
        assert remote.writes() == [("set", "todos", [1])]
        assert queue.state == Idle()
        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_enqueue_restarts_timer(self, remote, scheduler) -> None:
        queue = SyncQueue(remote, scheduler=scheduler)
        queue.enqueue_set("todos", [1])
        scheduler.advance(1.5)
        queue.enqueue_set("shortcuts", [2])
        assert queue.state == Pending(3.5)
        scheduler.advance(1.5)
        await queue.wait_idle()
        assert remote.writes() == []
        scheduler.advance(0.5)
        await queue.wait_idle()
        assert [c[1] for c in remote.writes()] == ["todos", "shortcuts"]

    @pytest.mark.asyncio
    async def test_rapid_writes_coalesce_to_last_value(self, remote, scheduler) -> None:
        """set(A) then set(B) within the window is one remote write carrying B."""
        queue = SyncQueue(remote, scheduler=scheduler)
        queue.enqueue_set("shortcuts", ["A"])
        scheduler.advance(0.5)
        queue.enqueue_set("shortcuts", ["B"])
        scheduler.advance(2.0)
        await queue.wait_idle()
        assert remote.writes() == [("set", "shortcuts", ["B"])]

    @pytest.mark.asyncio
    async def test_coalescing_keeps_first_position(self, remote, scheduler) -> None:
        queue = SyncQueue(remote, scheduler=scheduler)
        queue.enqueue_set("a", 1)
        queue.enqueue_set("b", 2)
        queue.enqueue_set("a", 3)
        assert queue.pending == [Intent("set", "a", 3), Intent("set", "b", 2)]

    @pytest.mark.asyncio
    async def test_later_remove_supersedes_set(self, remote, scheduler) -> None:
        queue = SyncQueue(remote, scheduler=scheduler)
        queue.enqueue_set("a", 1)
        queue.enqueue_remove("a")
        assert queue.pending == [Intent("remove", "a")]
        queue.enqueue_set("a", 2)
        assert queue.pending == [Intent("set", "a", 2)]

    @pytest.mark.asyncio
    async def test_queued_value_is_a_snapshot(self, remote, scheduler) -> None:
        queue = SyncQueue(remote, scheduler=scheduler)
        value = [1]
        queue.enqueue_set("a", value)
        value.append(2)
        assert queue.pending[0].value == [1]


class TestFlush:
    @pytest.mark.asyncio
    async def test_manual_flush_applies_in_insertion_order(self, remote, scheduler) -> None:
        queue = SyncQueue(remote, scheduler=scheduler)
        queue.enqueue_set("b", 1)
        queue.enqueue_remove("a")
        queue.enqueue_set("c", 2)

        result = await queue.flush()

        assert result == FlushResult(applied=3, failed=0)
        assert remote.writes() == [("set", "b", 1), ("remove", "a"), ("set", "c", 2)]
        assert queue.state == Idle()
        assert scheduler.pending == 0

    @pytest.mark.asyncio
    async def test_remove_before_gist_exists_is_silent(self, scheduler, caplog) -> None:
        session = MagicMock()
        queue = SyncQueue(GistStore("ghp_x", None, session=session), scheduler=scheduler)
        queue.enqueue_remove("todos")

        result = await queue.flush()

        assert result == FlushResult(applied=1, failed=0)
        assert "failed" not in caplog.text
        session.request.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_flush(self, remote, scheduler) -> None:
        assert await SyncQueue(remote, scheduler=scheduler).flush() == FlushResult()

    @pytest.mark.asyncio
    async def test_failures_counted_not_retried(self, remote, scheduler, caplog) -> None:
        queue = SyncQueue(remote, scheduler=scheduler)
        remote.fail = True
        queue.enqueue_set("a", 1)
        queue.enqueue_set("b", 2)

        result = await queue.flush()

        assert result == FlushResult(applied=0, failed=2)
        assert "failed" in caplog.text
        remote.fail = False
        assert await queue.flush() == FlushResult()

    @pytest.mark.asyncio
    async def test_exception_does_not_abort_batch(self, remote, scheduler) -> None:
        queue = SyncQueue(remote, scheduler=scheduler)
        remote.raise_on = {"remove"}
        queue.enqueue_remove("a")
        queue.enqueue_set("b", 2)

        result = await queue.flush()

        assert result == FlushResult(applied=1, failed=1)
        assert remote.files == {"b": 2}

    @pytest.mark.asyncio
    async def test_drained_intents_not_reprocessed(self, scheduler) -> None:
        """A flush started while another is in flight only sees newer intents."""
        gate = asyncio.Event()
        seen: list[tuple] = []

        class SlowRemote:
            async def set(self, key, value):
                seen.append((key, value))
                await gate.wait()
                return "doc"

            async def remove(self, key):
                return True

        queue = SyncQueue(SlowRemote(), scheduler=scheduler)
        queue.enqueue_set("a", 1)
        first = asyncio.ensure_future(queue.flush())
        await asyncio.sleep(0)

        queue.enqueue_set("b", 2)
        second = asyncio.ensure_future(queue.flush())
        await asyncio.sleep(0)
        gate.set()

        assert await first == FlushResult(applied=1)
        assert await second == FlushResult(applied=1)
        assert seen == [("a", 1), ("b", 2)]

    @pytest.mark.asyncio
    async def test_enqueue_during_flush_schedules_new_timer(self, scheduler) -> None:
        gate = asyncio.Event()

        class SlowRemote:
            async def set(self, key, value):
                await gate.wait()
                return "doc"

            async def remove(self, key):
                return True

        queue = SyncQueue(SlowRemote(), scheduler=scheduler)
        queue.enqueue_set("a", 1)
        flushing = asyncio.ensure_future(queue.flush())
        await asyncio.sleep(0)

        queue.enqueue_set("b", 2)
        assert isinstance(queue.state, Pending)
        assert [i.key for i in queue.pending] == ["b"]
        gate.set()
        await flushing

    @pytest.mark.asyncio
    async def test_discard_drops_everything(self, remote, scheduler) -> None:
        queue = SyncQueue(remote, scheduler=scheduler)
        queue.enqueue_set("a", 1)
        queue.enqueue_remove("b")
        assert queue.discard() == 2
        assert queue.state == Idle()
        scheduler.advance(10)
        await queue.wait_idle()
        assert remote.writes() == []


class TestAsyncioScheduler:
    @pytest.mark.asyncio
    async def test_real_timer_flushes(self, remote) -> None:
        queue = SyncQueue(remote, scheduler=AsyncioScheduler(), delay=0.01)
        queue.enqueue_set("todos", [1])
        await asyncio.sleep(0.05)
        await queue.wait_idle()
        assert remote.writes() == [("set", "todos", [1])]
