"""Tests for the deferred-flush schedulers."""

import asyncio
import threading

from skyrocket import AsyncioScheduler, ManualScheduler, RoomQueue, TimerScheduler


class TestManualScheduler:
    def test_runs_only_live_callbacks(self):
        scheduler = ManualScheduler()
        log = []
        first = scheduler(lambda: log.append(1))
        scheduler(lambda: log.append(2))
        first.cancel()
        assert scheduler.pending == 1
        assert scheduler.run_pending() == 1
        assert log == [2]
        assert scheduler.run_pending() == 0

    def test_callbacks_scheduled_during_run_wait(self):
        scheduler = ManualScheduler()
        log = []
        scheduler(lambda: scheduler(lambda: log.append("later")))
        scheduler.run_pending()
        assert log == []
        scheduler.run_pending()
        assert log == ["later"]

    def test_cancelled_handles_pruned(self):
        scheduler = ManualScheduler()
        for _ in range(100):
            scheduler(lambda: None).cancel()
        scheduler(lambda: None)
        assert len(scheduler._handles) == 1
        assert scheduler.pending == 1


class TestTimerScheduler:
    def test_flushes_on_timer_thread(self):
        done = threading.Event()
        calls = []

        def revolve(intent, rooms):
            calls.append((intent, rooms))
            done.set()

        queue = RoomQueue(revolve, TimerScheduler(0.01))
        queue.enqueue("join", "a")
        queue.enqueue("join", "b")
        done.wait(timeout=1)
        assert calls == [("join", ["a", "b"])]

    def test_cancel(self):
        log = []
        timer = TimerScheduler(0.05)(lambda: log.append(1))
        timer.cancel()
        timer.join(timeout=1)
        assert log == []


class TestAsyncioScheduler:
    def test_coalesces_on_next_iteration(self):
        calls = []

        async def main():
            queue = RoomQueue(lambda intent, rooms: calls.append((intent, rooms)), AsyncioScheduler())
            queue.enqueue("join", "a")
            queue.enqueue("leave", "a")
            queue.enqueue("join", "b")
            assert calls == []
            await asyncio.sleep(0)
            await asyncio.sleep(0)

        asyncio.run(main())
        assert calls == [("join", ["b"])]

    def test_explicit_loop_with_delay(self):
        loop = asyncio.new_event_loop()
        try:
            log = []
            AsyncioScheduler(loop, delay=0.01)(lambda: log.append(1))
            loop.run_until_complete(asyncio.sleep(0.05))
            assert log == [1]
        finally:
            loop.close()
