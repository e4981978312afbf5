"""Tests for RoomQueue — coalescing join/leave intents."""

import pytest

from skyrocket import Intent, ManualScheduler, RoomQueue


class _Transport:
    def __init__(self, *, fail=False):
        self.calls = []
        self.fail = fail

    def __call__(self, intent, rooms):
        if self.fail:
            raise ConnectionError("transport down")
        self.calls.append((intent, rooms))


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def transport():
    return _Transport()


@pytest.fixture
def queue(transport, scheduler):
    return RoomQueue(transport, scheduler)


class TestEnqueue:
    def test_burst_schedules_single_flush(self, queue, scheduler, transport):
        queue.enqueue("join", "a")
        queue.enqueue("join", "b")
        queue.enqueue("join", "c")
        assert scheduler.pending == 1
        assert scheduler.run_pending() == 1
        assert transport.calls == [("join", ["a", "b", "c"])]

    def test_no_transport_call_before_tick(self, queue, transport):
        queue.enqueue(Intent.JOIN, "a")
        assert transport.calls == []
        assert queue.is_scheduled

    def test_last_intent_wins(self, queue):
        queue.enqueue("join", "a")
        queue.enqueue("leave", "a")
        assert queue.pending("join") == ()
        assert queue.pending("leave") == ("a",)

    def test_room_never_in_both_queues(self, queue):
        for intent in ["join", "leave", "join", "join", "leave"]:
            queue.enqueue(intent, "a")
            assert not set(queue.pending("join")) & set(queue.pending("leave"))

    def test_reenqueue_moves_to_end(self, queue):
        queue.enqueue("join", "a")
        queue.enqueue("join", "b")
        queue.enqueue("join", "a")
        assert queue.pending("join") == ("b", "a")

    def test_invalid_intent(self, queue):
        with pytest.raises(ValueError):
            queue.enqueue("wave", "a")


class TestFlush:
    def test_join_then_leave_same_tick_is_silent(self, queue, scheduler, transport):
        queue.enqueue("join", "a")
        queue.enqueue("leave", "a")
        scheduler.run_pending()
        assert transport.calls == []
        assert queue.joined == frozenset()

    def test_leave_then_join_same_tick_on_joined_room(self, queue, scheduler, transport):
        queue.enqueue("join", "a")
        scheduler.run_pending()
        transport.calls.clear()

        queue.enqueue("leave", "a")
        queue.enqueue("join", "a")
        scheduler.run_pending()
        assert transport.calls == []
        assert queue.joined == {"a"}

    def test_join_for_joined_room_is_redundant(self, queue, scheduler, transport):
        queue.enqueue("join", "a")
        scheduler.run_pending()
        queue.enqueue("join", "a")
        scheduler.run_pending()
        assert transport.calls == [("join", ["a"])]
        assert queue.joined == {"a"}
        assert queue.pending("join") == ()

    def test_leaves_flush_before_joins(self, queue, scheduler, transport):
        queue.enqueue("join", "a")
        scheduler.run_pending()
        transport.calls.clear()

        queue.enqueue("join", "b")
        queue.enqueue("leave", "a")
        scheduler.run_pending()
        assert transport.calls == [("leave", ["a"]), ("join", ["b"])]
        assert queue.joined == {"b"}

    def test_only_inconsistent_rooms_flushed(self, queue, scheduler, transport):
        queue.enqueue("join", "a")
        scheduler.run_pending()
        queue.enqueue("join", "a")
        queue.enqueue("join", "b")
        scheduler.run_pending()
        assert transport.calls[-1] == ("join", ["b"])

    def test_direct_flush_cancels_scheduled(self, queue, scheduler, transport):
        queue.enqueue("join", "a")
        queue.flush()
        assert transport.calls == [("join", ["a"])]
        assert not queue.is_scheduled
        assert scheduler.run_pending() == 0

    def test_flush_queue_returns_flushed_rooms(self, queue):
        queue.enqueue("join", "a")
        assert queue.flush_queue("join") == ["a"]
        assert queue.flush_queue("join") == []

    def test_transport_failure_keeps_queue(self, scheduler):
        transport = _Transport(fail=True)
        queue = RoomQueue(transport, scheduler)
        queue.enqueue("join", "a")
        with pytest.raises(ConnectionError):
            queue.flush()
        assert queue.pending("join") == ("a",)
        assert queue.joined == frozenset()

        transport.fail = False
        queue.flush()
        assert transport.calls == [("join", ["a"])]

    def test_cancel_keeps_pending(self, queue, scheduler, transport):
        queue.enqueue("join", "a")
        queue.cancel()
        assert scheduler.run_pending() == 0
        assert queue.pending("join") == ("a",)
        assert transport.calls == []

    def test_room_enqueued_during_transport_call_survives(self, scheduler):
        calls = []

        def revolve(intent, rooms):
            calls.append((intent, rooms))
            if rooms == ["a"]:
                queue.enqueue("join", "b")

        queue = RoomQueue(revolve, scheduler)
        queue.enqueue("join", "a")
        scheduler.run_pending()
        assert queue.pending("join") == ("b",)
        scheduler.run_pending()
        assert calls == [("join", ["a"]), ("join", ["b"])]
        assert queue.joined == {"a", "b"}

    def test_redundant_dropped_with_flushable(self, queue, scheduler, transport):
        queue.enqueue("join", "a")
        scheduler.run_pending()
        queue.enqueue("join", "a")
        queue.enqueue("join", "b")
        scheduler.run_pending()
        assert queue.pending("join") == ()
