"""
Tests for the simulation-time event queue.
"""

from factory_sim import EventQueue


def test_events_run_in_time_order():
    queue = EventQueue()
    ran = []
    queue.schedule(2.0, lambda: ran.append("b"))
    queue.schedule(1.0, lambda: ran.append("a"))
    queue.schedule(5.0, lambda: ran.append("c"))

    assert queue.run_due(0.5) == 0
    assert queue.run_due(2.0) == 2
    assert ran == ["a", "b"]
    assert len(queue) == 1


def test_delay_is_relative_to_last_run():
    queue = EventQueue()
    queue.run_due(10.0)
    ran = []
    queue.schedule(1.0, lambda: ran.append(queue.now))
    assert queue.run_due(10.5) == 0
    assert queue.run_due(11.0) == 1
    assert ran == [11.0]


def test_keyed_schedule_replaces_pending():
    queue = EventQueue()
    ran = []
    queue.schedule(1.0, lambda: ran.append("first"), key="agv")
    queue.schedule(3.0, lambda: ran.append("second"), key="agv")
    assert len(queue) == 1

    queue.run_due(2.0)
    assert ran == []
    queue.run_due(3.0)
    assert ran == ["second"]
    assert not queue.pending("agv")


def test_cancel():
    queue = EventQueue()
    ran = []
    queue.schedule(1.0, lambda: ran.append("x"), key="k")
    assert queue.pending("k")
    assert queue.cancel("k")
    assert not queue.cancel("k")
    queue.run_due(5.0)
    assert ran == []


def test_zero_delay_from_callback_runs_same_call():
    queue = EventQueue()
    ran = []

    def first():
        ran.append("first")
        queue.schedule(0.0, lambda: ran.append("chained"))

    queue.schedule(1.0, first)
    assert queue.run_due(1.0) == 2
    assert ran == ["first", "chained"]


def test_clear_drops_everything():
    queue = EventQueue()
    ran = []
    queue.schedule(1.0, lambda: ran.append("x"))
    queue.schedule(1.0, lambda: ran.append("y"), key="k")
    queue.clear()
    assert len(queue) == 0
    assert not queue.pending("k")
    assert queue.run_due(10.0) == 0
    assert ran == []
