"""Tests for the tick scheduler."""

import pytest

from engine.scheduler import TickScheduler


def _recorder(events: list, name: str, delays: list[int]):
    """Routine that records each resumption and waits the given delays."""
    for delay in delays:
        events.append(name)
        yield delay
    events.append(f"{name}-done")


class TestTickScheduler:
    """Tests for TickScheduler."""

    def test_waits_for_delay(self):
        events = []
        sched = TickScheduler()
        sched.spawn(_recorder(events, "a", [3]))
        sched.advance(0)
        assert events == ["a"]
        sched.advance(2)
        assert events == ["a"]
        sched.advance(1)
        assert events == ["a", "a-done"]
        assert sched.pending == 0

    def test_drain_runs_to_quiescence(self):
        events = []
        sched = TickScheduler()
        sched.spawn(_recorder(events, "a", [5, 5]))
        ticks = sched.drain()
        assert ticks == 10
        assert events == ["a", "a", "a-done"]

    def test_interleaving_is_deterministic(self):
        events = []
        sched = TickScheduler()
        sched.spawn(_recorder(events, "slow", [4]))
        sched.spawn(_recorder(events, "fast", [1]))
        sched.drain()
        assert events == ["slow", "fast", "fast-done", "slow-done"]

    def test_spawn_from_inside_a_routine(self):
        events = []
        sched = TickScheduler()

        def parent():
            yield 2
            sched.spawn(_recorder(events, "child", [1]))

        sched.spawn(parent())
        sched.drain()
        assert events == ["child", "child-done"]

    def test_cancel_all_closes_routines(self):
        events = []
        sched = TickScheduler()

        def routine():
            try:
                yield 5
                events.append("resumed")
            finally:
                events.append("closed")

        sched.spawn(routine())
        sched.advance(1)
        sched.cancel_all()
        sched.drain()
        assert events == ["closed"]
        assert sched.pending == 0

    def test_drain_gives_up(self):
        def forever():
            while True:
                yield 1

        sched = TickScheduler()
        sched.spawn(forever())
        with pytest.raises(RuntimeError):
            sched.drain(max_ticks=50)
