"""Deterministic tick scheduler for paced, step-by-step routines.

A routine is a generator that yields the number of ticks to wait before
it resumes. Nothing here touches the wall clock: tests (and the HTTP
layer) advance time explicitly.
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from dataclasses import dataclass

from config import MAX_DRAIN_TICKS

logger = logging.getLogger(__name__)

Routine = Generator[int, None, None]


@dataclass(eq=False)
class _Task:
    routine: Routine
    wake_at: int
    seq: int


class TickScheduler:
    """Runs generator routines that pause for a number of ticks."""

    def __init__(self) -> None:
        self.now = 0
        self._tasks: list[_Task] = []
        self._seq = 0

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(self, routine: Routine, delay: int = 0) -> None:
        """Register a routine to start after ``delay`` ticks."""
        self._seq += 1
        self._tasks.append(_Task(routine=routine, wake_at=self.now + max(0, delay), seq=self._seq))

    def advance(self, ticks: int = 1) -> None:
        """Move time forward, resuming every routine whose wait has elapsed."""
        for _ in range(ticks):
            self._run_due()
            self.now += 1
        self._run_due()

    def drain(self, max_ticks: int = MAX_DRAIN_TICKS) -> int:
        """Advance until no routine is left. Returns the ticks consumed.

        Raises:
            RuntimeError: If routines are still pending after ``max_ticks``.
        """
        start = self.now
        self._run_due()
        while self._tasks:
            if self.now - start >= max_ticks:
                raise RuntimeError(f"Scheduler did not settle within {max_ticks} ticks")
            self.now = min(t.wake_at for t in self._tasks)
            self._run_due()
        return self.now - start

    def cancel_all(self) -> None:
        """Close and forget every pending routine."""
        tasks, self._tasks = self._tasks, []
        if tasks:
            logger.debug("Cancelling %d pending routine(s)", len(tasks))
        for task in tasks:
            task.routine.close()

    def _run_due(self) -> None:
        # A routine may spawn others while it runs; loop until nothing is due
        while True:
            due = sorted(
                (t for t in self._tasks if t.wake_at <= self.now),
                key=lambda t: (t.wake_at, t.seq),
            )
            if not due:
                return
            for task in due:
                if task not in self._tasks:
                    continue
                self._tasks.remove(task)
                try:
                    delay = next(task.routine)
                except StopIteration:
                    continue
                task.wake_at = self.now + max(0, int(delay or 0))
                self._tasks.append(task)
