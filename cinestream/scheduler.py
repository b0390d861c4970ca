"""Deferred callbacks driven by the frame clock.

The tracking loop is single threaded: callbacks only run when the loop calls
:meth:`FrameClockScheduler.run_due`, so scheduling and cancelling never race
with a firing callback.
"""
from __future__ import annotations

from typing import Callable, List, Optional

from loguru import logger


class ScheduledTask:
    """Handle for a one-shot callback."""

    def __init__(self, due_ms: float, callback: Callable[[], None], label: str = "task") -> None:
        self.due_ms = float(due_ms)
        self.label = label
        self._callback: Optional[Callable[[], None]] = callback

    @property
    def pending(self) -> bool:
        return self._callback is not None

    def cancel(self) -> bool:
        """Drop the callback. Returns ``True`` if it was still pending."""

        was_pending = self._callback is not None
        self._callback = None
        return was_pending

    def _fire(self) -> None:
        callback, self._callback = self._callback, None
        if callback is not None:
            callback()

    def __repr__(self) -> str:
        state = "pending" if self.pending else "done"
        return f"ScheduledTask({self.label!r}, due_ms={self.due_ms:.1f}, {state})"


class FrameClockScheduler:
    def __init__(self) -> None:
        self._tasks: List[ScheduledTask] = []
        self.now_ms: float = 0.0

    def call_at(self, due_ms: float, callback: Callable[[], None], label: str = "task") -> ScheduledTask:
        task = ScheduledTask(due_ms, callback, label)
        self._tasks.append(task)
        return task

    def call_later(self, delay_ms: float, callback: Callable[[], None], label: str = "task") -> ScheduledTask:
        return self.call_at(self.now_ms + delay_ms, callback, label)

    @property
    def pending_count(self) -> int:
        return sum(1 for t in self._tasks if t.pending)

    def run_due(self, now_ms: float) -> int:
        """Advance the clock to *now_ms* and fire everything that is due."""

        self.now_ms = float(now_ms)
        due = sorted((t for t in self._tasks if t.pending and t.due_ms <= self.now_ms), key=lambda t: t.due_ms)
        self._tasks = [t for t in self._tasks if t.pending and t.due_ms > self.now_ms]
        for task in due:
            logger.debug("Firing {} at {:.1f} ms", task.label, self.now_ms)
            task._fire()
        return len(due)

    def cancel_all(self) -> int:
        cancelled = sum(1 for t in self._tasks if t.cancel())
        self._tasks.clear()
        return cancelled
