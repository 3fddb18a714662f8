"""Cooperative timers for the Pitch Coach state machines.

Nothing here starts a thread: timers only fire from run_pending(), which the
owner calls from its main loop (RealtimeScheduler) or from a test
(ManualScheduler.advance).
"""

import itertools
import time
from abc import abstractmethod
from typing import Callable, List, Optional

from ..logger import get_logger
from .interfaces import IScheduler, ITimerHandle

logger = get_logger(__name__)


class TimerHandle(ITimerHandle):
    """Cancellation token for a scheduled callback."""

    def __init__(
        self,
        callback: Callable[[], None],
        due: Optional[float] = None,
        recurring: bool = False,
        seq: int = 0,
    ):
        self._callback = callback
        self.due = due
        self.recurring = recurring
        self.seq = seq
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        self._active = False

    def fire(self) -> None:
        if not self._active:
            return
        if not self.recurring:
            self._active = False
        self._callback()

    def __repr__(self):
        kind = "recurring" if self.recurring else f"due={self.due:.3f}"
        return f"TimerHandle({kind}, active={self._active})"


class BaseScheduler(IScheduler):
    """Keeps one-shot and recurring timers and fires them from run_pending()."""

    def __init__(self):
        self._timers: List[TimerHandle] = []
        self._recurring: List[TimerHandle] = []
        self._seq = itertools.count()

    @abstractmethod
    def now(self) -> float:
        """Current time in seconds on this scheduler's clock."""
        pass

    def schedule(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        if delay < 0:
            raise ValueError("delay must not be negative")
        handle = TimerHandle(callback, due=self.now() + delay, seq=next(self._seq))
        self._timers.append(handle)
        return handle

    def schedule_recurring(self, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(callback, recurring=True, seq=next(self._seq))
        self._recurring.append(handle)
        return handle

    def cancel(self, handle: Optional[ITimerHandle]) -> None:
        if handle is not None:
            handle.cancel()

    def cancel_all(self) -> None:
        for handle in self._timers + self._recurring:
            handle.cancel()
        self._prune()

    @property
    def pending_count(self) -> int:
        """Number of live one-shot timers."""
        return sum(1 for h in self._timers if h.active)

    @property
    def recurring_count(self) -> int:
        return sum(1 for h in self._recurring if h.active)

    def next_due(self) -> Optional[float]:
        due = [h.due for h in self._timers if h.active]
        return min(due) if due else None

    def run_pending(self) -> int:
        """Run every recurring task once, then every one-shot timer that is due.

        Returns:
            Number of one-shot timers fired
        """
        for handle in list(self._recurring):
            handle.fire()

        fired = 0
        while True:
            now = self.now()
            due = [h for h in self._timers if h.active and h.due <= now]
            if not due:
                break
            handle = min(due, key=lambda h: (h.due, h.seq))
            handle.fire()
            fired += 1

        self._prune()
        return fired

    def _prune(self) -> None:
        self._timers = [h for h in self._timers if h.active]
        self._recurring = [h for h in self._recurring if h.active]


class ManualScheduler(BaseScheduler):
    """Scheduler on a logical clock that only moves when advance() is called."""

    def __init__(self, start: float = 0.0):
        super().__init__()
        self._clock = start

    def now(self) -> float:
        return self._clock

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing timers in deadline order on the way.

        Returns:
            Number of one-shot timers fired
        """
        if seconds < 0:
            raise ValueError("Cannot move the clock backwards")
        target = self._clock + seconds
        fired = 0
        while True:
            due = self.next_due()
            if due is None or due > target:
                break
            self._clock = max(self._clock, due)
            fired += self.run_pending()
        self._clock = target
        fired += self.run_pending()
        return fired


class RealtimeScheduler(BaseScheduler):
    """Wall-clock scheduler pumped by the application's main loop."""

    def now(self) -> float:
        return time.monotonic()

    def run_until(self, predicate: Callable[[], bool], timeout: float, interval: float = 0.01) -> bool:
        """Pump the scheduler until predicate() is true or timeout expires."""
        deadline = self.now() + timeout
        while self.now() < deadline:
            self.run_pending()
            if predicate():
                return True
            time.sleep(interval)
        logger.warning(f"Timed out after {timeout:.1f}s waiting for scheduler condition")
        return False
