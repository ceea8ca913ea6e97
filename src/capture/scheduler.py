"""Serial timer scheduler.

Every acquisition poll and capture tick runs as a callback on one
:class:`SerialScheduler`.  Callbacks run one at a time on the thread
that calls :meth:`SerialScheduler.run`, in due-time order, so no two
callbacks ever overlap and no component needs a lock.

The clock and sleep functions are injectable.  Production code uses
``time.monotonic`` / ``time.sleep``; tests pass a simulated clock whose
``sleep`` simply advances time, which makes timeout behaviour fully
deterministic.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class TimerHandle:
    """A scheduled one-shot or repeating callback.

    Returned by :meth:`SerialScheduler.call_later` and
    :meth:`SerialScheduler.call_every`.  :meth:`cancel` is idempotent.
    """

    def __init__(
        self,
        callback: Callable[[], None],
        interval: float,
        repeats: bool,
    ) -> None:
        self.callback = callback
        self.interval = interval
        self.repeats = repeats
        self.due: float = 0.0
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Stop the timer.  It will never fire again."""
        self._cancelled = True

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else f"due={self.due:.3f}"
        kind = "every" if self.repeats else "once"
        return f"<TimerHandle {kind} {self.interval:.3f}s {state}>"


class SerialScheduler:
    """Runs timer callbacks serially on a single execution context.

    Parameters
    ----------
    clock : callable
        Returns the current time in seconds.  Default ``time.monotonic``.
    sleep : callable
        Blocks for the given number of seconds.  Default ``time.sleep``.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._clock = clock
        self._sleep = sleep
        self._queue: list[tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()
        self._stopped = False

    def now(self) -> float:
        """Current scheduler time in seconds."""
        return self._clock()

    # -- Scheduling ----------------------------------------------------

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` once, ``delay`` seconds from now."""
        handle = TimerHandle(callback, max(0.0, delay), repeats=False)
        self._push(handle, self.now() + handle.interval)
        return handle

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` every ``interval`` seconds, first after one interval.

        Raises
        ------
        ValueError
            If ``interval`` is not positive.
        """
        if interval <= 0:
            raise ValueError(f"Repeat interval must be positive, got {interval}")
        handle = TimerHandle(callback, interval, repeats=True)
        self._push(handle, self.now() + interval)
        return handle

    def _push(self, handle: TimerHandle, due: float) -> None:
        handle.due = due
        heapq.heappush(self._queue, (due, next(self._seq), handle))

    @property
    def pending(self) -> int:
        """Number of live (not cancelled) timers."""
        return sum(1 for _, _, h in self._queue if not h.cancelled)

    def _next_due(self) -> Optional[float]:
        while self._queue and self._queue[0][2].cancelled:
            heapq.heappop(self._queue)
        return self._queue[0][0] if self._queue else None

    # -- Dispatch ------------------------------------------------------

    def run_pending(self) -> int:
        """Run every timer that is due now.

        A callback that raises is logged and its timer stays armed; the
        exception never reaches the caller of :meth:`run`.

        Returns
        -------
        int
            Number of callbacks invoked.
        """
        now = self.now()
        fired = 0
        while True:
            due = self._next_due()
            if due is None or due > now:
                break
            _, _, handle = heapq.heappop(self._queue)
            fired += 1
            try:
                handle.callback()
            except Exception:
                logger.exception("Timer callback %r raised", handle)
            if handle.repeats and not handle.cancelled:
                # Skip periods missed while the callback (or the host) was busy.
                next_due = handle.due + handle.interval
                current = self.now()
                while next_due <= current:
                    next_due += handle.interval
                self._push(handle, next_due)
        return fired

    def run(
        self,
        timeout: Optional[float] = None,
        until: Optional[Callable[[], bool]] = None,
    ) -> None:
        """Dispatch timers until stopped, idle, timed out or ``until()`` is true.

        Parameters
        ----------
        timeout : float, optional
            Maximum seconds to run.  The clock is advanced to the
            deadline when no timer is due before it.
        until : callable, optional
            Checked after every dispatch round; returning ``True`` ends
            the run.
        """
        self._stopped = False
        deadline = None if timeout is None else self.now() + timeout

        while not self._stopped:
            if until is not None and until():
                return
            due = self._next_due()
            if due is None:
                logger.debug("Scheduler idle, no timers left")
                return
            if deadline is not None and due > deadline:
                remaining = deadline - self.now()
                if remaining > 0:
                    self._sleep(remaining)
                return
            delay = due - self.now()
            if delay > 0:
                self._sleep(delay)
            self.run_pending()

    def stop(self) -> None:
        """Make the current :meth:`run` return after the running callback."""
        self._stopped = True

    def cancel_all(self) -> None:
        """Cancel every scheduled timer."""
        for _, _, handle in self._queue:
            handle.cancel()
        self._queue.clear()
