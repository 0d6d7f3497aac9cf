"""Single-consumer delivery context.

All mutation of lifecycle state happens on one thread owned by a
``DeliveryQueue``: decoded events, interactive requests and deferred
actions (the auto-idle timer) are queued here and run strictly one at a
time, in submission order for immediate work and in due-time order for
deferred work.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from collections import deque
from collections.abc import Callable
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class ScheduledCall:
    """Handle for a deferred action.  ``cancel()`` is synchronous and idempotent."""

    __slots__ = ("due", "_fn", "_cancelled")

    def __init__(self, due: float, fn: Callable[[], Any]) -> None:
        self.due = due
        self._fn = fn
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def run(self) -> None:
        if not self._cancelled:
            self._cancelled = True
            self._fn()


class Scheduler(Protocol):
    """Anything that can defer a zero-argument callable."""

    def call_later(self, delay: float, fn: Callable[[], Any]) -> ScheduledCall: ...


class DeliveryQueue:
    """A background thread that runs submitted work one item at a time.

    Parameters
    ----------
    name:
        Thread name, for debugging.
    clock:
        Monotonic time source.  Injected for tests.
    """

    def __init__(
        self,
        name: str = "notchbuild-delivery",
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._name = name
        self._clock = clock
        self._cond = threading.Condition()
        self._ready: deque[Callable[[], Any]] = deque()
        self._timers: list[tuple[float, int, ScheduledCall]] = []
        self._seq = itertools.count()
        self._thread: threading.Thread | None = None
        self._running = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        with self._cond:
            if self._running:
                return
            self._running = True
        self._thread = threading.Thread(
            target=self._run, name=self._name, daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float | None = 2.0) -> None:
        """Stop the consumer thread.  Pending work is discarded."""
        with self._cond:
            self._running = False
            self._ready.clear()
            self._timers.clear()
            self._cond.notify_all()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def __enter__(self) -> DeliveryQueue:
        self.start()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit(self, fn: Callable[..., Any], *args: Any) -> None:
        """Queue ``fn(*args)`` to run on the delivery thread."""
        with self._cond:
            self._ready.append(lambda: fn(*args))
            self._cond.notify()

    def call_later(self, delay: float, fn: Callable[[], Any]) -> ScheduledCall:
        """Run ``fn`` on the delivery thread after ``delay`` seconds."""
        call = ScheduledCall(self._clock() + max(delay, 0.0), fn)
        with self._cond:
            heapq.heappush(self._timers, (call.due, next(self._seq), call))
            self._cond.notify()
        return call

    # ------------------------------------------------------------------
    # Consumer loop
    # ------------------------------------------------------------------

    def _next_item(self) -> Callable[[], Any] | None:
        """Block until work is due; return ``None`` once stopped."""
        with self._cond:
            while self._running:
                if self._ready:
                    return self._ready.popleft()
                while self._timers and self._timers[0][2].cancelled:
                    heapq.heappop(self._timers)
                if self._timers:
                    wait = self._timers[0][0] - self._clock()
                    if wait <= 0:
                        return heapq.heappop(self._timers)[2].run
                    self._cond.wait(wait)
                else:
                    self._cond.wait()
            return None

    def _run(self) -> None:
        while True:
            item = self._next_item()
            if item is None:
                return
            try:
                item()
            except Exception:
                logger.exception("DeliveryQueue: delivered callback raised.")
