"""Cancellable timers injected into the game controller.

The controller never sleeps. It asks a Scheduler to call it back later:

    handle = scheduler.call_later(2.0, controller.reset_choices)
    handle.cancel()

ManualScheduler runs on a virtual clock that only moves when ``advance()``
is called, which keeps tests and the terminal game deterministic.
ThreadScheduler uses ``threading.Timer`` for the web server.
"""

from abc import ABC, abstractmethod
import heapq
import itertools
import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class TimerHandle:
    """A pending one-shot or repeating callback."""

    def __init__(self, callback: Callable[[], None], interval: Optional[float] = None):
        self.callback = callback
        self.interval = interval
        self._cancelled = False

    @property
    def active(self) -> bool:
        return not self._cancelled

    @property
    def repeating(self) -> bool:
        return self.interval is not None

    def cancel(self) -> None:
        """Stop the timer. Safe to call more than once."""
        self._cancelled = True


class Scheduler(ABC):
    """Timer capability used by the controller."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        ...

    @abstractmethod
    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        ...

    def shutdown(self) -> None:
        """Release any resources held by pending timers."""
        pass


# ---------------------------------------------------------------------------
# Virtual clock
# ---------------------------------------------------------------------------

class ManualScheduler(Scheduler):
    """Runs timers against a virtual clock advanced by hand.

    Callbacks due at the same instant fire in the order their timers were
    created; a repeating timer keeps its original slot every time it fires.
    """

    def __init__(self):
        self.now = 0.0
        self._queue: list = []
        self._order = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(callback)
        self._push(self.now + delay, next(self._order), handle)
        return handle

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        if interval <= 0:
            raise ValueError("interval must be positive")
        handle = TimerHandle(callback, interval=interval)
        self._push(self.now + interval, next(self._order), handle)
        return handle

    def _push(self, due: float, order: int, handle: TimerHandle) -> None:
        heapq.heappush(self._queue, (due, order, id(handle), handle))

    @property
    def pending(self) -> int:
        """Number of timers that are still armed."""
        return sum(1 for *_, h in self._queue if h.active)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing every timer that falls due."""
        target = self.now + seconds
        while self._queue and self._queue[0][0] <= target:
            due, order, _, handle = heapq.heappop(self._queue)
            if not handle.active:
                continue
            self.now = due
            if handle.repeating:
                self._push(due + handle.interval, order, handle)
            else:
                handle.cancel()
            handle.callback()
        self.now = target


# ---------------------------------------------------------------------------
# Wall clock
# ---------------------------------------------------------------------------

class _ThreadHandle(TimerHandle):
    """Handle that drops out of its scheduler when cancelled."""

    def __init__(self, callback, interval=None, release=None):
        super().__init__(callback, interval)
        self.timer: Optional[threading.Timer] = None
        self._release = release

    def cancel(self) -> None:
        super().cancel()
        if self.timer is not None:
            self.timer.cancel()
        if self._release is not None:
            self._release(self)


class ThreadScheduler(Scheduler):
    """Real-time timers backed by ``threading.Timer``.

    Every callback runs while holding `lock`, the same lock the web adapter
    holds around request handling, so the controller is never entered from
    two threads at once.
    """

    def __init__(self, lock: Optional[threading.RLock] = None):
        self.lock = lock if lock is not None else threading.RLock()
        self._handles: set = set()

    @property
    def pending(self) -> int:
        """Number of timers that are still armed."""
        return len(self._handles)

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = _ThreadHandle(callback, release=self._handles.discard)
        self._arm(handle, delay)
        return handle

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        if interval <= 0:
            raise ValueError("interval must be positive")
        handle = _ThreadHandle(callback, interval=interval, release=self._handles.discard)
        self._arm(handle, interval)
        return handle

    def _arm(self, handle: _ThreadHandle, delay: float) -> None:
        timer = threading.Timer(delay, self._fire, args=(handle,))
        timer.daemon = True
        handle.timer = timer
        self._handles.add(handle)
        timer.start()

    def _fire(self, handle: _ThreadHandle) -> None:
        with self.lock:
            if not handle.active:
                return
            if handle.repeating:
                self._arm(handle, handle.interval)
            else:
                handle.cancel()
            try:
                handle.callback()
            except Exception:
                logger.exception("Timer callback %r failed", handle.callback)

    def shutdown(self) -> None:
        with self.lock:
            for handle in list(self._handles):
                handle.cancel()
            self._handles.clear()
