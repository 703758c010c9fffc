"""
Session Timer Engine

Countdown and polling primitives for payment sessions. Every timer is a
cancellable handle; once cancelled, no further callback of that handle runs.

Usage:
    engine = TimerEngine()
    group = TimerGroup(engine)
    group.countdown(900, on_tick=..., on_expire=...)
    group.interval(5.0, poll_status, name="poll")
    ...
    group.cancel_all()
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class Cancellable(Protocol):
    def cancel(self) -> Any: ...


class Scheduler(Protocol):
    """Source of time and delayed calls"""

    def call_later(self, delay: float, callback: Callable[[], None]) -> Cancellable: ...

    def time(self) -> float: ...


class LoopScheduler:
    """Scheduler backed by the running asyncio event loop"""

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)

    def time(self) -> float:
        return asyncio.get_running_loop().time()


class TimerHandle:
    """
    A scheduled one-shot or repeating callback.

    The callback may be a plain function or a coroutine function. Coroutine
    callbacks run as a task owned by the handle; a repeating tick is skipped
    while the previous tick's task is still running.
    """

    def __init__(
        self,
        engine: "TimerEngine",
        delay: float,
        callback: Callable[[], Any],
        repeat: bool,
        name: str,
    ):
        self.name = name
        self.delay = delay
        self.repeat = repeat
        self.fired = 0
        self._engine = engine
        self._callback = callback
        self._scheduled: Optional[Cancellable] = None
        self._task: Optional[asyncio.Task] = None
        self._cancelled = False
        self._finished = False

    @property
    def active(self) -> bool:
        if self._cancelled:
            return False
        if self._finished:
            return self._task is not None and not self._task.done()
        return True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def _arm(self) -> None:
        self._scheduled = self._engine.scheduler.call_later(self.delay, self._fire)

    def _fire(self) -> None:
        self._scheduled = None
        if not self.active:
            return

        if self.repeat:
            self._arm()
        else:
            self._finished = True
            self._engine._discard(self)

        if self._task is not None and not self._task.done():
            logger.debug(f"Timer {self.name}: previous tick still running, skipped")
            return

        self.fired += 1
        result = self._callback()
        if inspect.isawaitable(result):
            self._task = asyncio.ensure_future(result)
            self._engine._track(self._task)

    def cancel(self) -> None:
        """Stop the timer and any in-flight callback. Idempotent."""
        if self._cancelled:
            return
        self._cancelled = True

        if self._scheduled is not None:
            self._scheduled.cancel()
            self._scheduled = None

        # A callback that cancels its own timer keeps running to completion
        if self._task is not None and not self._task.done() and self._task is not _current_task():
            self._task.cancel()

        self._engine._discard(self)
        logger.debug(f"Timer {self.name} cancelled")

    def __repr__(self) -> str:
        return f"<TimerHandle {self.name} active={self.active} fired={self.fired}>"


class Countdown:
    """Counts down whole seconds and reports expiry exactly once"""

    def __init__(
        self,
        engine: "TimerEngine",
        total_seconds: int,
        on_expire: Callable[[], Any],
        on_tick: Optional[Callable[[int], Any]] = None,
        name: str = "countdown",
    ):
        self.total = total_seconds
        self.remaining = total_seconds
        self.name = name
        self._on_expire = on_expire
        self._on_tick = on_tick
        self._expired = False
        self._handle = engine.interval(1.0, self._tick, name=name)

    @property
    def active(self) -> bool:
        return self._handle.active

    @property
    def expired(self) -> bool:
        return self._expired

    def _tick(self) -> None:
        self.remaining = max(self.remaining - 1, 0)
        if self._on_tick:
            self._on_tick(self.remaining)

        if self.remaining == 0 and not self._expired:
            self._expired = True
            self._handle.cancel()
            self._on_expire()

    def cancel(self) -> None:
        self._handle.cancel()

    def __repr__(self) -> str:
        return f"<Countdown {self.name} remaining={self.remaining}/{self.total}>"


class TimerEngine:
    """Creates and tracks timers for all payment sessions"""

    def __init__(self, scheduler: Optional[Scheduler] = None):
        self.scheduler = scheduler or LoopScheduler()
        self._handles: set[TimerHandle] = set()
        self._tasks: set[asyncio.Task] = set()

    def interval(self, seconds: float, callback: Callable[[], Any], name: str = "interval") -> TimerHandle:
        """Run callback every `seconds`, first run after one interval"""
        if seconds <= 0:
            raise ValueError("Interval must be positive")
        handle = TimerHandle(self, seconds, callback, repeat=True, name=name)
        self._handles.add(handle)
        handle._arm()
        return handle

    def timeout(self, seconds: float, callback: Callable[[], Any], name: str = "timeout") -> TimerHandle:
        """Run callback once after `seconds`"""
        if seconds < 0:
            raise ValueError("Delay must not be negative")
        handle = TimerHandle(self, seconds, callback, repeat=False, name=name)
        self._handles.add(handle)
        handle._arm()
        return handle

    def countdown(
        self,
        total_seconds: int,
        on_expire: Callable[[], Any],
        on_tick: Optional[Callable[[int], Any]] = None,
        name: str = "countdown",
    ) -> Countdown:
        """Start a 1-second countdown from `total_seconds`"""
        if total_seconds <= 0:
            raise ValueError("Countdown must start above zero")
        return Countdown(self, total_seconds, on_expire, on_tick=on_tick, name=name)

    def active_count(self) -> int:
        """Number of timers still scheduled"""
        return len(self._handles)

    def cancel_all(self) -> None:
        for handle in list(self._handles):
            handle.cancel()

    async def drain(self) -> None:
        """Wait for in-flight callback tasks to finish"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _discard(self, handle: TimerHandle) -> None:
        self._handles.discard(handle)

    def _track(self, task: asyncio.Task) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Timer callback failed: {exc!r}", exc_info=exc)


class TimerGroup:
    """The set of timers owned by one payment driver"""

    def __init__(self, engine: TimerEngine):
        self.engine = engine
        self._owned: list = []

    def interval(self, seconds: float, callback: Callable[[], Any], name: str = "interval") -> TimerHandle:
        return self._own(self.engine.interval(seconds, callback, name=name))

    def timeout(self, seconds: float, callback: Callable[[], Any], name: str = "timeout") -> TimerHandle:
        return self._own(self.engine.timeout(seconds, callback, name=name))

    def countdown(
        self,
        total_seconds: int,
        on_expire: Callable[[], Any],
        on_tick: Optional[Callable[[int], Any]] = None,
        name: str = "countdown",
    ) -> Countdown:
        return self._own(self.engine.countdown(total_seconds, on_expire, on_tick=on_tick, name=name))

    @property
    def active(self) -> bool:
        return any(timer.active for timer in self._owned)

    def cancel_all(self) -> None:
        """Cancel every timer in the group"""
        for timer in self._owned:
            timer.cancel()
        self._owned.clear()

    def _own(self, timer):
        self._owned = [t for t in self._owned if t.active]
        self._owned.append(timer)
        return timer


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
