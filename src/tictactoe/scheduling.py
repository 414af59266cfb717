"""Deferred callbacks used to pace the computer's moves."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol
import threading

Callback = Callable[[], None]


class Handle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callback) -> Handle: ...


class TimerScheduler:
    """Run callbacks on ``threading.Timer`` threads while holding ``lock``.

    Share the lock with whatever else touches the session so a fired callback
    never interleaves with a request handler.
    """

    def __init__(self, lock: Optional[threading.RLock] = None) -> None:
        self.lock = lock if lock is not None else threading.RLock()

    def call_later(self, delay: float, callback: Callback) -> threading.Timer:
        def fire() -> None:
            with self.lock:
                callback()

        timer = threading.Timer(max(0.0, delay), fire)
        timer.daemon = True
        timer.start()
        return timer


@dataclass
class ScheduledCall:
    delay: float
    callback: Callback = field(repr=False)
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class ManualScheduler:
    """Queue callbacks until :meth:`run_pending` is called."""

    queue: List[ScheduledCall] = field(default_factory=list)

    def call_later(self, delay: float, callback: Callback) -> ScheduledCall:
        call = ScheduledCall(delay=delay, callback=callback)
        self.queue.append(call)
        return call

    @property
    def pending(self) -> List[ScheduledCall]:
        return [c for c in self.queue if not c.cancelled]

    def run_pending(self) -> int:
        """Fire every queued, non-cancelled callback; return how many ran.

        Callbacks scheduled while running are left for the next call.
        """
        due, self.queue = self.queue, []
        ran = 0
        for call in due:
            if call.cancelled:
                continue
            call.callback()
            ran += 1
        return ran
