"""Deferred callbacks for the detector's capture delay and cooldown.

The detector never sleeps: it asks a :class:`Scheduler` to run a
continuation later and keeps ticking.  :class:`QtScheduler` backs this
with single-shot ``QTimer`` objects so continuations run on the Qt event
loop, the same thread as the tick.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

from PySide6 import QtCore

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle: ...


class CancellationToken:
    """Flag checked by deferred work before it touches shared resources."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class _QtTimerHandle:
    def __init__(self, scheduler: "QtScheduler", timer: QtCore.QTimer) -> None:
        self._scheduler = scheduler
        self._timer = timer

    def cancel(self) -> None:
        self._timer.stop()
        self._scheduler._release(self._timer)


class QtScheduler:
    """Run callbacks once after a delay using ``QTimer``."""

    def __init__(self, parent: Optional[QtCore.QObject] = None) -> None:
        self._parent = parent
        self._timers: set[QtCore.QTimer] = set()

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> _QtTimerHandle:
        timer = QtCore.QTimer(self._parent)
        timer.setSingleShot(True)

        def fire() -> None:
            self._release(timer)
            callback()

        timer.timeout.connect(fire)
        self._timers.add(timer)
        timer.start(max(int(delay_ms), 0))
        return _QtTimerHandle(self, timer)

    def cancel_all(self) -> None:
        for timer in list(self._timers):
            timer.stop()
            self._release(timer)

    @property
    def pending(self) -> int:
        return len(self._timers)

    def _release(self, timer: QtCore.QTimer) -> None:
        if timer in self._timers:
            self._timers.discard(timer)
            timer.deleteLater()


__all__ = ["TimerHandle", "Scheduler", "CancellationToken", "QtScheduler"]
