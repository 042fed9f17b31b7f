"""Bounded history of classification attempts."""

from __future__ import annotations

from collections import deque
from typing import Iterator, Optional, Protocol

from .constants import LOG_CAPACITY
from .models import LogEntry


class LogView(Protocol):
    """Display collaborator receiving formatted log rows."""

    def prepend(self, row: tuple[str, str, str, str]) -> None: ...


class EventLog:
    """Fixed-capacity log of :class:`~coinping.models.LogEntry` objects.

    New entries go to the front; once ``capacity`` is exceeded the oldest
    entries are dropped from the back.  Iteration yields newest first.
    """

    def __init__(self, capacity: int = LOG_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._entries: deque[LogEntry] = deque()

    def append(self, entry: LogEntry) -> None:
        self._entries.appendleft(entry)
        while len(self._entries) > self.capacity:
            self._entries.pop()

    def clear(self) -> None:
        self._entries.clear()

    @property
    def latest(self) -> Optional[LogEntry]:
        return self._entries[0] if self._entries else None

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(tuple(self._entries))

    def __len__(self) -> int:
        return len(self._entries)


def format_entry(entry: LogEntry) -> tuple[str, str, str, str]:
    """Return the display row ``(time, peaks, coin, confidence)`` for ``entry``."""
    time_text = entry.timestamp.strftime("%H:%M:%S")
    peaks_text = ", ".join(
        f"{p.frequency:.0f} Hz (Amp: {p.amplitude})" for p in entry.peaks
    )
    return time_text, peaks_text, entry.coin_name, f"{entry.confidence:.2f}%"


__all__ = ["LogView", "EventLog", "format_entry"]
