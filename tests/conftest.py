"""Shared fakes for the test suite."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Callable, Optional

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))


class MemoryStore:
    """Dict-backed stand-in for ``QSettings``."""

    def __init__(self, initial: Optional[dict[str, Any]] = None) -> None:
        self.data: dict[str, Any] = dict(initial or {})
        self.writes = 0

    def value(self, key: str, defaultValue: Any = None) -> Any:
        return self.data.get(key, defaultValue)

    def setValue(self, key: str, value: Any) -> None:
        self.writes += 1
        self.data[key] = value


class _Handle:
    def __init__(self, scheduler: "ManualScheduler", entry: list) -> None:
        self._scheduler = scheduler
        self._entry = entry

    def cancel(self) -> None:
        if self._entry in self._scheduler.pending:
            self._scheduler.pending.remove(self._entry)


class ManualScheduler:
    """Scheduler whose clock only moves when :meth:`advance` is called."""

    def __init__(self) -> None:
        self.now = 0
        self.pending: list[list] = []

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> _Handle:
        entry = [self.now + delay_ms, callback]
        self.pending.append(entry)
        return _Handle(self, entry)

    def advance(self, ms: int) -> None:
        target = self.now + ms
        while True:
            due = [e for e in self.pending if e[0] <= target]
            if not due:
                break
            entry = min(due, key=lambda e: e[0])
            self.pending.remove(entry)
            self.now = entry[0]
            entry[1]()
        self.now = target


class FakeFrontend:
    """Frontend returning whatever snapshots the test assigns."""

    def __init__(self, sample_rate: float = 44_100.0, fft_size: int = 16_384) -> None:
        self.sample_rate = sample_rate
        self.fft_size = fft_size
        self.frequency_data = np.zeros(fft_size // 2, dtype=np.uint8)
        self.time_data = np.full(fft_size, 128, dtype=np.uint8)
        self.running = False
        self.fail_with: Optional[Exception] = None
        self.stop_calls = 0

    @property
    def is_running(self) -> bool:
        return self.running

    @property
    def bin_count(self) -> int:
        return self.fft_size // 2

    def bin_for(self, frequency: float) -> int:
        return int(round(frequency / ((self.sample_rate / 2.0) / self.bin_count)))

    def start(self, on_ready=None) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.running = True
        if on_ready is not None:
            on_ready()

    def stop(self) -> None:
        self.stop_calls += 1
        self.running = False

    def sample_frequency_snapshot(self) -> np.ndarray:
        return self.frequency_data.copy()

    def sample_time_snapshot(self) -> np.ndarray:
        return self.time_data.copy()

    def make_loud(self) -> None:
        data = np.full(self.fft_size, 128, dtype=np.uint8)
        data[::2] = 120
        data[1::2] = 136
        self.time_data = data

    def make_quiet(self) -> None:
        self.time_data = np.full(self.fft_size, 128, dtype=np.uint8)

    def set_peaks(self, peaks: dict[float, int]) -> None:
        data = np.zeros(self.bin_count, dtype=np.uint8)
        for freq, amp in peaks.items():
            data[self.bin_for(freq)] = amp
        self.frequency_data = data


class FakeRenderer:
    def __init__(self) -> None:
        self.labels: list[str] = []
        self.series: dict[str, list] = {}
        self.refreshes = 0

    def setLabels(self, labels) -> None:
        self.labels = list(labels)

    def setSeries(self, series_id, values) -> None:
        self.series[series_id] = list(values)

    def refresh(self) -> None:
        self.refreshes += 1


class FakeLogView:
    def __init__(self) -> None:
        self.rows: list[tuple] = []

    def prepend(self, row) -> None:
        self.rows.insert(0, tuple(row))
        del self.rows[10:]


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def frontend() -> FakeFrontend:
    return FakeFrontend()


@pytest.fixture(scope="session")
def qapp():
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    from PySide6 import QtWidgets

    app = QtWidgets.QApplication.instance()
    if app is None:
        app = QtWidgets.QApplication([])
    return app
