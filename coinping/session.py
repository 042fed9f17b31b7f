"""One listening session: frontend, detector, matcher, log and chart wiring."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

import numpy as np
from PySide6 import QtCore

from .chart import (
    SERIES_AMPLITUDE,
    SERIES_COIN_RANGE,
    SERIES_DETECTED,
    SERIES_NON_MATCHING,
    Renderer,
    amplitude_series,
    frequency_labels,
    highlight_series,
)
from .constants import (
    ANALYSIS_BAND,
    CAPTURE_DELAY_MS,
    DEFAULT_MATCH_STRICTNESS,
    DEFAULT_PING_TIMEOUT_MS,
    DEFAULT_TRIGGER_POLICY,
    TICK_INTERVAL_MS,
)
from .database import CoinDatabase
from .detector import EventDetector, make_trigger
from .history import EventLog, LogView, format_entry
from .matcher import match_coin
from .models import DeviceUnavailable, LogEntry, MatchResult
from .peaks import extract_peaks
from .scheduling import QtScheduler, Scheduler
from .settings import AppSettings
from .spectrum import SpectralFrontend

logger = logging.getLogger(__name__)


class CoinSession(QtCore.QObject):
    """Run the ping → peaks → match → log pipeline for one audio device.

    The session owns a repeating ``QTimer`` that drives
    :meth:`tick`.  Each tick polls the detector and refreshes the amplitude
    series of the chart.  When the detector captures a spectrum,
    :meth:`classify` extracts peaks, matches them against a snapshot of the
    database, logs the outcome and updates the chart highlights.
    """

    statusChanged = QtCore.Signal(str)
    pingDetected = QtCore.Signal()
    coinIdentified = QtCore.Signal(object)
    errorOccurred = QtCore.Signal(str)

    def __init__(
        self,
        frontend: SpectralFrontend,
        database: CoinDatabase,
        *,
        settings: Optional[AppSettings] = None,
        event_log: Optional[EventLog] = None,
        renderer: Optional[Renderer] = None,
        log_view: Optional[LogView] = None,
        scheduler: Optional[Scheduler] = None,
        capture_delay_ms: int = CAPTURE_DELAY_MS,
        tick_interval_ms: int = TICK_INTERVAL_MS,
        clock: Callable[[], datetime] = datetime.now,
        parent: Optional[QtCore.QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.frontend = frontend
        self.database = database
        self.settings = settings
        self.event_log = event_log if event_log is not None else EventLog()
        self.renderer = renderer
        self.log_view = log_view
        self.scheduler = scheduler if scheduler is not None else QtScheduler(self)
        self.clock = clock
        self.status = "Idle"
        self.last_result: Optional[MatchResult] = None
        self._labels: list[str] = []

        self.strictness = DEFAULT_MATCH_STRICTNESS
        self._trigger_policy = DEFAULT_TRIGGER_POLICY
        self.detector = EventDetector(
            frontend,
            self.scheduler,
            make_trigger(self._trigger_policy),
            capture_delay_ms=capture_delay_ms,
            cooldown_ms=DEFAULT_PING_TIMEOUT_MS,
            on_fire=self._on_fire,
            on_capture=self.classify,
        )
        self.apply_settings()

        self._timer = QtCore.QTimer(self)
        self._timer.setInterval(tick_interval_ms)
        self._timer.timeout.connect(self.tick)

    # --------------------------------------------------------------
    def apply_settings(self) -> None:
        """Pull strictness, cooldown and trigger policy from ``settings``."""
        if self.settings is None:
            return
        self.strictness = self.settings.match_strictness
        self.detector.cooldown_ms = self.settings.ping_timeout_ms
        policy = self.settings.trigger_policy
        if policy != self._trigger_policy:
            self._trigger_policy = policy
            self.detector.trigger = make_trigger(policy)

    def _set_status(self, text: str) -> None:
        self.status = text
        self.statusChanged.emit(text)

    @property
    def is_running(self) -> bool:
        return self.frontend.is_running

    # --------------------------------------------------------------
    def start(self) -> bool:
        """Open the audio device and begin ticking.

        Returns ``False`` (after emitting ``errorOccurred``) when the device
        cannot be opened.  No retry is attempted.
        """
        if self.frontend.is_running:
            return True
        self._set_status("Initializing...")
        try:
            self.frontend.start(self._on_ready)
        except DeviceUnavailable as exc:
            logger.error("Could not start listening: %s", exc)
            self._set_status("Error")
            self.errorOccurred.emit(str(exc))
            return False
        return True

    def _on_ready(self) -> None:
        self._labels = frequency_labels(self.frontend.bin_count, self.frontend.sample_rate)
        if self.renderer is not None:
            self.renderer.setLabels(self._labels)
            self.renderer.refresh()
        self._timer.start()
        self._set_status("Listening...")

    def stop(self) -> None:
        self._timer.stop()
        self.detector.cancel()
        self.frontend.stop()
        if self.renderer is not None:
            self.renderer.setSeries(SERIES_DETECTED, [])
            self.renderer.refresh()
        self._set_status("Idle")

    # --------------------------------------------------------------
    def tick(self) -> None:
        """Advance the detector and refresh the live spectrum."""
        if not self.frontend.is_running:
            return
        self.detector.tick()
        if self.renderer is not None:
            data = self.frontend.sample_frequency_snapshot()
            self.renderer.setSeries(
                SERIES_AMPLITUDE, amplitude_series(data, self.frontend.sample_rate)
            )
            self.renderer.refresh()

    def _on_fire(self) -> None:
        if self.renderer is not None:
            for series_id in (SERIES_DETECTED, SERIES_NON_MATCHING, SERIES_COIN_RANGE):
                self.renderer.setSeries(series_id, [])
        self._set_status("Ping Detected - Processing...")
        self.pingDetected.emit()

    def classify(self, snapshot: np.ndarray) -> LogEntry:
        """Classify one captured frequency snapshot and record the outcome."""

        peaks = extract_peaks(
            snapshot, self.frontend.sample_rate, frequency_range=ANALYSIS_BAND
        )
        signatures = self.database.snapshot()
        result = match_coin(peaks, signatures, strictness=self.strictness)
        self.last_result = result

        entry = LogEntry(
            timestamp=self.clock(),
            peaks=tuple(peaks),
            coin_name=result.coin_name,
            confidence=result.confidence,
        )
        self.event_log.append(entry)
        logger.info(
            "Identified %s (%.2f%%) from %d peaks",
            result.coin_name,
            result.confidence,
            len(peaks),
        )

        if self.log_view is not None:
            self.log_view.prepend(format_entry(entry))
        if self.renderer is not None:
            frame_max = int(np.max(snapshot)) if np.size(snapshot) else 0
            series = highlight_series(self._labels, peaks, result, frame_max)
            for series_id, values in series.items():
                self.renderer.setSeries(series_id, values)
            self.renderer.refresh()

        self._set_status("Listening...")
        self.coinIdentified.emit(entry)
        return entry


__all__ = ["CoinSession"]
