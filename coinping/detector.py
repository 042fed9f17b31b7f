"""Ping detection state machine.

The detector is polled once per tick.  When its trigger fires it holds the
event open for a settle delay, captures one frequency snapshot, hands it
downstream and then ignores further triggers until the cooldown has
elapsed.  Delays are scheduled continuations; :meth:`EventDetector.tick`
never blocks.
"""

from __future__ import annotations

import logging
from enum import Enum, auto
from typing import Callable, Optional, Protocol

import numpy as np

from .constants import (
    CAPTURE_DELAY_MS,
    COOLDOWN_MS,
    ENVELOPE_DECAY,
    PING_ENERGY_THRESHOLD,
    PING_PEAK_FLOOR,
    PING_PEAK_RISE,
    TIME_DOMAIN_CENTER,
)
from .scheduling import CancellationToken, Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class Frontend(Protocol):
    @property
    def is_running(self) -> bool: ...

    def sample_frequency_snapshot(self) -> np.ndarray: ...

    def sample_time_snapshot(self) -> np.ndarray: ...


class DetectorState(Enum):
    IDLE = auto()
    FIRING = auto()
    ARMED = auto()


class EnergyTrigger:
    """Fire when the waveform's mean deviation from centre exceeds ``threshold``."""

    name = "energy"

    def __init__(self, threshold: float = PING_ENERGY_THRESHOLD) -> None:
        self.threshold = threshold

    @staticmethod
    def level(time_data: np.ndarray) -> float:
        if time_data.size == 0:
            return 0.0
        deviation = np.abs(time_data.astype(np.int16) - TIME_DOMAIN_CENTER)
        return float(deviation.mean())

    def update(self, frontend: Frontend, can_fire: bool) -> bool:
        if not can_fire:
            return False
        return self.level(frontend.sample_time_snapshot()) > self.threshold


class EnvelopeTrigger:
    """Fire on a spectral maximum that rises clearly above a decaying envelope.

    After firing the envelope jumps to the observed maximum and then decays
    by ``decay`` each tick, so the slowly fading tail of the same ring
    cannot re-trigger.
    """

    name = "envelope"

    def __init__(
        self,
        floor: int = PING_PEAK_FLOOR,
        rise: int = PING_PEAK_RISE,
        decay: float = ENVELOPE_DECAY,
    ) -> None:
        self.floor = floor
        self.rise = rise
        self.decay = decay
        self.envelope = 0.0

    def update(self, frontend: Frontend, can_fire: bool) -> bool:
        data = frontend.sample_frequency_snapshot()
        frame_max = int(data.max()) if data.size else 0
        fired = (
            can_fire
            and frame_max > self.floor
            and frame_max > self.envelope + self.rise
        )
        if fired:
            self.envelope = float(frame_max)
        else:
            self.envelope = max(0.0, self.envelope - self.decay)
        return fired

    def reset(self) -> None:
        self.envelope = 0.0


def make_trigger(policy: str) -> EnergyTrigger | EnvelopeTrigger:
    """Return a fresh trigger for the named policy."""
    if policy == "energy":
        return EnergyTrigger()
    if policy == "envelope":
        return EnvelopeTrigger()
    raise ValueError(f"Unknown trigger policy: {policy}")


class EventDetector:
    """Detect ping events in the frontend's stream.

    Args:
        frontend: Source of snapshots.
        scheduler: Runs the capture and cooldown continuations.
        trigger: Policy deciding when a ping starts.
        capture_delay_ms: Settle time between trigger and capture.
        cooldown_ms: Time after a capture during which nothing can fire.
        on_fire: Called when a ping is detected.
        on_capture: Called with the captured frequency snapshot.
    """

    def __init__(
        self,
        frontend: Frontend,
        scheduler: Scheduler,
        trigger: Optional[EnergyTrigger | EnvelopeTrigger] = None,
        *,
        capture_delay_ms: int = CAPTURE_DELAY_MS,
        cooldown_ms: int = COOLDOWN_MS,
        on_fire: Optional[Callable[[], None]] = None,
        on_capture: Optional[Callable[[np.ndarray], None]] = None,
    ) -> None:
        self.frontend = frontend
        self.scheduler = scheduler
        self.trigger = trigger if trigger is not None else EnergyTrigger()
        self.capture_delay_ms = capture_delay_ms
        self.cooldown_ms = cooldown_ms
        self.on_fire = on_fire
        self.on_capture = on_capture
        self._state = DetectorState.IDLE
        self._token = CancellationToken()
        self._pending: Optional[TimerHandle] = None

    @property
    def state(self) -> DetectorState:
        return self._state

    # --------------------------------------------------------------
    def tick(self) -> bool:
        """Inspect the latest snapshot; return ``True`` if a ping fired."""

        if not self.frontend.is_running:
            return False
        fired = self.trigger.update(self.frontend, self._state is DetectorState.IDLE)
        if not fired:
            return False

        self._state = DetectorState.FIRING
        token = self._token
        logger.info("Ping detected (%s trigger)", self.trigger.name)
        if self.on_fire is not None:
            self.on_fire()
        self._pending = self.scheduler.call_later(
            self.capture_delay_ms, lambda: self._capture(token)
        )
        return True

    def _capture(self, token: CancellationToken) -> None:
        if token.cancelled:
            # A newer event may own the state and the pending handle
            return
        self._pending = None
        if not self.frontend.is_running:
            logger.debug("Capture abandoned; frontend stopped")
            self._state = DetectorState.IDLE
            return

        snapshot = self.frontend.sample_frequency_snapshot()
        try:
            if self.on_capture is not None:
                self.on_capture(snapshot)
        finally:
            self._state = DetectorState.ARMED
            self._pending = self.scheduler.call_later(
                self.cooldown_ms, lambda: self._end_cooldown(token)
            )

    def _end_cooldown(self, token: CancellationToken) -> None:
        if token.cancelled:
            return
        self._pending = None
        self._state = DetectorState.IDLE

    # --------------------------------------------------------------
    def cancel(self) -> None:
        """Abandon any pending capture or cooldown and return to idle."""
        self._token.cancel()
        self._token = CancellationToken()
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        self._state = DetectorState.IDLE
        reset = getattr(self.trigger, "reset", None)
        if reset is not None:
            reset()


__all__ = [
    "Frontend",
    "DetectorState",
    "EnergyTrigger",
    "EnvelopeTrigger",
    "make_trigger",
    "EventDetector",
]
