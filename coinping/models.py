"""Value types shared by the detection pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


class CoinPingError(Exception):
    """Base class for errors raised by the package."""


class DeviceUnavailable(CoinPingError):
    """Raised when the audio input device cannot be opened."""


@dataclass(frozen=True)
class FrequencyPeak:
    """A spectral peak: frequency in hertz and byte amplitude (0–255)."""

    frequency: float
    amplitude: int


@dataclass(frozen=True)
class FrequencyBand:
    """A symmetric tolerance window around ``center_frequency``."""

    center_frequency: float
    tolerance_percent: float

    @property
    def low(self) -> float:
        return self.center_frequency * (1.0 - self.tolerance_percent / 100.0)

    @property
    def high(self) -> float:
        return self.center_frequency * (1.0 + self.tolerance_percent / 100.0)

    def contains(self, frequency: float) -> bool:
        """Return ``True`` if ``frequency`` lies inside the window (inclusive)."""
        return self.low <= frequency <= self.high


@dataclass(frozen=True)
class CoinSignature:
    """Named set of bands describing one coin's ring.

    A signature without components is kept as data but can never match.
    """

    name: str
    components: tuple[FrequencyBand, ...] = ()


@dataclass(frozen=True)
class MatchResult:
    """Outcome of matching a set of peaks against the database.

    ``signature`` is the winning entry itself, ``None`` for an unknown coin.
    Names are not unique, so consumers use it rather than ``coin_name`` to
    find the winner's bands.
    """

    coin_name: str
    matching_peaks: tuple[FrequencyPeak, ...] = ()
    confidence: float = 0.0
    signature: Optional[CoinSignature] = None


@dataclass(frozen=True)
class LogEntry:
    """One classification attempt together with its evidence."""

    timestamp: datetime
    peaks: tuple[FrequencyPeak, ...] = field(default_factory=tuple)
    coin_name: str = ""
    confidence: float = 0.0


__all__ = [
    "CoinPingError",
    "DeviceUnavailable",
    "FrequencyPeak",
    "FrequencyBand",
    "CoinSignature",
    "MatchResult",
    "LogEntry",
]
