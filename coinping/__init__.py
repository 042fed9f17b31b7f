"""CoinPing package."""

from .database import CoinDatabase
from .history import EventLog, format_entry
from .matcher import match_coin
from .models import (
    CoinPingError,
    CoinSignature,
    DeviceUnavailable,
    FrequencyBand,
    FrequencyPeak,
    LogEntry,
    MatchResult,
)
from .peaks import extract_peaks
from .settings import AppSettings

try:  # PySide6 may be missing in headless environments
    from .session import CoinSession
except ImportError:  # pragma: no cover - optional dependency
    CoinSession = None  # type: ignore

__all__ = [
    "AppSettings",
    "CoinDatabase",
    "CoinPingError",
    "CoinSession",
    "CoinSignature",
    "DeviceUnavailable",
    "EventLog",
    "FrequencyBand",
    "FrequencyPeak",
    "LogEntry",
    "MatchResult",
    "extract_peaks",
    "format_entry",
    "match_coin",
]
