"""Persisted user preferences."""

from __future__ import annotations

from typing import Any

from .constants import (
    DEFAULT_MATCH_STRICTNESS,
    DEFAULT_PING_TIMEOUT_MS,
    DEFAULT_SCALE_MODE,
    DEFAULT_TRIGGER_POLICY,
    MATCH_STRICTNESS,
    MATCH_STRICTNESS_KEY,
    PING_TIMEOUT_KEY,
    SCALE_MODE_KEY,
    SCALE_MODES,
    TRIGGER_POLICIES,
    TRIGGER_POLICY_KEY,
)
from .database import KeyValueStore


class AppSettings:
    """Typed access to the preferences kept in a ``QSettings``-like store.

    Values read back from the store are normalised: ``QSettings`` may return
    strings for numbers, and anything unrecognised falls back to the
    default.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def _choice(self, key: str, choices: tuple[str, ...], default: str) -> str:
        value = str(self.store.value(key, default))
        return value if value in choices else default

    def _set_choice(self, key: str, choices: tuple[str, ...], value: str) -> None:
        if value not in choices:
            raise ValueError(f"{value!r} is not one of {choices}")
        self.store.setValue(key, value)

    # --------------------------------------------------------------
    @property
    def scale_mode(self) -> str:
        """Frequency axis scale of the chart: ``linear`` or ``logarithmic``."""
        return self._choice(SCALE_MODE_KEY, SCALE_MODES, DEFAULT_SCALE_MODE)

    @scale_mode.setter
    def scale_mode(self, value: str) -> None:
        self._set_choice(SCALE_MODE_KEY, SCALE_MODES, value)

    @property
    def ping_timeout_ms(self) -> int:
        """Cooldown after a classification before another ping may fire."""
        raw: Any = self.store.value(PING_TIMEOUT_KEY, DEFAULT_PING_TIMEOUT_MS)
        try:
            value = int(float(raw))
        except (TypeError, ValueError):
            return DEFAULT_PING_TIMEOUT_MS
        return value if value >= 0 else DEFAULT_PING_TIMEOUT_MS

    @ping_timeout_ms.setter
    def ping_timeout_ms(self, value: int) -> None:
        if int(value) < 0:
            raise ValueError("ping timeout must be >= 0")
        self.store.setValue(PING_TIMEOUT_KEY, int(value))

    @property
    def trigger_policy(self) -> str:
        return self._choice(TRIGGER_POLICY_KEY, TRIGGER_POLICIES, DEFAULT_TRIGGER_POLICY)

    @trigger_policy.setter
    def trigger_policy(self, value: str) -> None:
        self._set_choice(TRIGGER_POLICY_KEY, TRIGGER_POLICIES, value)

    @property
    def match_strictness(self) -> str:
        return self._choice(MATCH_STRICTNESS_KEY, MATCH_STRICTNESS, DEFAULT_MATCH_STRICTNESS)

    @match_strictness.setter
    def match_strictness(self, value: str) -> None:
        self._set_choice(MATCH_STRICTNESS_KEY, MATCH_STRICTNESS, value)

    # --------------------------------------------------------------
    def reset(self) -> None:
        """Restore every preference to its default."""
        self.store.setValue(SCALE_MODE_KEY, DEFAULT_SCALE_MODE)
        self.store.setValue(PING_TIMEOUT_KEY, DEFAULT_PING_TIMEOUT_MS)
        self.store.setValue(TRIGGER_POLICY_KEY, DEFAULT_TRIGGER_POLICY)
        self.store.setValue(MATCH_STRICTNESS_KEY, DEFAULT_MATCH_STRICTNESS)


__all__ = ["AppSettings"]
