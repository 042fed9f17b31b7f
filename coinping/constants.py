"""Application-wide constants used by the coin detection pipeline.

The values in this module configure the audio capture, ping detection,
peak extraction and matching stages.  Centralising the configuration
avoids magic numbers spread throughout the code base and makes it easy
to tune the pipeline in one place.
"""

from __future__ import annotations

# ─── Audio configuration ────────────────────────────────────────────────────

# Sampling frequency requested from the input device.  The analysis band
# reaches 20 kHz so anything below 40 kHz would alias the upper bands.
SAMPLE_RATE: int = 44_100

# Number of samples delivered per audio callback.
BLOCK_SIZE: int = 1024

# Transform size of the spectral analysis.  16384 samples at 44.1 kHz give
# a bin step of roughly 2.7 Hz.
FFT_SIZE: int = 16_384

# Cutoff of the high-pass filter applied before analysis.  Coin resonances
# live well above 4 kHz; everything below is handling and table noise.
HP_FILTER_CUTOFF: float = 4_000.0

# Order of the Butterworth high-pass filter.
HP_FILTER_ORDER: int = 2

# ─── Byte spectrum scaling ──────────────────────────────────────────────────

# Decibel range mapped onto 0–255 when producing byte frequency data.
MIN_DECIBELS: float = -100.0
MAX_DECIBELS: float = -30.0

# Exponential smoothing applied between consecutive spectrum snapshots.
SMOOTHING_TIME_CONSTANT: float = 0.8

# Centre value of byte time-domain data.
TIME_DOMAIN_CENTER: int = 128

# Frequency window (Hz) every downstream consumer looks at.
ANALYSIS_BAND: tuple[float, float] = (4_000.0, 20_000.0)

# ─── Ping detection ─────────────────────────────────────────────────────────

# Mean absolute deviation of the time-domain bytes above which the
# energy trigger fires.
PING_ENERGY_THRESHOLD: float = 0.7

# Minimum frame maximum for the envelope trigger and the rise it must
# show above the decaying envelope.
PING_PEAK_FLOOR: int = 100
PING_PEAK_RISE: int = 100

# Units the envelope decays per tick.
ENVELOPE_DECAY: float = 1.0

# Settle time between the trigger and the spectrum capture so the
# resonance stabilises.
CAPTURE_DELAY_MS: int = 750

# Cooldown used when the caller does not supply one.
COOLDOWN_MS: int = 2_000

# Interval of the session tick (roughly one display frame).
TICK_INTERVAL_MS: int = 16

# Supported trigger policies.
TRIGGER_POLICIES: tuple[str, ...] = ("energy", "envelope")

# ─── Peak extraction ────────────────────────────────────────────────────────

# Bins at or below this amplitude are never peaks.
PEAK_AMPLITUDE_FLOOR: int = 5

# Peaks closer than this (Hz) are treated as one physical resonance.
MIN_PEAK_SEPARATION: float = 50.0

# Number of peaks handed to the matcher.
MAX_PEAKS: int = 5

# ─── Matching ───────────────────────────────────────────────────────────────

# Name reported when no signature scores above zero.
UNKNOWN_COIN: str = "Unknown Coin"

# ``"confidence"`` scores partial matches, ``"all_bands"`` only accepts
# signatures whose every band was satisfied.
MATCH_STRICTNESS: tuple[str, ...] = ("confidence", "all_bands")

# ─── History ────────────────────────────────────────────────────────────────

LOG_CAPACITY: int = 10

# ─── Persistence ────────────────────────────────────────────────────────────

SETTINGS_ORGANISATION: str = "coinping"
SETTINGS_APPLICATION: str = "coinping"

COIN_DATABASE_KEY: str = "coins/database"
SCALE_MODE_KEY: str = "chart/scale_mode"
PING_TIMEOUT_KEY: str = "detector/ping_timeout_ms"
TRIGGER_POLICY_KEY: str = "detector/trigger"
MATCH_STRICTNESS_KEY: str = "matcher/strictness"

SCALE_MODES: tuple[str, ...] = ("linear", "logarithmic")
DEFAULT_SCALE_MODE: str = "linear"
DEFAULT_PING_TIMEOUT_MS: int = 200
DEFAULT_TRIGGER_POLICY: str = "energy"
DEFAULT_MATCH_STRICTNESS: str = "confidence"

# Built-in signatures written on first start: ``(name, [(centre Hz,
# tolerance %), ...])``.
DEFAULT_COINS: tuple[tuple[str, tuple[tuple[float, float], ...]], ...] = (
    ("Sovereign", ((5_500.0, 5.0), (12_500.0, 5.0))),
    ("Krugerrand", ((4_900.0, 5.0), (10_750.0, 5.0), (18_500.0, 5.0))),
)

__all__ = [
    "SAMPLE_RATE",
    "BLOCK_SIZE",
    "FFT_SIZE",
    "HP_FILTER_CUTOFF",
    "HP_FILTER_ORDER",
    "MIN_DECIBELS",
    "MAX_DECIBELS",
    "SMOOTHING_TIME_CONSTANT",
    "TIME_DOMAIN_CENTER",
    "ANALYSIS_BAND",
    "PING_ENERGY_THRESHOLD",
    "PING_PEAK_FLOOR",
    "PING_PEAK_RISE",
    "ENVELOPE_DECAY",
    "CAPTURE_DELAY_MS",
    "COOLDOWN_MS",
    "TICK_INTERVAL_MS",
    "TRIGGER_POLICIES",
    "PEAK_AMPLITUDE_FLOOR",
    "MIN_PEAK_SEPARATION",
    "MAX_PEAKS",
    "UNKNOWN_COIN",
    "MATCH_STRICTNESS",
    "LOG_CAPACITY",
    "SETTINGS_ORGANISATION",
    "SETTINGS_APPLICATION",
    "COIN_DATABASE_KEY",
    "SCALE_MODE_KEY",
    "PING_TIMEOUT_KEY",
    "TRIGGER_POLICY_KEY",
    "MATCH_STRICTNESS_KEY",
    "SCALE_MODES",
    "DEFAULT_SCALE_MODE",
    "DEFAULT_PING_TIMEOUT_MS",
    "DEFAULT_TRIGGER_POLICY",
    "DEFAULT_MATCH_STRICTNESS",
    "DEFAULT_COINS",
]
