"""Series handed to the spectrum chart.

The chart itself is a collaborator implementing :class:`Renderer`; the
functions here only compute what it should show.  All series are aligned
with the labels returned by :func:`frequency_labels`, one entry per bin of
the analysis band.
"""

from __future__ import annotations

from typing import Iterable, Optional, Protocol, Sequence

import numpy as np

from .constants import ANALYSIS_BAND
from .models import FrequencyPeak, MatchResult
from .peaks import bin_frequencies

SERIES_AMPLITUDE = "amplitude"
SERIES_DETECTED = "detected"
SERIES_NON_MATCHING = "non_matching"
SERIES_COIN_RANGE = "coin_range"

SERIES_IDS: tuple[str, ...] = (
    SERIES_DETECTED,
    SERIES_NON_MATCHING,
    SERIES_AMPLITUDE,
    SERIES_COIN_RANGE,
)


class Renderer(Protocol):
    """Chart collaborator.  The session never reads chart state back."""

    def setLabels(self, labels: Sequence[str]) -> None: ...

    def setSeries(self, series_id: str, values: Sequence[Optional[float]]) -> None: ...

    def refresh(self) -> None: ...


def band_indices(
    bin_count: int, sample_rate: float, band: tuple[float, float] = ANALYSIS_BAND
) -> np.ndarray:
    """Return the indices of the bins whose frequency lies inside ``band``."""
    freqs = bin_frequencies(bin_count, sample_rate)
    low, high = band
    return np.flatnonzero((freqs >= low) & (freqs <= high))


def frequency_labels(
    bin_count: int, sample_rate: float, band: tuple[float, float] = ANALYSIS_BAND
) -> list[str]:
    freqs = bin_frequencies(bin_count, sample_rate)
    return [f"{freqs[i]:.0f}" for i in band_indices(bin_count, sample_rate, band)]


def amplitude_series(
    frequency_data: np.ndarray,
    sample_rate: float,
    band: tuple[float, float] = ANALYSIS_BAND,
) -> list[int]:
    data = np.asarray(frequency_data).reshape(-1)
    return [int(v) for v in data[band_indices(data.size, sample_rate, band)]]


def _label_index(label_freqs: Sequence[float], frequency: float) -> int:
    # First label at or above the frequency, -1 past the end.
    for i, value in enumerate(label_freqs):
        if value >= frequency:
            return i
    return -1


def highlight_series(
    labels: Sequence[str],
    peaks: Iterable[FrequencyPeak],
    result: MatchResult,
    frame_max: int,
    band: tuple[float, float] = ANALYSIS_BAND,
) -> dict[str, list[Optional[int]]]:
    """Return the detected, non-matching and coin-range series for a result.

    Matched peaks land in ``detected`` and the others in ``non_matching``.
    Every label inside a band of ``result.signature`` is set to
    ``frame_max`` in ``coin_range``.
    """

    label_freqs = [float(label) for label in labels]
    detected: list[Optional[int]] = [None] * len(label_freqs)
    non_matching: list[Optional[int]] = [None] * len(label_freqs)
    coin_range: list[Optional[int]] = [None] * len(label_freqs)

    low, high = band
    for peak in peaks:
        if not low <= peak.frequency <= high:
            continue
        index = _label_index(label_freqs, peak.frequency)
        if index == -1:
            continue
        if peak in result.matching_peaks:
            detected[index] = peak.amplitude
        else:
            non_matching[index] = peak.amplitude

    if result.signature is not None:
        for component in result.signature.components:
            for i, freq in enumerate(label_freqs):
                if component.contains(freq):
                    coin_range[i] = frame_max

    return {
        SERIES_DETECTED: detected,
        SERIES_NON_MATCHING: non_matching,
        SERIES_COIN_RANGE: coin_range,
    }


__all__ = [
    "SERIES_AMPLITUDE",
    "SERIES_DETECTED",
    "SERIES_NON_MATCHING",
    "SERIES_COIN_RANGE",
    "SERIES_IDS",
    "Renderer",
    "band_indices",
    "frequency_labels",
    "amplitude_series",
    "highlight_series",
]
