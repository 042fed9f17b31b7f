"""Peak extraction from byte frequency snapshots.

A coin ring shows up as a handful of narrow resonances.  Because the
analysis window smears each resonance over a few adjacent bins, the
extractor keeps only the loudest representative of every cluster and
returns at most :data:`~coinping.constants.MAX_PEAKS` peaks.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

import numpy as np

from .constants import MAX_PEAKS, MIN_PEAK_SEPARATION, PEAK_AMPLITUDE_FLOOR
from .models import FrequencyPeak


def bin_frequencies(bin_count: int, sample_rate: float) -> np.ndarray:
    """Return the frequency (Hz) of every bin of a ``bin_count`` snapshot.

    The mapping is linear: ``i * (sample_rate / 2) / bin_count``.
    """
    step = (sample_rate / 2.0) / bin_count
    return np.arange(bin_count, dtype=np.float64) * step


def extract_peaks(
    frequency_data: Sequence[int] | np.ndarray,
    sample_rate: float,
    *,
    amplitude_floor: int = PEAK_AMPLITUDE_FLOOR,
    min_separation: float = MIN_PEAK_SEPARATION,
    max_peaks: int = MAX_PEAKS,
    frequency_range: Optional[tuple[float, float]] = None,
) -> list[FrequencyPeak]:
    """Return the most salient peaks of ``frequency_data``.

    Args:
        frequency_data: Byte magnitudes, one per bin.
        sample_rate: Sample rate the snapshot was taken at.
        amplitude_floor: Bins must be strictly louder than this.
        min_separation: Peaks closer than this many hertz to a louder
            peak are dropped.
        max_peaks: Maximum number of peaks returned.
        frequency_range: Optional inclusive ``(low, high)`` window; peaks
            outside it are ignored.

    Returns:
        Peaks ordered by amplitude, loudest first.  An empty list means no
        bin qualified.
    """

    data = np.asarray(frequency_data, dtype=np.int32).reshape(-1)
    if data.size < 3 or max_peaks <= 0:
        return []

    centre = data[1:-1]
    is_peak = (centre > data[:-2]) & (centre > data[2:]) & (centre > amplitude_floor)
    indices = np.flatnonzero(is_peak) + 1
    if indices.size == 0:
        return []

    freqs = bin_frequencies(data.size, sample_rate)[indices]
    amps = data[indices]
    if frequency_range is not None:
        low, high = frequency_range
        keep = (freqs >= low) & (freqs <= high)
        freqs = freqs[keep]
        amps = amps[keep]

    # Stable so equally loud peaks keep ascending frequency order.
    order = np.argsort(-amps, kind="stable")

    kept: list[FrequencyPeak] = []
    for i in order:
        freq = float(freqs[i])
        if any(abs(p.frequency - freq) < min_separation for p in kept):
            continue
        kept.append(FrequencyPeak(frequency=freq, amplitude=int(amps[i])))
        if len(kept) == max_peaks:
            break
    return kept


def sort_by_frequency(peaks: Iterable[FrequencyPeak]) -> list[FrequencyPeak]:
    """Return a copy of ``peaks`` ordered by ascending frequency."""
    return sorted(peaks, key=lambda p: p.frequency)


__all__ = ["bin_frequencies", "extract_peaks", "sort_by_frequency"]
