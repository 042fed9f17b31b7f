import numpy as np

from coinping.chart import (
    SERIES_COIN_RANGE,
    SERIES_DETECTED,
    SERIES_NON_MATCHING,
    amplitude_series,
    band_indices,
    frequency_labels,
    highlight_series,
)
from coinping.matcher import match_coin
from coinping.models import CoinSignature, FrequencyBand, FrequencyPeak, MatchResult

# 1000 bins at 20 kHz puts one bin every 10 Hz
BINS = 1000
SR = 20_000.0
BAND = (4000.0, 6000.0)


def test_labels_cover_band_inclusively() -> None:
    labels = frequency_labels(BINS, SR, BAND)
    assert labels[0] == "4000"
    assert labels[-1] == "6000"
    assert len(labels) == 201
    assert len(band_indices(BINS, SR, BAND)) == len(labels)


def test_amplitude_series_is_aligned_with_labels() -> None:
    data = np.zeros(BINS, dtype=np.uint8)
    data[450] = 77  # 4500 Hz
    series = amplitude_series(data, SR, BAND)
    assert len(series) == 201
    assert series[50] == 77
    assert sum(series) == 77


def test_peaks_are_split_by_match() -> None:
    labels = frequency_labels(BINS, SR, BAND)
    matched = FrequencyPeak(4500.0, 200)
    stray = FrequencyPeak(5203.0, 90)
    outside = FrequencyPeak(9000.0, 250)
    result = MatchResult("Test", (matched,), 100.0)

    series = highlight_series(labels, [matched, stray, outside], result, 255, BAND)

    assert series[SERIES_DETECTED][50] == 200
    # first label at or above 5203 Hz is 5210
    assert series[SERIES_NON_MATCHING][121] == 90
    assert sum(v for v in series[SERIES_NON_MATCHING] if v is not None) == 90
    assert all(v is None for v in series[SERIES_COIN_RANGE])


def test_coin_range_marks_winning_bands() -> None:
    labels = frequency_labels(BINS, SR, BAND)
    winner = CoinSignature("Test", (FrequencyBand(5000.0, 1.1),))
    result = MatchResult("Test", (), 0.0, winner)

    coin_range = highlight_series(labels, [], result, 180, BAND)[SERIES_COIN_RANGE]

    marked = [float(labels[i]) for i, v in enumerate(coin_range) if v is not None]
    assert marked[0] == 4950.0
    assert marked[-1] == 5050.0
    assert set(v for v in coin_range if v is not None) == {180}


def test_unknown_coin_has_no_range() -> None:
    labels = frequency_labels(BINS, SR, BAND)
    result = MatchResult("Unknown Coin")
    coin_range = highlight_series(labels, [], result, 180, BAND)[SERIES_COIN_RANGE]
    assert coin_range == [None] * len(labels)


def test_coin_range_follows_winner_when_names_repeat() -> None:
    labels = frequency_labels(BINS, SR, BAND)
    earlier = CoinSignature("Sovereign", (FrequencyBand(4200.0, 1.1),))
    later = CoinSignature("Sovereign", (FrequencyBand(5500.0, 1.1),))
    peak = FrequencyPeak(5500.0, 150)
    result = match_coin([peak], [earlier, later])
    assert result.signature is later

    coin_range = highlight_series(labels, [peak], result, 150, BAND)[SERIES_COIN_RANGE]
    marked = [float(labels[i]) for i, v in enumerate(coin_range) if v is not None]
    assert min(marked) > 5400.0
    assert max(marked) < 5600.0
