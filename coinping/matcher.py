"""Tolerance-band matching of extracted peaks against coin signatures."""

from __future__ import annotations

from typing import Iterable, Literal, Sequence

from .constants import UNKNOWN_COIN
from .models import CoinSignature, FrequencyPeak, MatchResult

# Supported matching strictness levels
MatchStrictness = Literal["confidence", "all_bands"]


def score_signature(
    peaks: Sequence[FrequencyPeak], signature: CoinSignature
) -> tuple[float, tuple[FrequencyPeak, ...]]:
    """Return ``(confidence, matching_peaks)`` for a single signature.

    A band is satisfied when at least one peak lies inside its window.
    Peaks are not consumed, so one peak may satisfy several bands; it is
    still reported only once in ``matching_peaks``.
    """

    bands = signature.components
    if not bands:
        return 0.0, ()

    matched = [False] * len(peaks)
    satisfied = 0
    for band in bands:
        hit = False
        for i, peak in enumerate(peaks):
            if band.contains(peak.frequency):
                matched[i] = True
                hit = True
        if hit:
            satisfied += 1

    confidence = 100.0 * satisfied / len(bands)
    return confidence, tuple(p for p, m in zip(peaks, matched) if m)


def match_coin(
    peaks: Iterable[FrequencyPeak],
    signatures: Iterable[CoinSignature],
    *,
    strictness: MatchStrictness = "confidence",
) -> MatchResult:
    """Return the best-matching coin for ``peaks``.

    Args:
        peaks: Peaks extracted from the captured spectrum.
        signatures: Coin signatures in database order.  Earlier entries win
            ties.
        strictness: ``"confidence"`` accepts partial matches and reports the
            fraction of satisfied bands.  ``"all_bands"`` only accepts a
            signature when every one of its bands is satisfied.

    Returns:
        The best :class:`MatchResult`, or the ``"Unknown Coin"`` result with
        zero confidence when nothing scores above zero.
    """

    if strictness not in ("confidence", "all_bands"):
        raise ValueError(f"Unknown strictness: {strictness}")

    peak_list = list(peaks)
    best = MatchResult(UNKNOWN_COIN, (), 0.0)
    for signature in signatures:
        confidence, matching = score_signature(peak_list, signature)
        if strictness == "all_bands" and confidence < 100.0:
            continue
        if confidence > best.confidence:
            best = MatchResult(signature.name, matching, confidence, signature)
    return best


__all__ = ["MatchStrictness", "score_signature", "match_coin"]
