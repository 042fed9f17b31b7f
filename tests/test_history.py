from datetime import datetime, timedelta

import pytest

from coinping.history import EventLog, format_entry
from coinping.models import FrequencyPeak, LogEntry

START = datetime(2024, 5, 1, 14, 3, 9)


def _entry(i: int) -> LogEntry:
    return LogEntry(START + timedelta(seconds=i), (), f"coin-{i}", float(i))


def test_newest_entry_first() -> None:
    log = EventLog()
    log.append(_entry(1))
    log.append(_entry(2))
    assert [e.coin_name for e in log] == ["coin-2", "coin-1"]
    assert log.latest.coin_name == "coin-2"


def test_eleventh_append_evicts_first() -> None:
    log = EventLog()
    for i in range(1, 12):
        log.append(_entry(i))
    names = [e.coin_name for e in log]
    assert len(log) == 10
    assert names[0] == "coin-11"
    assert "coin-1" not in names


def test_identical_entries_are_kept() -> None:
    log = EventLog()
    entry = _entry(3)
    log.append(entry)
    log.append(entry)
    assert len(log) == 2


def test_custom_capacity_and_clear() -> None:
    log = EventLog(capacity=2)
    for i in range(5):
        log.append(_entry(i))
    assert [e.coin_name for e in log] == ["coin-4", "coin-3"]
    log.clear()
    assert len(log) == 0
    assert log.latest is None


def test_invalid_capacity() -> None:
    with pytest.raises(ValueError):
        EventLog(capacity=0)


def test_format_entry() -> None:
    entry = LogEntry(
        START,
        (FrequencyPeak(5580.4, 200), FrequencyPeak(12650.0, 180)),
        "Sovereign",
        100.0,
    )
    assert format_entry(entry) == (
        "14:03:09",
        "5580 Hz (Amp: 200), 12650 Hz (Amp: 180)",
        "Sovereign",
        "100.00%",
    )


def test_format_entry_without_peaks() -> None:
    row = format_entry(LogEntry(START, (), "Unknown Coin", 0.0))
    assert row[1] == ""
    assert row[3] == "0.00%"
