import pytest

from coinping.constants import PING_TIMEOUT_KEY, SCALE_MODE_KEY
from coinping.settings import AppSettings
from tests.conftest import MemoryStore


def test_defaults(store) -> None:
    settings = AppSettings(store)
    assert settings.scale_mode == "linear"
    assert settings.ping_timeout_ms == 200
    assert settings.trigger_policy == "energy"
    assert settings.match_strictness == "confidence"


def test_values_persist(store) -> None:
    settings = AppSettings(store)
    settings.scale_mode = "logarithmic"
    settings.ping_timeout_ms = 1500
    settings.trigger_policy = "envelope"
    settings.match_strictness = "all_bands"

    reloaded = AppSettings(store)
    assert reloaded.scale_mode == "logarithmic"
    assert reloaded.ping_timeout_ms == 1500
    assert reloaded.trigger_policy == "envelope"
    assert reloaded.match_strictness == "all_bands"


def test_string_values_from_qsettings_are_normalised() -> None:
    settings = AppSettings(MemoryStore({PING_TIMEOUT_KEY: "350"}))
    assert settings.ping_timeout_ms == 350


def test_invalid_stored_values_fall_back_to_defaults() -> None:
    store = MemoryStore({SCALE_MODE_KEY: "polar", PING_TIMEOUT_KEY: "soon"})
    settings = AppSettings(store)
    assert settings.scale_mode == "linear"
    assert settings.ping_timeout_ms == 200


def test_invalid_assignments_raise(store) -> None:
    settings = AppSettings(store)
    with pytest.raises(ValueError):
        settings.scale_mode = "polar"
    with pytest.raises(ValueError):
        settings.ping_timeout_ms = -5
    with pytest.raises(ValueError):
        settings.trigger_policy = "clap"


def test_reset_restores_defaults(store) -> None:
    settings = AppSettings(store)
    settings.scale_mode = "logarithmic"
    settings.ping_timeout_ms = 900
    settings.match_strictness = "all_bands"
    settings.reset()
    assert settings.scale_mode == "linear"
    assert settings.ping_timeout_ms == 200
    assert settings.match_strictness == "confidence"
