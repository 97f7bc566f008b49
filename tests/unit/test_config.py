import pytest

from coinlens.common.config import DEFAULT_CONFIG, get_config, get_preset_config


def test_get_config_returns_independent_copy():
    config = get_config()
    config["support_resistance"]["lookback"] = 99
    config["multi_timeframe"]["timeframes"]["1h"]["lookback_days"] = 1

    assert DEFAULT_CONFIG["support_resistance"]["lookback"] == 10
    assert get_config()["multi_timeframe"]["timeframes"]["1h"]["lookback_days"] == 7


def test_override_is_deep_merged():
    config = get_config({"scoring": {"min_bars": 30}})
    assert config["scoring"]["min_bars"] == 30
    assert config["scoring"]["max_predicted_change"] == 15.0


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("COINLENS_SR_LOOKBACK", "5")
    monkeypatch.setenv("COINLENS_BATCH_SIZE", "2")
    monkeypatch.setenv("COINLENS_ALLOW_FALLBACK", "true")
    monkeypatch.setenv("COINLENS_LOG_LEVEL", "debug")

    config = get_config()
    assert config["support_resistance"]["lookback"] == 5
    assert config["ranker"]["batch_size"] == 2
    assert config["ranker"]["allow_fallback"] is True
    assert config["logging"]["level"] == "DEBUG"


def test_explicit_override_wins_over_environment(monkeypatch):
    monkeypatch.setenv("COINLENS_TOP_N", "3")
    assert get_config({"ranker": {"top_n": 7}})["ranker"]["top_n"] == 7


def test_presets_keep_recommendation_policy():
    for name in ("conservative", "aggressive"):
        config = get_preset_config(name)
        assert config["scoring"] == DEFAULT_CONFIG["scoring"]

    assert get_preset_config("conservative")["patterns"]["min_confidence"] == 60
    assert get_preset_config("aggressive")["ranker"]["allow_fallback"] is True


def test_unknown_preset():
    with pytest.raises(ValueError):
        get_preset_config("reckless")
