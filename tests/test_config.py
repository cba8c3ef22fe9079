"""Tests for core.config."""

import os

from trading_engine.core.config import load_config

ENV_KEYS = [
    "KRAKEN_API_KEY", "KRAKEN_API_SECRET", "KRAKEN_BASE_URL", "ORDER_TIMEOUT_SECONDS",
    "LIVE_TRADING_ENABLED", "KILL_SWITCH_ENABLED", "LIVE_ARM_COOLDOWN_SECONDS",
    "LIVE_CIRCUIT_BREAKER_THRESHOLD", "TICK_INTERVAL_SECONDS", "SYMBOL", "INTERVAL",
    "STRATEGY_TREND_WEIGHT", "STRATEGY_MEANREV_WEIGHT", "STRATEGY_CARRY_WEIGHT",
    "STRATEGY_SIGNAL_THRESHOLD", "STRATEGY_STOP_LOSS", "STRATEGY_TAKE_PROFIT",
    "STRATEGY_MAX_POSITION", "BACKTEST_INITIAL_CAPITAL", "BACKTEST_CSV_PATH", "LOG_LEVEL",
]


def _clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults(tmp_path, monkeypatch):
    _clean_env(monkeypatch)
    config = load_config(tmp_path / "missing.yaml", tmp_path)
    assert config.live_trading_enabled is False
    assert config.kill_switch_enabled is False
    assert config.live_cooldown_seconds == 60.0
    assert config.circuit_breaker_threshold == 3
    assert config.symbol == "BTC/USD"
    assert config.strategy.trend_weight == 0.4
    assert config.strategy.max_position_size == 0.2
    assert not config.secrets_ready


def test_yaml_values(tmp_path, monkeypatch):
    _clean_env(monkeypatch)
    path = tmp_path / "config.yaml"
    path.write_text(
        "live:\n"
        "  enabled: true\n"
        "  cooldown_seconds: 30\n"
        "strategy:\n"
        "  symbol: eth/usd\n"
        "  signal_threshold: 0.1\n"
        "backtest:\n"
        "  start_timestamp: 1700000000\n"
        "  end_timestamp: 1710000000\n",
        encoding="utf-8",
    )
    config = load_config(path, tmp_path)
    assert config.live_trading_enabled is True
    assert config.live_cooldown_seconds == 30.0
    assert config.symbol == "ETH/USD"
    assert config.strategy.signal_threshold == 0.1
    assert config.backtest_start == 1700000000
    assert config.backtest_end == 1710000000


def test_env_overrides(tmp_path, monkeypatch):
    _clean_env(monkeypatch)
    monkeypatch.setenv("LIVE_TRADING_ENABLED", "yes")
    monkeypatch.setenv("KILL_SWITCH_ENABLED", "1")
    monkeypatch.setenv("LIVE_ARM_COOLDOWN_SECONDS", "120")
    monkeypatch.setenv("LIVE_CIRCUIT_BREAKER_THRESHOLD", "5")
    monkeypatch.setenv("KRAKEN_API_KEY", "key")
    monkeypatch.setenv("KRAKEN_API_SECRET", "c2VjcmV0")
    config = load_config(tmp_path / "missing.yaml", tmp_path)
    assert config.live_trading_enabled is True
    assert config.kill_switch_enabled is True
    assert config.live_cooldown_seconds == 120.0
    assert config.circuit_breaker_threshold == 5
    assert config.secrets_ready


def test_threshold_minimum_one(tmp_path, monkeypatch):
    _clean_env(monkeypatch)
    monkeypatch.setenv("LIVE_CIRCUIT_BREAKER_THRESHOLD", "0")
    assert load_config(tmp_path / "missing.yaml", tmp_path).circuit_breaker_threshold == 1


def test_dotenv_file(tmp_path, monkeypatch):
    _clean_env(monkeypatch)
    (tmp_path / ".env").write_text("LIVE_ARM_COOLDOWN_SECONDS=15\n", encoding="utf-8")
    try:
        config = load_config(tmp_path / "missing.yaml", tmp_path)
    finally:
        # load_dotenv writes straight into os.environ
        os.environ.pop("LIVE_ARM_COOLDOWN_SECONDS", None)
    assert config.live_cooldown_seconds == 15.0
