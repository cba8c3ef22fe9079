"""
Load configuration from config.yaml and .env. Exchange keys only from env.
"""

from __future__ import annotations
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from trading_engine.core.types import StrategyConfig


def _env_path(project_root: Optional[Path] = None) -> Path:
    root = project_root or Path(__file__).resolve().parents[2]
    return root / ".env"


def load_dotenv_if_exists(project_root: Optional[Path] = None) -> None:
    """Load .env from project root if present."""
    path = _env_path(project_root)
    if path.exists():
        load_dotenv(path)


def load_config(config_path: Optional[Path] = None, project_root: Optional[Path] = None) -> "Config":
    """Load config.yaml and overlay with env. Returns Config."""
    load_dotenv_if_exists(project_root)
    root = project_root or Path(__file__).resolve().parents[2]
    path = config_path or root / "config.yaml"
    data: dict[str, Any] = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    def env(key: str, default: str = "") -> str:
        return os.getenv(key, default).strip()

    def env_bool(key: str, default: bool = False) -> bool:
        return os.getenv(key, str(default)).strip().lower() in ("true", "1", "yes", "on")

    def env_int(key: str, default: int = 0) -> int:
        try:
            return int(os.getenv(key, str(default)))
        except ValueError:
            return default

    def env_float(key: str, default: float = 0.0) -> float:
        try:
            return float(os.getenv(key, str(default)))
        except ValueError:
            return default

    live = data.get("live", {})
    strategy = data.get("strategy", {})
    backtest = data.get("backtest", {})
    execution = data.get("execution", {})
    logging_cfg = data.get("logging", {})

    strategy_config = StrategyConfig(
        trend_weight=env_float("STRATEGY_TREND_WEIGHT", strategy.get("trend_weight", 0.4)),
        mean_rev_weight=env_float("STRATEGY_MEANREV_WEIGHT", strategy.get("mean_rev_weight", 0.3)),
        carry_weight=env_float("STRATEGY_CARRY_WEIGHT", strategy.get("carry_weight", 0.3)),
        signal_threshold=env_float("STRATEGY_SIGNAL_THRESHOLD", strategy.get("signal_threshold", 0.2)),
        stop_loss=env_float("STRATEGY_STOP_LOSS", strategy.get("stop_loss", 0.03)),
        take_profit=env_float("STRATEGY_TAKE_PROFIT", strategy.get("take_profit", 0.08)),
        max_position_size=env_float("STRATEGY_MAX_POSITION", strategy.get("max_position_size", 0.2)),
    )

    return Config(
        # Exchange (env only; never put keys in config.yaml)
        kraken_api_key=env("KRAKEN_API_KEY"),
        kraken_api_secret=env("KRAKEN_API_SECRET"),
        kraken_base_url=env("KRAKEN_BASE_URL", execution.get("kraken_base_url", "https://api.kraken.com")),
        order_timeout_seconds=env_float("ORDER_TIMEOUT_SECONDS", execution.get("order_timeout_seconds", 10.0)),
        # Live safety
        live_trading_enabled=env_bool("LIVE_TRADING_ENABLED", live.get("enabled", False)),
        kill_switch_enabled=env_bool("KILL_SWITCH_ENABLED", live.get("kill_switch", False)),
        live_cooldown_seconds=env_float("LIVE_ARM_COOLDOWN_SECONDS", live.get("cooldown_seconds", 60.0)),
        circuit_breaker_threshold=max(1, env_int("LIVE_CIRCUIT_BREAKER_THRESHOLD", live.get("circuit_breaker_threshold", 3))),
        tick_interval_seconds=env_float("TICK_INTERVAL_SECONDS", live.get("tick_interval_seconds", 60.0)),
        # Run defaults
        symbol=env("SYMBOL", strategy.get("symbol", "BTC/USD")).upper(),
        interval=env("INTERVAL", strategy.get("interval", "1h")),
        strategy=strategy_config,
        # Backtest
        backtest_start=backtest.get("start_timestamp"),
        backtest_end=backtest.get("end_timestamp"),
        backtest_initial_capital=env_float("BACKTEST_INITIAL_CAPITAL", backtest.get("initial_capital", 10000.0)),
        backtest_csv_path=env("BACKTEST_CSV_PATH", backtest.get("csv_path") or "") or None,
        # Logging
        log_level=env("LOG_LEVEL", logging_cfg.get("level", "INFO")),
        log_dir=Path(logging_cfg.get("log_dir", "logs")),
        log_file=logging_cfg.get("log_file", "trading_engine.log"),
    )


class Config:
    """Unified configuration. Immutable after load."""

    __slots__ = (
        "kraken_api_key", "kraken_api_secret", "kraken_base_url", "order_timeout_seconds",
        "live_trading_enabled", "kill_switch_enabled", "live_cooldown_seconds",
        "circuit_breaker_threshold", "tick_interval_seconds",
        "symbol", "interval", "strategy",
        "backtest_start", "backtest_end", "backtest_initial_capital", "backtest_csv_path",
        "log_level", "log_dir", "log_file",
    )

    def __init__(
        self,
        kraken_api_key: str = "",
        kraken_api_secret: str = "",
        kraken_base_url: str = "https://api.kraken.com",
        order_timeout_seconds: float = 10.0,
        live_trading_enabled: bool = False,
        kill_switch_enabled: bool = False,
        live_cooldown_seconds: float = 60.0,
        circuit_breaker_threshold: int = 3,
        tick_interval_seconds: float = 60.0,
        symbol: str = "BTC/USD",
        interval: str = "1h",
        strategy: Optional[StrategyConfig] = None,
        backtest_start: Optional[int] = None,
        backtest_end: Optional[int] = None,
        backtest_initial_capital: float = 10000.0,
        backtest_csv_path: Optional[str] = None,
        log_level: str = "INFO",
        log_dir: Optional[Path] = None,
        log_file: str = "trading_engine.log",
    ):
        self.kraken_api_key = kraken_api_key
        self.kraken_api_secret = kraken_api_secret
        self.kraken_base_url = kraken_base_url
        self.order_timeout_seconds = order_timeout_seconds
        self.live_trading_enabled = live_trading_enabled
        self.kill_switch_enabled = kill_switch_enabled
        self.live_cooldown_seconds = live_cooldown_seconds
        self.circuit_breaker_threshold = circuit_breaker_threshold
        self.tick_interval_seconds = tick_interval_seconds
        self.symbol = symbol
        self.interval = interval
        self.strategy = strategy or StrategyConfig()
        self.backtest_start = int(backtest_start) if backtest_start is not None else None
        self.backtest_end = int(backtest_end) if backtest_end is not None else None
        self.backtest_initial_capital = backtest_initial_capital
        self.backtest_csv_path = backtest_csv_path
        self.log_level = log_level
        self.log_dir = Path(log_dir) if log_dir else Path("logs")
        self.log_file = log_file

    @property
    def secrets_ready(self) -> bool:
        return bool(self.kraken_api_key and self.kraken_api_secret)
