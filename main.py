#!/usr/bin/env python3
"""
Trading engine CLI: backtest | live | status
Usage:
  python main.py backtest [--config config.yaml] [--csv data.csv] [--start TS --end TS]
  python main.py live [--config config.yaml] [--mode paper|live] [--arm]
  python main.py status [--config config.yaml]
"""

from __future__ import annotations
import argparse
import logging
import sys
import time
from pathlib import Path

# Project root
ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from trading_engine.core.config import load_config
from trading_engine.core.errors import TradingEngineError
from trading_engine.core.logger import setup_logging
from trading_engine.core.types import RunMode
from trading_engine.backtesting.runner import BacktestRequest, BacktestRunner
from trading_engine.data.feeds import BinanceCandleFeed, CsvCandleFeed
from trading_engine.execution.kraken import KrakenOrderSubmitter
from trading_engine.runs.controller import RunController
from trading_engine.runs.state_machine import RunAction
from trading_engine.runs.store import InMemoryRunStore

DEFAULT_LOOKBACK_SECONDS = 30 * 24 * 3600


def _setup_logging(config):
    setup_logging(
        config.log_level, config.log_dir, config.log_file,
        secrets=(config.kraken_api_key, config.kraken_api_secret),
    )


def _feed(config, csv_path: str | None):
    path = csv_path or config.backtest_csv_path
    if path:
        return CsvCandleFeed(Path(path))
    return BinanceCandleFeed(timeout=config.order_timeout_seconds)


def _submitter(config):
    return KrakenOrderSubmitter(
        config.kraken_api_key,
        config.kraken_api_secret,
        base_url=config.kraken_base_url,
        timeout=config.order_timeout_seconds,
    )


def run_backtest(args) -> int:
    """Run one backtest over the configured or given range and print its metrics."""
    config = load_config(args.config, ROOT)
    _setup_logging(config)
    logger = logging.getLogger("trading_engine")
    feed = _feed(config, args.csv)
    symbol = (args.symbol or config.symbol).upper()
    interval = args.interval or config.interval

    start = args.start if args.start is not None else config.backtest_start
    end = args.end if args.end is not None else config.backtest_end
    if start is None or end is None:
        available = feed.available_range(symbol, interval)
        if available is not None:
            start = available[0] if start is None else start
            end = available[1] if end is None else end
        else:
            end = end if end is not None else int(time.time())
            start = start if start is not None else end - DEFAULT_LOOKBACK_SECONDS

    request = BacktestRequest(
        name=args.name,
        symbol=symbol,
        interval=interval,
        start_timestamp=int(start),
        end_timestamp=int(end),
        initial_capital=args.capital if args.capital is not None else config.backtest_initial_capital,
        strategy_config=config.strategy,
    )
    runner = BacktestRunner(feed)
    try:
        summary = runner.run(request)
    except TradingEngineError as e:
        logger.error("Backtest failed: %s", e)
        return 1

    m = summary.metrics
    print("\n--- Backtest Results ---")
    print(f"Run id: {summary.backtest_run_id}")
    print(f"Total trades: {m.total_trades} (wins: {m.winning_trades}, losses: {m.losing_trades})")
    print(f"Final capital: {summary.final_capital:.2f}")
    print(f"Total return: {m.total_return:.2f}%")
    print(f"Sharpe ratio: {m.sharpe_ratio:.2f}")
    print(f"Sortino ratio: {m.sortino_ratio:.2f}")
    print(f"Max drawdown: {m.max_drawdown:.2f}%")
    print(f"Win rate: {m.win_rate:.1f}%")
    print(f"Profit factor: {m.profit_factor:.2f}")
    print(f"Expectancy: {m.expectancy:.2f} USD/trade")
    return 0


def run_live(args) -> int:
    """Tick a single run on a fixed interval until interrupted; Ctrl-C kills the run."""
    config = load_config(args.config, ROOT)
    _setup_logging(config)
    logger = logging.getLogger("trading_engine")
    mode = RunMode(args.mode)
    if mode == RunMode.LIVE and not config.secrets_ready:
        logger.error("Missing KRAKEN_API_KEY or KRAKEN_API_SECRET in .env")
        return 1

    submitter = _submitter(config) if mode == RunMode.LIVE else None
    pair_info = None
    if submitter is not None:
        try:
            pair_info = submitter.get_pair_info(config.symbol)
        except Exception as e:
            logger.warning("Could not load pair info for %s, using defaults: %s", config.symbol, e)

    controller = RunController(
        InMemoryRunStore(),
        _feed(config, args.csv),
        config=config,
        submitter=submitter,
        pair_info=pair_info,
    )
    run = controller.create_run(config.symbol, config.interval, mode=mode, capital=config.backtest_initial_capital)
    if mode == RunMode.LIVE and args.arm:
        controller.arm(run.id)
    started = controller.transition(run.id, RunAction.START)
    if started.gate is not None and not started.gate.allowed:
        logger.warning("Live orders currently blocked: %s", ", ".join(started.gate.reason_codes()))

    logger.info("Run %s %s %s started in %s mode", run.id, config.symbol, config.interval, mode.value)
    while True:
        try:
            for result in controller.tick_many([run.id]):
                logger.info("Tick %s: %s %s", result.run_id, result.action.value, result.message)
            time.sleep(config.tick_interval_seconds)
        except KeyboardInterrupt:
            logger.info("Shutdown by user")
            controller.kill(run.id)
            break
        except Exception as e:
            logger.exception("Live loop error: %s", e)
            time.sleep(5)
    return 0


def run_status(args) -> int:
    """Show whether a live run would be allowed to trade with the current configuration."""
    config = load_config(args.config, ROOT)
    _setup_logging(config)
    controller = RunController(InMemoryRunStore(), _feed(config, None), config=config, submitter=_submitter(config))
    run = controller.create_run(config.symbol, config.interval, mode=RunMode.LIVE)
    controller.transition(run.id, RunAction.START)
    report = controller.status(run.id)
    print("\n--- Live Readiness ---")
    print(f"Symbol: {config.symbol} {config.interval}")
    print(f"Live trading enabled: {config.live_trading_enabled}")
    print(f"Kill switch: {config.kill_switch_enabled}")
    print(f"Circuit breaker threshold: {config.circuit_breaker_threshold}")
    print(f"Cooldown: {config.live_cooldown_seconds:.0f}s")
    reasons = report.gate.reason_codes()
    print(f"Blocking reasons: {', '.join(reasons) if reasons else 'none'}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Trading engine CLI")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.yaml")
    sub = parser.add_subparsers(dest="command", required=True)

    bt = sub.add_parser("backtest", help="Run a backtest")
    bt.add_argument("--name", default="cli backtest")
    bt.add_argument("--symbol", default=None)
    bt.add_argument("--interval", default=None)
    bt.add_argument("--start", type=int, default=None, help="Start timestamp (epoch seconds)")
    bt.add_argument("--end", type=int, default=None, help="End timestamp (epoch seconds)")
    bt.add_argument("--capital", type=float, default=None)
    bt.add_argument("--csv", default=None, help="CSV file or directory of candles")

    live = sub.add_parser("live", help="Run the tick loop")
    live.add_argument("--mode", choices=[m.value for m in RunMode], default=RunMode.PAPER.value)
    live.add_argument("--arm", action="store_true", help="Arm live trading on start")
    live.add_argument("--csv", default=None, help="CSV candle source instead of Binance")

    sub.add_parser("status", help="Show live trading readiness")

    args = parser.parse_args()
    if args.command == "backtest":
        return run_backtest(args)
    if args.command == "live":
        return run_live(args)
    return run_status(args)


if __name__ == "__main__":
    exit(main())
