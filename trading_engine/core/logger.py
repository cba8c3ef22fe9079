"""
Logging for the engine. Every line carries the run it belongs to ("-" for
process-wide messages) so interleaved ticks of concurrent runs stay readable:

    2024-01-01 12:00:00 | WARNING  | trading_engine.runs | 3f2a... | Order rejected: ...

Controller code passes the run as ``extra={"run_id": ...}``.
"""

from __future__ import annotations
import logging
import sys
from pathlib import Path
from typing import Iterable, Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(run_id)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
NO_RUN = "-"
MASK = "***"


class RunContextFilter(logging.Filter):
    """Fills in run_id for records logged without one and masks configured secrets."""

    def __init__(self, secrets: Iterable[str] = ()):
        super().__init__()
        self.secrets = [s for s in secrets if s]

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "run_id", None):
            record.run_id = NO_RUN
        if self.secrets:
            message = record.getMessage()
            masked = message
            for secret in self.secrets:
                masked = masked.replace(secret, MASK)
            if masked != message:
                record.msg, record.args = masked, None
        return True


def setup_logging(
    level: str = "INFO",
    log_dir: Optional[Path] = None,
    log_file: Optional[str] = None,
    secrets: Iterable[str] = (),
) -> logging.Logger:
    """
    Configure the trading_engine logger: console and optional file, both
    tagged with the run id. Values in `secrets` (exchange keys) are masked.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger("trading_engine")
    root.setLevel(log_level)
    root.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    context = RunContextFilter(secrets)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    console.addFilter(context)
    root.addHandler(console)

    if log_dir and log_file:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_dir / log_file, encoding="utf-8")
        fh.setFormatter(formatter)
        fh.addFilter(context)
        root.addHandler(fh)

    # python-binance and urllib3 are chatty at INFO
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    return root
