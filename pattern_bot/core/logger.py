"""
Logging for the bot: one "pattern_bot" logger, console always, file when configured.
"""

from __future__ import annotations
import logging
import sys
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# REST polling logs every request at DEBUG.
NOISY_LOGGERS = ("urllib3", "binance")


def _handler(handler: logging.Handler) -> logging.Handler:
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logging(
    level: str = "INFO",
    log_dir: Optional[Path] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Module loggers ("pattern_bot.patterns", "pattern_bot.risk", ...) propagate
    to the returned logger. Calling again replaces its handlers.
    Never log API keys or secrets.
    """
    bot = logging.getLogger("pattern_bot")
    bot.setLevel(getattr(logging, level.upper(), logging.INFO))
    bot.handlers.clear()
    bot.addHandler(_handler(logging.StreamHandler(sys.stdout)))

    if log_dir and log_file:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        bot.addHandler(_handler(logging.FileHandler(log_dir / log_file, encoding="utf-8")))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return bot
