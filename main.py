#!/usr/bin/env python3
"""
Pattern Bot CLI: paper trading on sideways and trend patterns.
Usage:
  python main.py paper [--config config.yaml] [--symbols BTCUSDT,ETHUSDT]
"""

from __future__ import annotations
import argparse
import logging
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List

# Project root
ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pattern_bot.core.config import load_config
from pattern_bot.core.logger import setup_logging
from pattern_bot.engine import TradingEngine
from pattern_bot.execution.binance_futures import BinanceFuturesClient
from pattern_bot.utils.telegram import TelegramNotifier, send_telegram

STATUS_EVERY_S = 300


def _symbols(config, override: str = None) -> List[str]:
    symbols = [s.strip().upper() for s in override.split(",") if s.strip()] if override else list(config.symbols)
    # Reference first so its trend is current before other symbols are composed.
    if config.reference_symbol in symbols:
        symbols.remove(config.reference_symbol)
    return [config.reference_symbol] + symbols


def run_paper(config_path: Path | None, symbols_override: str = None) -> int:
    """Poll closed candles over REST and feed them to the engine."""
    config = load_config(config_path, ROOT)
    setup_logging(config.log_level, config.log_dir, config.log_file)
    logger = logging.getLogger("pattern_bot")
    client = BinanceFuturesClient(
        config.binance_api_key,
        config.binance_api_secret,
        testnet=config.use_testnet,
    )
    engine = TradingEngine(config, client)
    notifier = TelegramNotifier(config.telegram_bot_token, config.telegram_chat_id)
    if notifier.enabled:
        notifier.attach(engine.bus)
    symbols = _symbols(config, symbols_override)
    logger.info(
        "Paper trading %d symbols on %s | strategies=%s | reference=%s",
        len(symbols), config.interval, ",".join(engine.strategies), config.reference_symbol,
    )

    last_seen: Dict[str, datetime] = {}
    for symbol in symbols:
        try:
            history = client.get_closed_candles(symbol, config.interval, limit=config.buffer_size)
        except Exception as e:
            logger.warning("History unavailable for %s: %s", symbol, e)
            continue
        engine.preload(history)
        if history:
            last_seen[symbol] = history[-1].close_time
    logger.info(engine.trend.status_line())
    send_telegram(
        f"Pattern bot paper trading | {len(symbols)} symbols | {config.interval}",
        config.telegram_bot_token,
        config.telegram_chat_id,
    )

    last_status = time.time()
    trading_day = datetime.now(timezone.utc).date()
    while True:
        try:
            today = datetime.now(timezone.utc).date()
            if today != trading_day:
                engine.positions.reset_daily_stats()
                trading_day = today
            for symbol in symbols:
                candles = client.get_closed_candles(symbol, config.interval, limit=5)
                since = last_seen.get(symbol)
                for candle in candles:
                    if since is not None and candle.close_time <= since:
                        continue
                    engine.on_closed_candle(candle)
                    last_seen[symbol] = candle.close_time
            if time.time() - last_status >= STATUS_EVERY_S:
                logger.info(engine.trend.status_line())
                engine.positions.log_stats()
                engine.clear_expired_caches()
                last_status = time.time()
            time.sleep(config.poll_seconds)
        except KeyboardInterrupt:
            logger.info("Shutdown by user")
            engine.snapshot()
            send_telegram("Pattern bot stopped (user request).", config.telegram_bot_token, config.telegram_chat_id)
            break
        except Exception as e:
            logger.exception("Paper loop error: %s", e)
            time.sleep(5)
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Pattern Bot CLI")
    parser.add_argument("mode", choices=["paper"], help="Run paper trading")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.yaml")
    parser.add_argument("--symbols", default=None, help="Comma-separated symbols, overrides config")
    args = parser.parse_args()
    return run_paper(args.config, args.symbols)


if __name__ == "__main__":
    exit(main())
