"""
Load configuration from config.yaml and .env. API keys only from env.
"""

from __future__ import annotations
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

DEFAULT_ALLOWED_HOURS = list(range(8, 21))

DEFAULT_SIDEWAYS_CONFIRMATION = {
    "reference_trend": "critical",
    "volume_profile": "critical",
    "order_flow": "advisory",
    "regime": "advisory",
}

DEFAULT_TREND_CONFIRMATION = {
    "reference_trend": "critical",
    "volume_profile": "off",
    "order_flow": "advisory",
    "regime": "advisory",
}


def _confirmation_modes(defaults: dict, overrides: Optional[dict]) -> dict:
    """Merge per-source modes. YAML reads a bare `off` as False."""
    modes = dict(defaults)
    for source, mode in (overrides or {}).items():
        modes[source] = "off" if mode is False else str(mode).lower()
    return modes


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
        return os.getenv(key, str(default)).lower() in ("true", "1", "yes")

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

    def env_list(key: str, default: list) -> list:
        raw = os.getenv(key)
        if not raw:
            return list(default)
        return [item.strip() for item in raw.split(",") if item.strip()]

    api = data.get("api", {})
    market = data.get("market", {})
    analysis = data.get("analysis", {})
    strategies = data.get("strategies", {})
    sideways = strategies.get("sideways", {})
    trend = strategies.get("trend", {})
    adaptive = data.get("adaptive", {})
    reference = data.get("reference_trend", {})
    volume_profile = data.get("volume_profile", {})
    order_flow = data.get("order_flow", {})
    filters = data.get("filters", {})
    trading = data.get("trading", {})
    telegram = data.get("telegram", {})
    logging_cfg = data.get("logging", {})

    use_testnet = env_bool("USE_TESTNET", api.get("use_testnet", False))
    if use_testnet:
        binance_api_key = env("BINANCE_TESTNET_API_KEY") or env("BINANCE_API_KEY")
        binance_api_secret = env("BINANCE_TESTNET_API_SECRET") or env("BINANCE_API_SECRET")
    else:
        binance_api_key = env("BINANCE_MAINNET_API_KEY") or env("BINANCE_API_KEY")
        binance_api_secret = env("BINANCE_MAINNET_API_SECRET") or env("BINANCE_API_SECRET")

    allowed_hours = [int(h) for h in env_list("ALLOWED_HOURS", filters.get("allowed_hours", DEFAULT_ALLOWED_HOURS))]

    return Config(
        binance_api_key=binance_api_key,
        binance_api_secret=binance_api_secret,
        use_testnet=use_testnet,
        # Market
        symbols=[s.upper() for s in env_list("SYMBOLS", market.get("symbols", ["BTCUSDT", "ETHUSDT"]))],
        reference_symbol=env("REFERENCE_SYMBOL", market.get("reference_symbol", "BTCUSDT")).upper(),
        interval=env("INTERVAL", market.get("interval", "1m")),
        buffer_size=env_int("BUFFER_SIZE", market.get("buffer_size", 300)),
        poll_seconds=env_float("POLL_SECONDS", market.get("poll_seconds", 5.0)),
        # Pattern detection
        lookback_period=env_int("LOOKBACK_PERIOD", analysis.get("lookback_period", 3)),
        analysis_window=env_int("ANALYSIS_WINDOW", analysis.get("analysis_window", 20)),
        min_channel_width_pct=env_float("MIN_CHANNEL_WIDTH_PCT", analysis.get("min_channel_width_pct", 2.0)),
        return_tolerance_pct=env_float("RETURN_TOLERANCE_PCT", analysis.get("return_tolerance_pct", 0.1)),
        min_trend_step_pct=env_float("MIN_TREND_STEP_PCT", analysis.get("min_trend_step_pct", 1.0)),
        max_trend_step_pct=env_float("MAX_TREND_STEP_PCT", analysis.get("max_trend_step_pct", 10.0)),
        # Strategies
        enabled_strategies=env_list("STRATEGIES", strategies.get("enabled", ["sideways", "trend"])),
        sideways_sizing_mode=sideways.get("sizing_mode", "fixed"),
        sideways_take_profit_pct=float(sideways.get("take_profit_pct", 2.0)),
        sideways_stop_loss_pct=float(sideways.get("stop_loss_pct", 2.0)),
        sideways_confirmation=_confirmation_modes(DEFAULT_SIDEWAYS_CONFIRMATION, sideways.get("confirmation")),
        trend_sizing_mode=trend.get("sizing_mode", "adaptive"),
        trend_take_profit_pct=float(trend.get("take_profit_pct", 3.0)),
        trend_stop_loss_pct=float(trend.get("stop_loss_pct", 2.0)),
        trend_confirmation=_confirmation_modes(DEFAULT_TREND_CONFIRMATION, trend.get("confirmation")),
        entry_level_tolerance_pct=float(trend.get("entry_level_tolerance_pct", 0.1)),
        trend_setup_max_candles=int(trend.get("setup_max_candles", 30)),
        # Adaptive TP/SL
        sl_channel_fraction=float(adaptive.get("stop_loss_channel_fraction", 0.3)),
        tp_channel_fraction=float(adaptive.get("take_profit_channel_fraction", 0.8)),
        min_stop_loss_pct=float(adaptive.get("min_stop_loss_pct", 0.5)),
        max_stop_loss_pct=float(adaptive.get("max_stop_loss_pct", 5.0)),
        min_take_profit_pct=float(adaptive.get("min_take_profit_pct", 1.0)),
        max_take_profit_pct=float(adaptive.get("max_take_profit_pct", 15.0)),
        min_risk_reward=env_float("MIN_RISK_REWARD", adaptive.get("min_risk_reward", 1.5)),
        # Reference trend
        reference_ema_fast=int(reference.get("ema_fast", 20)),
        reference_ema_slow=int(reference.get("ema_slow", 50)),
        reference_min_samples=int(reference.get("min_samples", 20)),
        # Analyzer caches
        volume_profile_ttl_s=float(volume_profile.get("ttl_seconds", 1800)),
        volume_profile_lookback_min=int(volume_profile.get("lookback_minutes", 360)),
        volume_profile_interval=volume_profile.get("interval", "1m"),
        order_flow_ttl_s=float(order_flow.get("ttl_seconds", 10)),
        order_flow_depth_levels=int(order_flow.get("depth_levels", 100)),
        min_wall_notional=float(order_flow.get("min_wall_notional", 10000.0)),
        min_support_notional=float(order_flow.get("min_support_notional", 25000.0)),
        # Regime filters
        trend_filter_enabled=bool(filters.get("trend_filter_enabled", True)),
        trend_strength_threshold=float(filters.get("trend_strength_threshold", 30.0)),
        session_filter_enabled=bool(filters.get("session_filter_enabled", True)),
        allowed_hours=allowed_hours,
        exclude_weekends=env_bool("EXCLUDE_WEEKENDS", filters.get("exclude_weekends", True)),
        volume_filter_enabled=bool(filters.get("volume_filter_enabled", True)),
        min_volume_multiplier=float(filters.get("min_volume_multiplier", 0.5)),
        volatility_filter_enabled=bool(filters.get("volatility_filter_enabled", True)),
        min_atr_multiplier=float(filters.get("min_atr_multiplier", 0.3)),
        max_atr_multiplier=float(filters.get("max_atr_multiplier", 3.0)),
        # Position engine
        max_positions_per_symbol=env_int("MAX_POSITIONS_PER_SYMBOL", trading.get("max_positions_per_symbol", 1)),
        max_total_positions=env_int("MAX_TOTAL_POSITIONS", trading.get("max_total_positions", 10)),
        one_direction_per_symbol=bool(trading.get("one_direction_per_symbol", True)),
        maker_fee_rate=env_float("MAKER_FEE_RATE", trading.get("maker_fee_rate", 0.0002)),
        taker_fee_rate=env_float("TAKER_FEE_RATE", trading.get("taker_fee_rate", 0.0005)),
        stats_every_closes=int(trading.get("stats_every_closes", 5)),
        # Telegram
        telegram_bot_token=env("TELEGRAM_BOT_TOKEN", telegram.get("bot_token", "")),
        telegram_chat_id=env("TELEGRAM_CHAT_ID", telegram.get("chat_id", "")),
        # Logging
        log_level=env("LOG_LEVEL", logging_cfg.get("level", "INFO")),
        log_dir=Path(logging_cfg.get("log_dir", "logs")),
        log_file=logging_cfg.get("log_file", "pattern_bot.log"),
    )


class Config:
    """Unified configuration. Immutable after load."""

    __slots__ = (
        "binance_api_key", "binance_api_secret", "use_testnet",
        "symbols", "reference_symbol", "interval", "buffer_size", "poll_seconds",
        "lookback_period", "analysis_window", "min_channel_width_pct", "return_tolerance_pct",
        "min_trend_step_pct", "max_trend_step_pct",
        "enabled_strategies", "sideways_sizing_mode", "sideways_take_profit_pct", "sideways_stop_loss_pct",
        "sideways_confirmation", "trend_sizing_mode", "trend_take_profit_pct", "trend_stop_loss_pct",
        "trend_confirmation", "entry_level_tolerance_pct", "trend_setup_max_candles",
        "sl_channel_fraction", "tp_channel_fraction", "min_stop_loss_pct", "max_stop_loss_pct",
        "min_take_profit_pct", "max_take_profit_pct", "min_risk_reward",
        "reference_ema_fast", "reference_ema_slow", "reference_min_samples",
        "volume_profile_ttl_s", "volume_profile_lookback_min", "volume_profile_interval",
        "order_flow_ttl_s", "order_flow_depth_levels", "min_wall_notional", "min_support_notional",
        "trend_filter_enabled", "trend_strength_threshold", "session_filter_enabled", "allowed_hours",
        "exclude_weekends", "volume_filter_enabled", "min_volume_multiplier",
        "volatility_filter_enabled", "min_atr_multiplier", "max_atr_multiplier",
        "max_positions_per_symbol", "max_total_positions", "one_direction_per_symbol",
        "maker_fee_rate", "taker_fee_rate", "stats_every_closes",
        "telegram_bot_token", "telegram_chat_id",
        "log_level", "log_dir", "log_file",
    )

    def __init__(
        self,
        binance_api_key: str = "",
        binance_api_secret: str = "",
        use_testnet: bool = False,
        symbols: Optional[list] = None,
        reference_symbol: str = "BTCUSDT",
        interval: str = "1m",
        buffer_size: int = 300,
        poll_seconds: float = 5.0,
        lookback_period: int = 3,
        analysis_window: int = 20,
        min_channel_width_pct: float = 2.0,
        return_tolerance_pct: float = 0.1,
        min_trend_step_pct: float = 1.0,
        max_trend_step_pct: float = 10.0,
        enabled_strategies: Optional[list] = None,
        sideways_sizing_mode: str = "fixed",
        sideways_take_profit_pct: float = 2.0,
        sideways_stop_loss_pct: float = 2.0,
        sideways_confirmation: Optional[dict] = None,
        trend_sizing_mode: str = "adaptive",
        trend_take_profit_pct: float = 3.0,
        trend_stop_loss_pct: float = 2.0,
        trend_confirmation: Optional[dict] = None,
        entry_level_tolerance_pct: float = 0.1,
        trend_setup_max_candles: int = 30,
        sl_channel_fraction: float = 0.3,
        tp_channel_fraction: float = 0.8,
        min_stop_loss_pct: float = 0.5,
        max_stop_loss_pct: float = 5.0,
        min_take_profit_pct: float = 1.0,
        max_take_profit_pct: float = 15.0,
        min_risk_reward: float = 1.5,
        reference_ema_fast: int = 20,
        reference_ema_slow: int = 50,
        reference_min_samples: int = 20,
        volume_profile_ttl_s: float = 1800.0,
        volume_profile_lookback_min: int = 360,
        volume_profile_interval: str = "1m",
        order_flow_ttl_s: float = 10.0,
        order_flow_depth_levels: int = 100,
        min_wall_notional: float = 10000.0,
        min_support_notional: float = 25000.0,
        trend_filter_enabled: bool = True,
        trend_strength_threshold: float = 30.0,
        session_filter_enabled: bool = True,
        allowed_hours: Optional[list] = None,
        exclude_weekends: bool = True,
        volume_filter_enabled: bool = True,
        min_volume_multiplier: float = 0.5,
        volatility_filter_enabled: bool = True,
        min_atr_multiplier: float = 0.3,
        max_atr_multiplier: float = 3.0,
        max_positions_per_symbol: int = 1,
        max_total_positions: int = 10,
        one_direction_per_symbol: bool = True,
        maker_fee_rate: float = 0.0002,
        taker_fee_rate: float = 0.0005,
        stats_every_closes: int = 5,
        telegram_bot_token: str = "",
        telegram_chat_id: str = "",
        log_level: str = "INFO",
        log_dir: Path = None,
        log_file: str = "pattern_bot.log",
    ):
        self.binance_api_key = binance_api_key
        self.binance_api_secret = binance_api_secret
        self.use_testnet = use_testnet
        self.symbols = list(symbols) if symbols else ["BTCUSDT", "ETHUSDT"]
        self.reference_symbol = reference_symbol
        self.interval = interval
        self.buffer_size = buffer_size
        self.poll_seconds = poll_seconds
        self.lookback_period = lookback_period
        self.analysis_window = analysis_window
        self.min_channel_width_pct = min_channel_width_pct
        self.return_tolerance_pct = return_tolerance_pct
        self.min_trend_step_pct = min_trend_step_pct
        self.max_trend_step_pct = max_trend_step_pct
        self.enabled_strategies = list(enabled_strategies) if enabled_strategies else ["sideways", "trend"]
        self.sideways_sizing_mode = sideways_sizing_mode
        self.sideways_take_profit_pct = sideways_take_profit_pct
        self.sideways_stop_loss_pct = sideways_stop_loss_pct
        self.sideways_confirmation = dict(sideways_confirmation or DEFAULT_SIDEWAYS_CONFIRMATION)
        self.trend_sizing_mode = trend_sizing_mode
        self.trend_take_profit_pct = trend_take_profit_pct
        self.trend_stop_loss_pct = trend_stop_loss_pct
        self.trend_confirmation = dict(trend_confirmation or DEFAULT_TREND_CONFIRMATION)
        self.entry_level_tolerance_pct = entry_level_tolerance_pct
        self.trend_setup_max_candles = trend_setup_max_candles
        self.sl_channel_fraction = sl_channel_fraction
        self.tp_channel_fraction = tp_channel_fraction
        self.min_stop_loss_pct = min_stop_loss_pct
        self.max_stop_loss_pct = max_stop_loss_pct
        self.min_take_profit_pct = min_take_profit_pct
        self.max_take_profit_pct = max_take_profit_pct
        self.min_risk_reward = min_risk_reward
        self.reference_ema_fast = reference_ema_fast
        self.reference_ema_slow = reference_ema_slow
        self.reference_min_samples = reference_min_samples
        self.volume_profile_ttl_s = volume_profile_ttl_s
        self.volume_profile_lookback_min = volume_profile_lookback_min
        self.volume_profile_interval = volume_profile_interval
        self.order_flow_ttl_s = order_flow_ttl_s
        self.order_flow_depth_levels = order_flow_depth_levels
        self.min_wall_notional = min_wall_notional
        self.min_support_notional = min_support_notional
        self.trend_filter_enabled = trend_filter_enabled
        self.trend_strength_threshold = trend_strength_threshold
        self.session_filter_enabled = session_filter_enabled
        self.allowed_hours = list(allowed_hours) if allowed_hours is not None else list(DEFAULT_ALLOWED_HOURS)
        self.exclude_weekends = exclude_weekends
        self.volume_filter_enabled = volume_filter_enabled
        self.min_volume_multiplier = min_volume_multiplier
        self.volatility_filter_enabled = volatility_filter_enabled
        self.min_atr_multiplier = min_atr_multiplier
        self.max_atr_multiplier = max_atr_multiplier
        self.max_positions_per_symbol = max_positions_per_symbol
        self.max_total_positions = max_total_positions
        self.one_direction_per_symbol = one_direction_per_symbol
        self.maker_fee_rate = maker_fee_rate
        self.taker_fee_rate = taker_fee_rate
        self.stats_every_closes = stats_every_closes
        self.telegram_bot_token = telegram_bot_token
        self.telegram_chat_id = telegram_chat_id
        self.log_level = log_level
        self.log_dir = Path(log_dir) if log_dir else Path("logs")
        self.log_file = log_file
