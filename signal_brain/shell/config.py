"""Configuration loading. Merges settings.toml and .env."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path

from dotenv import load_dotenv


PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"

EVOLUTION_TRIGGERS = ("on_connect", "interval", "disabled")


@dataclass
class ProviderConfig:
    api_key: str = ""
    api_url: str = ""
    model_name: str = ""
    max_tokens: int = 1024
    temperature: float = 0.7


def _default_providers() -> dict[str, ProviderConfig]:
    return {
        "deepseek": ProviderConfig(model_name="deepseek-ai/DeepSeek-V3"),
        "openai": ProviderConfig(model_name="gpt-4"),
    }


@dataclass
class AIConfig:
    default_provider: str = "deepseek"
    timeout_seconds: float = 120.0
    max_attempts: int = 3               # total attempts on HTTP 429
    retry_base_delay_ms: int = 2000     # delay = base * attempt
    providers: dict[str, ProviderConfig] = field(default_factory=_default_providers)


@dataclass
class TradingConfig:
    buy_amount: str = "0.01"            # SOL, kept as text for the /buy command
    trade_bot: str = "@US_GMGNBOT"


@dataclass
class TelegramConfig:
    api_id: str = ""                    # my.telegram.org app id, digits
    api_hash: str = ""
    phone: str = ""                     # first login only; prompted if empty
    monitor_channel: str = ""
    max_login_attempts: int = 3
    login_retry_delay_seconds: float = 5.0
    session_file: str = ""


@dataclass
class StorageConfig:
    data_dir: str = ""
    trade_capacity: int = 100

    @property
    def trades_path(self) -> Path:
        return Path(self.data_dir) / "trades.json"

    @property
    def analysis_history_path(self) -> Path:
        return Path(self.data_dir) / "trade_analysis_history.json"

    @property
    def latest_analysis_path(self) -> Path:
        return Path(self.data_dir) / "trade_analysis.json"


@dataclass
class EvolutionConfig:
    trigger: str = "on_connect"
    interval_hours: float = 24.0
    provider: str = ""                  # empty -> ai.default_provider


@dataclass
class Config:
    log_level: str = "INFO"
    ai: AIConfig = field(default_factory=AIConfig)
    trading: TradingConfig = field(default_factory=TradingConfig)
    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    evolution: EvolutionConfig = field(default_factory=EvolutionConfig)

    @property
    def evolution_provider(self) -> str:
        return self.evolution.provider or self.ai.default_provider


def load_config(config_dir: Path | None = None) -> Config:
    """Load configuration from settings.toml and environment variables."""
    config_dir = config_dir or CONFIG_DIR
    load_dotenv(PROJECT_ROOT / ".env")

    config = Config()
    config.storage.data_dir = str(PROJECT_ROOT / "data")

    settings_path = config_dir / "settings.toml"
    if settings_path.exists():
        with open(settings_path, "rb") as f:
            settings = tomllib.load(f)

        general = settings.get("general", {})
        config.log_level = general.get("log_level", config.log_level)
        config.storage.data_dir = general.get("data_dir", config.storage.data_dir)

        ai = settings.get("ai", {})
        config.ai.default_provider = ai.get("default_provider", config.ai.default_provider)
        config.ai.timeout_seconds = ai.get("timeout_seconds", config.ai.timeout_seconds)
        config.ai.max_attempts = ai.get("max_attempts", config.ai.max_attempts)
        config.ai.retry_base_delay_ms = ai.get("retry_base_delay_ms", config.ai.retry_base_delay_ms)

        for name, values in ai.get("providers", {}).items():
            provider = config.ai.providers.setdefault(name, ProviderConfig())
            provider.api_url = values.get("api_url", provider.api_url)
            provider.model_name = values.get("model_name", provider.model_name)
            provider.max_tokens = values.get("max_tokens", provider.max_tokens)
            provider.temperature = values.get("temperature", provider.temperature)

        trading = settings.get("trading", {})
        config.trading.buy_amount = str(trading.get("buy_amount", config.trading.buy_amount))
        config.trading.trade_bot = trading.get("trade_bot", config.trading.trade_bot)

        tg = settings.get("telegram", {})
        config.telegram.monitor_channel = tg.get("monitor_channel", config.telegram.monitor_channel)
        config.telegram.max_login_attempts = tg.get("max_login_attempts", config.telegram.max_login_attempts)
        config.telegram.login_retry_delay_seconds = tg.get(
            "login_retry_delay_seconds", config.telegram.login_retry_delay_seconds)

        storage = settings.get("storage", {})
        config.storage.trade_capacity = storage.get("trade_capacity", config.storage.trade_capacity)

        evo = settings.get("evolution", {})
        config.evolution.trigger = evo.get("trigger", config.evolution.trigger)
        config.evolution.interval_hours = evo.get("interval_hours", config.evolution.interval_hours)
        config.evolution.provider = evo.get("provider", config.evolution.provider)

    # Environment variables (secrets and identities)
    for name, provider in config.ai.providers.items():
        prefix = name.upper()
        provider.api_key = os.getenv(f"{prefix}_API_KEY", provider.api_key)
        provider.api_url = os.getenv(f"{prefix}_API_URL", provider.api_url)
        provider.model_name = os.getenv(f"{prefix}_MODEL", provider.model_name)

    config.ai.default_provider = os.getenv("DEFAULT_AI_MODEL", config.ai.default_provider)
    config.trading.buy_amount = os.getenv("DEFAULT_BUY_AMOUNT", config.trading.buy_amount)
    config.trading.trade_bot = os.getenv("TRADING_BOT_USERNAME", config.trading.trade_bot)
    config.telegram.api_id = os.getenv("TELEGRAM_API_ID", "").strip()
    config.telegram.api_hash = os.getenv("TELEGRAM_API_HASH", "")
    config.telegram.phone = os.getenv("TELEGRAM_PHONE", "")
    config.telegram.monitor_channel = os.getenv("TELEGRAM_MONITOR_CHANNEL", config.telegram.monitor_channel)
    config.log_level = os.getenv("LOG_LEVEL", config.log_level)

    if not config.telegram.session_file:
        config.telegram.session_file = str(Path(config.storage.data_dir) / "telegram_session.json")

    _validate_config(config)

    return config


def _validate_config(config: Config) -> None:
    """Validate config values are within sane ranges.

    Missing credentials are not checked here; each component raises
    ConfigurationError when it first needs one.
    """
    errors = []

    if config.ai.max_attempts < 1:
        errors.append(f"ai.max_attempts must be >= 1, got {config.ai.max_attempts}")
    if config.ai.retry_base_delay_ms < 0:
        errors.append(f"ai.retry_base_delay_ms must be >= 0, got {config.ai.retry_base_delay_ms}")
    if config.ai.timeout_seconds <= 0:
        errors.append(f"ai.timeout_seconds must be > 0, got {config.ai.timeout_seconds}")
    if config.storage.trade_capacity < 1:
        errors.append(f"storage.trade_capacity must be >= 1, got {config.storage.trade_capacity}")
    if config.telegram.max_login_attempts < 1:
        errors.append(f"telegram.max_login_attempts must be >= 1, got {config.telegram.max_login_attempts}")
    if config.telegram.api_id and not config.telegram.api_id.isdigit():
        errors.append(f"telegram.api_id must be an integer, got '{config.telegram.api_id}'")
    if config.evolution.trigger not in EVOLUTION_TRIGGERS:
        errors.append(f"evolution.trigger must be one of {EVOLUTION_TRIGGERS}, got '{config.evolution.trigger}'")
    if config.evolution.trigger == "interval" and config.evolution.interval_hours <= 0:
        errors.append(f"evolution.interval_hours must be > 0, got {config.evolution.interval_hours}")

    try:
        amount = Decimal(config.trading.buy_amount)
        if amount <= 0:
            errors.append(f"trading.buy_amount must be > 0, got {config.trading.buy_amount}")
    except InvalidOperation:
        errors.append(f"trading.buy_amount must be a number, got '{config.trading.buy_amount}'")

    if errors:
        raise ValueError("Config validation failed:\n  " + "\n  ".join(errors))
