"""Tests for configuration loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from signal_brain.shell.config import Config, load_config, _validate_config

ENV_KEYS = (
    "DEEPSEEK_API_KEY", "DEEPSEEK_API_URL", "DEEPSEEK_MODEL",
    "OPENAI_API_KEY", "OPENAI_API_URL", "OPENAI_MODEL",
    "DEFAULT_AI_MODEL", "DEFAULT_BUY_AMOUNT", "TRADING_BOT_USERNAME",
    "TELEGRAM_API_ID", "TELEGRAM_API_HASH", "TELEGRAM_PHONE",
    "TELEGRAM_MONITOR_CHANNEL", "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    # keep a developer's local .env out of the tests
    monkeypatch.setattr("signal_brain.shell.config.load_dotenv", lambda *a, **kw: False)


def _write_settings(tmp_path: Path, body: str) -> Path:
    (tmp_path / "settings.toml").write_text(body, encoding="utf-8")
    return tmp_path


def test_defaults_without_settings_file(tmp_path):
    config = load_config(tmp_path)

    assert config.ai.default_provider == "deepseek"
    assert config.ai.max_attempts == 3
    assert config.ai.retry_base_delay_ms == 2000
    assert config.trading.buy_amount == "0.01"
    assert config.trading.trade_bot == "@US_GMGNBOT"
    assert config.telegram.max_login_attempts == 3
    assert config.telegram.login_retry_delay_seconds == 5.0
    assert config.storage.trade_capacity == 100
    assert config.evolution.trigger == "on_connect"
    assert config.evolution_provider == "deepseek"
    assert config.storage.trades_path.name == "trades.json"
    assert config.telegram.session_file.endswith("telegram_session.json")


def test_settings_file_overrides(tmp_path):
    _write_settings(tmp_path, f"""
[general]
log_level = "DEBUG"
data_dir = "{(tmp_path / 'data').as_posix()}"

[ai]
default_provider = "openai"
max_attempts = 5

[ai.providers.openai]
api_url = "https://api.openai.com/v1/chat/completions"
model_name = "gpt-4o"

[trading]
buy_amount = 0.25

[storage]
trade_capacity = 10

[evolution]
trigger = "interval"
interval_hours = 6
provider = "deepseek"
""")
    config = load_config(tmp_path)

    assert config.log_level == "DEBUG"
    assert config.ai.default_provider == "openai"
    assert config.ai.max_attempts == 5
    assert config.ai.providers["openai"].model_name == "gpt-4o"
    assert config.trading.buy_amount == "0.25"
    assert config.storage.trade_capacity == 10
    assert config.storage.trades_path == tmp_path / "data" / "trades.json"
    assert config.evolution.trigger == "interval"
    assert config.evolution_provider == "deepseek"


def test_environment_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("DEEPSEEK_API_KEY", "sk-ds")
    monkeypatch.setenv("DEEPSEEK_API_URL", "https://api.siliconflow.cn/v1/chat/completions")
    monkeypatch.setenv("OPENAI_MODEL", "gpt-4-turbo")
    monkeypatch.setenv("DEFAULT_AI_MODEL", "openai")
    monkeypatch.setenv("DEFAULT_BUY_AMOUNT", "0.5")
    monkeypatch.setenv("TRADING_BOT_USERNAME", "@other_bot")
    monkeypatch.setenv("TELEGRAM_API_ID", "12345")
    monkeypatch.setenv("TELEGRAM_API_HASH", "0123456789abcdef")
    monkeypatch.setenv("TELEGRAM_MONITOR_CHANNEL", "@alerts")

    config = load_config(tmp_path)

    assert config.ai.providers["deepseek"].api_key == "sk-ds"
    assert config.ai.providers["deepseek"].api_url.startswith("https://api.siliconflow.cn")
    assert config.ai.providers["openai"].model_name == "gpt-4-turbo"
    assert config.ai.default_provider == "openai"
    assert config.trading.buy_amount == "0.5"
    assert config.trading.trade_bot == "@other_bot"
    assert config.telegram.api_id == "12345"
    assert config.telegram.api_hash == "0123456789abcdef"
    assert config.telegram.monitor_channel == "@alerts"


def test_missing_credentials_do_not_fail_loading(tmp_path):
    config = load_config(tmp_path)
    assert config.ai.providers["deepseek"].api_key == ""
    assert config.telegram.api_hash == ""


def test_invalid_buy_amount_rejected(tmp_path, monkeypatch):
    monkeypatch.setenv("DEFAULT_BUY_AMOUNT", "lots")
    with pytest.raises(ValueError, match="buy_amount"):
        load_config(tmp_path)


def test_validation_collects_all_errors():
    config = Config()
    config.ai.max_attempts = 0
    config.storage.trade_capacity = 0
    config.evolution.trigger = "hourly"
    config.trading.buy_amount = "-1"

    with pytest.raises(ValueError) as exc_info:
        _validate_config(config)

    message = str(exc_info.value)
    assert "ai.max_attempts" in message
    assert "storage.trade_capacity" in message
    assert "evolution.trigger" in message
    assert "trading.buy_amount" in message


def test_interval_trigger_needs_positive_hours():
    config = Config()
    config.evolution.trigger = "interval"
    config.evolution.interval_hours = 0
    with pytest.raises(ValueError, match="interval_hours"):
        _validate_config(config)


def test_non_numeric_api_id_rejected(tmp_path, monkeypatch):
    monkeypatch.setenv("TELEGRAM_API_ID", "abc")
    with pytest.raises(ValueError, match="telegram.api_id"):
        load_config(tmp_path)
