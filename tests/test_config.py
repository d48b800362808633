"""Tests for environment settings."""

import pytest

from chat_digest.config import Settings, load_settings
from chat_digest.exceptions import ConfigurationError

ENV_VARS = [
    "ANTHROPIC_API_KEY",
    "LLM_MODEL",
    "WHATSAPP_TARGET_CHAT_IDS",
    "SUMMARY_SCHEDULE",
    "SUMMARY_WINDOW_MINUTES",
    "TIMEZONE",
    "BUFFER_PATH",
    "CHUNK_TOKEN_BUDGET",
    "TRANSPORT_URL",
    "TRANSPORT_TOKEN",
    "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # keep a developer .env out of the picture
    monkeypatch.chdir(tmp_path)


def test_defaults(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
    settings = load_settings()

    assert isinstance(settings, Settings)
    assert settings.summary_schedule == "0 20 * * *"
    assert settings.summary_window_minutes == 1440
    assert settings.timezone == "America/Sao_Paulo"
    assert settings.buffer_path == "tmp"
    assert settings.chunk_token_budget == 1500
    assert settings.target_chat_ids == []
    assert settings.tz is not None


def test_missing_api_key():
    with pytest.raises(ConfigurationError, match="anthropic_api_key"):
        load_settings()


@pytest.mark.parametrize("minutes", [60, 2880])
def test_window_bounds_accepted(monkeypatch, minutes):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
    monkeypatch.setenv("SUMMARY_WINDOW_MINUTES", str(minutes))
    assert load_settings().summary_window_minutes == minutes


@pytest.mark.parametrize("minutes", [59, 2881])
def test_window_bounds_rejected(monkeypatch, minutes):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
    monkeypatch.setenv("SUMMARY_WINDOW_MINUTES", str(minutes))
    with pytest.raises(ConfigurationError, match="summary_window_minutes"):
        load_settings()


def test_target_chat_ids_parsed(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
    monkeypatch.setenv("WHATSAPP_TARGET_CHAT_IDS", " a@g.us, ,b@c.us ")
    assert load_settings().target_chat_ids == ["a@g.us", "b@c.us"]


def test_invalid_timezone():
    with pytest.raises(ConfigurationError, match="timezone"):
        load_settings(anthropic_api_key="sk-test", timezone="Mars/Olympus")


@pytest.mark.parametrize("schedule", ["not a cron", "0 20 * *", "61 * * * *"])
def test_invalid_schedule(monkeypatch, schedule):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
    monkeypatch.setenv("SUMMARY_SCHEDULE", schedule)
    with pytest.raises(ConfigurationError, match="summary_schedule"):
        load_settings()


def test_custom_schedule_accepted():
    settings = load_settings(anthropic_api_key="sk-test", summary_schedule="*/30 8-22 * * 1-5")
    assert settings.summary_schedule == "*/30 8-22 * * 1-5"


def test_env_file_is_read(tmp_path):
    (tmp_path / ".env").write_text("ANTHROPIC_API_KEY=sk-from-file\nLOG_LEVEL=debug\n")
    settings = load_settings()
    assert settings.anthropic_api_key == "sk-from-file"
    assert settings.log_level == "DEBUG"
