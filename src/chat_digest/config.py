"""Runtime settings loaded from the environment and an optional .env file."""

from __future__ import annotations

from apscheduler.triggers.cron import CronTrigger
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from chat_digest.clock import resolve_timezone
from chat_digest.exceptions import ConfigurationError
from chat_digest.llm.client import DEFAULT_MODEL


class Settings(BaseSettings):
    # Completion model
    anthropic_api_key: str = Field(min_length=1)
    llm_model: str = DEFAULT_MODEL

    # Conversations to summarize; empty means every group chat
    whatsapp_target_chat_ids: str = ""

    # Scheduling
    summary_schedule: str = "0 20 * * *"
    summary_window_minutes: int = Field(default=1440, ge=60, le=2880)
    timezone: str = "America/Sao_Paulo"

    # Retention buffer
    buffer_path: str = "tmp"
    chunk_token_budget: int = Field(default=1500, gt=0)

    # Outbound transport
    transport_url: str = ""
    transport_token: str | None = None

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            resolve_timezone(value)
        except ConfigurationError as e:
            raise ValueError(str(e)) from e
        return value

    @field_validator("summary_schedule")
    @classmethod
    def _check_schedule(cls, value: str) -> str:
        try:
            CronTrigger.from_crontab(value, timezone="UTC")
        except ValueError as e:
            raise ValueError(f"invalid cron expression {value!r}: {e}") from e
        return value

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.upper()

    @property
    def target_chat_ids(self) -> list[str]:
        return [value.strip() for value in self.whatsapp_target_chat_ids.split(",") if value.strip()]

    @property
    def tz(self):
        return resolve_timezone(self.timezone)


def load_settings(**overrides) -> Settings:
    """Build Settings, turning validation failures into ConfigurationError."""
    try:
        return Settings(**overrides)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'settings'}: {error['msg']}"
            for error in e.errors()
        )
        raise ConfigurationError(f"Invalid environment configuration: {problems}") from e
