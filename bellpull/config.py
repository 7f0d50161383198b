"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Bell Pull configuration. All values come from environment variables."""

    # Telegram
    telegram_bot_token: str = Field(default="")
    telegram_chat_id: str = Field(default="")
    telegram_parse_mode: str = Field(default="Markdown")
    allowed_user_ids: str = Field(default="")

    # Anthropic
    anthropic_api_key: str = Field(default="")
    anthropic_model: str = Field(default="claude-sonnet-4-5-20250929")
    llm_max_tokens: int = Field(default=4196)
    llm_temperature: float = Field(default=0.7)

    # Database
    database_path: Path = Field(default=Path("data/bell-pull.db"))

    # Dates are bucketed in this zone, not UTC or server-local time
    timezone: str = Field(default="America/New_York")

    # Conversation
    history_limit: int = Field(default=50)
    intake_memory_threshold: int = Field(default=25)

    # Delivery (Telegram caps messages at 4096 characters)
    max_message_length: int = Field(default=4000)
    chunk_delay_seconds: float = Field(default=0.5)

    # Bot identity recorded on outbound messages
    bot_sender_id: str = Field(default="MechMaidBot")
    bot_sender_name: str = Field(default="Noelle")

    # Daily briefing
    briefing_enabled: bool = Field(default=True)
    briefing_hour: int = Field(default=9)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    @property
    def debug(self) -> bool:
        """True when replies should be delivered raw, memory tags included."""
        return self.log_level.upper() == "DEBUG"

    def get_allowed_user_ids(self) -> set[int]:
        """Parse ALLOWED_USER_IDS into a set of ints."""
        if not self.allowed_user_ids.strip():
            return set()
        return {int(uid.strip()) for uid in self.allowed_user_ids.split(",") if uid.strip()}


settings = Settings()
