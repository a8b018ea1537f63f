"""
Settings for the racetime.gg announcer bot.

Every setting comes from the environment, optionally through a ``.env``
file, grouped by prefix: ``DISCORD_``, ``RACETIME_``, ``STATE_`` and
``LOG_``. Only ``DISCORD_TOKEN`` is required.
"""

from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DiscordConfig(BaseSettings):
    """Discord connection and command settings."""

    token: str = Field(
        ...,
        description="Bot token from the Discord Developer Portal"
    )
    command_prefix: str = Field(
        default="!",
        description="Prefix of the text commands"
    )
    debug_channel_id: Optional[int] = Field(
        default=None,
        description="Channel ID where global debug commands are accepted"
    )

    model_config = SettingsConfigDict(env_prefix="DISCORD_", extra="ignore")

    @field_validator("token")
    @classmethod
    def validate_token(cls, v: str) -> str:
        """Reject obviously truncated tokens."""
        if not v or len(v) < 50:
            raise ValueError("Discord token must be a valid bot token")
        return v


class RacetimeConfig(BaseSettings):
    """racetime.gg API and polling configuration."""

    base_url: str = Field(
        default="https://racetime.gg",
        description="Base URL of the racetime.gg site"
    )
    timeout: int = Field(
        default=25,
        gt=0,
        description="Total timeout of one racetime.gg request, in seconds"
    )
    refresh_interval: float = Field(
        default=10.0,
        gt=0,
        description="Seconds between race reconciliation passes"
    )
    cleanup_interval: float = Field(
        default=120.0,
        gt=0,
        description="Seconds between sweeps of finished races"
    )
    delete_retry_delay: float = Field(
        default=10.0,
        ge=0,
        description="Delay before the single retry of a failed announcement deletion"
    )

    model_config = SettingsConfigDict(env_prefix="RACETIME_", extra="ignore")

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class StateConfig(BaseSettings):
    """Persisted state file configuration."""

    path: Path = Field(
        default=Path("./config/state.json"),
        description="Location of the JSON state document"
    )

    model_config = SettingsConfigDict(env_prefix="STATE_", extra="ignore")


class LoggingConfig(BaseSettings):
    """Log level and output format."""

    level: str = Field(
        default="INFO",
        description="Minimum level that gets logged"
    )
    format: str = Field(
        default="text",
        description="'json' for one JSON object per line, 'text' for rich console output"
    )

    model_config = SettingsConfigDict(env_prefix="LOG_", extra="ignore")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid_levels = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {', '.join(valid_levels)}")
        return v.upper()

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        if v not in {"json", "text"}:
            raise ValueError("Log format must be 'json' or 'text'")
        return v


class AppConfig(BaseSettings):
    """All settings, one group per concern."""

    debug: bool = Field(
        default=False,
        description="Force DEBUG logging regardless of LOG_LEVEL"
    )

    discord: DiscordConfig = Field(default_factory=DiscordConfig)
    racetime: RacetimeConfig = Field(default_factory=RacetimeConfig)
    state: StateConfig = Field(default_factory=StateConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @model_validator(mode="after")
    def apply_debug(self) -> "AppConfig":
        if self.debug:
            self.logging.level = "DEBUG"
        return self


def load_config() -> AppConfig:
    """
    Read settings from the environment.

    A ``.env`` file in the working directory is loaded first when present;
    variables already set in the environment win.

    Raises:
        ValidationError: If a value is invalid or ``DISCORD_TOKEN`` is missing

    Example:
        ```python
        config = load_config()
        print(f"Polling {config.racetime.base_url}")
        ```
    """
    load_dotenv(Path(".env"))
    return AppConfig()
