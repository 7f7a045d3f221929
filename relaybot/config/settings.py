"""
Configuration management with Pydantic settings.
Supports environment variables, a .env file and secure credential handling.
"""
from functools import lru_cache
from typing import Annotated, List, Optional, Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with validation and type safety."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Telegram Configuration
    bot_token: str = Field(..., description="Bot token from @BotFather")
    oversight_chat_id: Union[int, str] = Field(
        ..., description="Channel that mirrors all relayed traffic (@name or numeric id)"
    )
    protect_content: bool = Field(default=True, description="Forbid forwarding/saving relayed messages")

    # Profile Database Configuration
    database_url: str = Field(
        default="sqlite+aiosqlite:///./relaybot.db",
        description="SQLAlchemy database URL for participant profiles"
    )

    # Pairing State Configuration
    state_backend: str = Field(default="redis", pattern="^(redis|memory)$")
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL"
    )
    state_key_prefix: str = Field(default="pairing", min_length=1)

    # Security Configuration
    admin_ids: Annotated[List[int], NoDecode] = Field(default_factory=list, description="List of admin user IDs")

    # Registration Configuration
    gender_options: Annotated[List[str], NoDecode] = Field(default_factory=lambda: ["male", "female"])

    # Logging Configuration
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    log_file: Optional[str] = Field(default="bot.log")
    debug_mode: bool = Field(default=False)

    @field_validator('admin_ids', mode='before')
    @classmethod
    def parse_admin_ids(cls, v):
        """Parse comma-separated admin IDs from environment variable."""
        if isinstance(v, int):
            return [v]
        if isinstance(v, str):
            return [int(x.strip()) for x in v.split(',') if x.strip()]
        return v

    @field_validator('gender_options', mode='before')
    @classmethod
    def parse_gender_options(cls, v):
        """Parse comma-separated gender options."""
        if isinstance(v, str):
            return [x.strip() for x in v.split(',') if x.strip()]
        return v

    @field_validator('oversight_chat_id', mode='before')
    @classmethod
    def parse_oversight_chat_id(cls, v):
        """Numeric ids (including negative channel ids) become ints, @names stay strings."""
        if isinstance(v, str):
            stripped = v.strip()
            if stripped.lstrip('-').isdigit():
                return int(stripped)
            return stripped
        return v


@lru_cache
def get_settings() -> Settings:
    """Get application settings instance."""
    return Settings()


def is_admin(user_id: int, settings: Optional[Settings] = None) -> bool:
    """Check if user ID is in admin list."""
    settings = settings or get_settings()
    return user_id in settings.admin_ids
