"""
NewsDesk Configuration System
=============================

Configuration management with environment variables and Pydantic models.
Environment variables (``NEWSDESK_`` prefix, ``__`` for nested sections)
override Field defaults.
"""

import os
from pathlib import Path
from typing import Optional
from enum import Enum
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from croniter import croniter
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from ..utils.exceptions import ConfigurationError, ErrorCode


class LogLevel(str, Enum):
    """Available log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class IngestionSettings(BaseModel):
    """Feed fetching and content extraction configuration."""
    fetch_timeout: float = Field(default=30.0, gt=0, description="Per-attempt feed download timeout in seconds")
    max_attempts: int = Field(default=3, ge=1, le=10, description="Feed download attempts before giving up")
    retry_base_delay: float = Field(default=2.0, ge=0.0, description="Linear backoff step between attempts in seconds")
    min_snippet_length: int = Field(default=200, ge=0, description="Snippets shorter than this trigger a full-page fetch")
    full_page_timeout: float = Field(default=15.0, gt=0, description="Full-page fetch timeout in seconds")
    min_extracted_text_length: int = Field(default=500, ge=0, description="Minimum text length for an extracted page region")
    summary_max_length: int = Field(default=200, ge=20, description="Maximum summary length in characters")
    feed_user_agent: str = Field(default="NewsDesk/1.0", description="User-Agent sent when fetching feeds")
    browser_user_agent: str = Field(
        default="Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
        description="User-Agent sent when fetching article pages"
    )


class RetentionSettings(BaseModel):
    """Article retention configuration."""
    per_source_cap: int = Field(default=100, ge=1, description="Articles kept per subscribed source")
    orphan_max_age_days: int = Field(default=30, ge=1, description="Age after which unsubscribed sources' articles expire")


class ScheduleSettings(BaseModel):
    """Recurring job configuration."""
    sweep_cron: str = Field(default="*/30 * * * *", description="Cron expression for the full ingestion sweep")
    retention_cron: str = Field(default="0 2 * * *", description="Cron expression for the retention sweep")
    timezone: str = Field(default="Asia/Shanghai", description="Timezone the cron expressions are evaluated in")

    @field_validator('sweep_cron', 'retention_cron')
    @classmethod
    def validate_cron(cls, v):
        """Ensure cron expressions parse."""
        if not croniter.is_valid(v):
            raise ValueError(f"Invalid cron expression: {v}")
        return v

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, v):
        """Ensure timezone is a known IANA name."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v


class TranslationSettings(BaseModel):
    """Title translation collaborator configuration."""
    target_language: str = Field(default="zh-CN", description="Language titles are translated into")
    api_key: Optional[str] = Field(default=None, description="API key for the OpenAI-compatible endpoint")
    base_url: Optional[str] = Field(default=None, description="Base URL of an OpenAI-compatible endpoint")
    model: str = Field(default="gpt-3.5-turbo", description="Chat model used for translation")
    max_tokens: int = Field(default=1000, ge=16, le=8000, description="Maximum tokens per response")
    temperature: float = Field(default=0.3, ge=0.0, le=2.0, description="Sampling temperature")
    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds")


class DatabaseSettings(BaseModel):
    """Database configuration."""
    path: str = Field(default="data/newsdesk.db", description="SQLite database file path")
    pool_size: int = Field(default=5, ge=1, le=20, description="Connection pool size")


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Global log level")
    file_path: Optional[str] = Field(default="logs/newsdesk.log", description="Log file path")
    max_file_size_mb: int = Field(default=10, ge=1, le=100, description="Max log file size in MB")
    backup_count: int = Field(default=5, ge=1, le=20, description="Number of log backup files")
    structured_logging: bool = Field(default=False, description="Use structured JSON logging on the console")
    console_logging: bool = Field(default=True, description="Enable console logging")


class NewsDeskSettings(BaseSettings):
    """Main application settings."""

    ingestion: IngestionSettings = Field(default_factory=IngestionSettings)
    retention: RetentionSettings = Field(default_factory=RetentionSettings)
    schedule: ScheduleSettings = Field(default_factory=ScheduleSettings)
    translation: TranslationSettings = Field(default_factory=TranslationSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    app_name: str = Field(default="NewsDesk", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "env_prefix": "NEWSDESK_",
        "extra": "ignore",
    }

    def validate_configuration(self) -> None:
        """Validate complete configuration."""
        errors = []

        try:
            db_path = Path(self.database.path)
            db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            errors.append(f"Invalid database path: {e}")

        if self.logging.file_path:
            try:
                log_path = Path(self.logging.file_path)
                log_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                errors.append(f"Invalid log file path: {e}")

        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}",
                error_code=ErrorCode.CONFIG_INVALID
            )

    def has_translation_credentials(self) -> bool:
        """Check whether the translation endpoint can authenticate."""
        return bool(self.translation.api_key or os.getenv("OPENAI_API_KEY"))

    def get_effective_log_level(self) -> str:
        """Get effective log level considering debug mode."""
        if self.debug:
            return "DEBUG"
        return self.logging.level.value


def load_settings() -> NewsDeskSettings:
    """Load settings from environment variables, ``.env`` and defaults.

    Returns:
        Loaded and validated settings

    Raises:
        ConfigurationError: If configuration is invalid
    """
    from dotenv import load_dotenv
    load_dotenv()

    try:
        settings = NewsDeskSettings()
    except ValueError as e:
        raise ConfigurationError(
            f"Failed to initialize settings: {e}",
            error_code=ErrorCode.CONFIG_INVALID
        ) from e

    settings.validate_configuration()
    return settings


_settings: Optional[NewsDeskSettings] = None


def get_settings(reload: bool = False) -> NewsDeskSettings:
    """Get global settings instance (singleton pattern).

    Args:
        reload: Force reload of settings

    Returns:
        Global settings instance
    """
    global _settings

    if _settings is None or reload:
        _settings = load_settings()

    return _settings
