"""
Foundation Tests
================

Configuration loading, logging setup, error types and schema management.
"""

import json
import logging
import os
import pytest
from unittest.mock import patch

from pydantic import ValidationError as PydanticValidationError

from newsdesk.config.settings import NewsDeskSettings, ScheduleSettings, load_settings
from newsdesk.database.schema import DatabaseSchema, EXPECTED_TABLES
from newsdesk.database.connection import DatabaseConnection
from newsdesk.utils.exceptions import (
    ConfigurationError,
    DuplicateArticleError,
    ErrorCode,
    FeedFetchError,
    SourceNotFoundError,
    TranslationError,
    is_retryable_error,
)
from newsdesk.utils.logging import (
    LoggerAdapter,
    PerformanceLogger,
    StructuredFormatter,
    get_logger_for_component,
)


class TestSettings:
    """Settings defaults, validation and environment overrides."""

    def test_defaults(self):
        settings = NewsDeskSettings()

        assert settings.ingestion.max_attempts == 3
        assert settings.ingestion.retry_base_delay == 2.0
        assert settings.ingestion.min_snippet_length == 200
        assert settings.ingestion.min_extracted_text_length == 500
        assert settings.retention.per_source_cap == 100
        assert settings.retention.orphan_max_age_days == 30
        assert settings.schedule.sweep_cron == "*/30 * * * *"
        assert settings.schedule.retention_cron == "0 2 * * *"
        assert settings.schedule.timezone == "Asia/Shanghai"
        assert settings.translation.target_language == "zh-CN"

    def test_nested_environment_override(self):
        with patch.dict(os.environ, {
            "NEWSDESK_RETENTION__PER_SOURCE_CAP": "25",
            "NEWSDESK_SCHEDULE__TIMEZONE": "UTC",
        }):
            settings = NewsDeskSettings()

        assert settings.retention.per_source_cap == 25
        assert settings.schedule.timezone == "UTC"

    def test_invalid_cron_rejected(self):
        with pytest.raises(PydanticValidationError):
            ScheduleSettings(sweep_cron="every thirty minutes")

    def test_invalid_timezone_rejected(self):
        with pytest.raises(PydanticValidationError):
            ScheduleSettings(timezone="Mars/Olympus_Mons")

    def test_load_settings_wraps_errors(self):
        with patch.dict(os.environ, {"NEWSDESK_RETENTION__PER_SOURCE_CAP": "0"}):
            with pytest.raises(ConfigurationError):
                load_settings()

    def test_debug_forces_debug_level(self):
        assert NewsDeskSettings(debug=True).get_effective_log_level() == "DEBUG"

    def test_translation_credentials_from_environment(self):
        assert NewsDeskSettings().has_translation_credentials() is True


class TestExceptions:
    """Error hierarchy and retry classification."""

    def test_error_string_and_dict(self):
        error = SourceNotFoundError(7)

        assert str(error) == "[R002] Source 7 not found or inactive"
        data = error.to_dict()
        assert data["error_type"] == "SourceNotFoundError"
        assert data["context"] == {"source_id": 7}

    def test_retryable_classification(self):
        assert is_retryable_error(FeedFetchError("x", error_code=ErrorCode.FEED_NETWORK_ERROR))
        assert not is_retryable_error(TranslationError("x"))
        assert not is_retryable_error(DuplicateArticleError("https://a"))
        assert not is_retryable_error(FeedFetchError("x", error_code=ErrorCode.FEED_HTTP_ERROR, recoverable=False))


class TestLogging:
    """Structured logging helpers."""

    def test_component_logger_context(self):
        adapter = get_logger_for_component("feed_fetcher", source_id=3, job_name="news_fetch")

        assert isinstance(adapter, LoggerAdapter)
        assert adapter.logger.name == "newsdesk.feed_fetcher"
        assert adapter.extra == {"component": "feed_fetcher", "source_id": 3, "job": "news_fetch"}

    def test_structured_formatter_includes_extra(self):
        record = logging.LogRecord("newsdesk.test", logging.INFO, __file__, 10, "hello %s", ("world",), None)
        record.source_id = 9

        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "hello world"
        assert data["level"] == "INFO"
        assert data["extra"]["source_id"] == 9

    def test_performance_logger_measures_duration(self, caplog):
        logger = logging.getLogger("newsdesk.perf_test")

        with caplog.at_level(logging.INFO, logger="newsdesk.perf_test"):
            with PerformanceLogger(logger, "sweep", sources=2) as perf:
                pass

        assert perf.duration is not None
        assert "Completed sweep" in caplog.text


class TestDatabaseSchema:
    """Schema creation and verification."""

    def test_create_and_verify(self, tmp_path):
        schema = DatabaseSchema(str(tmp_path / "schema.db"))
        schema.create_tables()

        assert schema.verify_schema() is True

        info = DatabaseConnection(str(tmp_path / "schema.db"), pool_size=1).get_database_info()
        assert set(info["table_counts"]) == set(EXPECTED_TABLES)

    def test_verify_fails_after_drop(self, tmp_path):
        schema = DatabaseSchema(str(tmp_path / "schema.db"))
        schema.create_tables()
        schema.drop_tables()

        assert schema.verify_schema() is False
