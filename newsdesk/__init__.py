"""
NewsDesk - News Feed Ingestion Pipeline
=======================================

Scheduled RSS ingestion with content extraction, title translation and
retention management.

Main Components:
- Database: SQLite with connection pooling and schema management
- Configuration: environment variables with Pydantic validation
- Ingestion: feed fetching with retries, full-page extraction, sanitization
- Translation: cached title translation behind a hybrid opt-in policy
- Scheduler: cron-driven ingestion and retention sweeps
"""

__version__ = "1.0.0"
__author__ = "NewsDesk Development Team"
__description__ = "Scheduled news feed ingestion pipeline"

# Core imports for easy access
from .config.settings import get_settings
from .database.connection import get_db_manager
from .database.schema import DatabaseSchema
from .utils.logging import configure_application_logging, get_logger_for_component
from .utils.exceptions import NewsDeskError

__all__ = [
    "get_settings",
    "get_db_manager",
    "DatabaseSchema",
    "configure_application_logging",
    "get_logger_for_component",
    "NewsDeskError",
]
