"""
PyTest Configuration and Fixtures
=================================

Shared fixtures and configuration for NewsDesk tests.

- Temporary-file SQLite databases created through DatabaseSchema
- Settings objects built explicitly so no test touches the global singleton
- A deterministic in-memory translator
"""

import pytest
import tempfile
import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before any imports
os.environ["NEWSDESK_TRANSLATION__API_KEY"] = "test-openai-key-for-testing"
os.environ["NEWSDESK_LOGGING__CONSOLE_LOGGING"] = "false"

from newsdesk.config.settings import (
    NewsDeskSettings,
    DatabaseSettings,
    IngestionSettings,
    LoggingSettings,
)
from newsdesk.database.connection import DatabaseConnection
from newsdesk.database.schema import DatabaseSchema
from newsdesk.database.models import Article, ContentKind, Source, Subscription, User
from newsdesk.storage.source_repository import SourceRepository
from newsdesk.storage.subscription_repository import SubscriptionRepository
from newsdesk.translation.translator import Translator
from newsdesk.utils.exceptions import TranslationError


class FakeTranslator(Translator):
    """Translator that prefixes the target language; can be told to fail."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    async def translate(self, text: str, target_language: str) -> str:
        self.calls.append(text)
        if self.fail:
            raise TranslationError("translator offline", provider="fake")
        return f"[{target_language}] {text}"


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def test_database():
    """Temporary database file with the full schema."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name

    schema = DatabaseSchema(db_path)
    schema.create_tables()

    yield db_path

    for suffix in ("", "-wal", "-shm"):
        try:
            os.unlink(db_path + suffix)
        except FileNotFoundError:
            pass


@pytest.fixture
def settings(test_database):
    """Settings pointing at the test database, with instant retries."""
    return NewsDeskSettings(
        database=DatabaseSettings(path=test_database, pool_size=2),
        ingestion=IngestionSettings(retry_base_delay=0.0),
        logging=LoggingSettings(file_path=None, console_logging=False),
    )


@pytest.fixture
def db_connection(test_database):
    """Database connection manager for the test database."""
    connection = DatabaseConnection(test_database, pool_size=2)
    yield connection
    connection.close_all_connections()


@pytest.fixture
def fake_translator():
    return FakeTranslator()


# ============================================================================
# Data Factories
# ============================================================================


@pytest.fixture
def make_source(db_connection):
    """Create and store a source; returns the stored model."""
    repo = SourceRepository(db_connection)

    def _make(name="Tech Daily", url="https://news.example.com/feed.xml",
              content_type=ContentKind.TEXT, is_default=False, is_active=True, **kwargs):
        source = Source(
            name=name,
            url=url,
            content_type=content_type,
            is_default=is_default,
            is_active=is_active,
            **kwargs,
        )
        source.id = repo.create_source(source)
        return source

    return _make


@pytest.fixture
def make_subscriber(db_connection):
    """Create a user subscribed to a source; returns the user ID."""
    repo = SubscriptionRepository(db_connection)
    counter = {"n": 0}

    def _make(source_id, user_auto_translate=False, sub_auto_translate=None, enabled=True):
        counter["n"] += 1
        user_id = repo.create_user(
            User(email=f"reader{counter['n']}@example.com", auto_translate=user_auto_translate)
        )
        repo.subscribe(Subscription(
            user_id=user_id,
            source_id=source_id,
            enabled=enabled,
            auto_translate=sub_auto_translate,
        ))
        return user_id

    return _make


@pytest.fixture
def make_article():
    """Build (not store) an article for a source."""

    def _make(source_id, n=0, published_at=None, **kwargs):
        return Article(
            source_id=source_id,
            title_en=kwargs.pop("title_en", f"Headline {n}"),
            origin_url=kwargs.pop("origin_url", f"https://news.example.com/articles/{source_id}/{n}"),
            content_html=kwargs.pop("content_html", f"<p>Body {n}</p>"),
            published_at=published_at or datetime(2026, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=n),
            **kwargs,
        )

    return _make
