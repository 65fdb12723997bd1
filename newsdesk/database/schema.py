"""
NewsDesk Database Schema
========================

SQLite schema for the ingestion pipeline:
- sources: feeds the pipeline pulls from
- users: viewers with an account-level auto-translate preference
- subscriptions: which users follow which sources
- articles: stored articles, unique per origin URL
- title_translations: cache of translated titles
- system_settings: single row holding the global auto-translate toggle
"""

import sqlite3
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

SYSTEM_SETTINGS_ID = "system"

EXPECTED_TABLES = {
    "sources",
    "users",
    "subscriptions",
    "articles",
    "title_translations",
    "system_settings",
}


class DatabaseSchema:
    """Database schema manager for the NewsDesk SQLite database."""

    def __init__(self, db_path: str = "data/newsdesk.db"):
        """Initialize database schema manager.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def create_tables(self) -> None:
        """Create all database tables with proper schema."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("PRAGMA foreign_keys = ON")

            self._create_sources_table(conn)
            self._create_users_table(conn)
            self._create_subscriptions_table(conn)
            self._create_articles_table(conn)
            self._create_title_translations_table(conn)
            self._create_system_settings_table(conn)

            self._create_indexes(conn)

            conn.commit()
            logger.info("Database schema created successfully")

    def _create_sources_table(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS sources (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                url TEXT NOT NULL,
                source_type TEXT NOT NULL DEFAULT 'rss' CHECK (source_type IN ('rss', 'api')),
                content_type TEXT NOT NULL DEFAULT 'text' CHECK (content_type IN ('text', 'media')),
                category TEXT,
                is_default BOOLEAN NOT NULL DEFAULT FALSE,
                is_active BOOLEAN NOT NULL DEFAULT TRUE,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

    def _create_users_table(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                email TEXT UNIQUE NOT NULL,
                auto_translate BOOLEAN NOT NULL DEFAULT FALSE,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

    def _create_subscriptions_table(self, conn: sqlite3.Connection) -> None:
        """Create subscriptions; auto_translate NULL means the user never chose."""
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS subscriptions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                source_id INTEGER NOT NULL,
                enabled BOOLEAN NOT NULL DEFAULT TRUE,
                auto_translate BOOLEAN,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE(user_id, source_id),
                FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
                FOREIGN KEY (source_id) REFERENCES sources(id) ON DELETE CASCADE
            )
        """
        )

    def _create_articles_table(self, conn: sqlite3.Connection) -> None:
        """Create articles table; origin_url uniqueness is the dedup backstop."""
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS articles (
                id TEXT PRIMARY KEY,
                source_id INTEGER NOT NULL,
                title_en TEXT NOT NULL,
                title_translated TEXT,
                content_html TEXT NOT NULL DEFAULT '',
                origin_url TEXT UNIQUE NOT NULL,
                image_url TEXT,
                published_at TIMESTAMP NOT NULL,
                author TEXT,
                summary TEXT NOT NULL DEFAULT '',
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (source_id) REFERENCES sources(id) ON DELETE CASCADE
            )
        """
        )

    def _create_title_translations_table(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS title_translations (
                original_title TEXT PRIMARY KEY,
                translated_title TEXT NOT NULL,
                language TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

    def _create_system_settings_table(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS system_settings (
                id TEXT PRIMARY KEY,
                auto_translate BOOLEAN NOT NULL DEFAULT FALSE,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

    def _create_indexes(self, conn: sqlite3.Connection) -> None:
        """Create database indexes for the pipeline's query paths."""
        indexes = [
            "CREATE INDEX IF NOT EXISTS idx_sources_active ON sources(is_active, is_default)",
            "CREATE INDEX IF NOT EXISTS idx_subscriptions_source_enabled ON subscriptions(source_id, enabled)",
            "CREATE INDEX IF NOT EXISTS idx_articles_source_published ON articles(source_id, published_at)",
            "CREATE INDEX IF NOT EXISTS idx_articles_published ON articles(published_at)",
        ]

        for index_sql in indexes:
            conn.execute(index_sql)

    def drop_tables(self) -> None:
        """Drop all tables (for testing/reset purposes)."""
        with sqlite3.connect(self.db_path) as conn:
            tables = [
                "articles",
                "subscriptions",
                "title_translations",
                "system_settings",
                "users",
                "sources",
            ]

            for table in tables:
                conn.execute(f"DROP TABLE IF EXISTS {table}")

            conn.commit()
            logger.info("All database tables dropped")

    def get_connection(self) -> sqlite3.Connection:
        """Get database connection with foreign keys enabled."""
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON")
        conn.row_factory = sqlite3.Row
        return conn

    def verify_schema(self) -> bool:
        """Verify database schema is correctly created."""
        try:
            with self.get_connection() as conn:
                cursor = conn.execute(
                    """
                    SELECT name FROM sqlite_master
                    WHERE type='table' AND name NOT LIKE 'sqlite_%'
                    ORDER BY name
                """
                )
                tables = {row[0] for row in cursor.fetchall()}

                missing = EXPECTED_TABLES - tables
                if missing:
                    logger.error(f"Missing tables: {sorted(missing)}")
                    return False

                conn.execute("PRAGMA foreign_key_check")

            logger.info("Database schema verification passed")
            return True

        except sqlite3.Error as e:
            logger.error(f"Schema verification failed: {e}")
            return False


def create_tables(db_path: str = "data/newsdesk.db") -> None:
    """Convenience function to create database tables.

    Args:
        db_path: Path to SQLite database file
    """
    DatabaseSchema(db_path).create_tables()
