"""
Translation Repository
======================

Title translation cache and the global system settings row.
"""

import sqlite3
from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.models import utc_now, to_db_timestamp
from ..database.schema import SYSTEM_SETTINGS_ID
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DatabaseError, ErrorCode


class TranslationRepository:
    """Cache of translated titles keyed by the exact original title."""

    def __init__(self, db_connection: DatabaseConnection):
        self.db = db_connection
        self.logger = get_logger_for_component("translation_repository")

    def get_translation(self, original_title: str) -> Optional[str]:
        """Look up a cached translation.

        Raises:
            DatabaseError: If the lookup fails
        """
        try:
            row = self.db.execute_one(
                "SELECT translated_title FROM title_translations WHERE original_title = ?",
                (original_title,),
            )
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to read translation cache: {e}", error_code=ErrorCode.DATABASE_ERROR
            ) from e
        return row["translated_title"] if row else None

    def upsert_translation(self, original_title: str, translated_title: str, language: str) -> None:
        """Insert or overwrite a cached translation.

        Concurrent writers for the same title simply overwrite each other.

        Raises:
            DatabaseError: If the write fails
        """
        now = to_db_timestamp(utc_now())
        try:
            self.db.execute_update(
                """
                INSERT INTO title_translations
                    (original_title, translated_title, language, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(original_title) DO UPDATE SET
                    translated_title = excluded.translated_title,
                    language = excluded.language,
                    updated_at = excluded.updated_at
                """,
                (original_title, translated_title, language, now, now),
            )
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to write translation cache: {e}", error_code=ErrorCode.DATABASE_ERROR
            ) from e


class SystemSettingsRepository:
    """The single ``system`` row holding global toggles."""

    def __init__(self, db_connection: DatabaseConnection):
        self.db = db_connection
        self.logger = get_logger_for_component("system_settings")

    def get_auto_translate(self) -> bool:
        """Global auto-translate toggle; a missing row means off.

        Raises:
            DatabaseError: If the lookup fails
        """
        try:
            row = self.db.execute_one(
                "SELECT auto_translate FROM system_settings WHERE id = ?", (SYSTEM_SETTINGS_ID,)
            )
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to read system settings: {e}") from e
        return bool(row["auto_translate"]) if row else False

    def set_auto_translate(self, enabled: bool) -> None:
        try:
            self.db.execute_update(
                """
                INSERT INTO system_settings (id, auto_translate, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    auto_translate = excluded.auto_translate,
                    updated_at = excluded.updated_at
                """,
                (SYSTEM_SETTINGS_ID, enabled, to_db_timestamp(utc_now())),
            )
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to update system settings: {e}") from e
        self.logger.info(f"System auto-translate set to {enabled}")
