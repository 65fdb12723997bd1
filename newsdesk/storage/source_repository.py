"""
Source Repository
=================

Source lookup and the active-source selection the pipeline sweeps over.
"""

import sqlite3
from typing import List, Optional

from ..database.connection import DatabaseConnection
from ..database.models import Source, utc_now, to_db_timestamp
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DatabaseError, ErrorCode

# A default source only counts as active while someone follows it
ACTIVE_SOURCES_QUERY = """
    SELECT s.* FROM sources s
    WHERE s.is_active = 1
      AND (
          s.is_default = 0
          OR EXISTS (
              SELECT 1 FROM subscriptions sub
              WHERE sub.source_id = s.id AND sub.enabled = 1
          )
      )
    ORDER BY s.id
"""


class SourceRepository:
    """Repository for news sources."""

    def __init__(self, db_connection: DatabaseConnection):
        self.db = db_connection
        self.logger = get_logger_for_component("source_repository")

    def create_source(self, source: Source) -> int:
        """Create a new source.

        Args:
            source: Source model to create

        Returns:
            New source ID

        Raises:
            DatabaseError: If the insert fails
        """
        try:
            with self.db.get_connection() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO sources (name, url, source_type, content_type,
                                         category, is_default, is_active, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        source.name,
                        source.url,
                        source.source_type.value,
                        source.content_type.value,
                        source.category,
                        source.is_default,
                        source.is_active,
                        to_db_timestamp(source.created_at or utc_now()),
                    ),
                )
                source_id = cursor.lastrowid
                conn.commit()

            self.logger.info(f"Created source {source_id}: {source.name} ({source.url})")
            return source_id

        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to create source: {e}", error_code=ErrorCode.DATABASE_ERROR
            ) from e

    def get_source(self, source_id: int) -> Optional[Source]:
        """Get source by ID regardless of its state.

        Raises:
            DatabaseError: If the lookup fails
        """
        try:
            row = self.db.execute_one("SELECT * FROM sources WHERE id = ?", (source_id,))
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to get source {source_id}: {e}", error_code=ErrorCode.DATABASE_ERROR
            ) from e
        return Source(**dict(row)) if row else None

    def get_active_sources(self) -> List[Source]:
        """Get every source the full sweep should process, in ID order.

        Raises:
            DatabaseError: If the query fails
        """
        try:
            rows = self.db.execute_query(ACTIVE_SOURCES_QUERY)
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to list active sources: {e}", error_code=ErrorCode.DATABASE_ERROR
            ) from e
        return [Source(**dict(row)) for row in rows]

    def list_sources(self) -> List[Source]:
        try:
            rows = self.db.execute_query("SELECT * FROM sources ORDER BY id")
            return [Source(**dict(row)) for row in rows]
        except sqlite3.Error as e:
            self.logger.error(f"Failed to list sources: {e}")
            return []

    def set_active(self, source_id: int, active: bool) -> bool:
        """Enable or disable a source.

        Returns:
            True if a source was updated
        """
        try:
            updated = self.db.execute_update(
                "UPDATE sources SET is_active = ? WHERE id = ?", (active, source_id)
            )
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to update source {source_id}: {e}", error_code=ErrorCode.DATABASE_ERROR
            ) from e
        return updated > 0
