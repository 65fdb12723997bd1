"""
Subscription Repository
=======================

Users, their subscriptions, and the subscription-derived queries used by
the orchestrator, the translation policy and the retention manager.
"""

import sqlite3
from typing import List

from ..database.connection import DatabaseConnection
from ..database.models import User, Subscription, utc_now, to_db_timestamp
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DatabaseError, ErrorCode


class SubscriptionRepository:
    """Repository for users and their source subscriptions."""

    def __init__(self, db_connection: DatabaseConnection):
        self.db = db_connection
        self.logger = get_logger_for_component("subscription_repository")

    def create_user(self, user: User) -> int:
        """Create a user and return its ID.

        Raises:
            DatabaseError: If the insert fails (including a duplicate e-mail)
        """
        try:
            with self.db.get_connection() as conn:
                cursor = conn.execute(
                    "INSERT INTO users (email, auto_translate, created_at) VALUES (?, ?, ?)",
                    (user.email, user.auto_translate, to_db_timestamp(user.created_at or utc_now())),
                )
                user_id = cursor.lastrowid
                conn.commit()
            return user_id
        except sqlite3.IntegrityError as e:
            raise DatabaseError(
                f"User {user.email} already exists", error_code=ErrorCode.DATABASE_CONSTRAINT
            ) from e
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to create user: {e}") from e

    def set_user_auto_translate(self, user_id: int, enabled: bool) -> bool:
        try:
            return self.db.execute_update(
                "UPDATE users SET auto_translate = ? WHERE id = ?", (enabled, user_id)
            ) > 0
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to update user {user_id}: {e}") from e

    def subscribe(self, subscription: Subscription) -> int:
        """Create or update the subscription of a user to a source.

        Returns:
            Subscription ID
        """
        try:
            with self.db.get_connection() as conn:
                conn.execute(
                    """
                    INSERT INTO subscriptions (user_id, source_id, enabled, auto_translate)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(user_id, source_id) DO UPDATE SET
                        enabled = excluded.enabled,
                        auto_translate = excluded.auto_translate
                    """,
                    (
                        subscription.user_id,
                        subscription.source_id,
                        subscription.enabled,
                        subscription.auto_translate,
                    ),
                )
                row = conn.execute(
                    "SELECT id FROM subscriptions WHERE user_id = ? AND source_id = ?",
                    (subscription.user_id, subscription.source_id),
                ).fetchone()
                conn.commit()
            return row["id"]
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to save subscription: {e}", error_code=ErrorCode.DATABASE_ERROR
            ) from e

    def get_subscriptions_for_source(self, source_id: int) -> List[Subscription]:
        try:
            rows = self.db.execute_query(
                "SELECT * FROM subscriptions WHERE source_id = ? ORDER BY id", (source_id,)
            )
            return [Subscription(**dict(row)) for row in rows]
        except sqlite3.Error as e:
            self.logger.error(f"Failed to get subscriptions for source {source_id}: {e}")
            return []

    def count_enabled_subscribers(self, source_id: int) -> int:
        """Count enabled subscriptions on a source.

        Raises:
            DatabaseError: If the query fails
        """
        try:
            row = self.db.execute_one(
                "SELECT COUNT(*) FROM subscriptions WHERE source_id = ? AND enabled = 1",
                (source_id,),
            )
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to count subscribers of source {source_id}: {e}") from e
        return row[0] if row else 0

    def get_subscribed_source_ids(self) -> List[int]:
        """Distinct IDs of sources with at least one enabled subscription.

        Raises:
            DatabaseError: If the query fails
        """
        try:
            rows = self.db.execute_query(
                "SELECT DISTINCT source_id FROM subscriptions WHERE enabled = 1 ORDER BY source_id"
            )
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to list subscribed sources: {e}") from e
        return [row["source_id"] for row in rows]

    def has_auto_translate_subscriber(self, source_id: int) -> bool:
        """Whether an enabled subscription opted in at both subscription and account level.

        Raises:
            DatabaseError: If the query fails
        """
        try:
            row = self.db.execute_one(
                """
                SELECT 1 FROM subscriptions sub
                JOIN users u ON u.id = sub.user_id
                WHERE sub.source_id = ?
                  AND sub.enabled = 1
                  AND sub.auto_translate = 1
                  AND u.auto_translate = 1
                LIMIT 1
                """,
                (source_id,),
            )
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to check auto-translate subscribers of source {source_id}: {e}"
            ) from e
        return row is not None
