"""
Article Repository
==================

Article persistence with origin-URL deduplication and the deletion queries
used by the retention manager.
"""

import sqlite3
from datetime import datetime
from typing import List, Optional, Iterable

from ..database.models import Article, SaveResult, to_db_timestamp
from ..database.connection import DatabaseConnection
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DatabaseError, DuplicateArticleError, ErrorCode


class ArticleRepository:
    """Repository for article storage."""

    def __init__(self, db_connection: DatabaseConnection):
        """Initialize article repository.

        Args:
            db_connection: Database connection manager
        """
        self.db = db_connection
        self.logger = get_logger_for_component("article_repository")

    def create_article(self, article: Article) -> str:
        """Insert a new article.

        Args:
            article: Article model to create

        Returns:
            Created article ID

        Raises:
            DuplicateArticleError: If an article with the same origin URL exists
            DatabaseError: If the insert fails for any other reason
        """
        try:
            with self.db.get_connection() as conn:
                conn.execute(
                    """
                    INSERT INTO articles (id, source_id, title_en, title_translated,
                                          content_html, origin_url, image_url,
                                          published_at, author, summary, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        article.id, article.source_id, article.title_en,
                        article.title_translated, article.content_html,
                        article.origin_url, article.image_url,
                        to_db_timestamp(article.published_at), article.author,
                        article.summary, to_db_timestamp(article.created_at),
                    )
                )
                conn.commit()

        except sqlite3.IntegrityError as e:
            if "articles.origin_url" in str(e):
                raise DuplicateArticleError(article.origin_url) from e
            raise DatabaseError(
                f"Failed to create article: {e}",
                error_code=ErrorCode.DATABASE_CONSTRAINT
            ) from e
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to create article: {e}",
                error_code=ErrorCode.DATABASE_ERROR
            ) from e

        self.logger.debug(f"Created article: {article.id}")
        return article.id

    def save_articles(self, articles: Iterable[Article]) -> SaveResult:
        """Insert articles one by one.

        Duplicates are skipped silently; any other failure is counted and the
        batch continues.
        """
        result = SaveResult()

        for article in articles:
            try:
                self.create_article(article)
                result.created += 1
            except DuplicateArticleError:
                result.duplicates += 1
                self.logger.debug(f"Skipped duplicate article: {article.origin_url}")
            except DatabaseError as e:
                result.errors += 1
                self.logger.error(
                    f"Failed to save article '{article.title_en}': {e}",
                    extra=e.to_dict()
                )

        return result

    def exists_by_origin_url(self, origin_url: str) -> bool:
        """Best-effort check whether an article is already stored."""
        try:
            row = self.db.execute_one(
                "SELECT 1 FROM articles WHERE origin_url = ?", (origin_url,)
            )
            return row is not None
        except sqlite3.Error as e:
            self.logger.warning(f"Existence check failed for {origin_url}: {e}")
            return False

    def get_article(self, article_id: str) -> Optional[Article]:
        try:
            row = self.db.execute_one("SELECT * FROM articles WHERE id = ?", (article_id,))
            return Article(**dict(row)) if row else None
        except sqlite3.Error as e:
            self.logger.error(f"Failed to get article {article_id}: {e}")
            return None

    def get_by_origin_url(self, origin_url: str) -> Optional[Article]:
        try:
            row = self.db.execute_one(
                "SELECT * FROM articles WHERE origin_url = ?", (origin_url,)
            )
            return Article(**dict(row)) if row else None
        except sqlite3.Error as e:
            self.logger.error(f"Failed to get article by URL {origin_url}: {e}")
            return None

    def get_articles_by_source(self, source_id: int, limit: int = 100) -> List[Article]:
        """Get a source's articles, newest first."""
        try:
            rows = self.db.execute_query(
                """
                SELECT * FROM articles
                WHERE source_id = ?
                ORDER BY published_at DESC
                LIMIT ?
                """,
                (source_id, limit)
            )
            return [Article(**dict(row)) for row in rows]
        except sqlite3.Error as e:
            self.logger.error(f"Failed to get articles for source {source_id}: {e}")
            return []

    def count_articles(self, source_id: Optional[int] = None) -> int:
        try:
            if source_id is None:
                row = self.db.execute_one("SELECT COUNT(*) FROM articles")
            else:
                row = self.db.execute_one(
                    "SELECT COUNT(*) FROM articles WHERE source_id = ?", (source_id,)
                )
            return row[0] if row else 0
        except sqlite3.Error as e:
            self.logger.error(f"Failed to count articles: {e}")
            return 0

    def trim_source_history(self, source_id: int, keep: int) -> int:
        """Delete all but the ``keep`` most recently published articles of a source.

        Returns:
            Number of deleted articles

        Raises:
            DatabaseError: If the delete fails
        """
        try:
            with self.db.transaction() as conn:
                cursor = conn.execute(
                    """
                    DELETE FROM articles
                    WHERE source_id = ?
                      AND id NOT IN (
                          SELECT id FROM articles
                          WHERE source_id = ?
                          ORDER BY published_at DESC, created_at DESC
                          LIMIT ?
                      )
                    """,
                    (source_id, source_id, keep)
                )
                return cursor.rowcount
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to trim history of source {source_id}: {e}",
                error_code=ErrorCode.DATABASE_TRANSACTION
            ) from e

    def delete_unsubscribed_older_than(self, cutoff: datetime) -> int:
        """Delete articles published before ``cutoff`` from sources nobody follows.

        Returns:
            Number of deleted articles

        Raises:
            DatabaseError: If the delete fails
        """
        try:
            with self.db.transaction() as conn:
                cursor = conn.execute(
                    """
                    DELETE FROM articles
                    WHERE published_at < ?
                      AND source_id NOT IN (
                          SELECT DISTINCT source_id FROM subscriptions WHERE enabled = 1
                      )
                    """,
                    (to_db_timestamp(cutoff),)
                )
                return cursor.rowcount
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to delete expired unsubscribed articles: {e}",
                error_code=ErrorCode.DATABASE_TRANSACTION
            ) from e
