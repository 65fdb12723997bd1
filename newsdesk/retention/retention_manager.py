"""
Retention Manager
=================

Reclaims storage with two independent rules:
- every subscribed source keeps only its most recently published articles
- sources nobody subscribes to lose articles past a maximum age
"""

from datetime import timedelta
from typing import Optional

from ..config.settings import NewsDeskSettings, get_settings
from ..database.connection import DatabaseConnection
from ..database.models import RetentionResult, utc_now
from ..storage.article_repository import ArticleRepository
from ..storage.subscription_repository import SubscriptionRepository
from ..utils.exceptions import DatabaseError
from ..utils.logging import PerformanceLogger, get_logger_for_component


class RetentionManager:
    """Applies the per-source cap and the orphan expiry rule."""

    def __init__(self, db_connection: DatabaseConnection, settings: Optional[NewsDeskSettings] = None):
        self.settings = settings or get_settings()
        self.articles = ArticleRepository(db_connection)
        self.subscriptions = SubscriptionRepository(db_connection)
        self.logger = get_logger_for_component("retention")

    def run_retention_sweep(self) -> RetentionResult:
        """Run both rules; a failure in one is logged and the other still runs."""
        result = RetentionResult()

        with PerformanceLogger(self.logger, "retention sweep"):
            try:
                result.capped_deleted = self.apply_source_cap()
            except DatabaseError as e:
                result.errors += 1
                self.logger.error(f"Per-source cap failed: {e}", extra=e.to_dict())

            try:
                result.orphan_deleted = self.expire_unsubscribed()
            except DatabaseError as e:
                result.errors += 1
                self.logger.error(f"Unsubscribed expiry failed: {e}", extra=e.to_dict())

        self.logger.info(
            f"Article cleanup completed: {result.total_deleted} articles deleted "
            f"({result.capped_deleted} over cap, {result.orphan_deleted} expired)"
        )
        return result

    def apply_source_cap(self) -> int:
        """Trim each subscribed source to the newest ``per_source_cap`` articles.

        Each source is evaluated once no matter how many users follow it.
        """
        keep = self.settings.retention.per_source_cap
        deleted = 0

        for source_id in self.subscriptions.get_subscribed_source_ids():
            removed = self.articles.trim_source_history(source_id, keep)
            if removed:
                self.logger.info(f"Cleaned up {removed} articles from source {source_id}")
            deleted += removed

        return deleted

    def expire_unsubscribed(self) -> int:
        """Delete old articles of sources without any enabled subscription."""
        max_age = self.settings.retention.orphan_max_age_days
        cutoff = utc_now() - timedelta(days=max_age)

        deleted = self.articles.delete_unsubscribed_older_than(cutoff)
        if deleted:
            self.logger.info(
                f"Cleaned up {deleted} articles older than {max_age} days from unsubscribed sources"
            )
        return deleted
