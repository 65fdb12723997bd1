"""
Tests for Retention Manager
===========================

Per-source cap for subscribed sources and age expiry for unsubscribed ones.
"""

import pytest
from datetime import timedelta
from unittest.mock import patch

from newsdesk.database.models import utc_now
from newsdesk.retention.retention_manager import RetentionManager
from newsdesk.storage.article_repository import ArticleRepository
from newsdesk.utils.exceptions import DatabaseError


class TestRetentionManager:
    """Test suite for RetentionManager."""

    @pytest.fixture
    def manager(self, db_connection, settings):
        return RetentionManager(db_connection, settings)

    @pytest.fixture
    def articles(self, db_connection):
        return ArticleRepository(db_connection)

    def _store(self, articles, make_article, source_id, count, start=0, published_at=None):
        for n in range(start, start + count):
            articles.create_article(make_article(
                source_id, n,
                published_at=published_at(n) if published_at else None,
            ))

    def test_subscribed_source_capped_at_newest_hundred(
        self, manager, articles, make_source, make_subscriber, make_article
    ):
        source = make_source()
        make_subscriber(source.id)
        make_subscriber(source.id)
        self._store(articles, make_article, source.id, 150)

        result = manager.run_retention_sweep()

        assert result.capped_deleted == 50
        assert result.total_deleted == 50
        assert articles.count_articles(source.id) == 100

        kept = articles.get_articles_by_source(source.id, limit=200)
        assert {a.title_en for a in kept} == {f"Headline {n}" for n in range(50, 150)}

    def test_source_under_cap_untouched(
        self, manager, articles, make_source, make_subscriber, make_article
    ):
        source = make_source()
        make_subscriber(source.id)
        self._store(articles, make_article, source.id, 20)

        assert manager.apply_source_cap() == 0
        assert articles.count_articles(source.id) == 20

    def test_unsubscribed_articles_expire_after_thirty_days(
        self, manager, articles, make_source, make_article
    ):
        source = make_source()
        now = utc_now()
        self._store(articles, make_article, source.id, 3, published_at=lambda n: now - timedelta(days=40 + n))
        self._store(articles, make_article, source.id, 2, start=10, published_at=lambda n: now - timedelta(days=5))

        result = manager.run_retention_sweep()

        assert result.orphan_deleted == 3
        assert result.capped_deleted == 0
        assert articles.count_articles(source.id) == 2

    def test_subscribed_old_articles_not_expired(
        self, manager, articles, make_source, make_subscriber, make_article
    ):
        source = make_source()
        make_subscriber(source.id)
        now = utc_now()
        self._store(articles, make_article, source.id, 3, published_at=lambda n: now - timedelta(days=90))

        result = manager.run_retention_sweep()

        assert result.total_deleted == 0
        assert articles.count_articles(source.id) == 3

    def test_disabled_subscription_counts_as_unsubscribed(
        self, manager, articles, make_source, make_subscriber, make_article
    ):
        source = make_source()
        make_subscriber(source.id, enabled=False)
        now = utc_now()
        self._store(articles, make_article, source.id, 2, published_at=lambda n: now - timedelta(days=31))

        assert manager.expire_unsubscribed() == 2

    def test_mixed_sources(
        self, manager, articles, make_source, make_subscriber, make_article
    ):
        followed = make_source(name="Followed")
        orphan = make_source(name="Orphan")
        make_subscriber(followed.id)
        now = utc_now()
        self._store(articles, make_article, followed.id, 120, published_at=lambda n: now - timedelta(days=60, minutes=-n))
        self._store(articles, make_article, orphan.id, 4, published_at=lambda n: now - timedelta(days=60))

        result = manager.run_retention_sweep()

        assert result.capped_deleted == 20
        assert result.orphan_deleted == 4
        assert articles.count_articles(followed.id) == 100
        assert articles.count_articles(orphan.id) == 0

    def test_failing_rule_does_not_stop_the_other(
        self, manager, articles, make_source, make_article
    ):
        source = make_source()
        now = utc_now()
        self._store(articles, make_article, source.id, 2, published_at=lambda n: now - timedelta(days=45))

        with patch.object(manager.subscriptions, "get_subscribed_source_ids", side_effect=DatabaseError("locked")):
            result = manager.run_retention_sweep()

        assert result.errors == 1
        assert result.orphan_deleted == 2
