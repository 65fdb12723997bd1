"""
Tests for Ingestion Pipeline
============================

Sweep orchestration, per-source error counting and single-source runs with
the fetcher and the extractor mocked out.
"""

import asyncio
import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock, patch

from newsdesk.database.models import FetchResult, RawItem
from newsdesk.ingestion.content_cleaner import ContentExtractor
from newsdesk.processing.pipeline import IngestionPipeline
from newsdesk.storage.translation_repository import SystemSettingsRepository
from newsdesk.utils.exceptions import NoActiveSubscribersError, SourceNotFoundError

LONG_BODY = "<p>" + "Reporters confirmed the details with several officials on the record. " * 4 + "</p>"


def _items(prefix, count):
    return [
        RawItem(
            title=f"{prefix} story {n}",
            link=f"https://{prefix}.example.com/story/{n}",
            raw_content=LONG_BODY,
            published_at=datetime(2026, 3, 1, 9, n, tzinfo=timezone.utc),
        )
        for n in range(count)
    ]


class TestIngestionPipeline:
    """Test suite for IngestionPipeline."""

    @pytest.fixture
    def fetcher(self):
        fetcher = Mock()
        fetcher.fetch = AsyncMock()
        return fetcher

    @pytest.fixture
    def extractor(self, settings):
        extractor = ContentExtractor(settings)
        extractor.fetch_full_content = AsyncMock(return_value=None)
        return extractor

    @pytest.fixture
    def pipeline(self, db_connection, settings, fake_translator, fetcher, extractor):
        return IngestionPipeline(
            db_connection, settings, translator=fake_translator, fetcher=fetcher, extractor=extractor
        )

    @staticmethod
    def _ok(source, items):
        return FetchResult(source_id=source.id, success=True, items=items, attempts=1)

    @pytest.mark.asyncio
    async def test_full_sweep_counts(self, pipeline, fetcher, make_source):
        first = make_source(name="First")
        second = make_source(name="Second")
        fetcher.fetch.side_effect = lambda source: self._ok(
            source, _items("first" if source.id == first.id else "second", 2)
        )

        result = await pipeline.run_full_sweep()

        assert result.to_dict() == {"createdCount": 4, "errorCount": 0}
        assert result.sources_processed == 2
        assert pipeline.articles.count_articles(second.id) == 2

    @pytest.mark.asyncio
    async def test_failed_fetch_counts_one_error(self, pipeline, fetcher, make_source):
        good = make_source(name="Good")
        make_source(name="Broken")

        def fetch(source):
            if source.id == good.id:
                return self._ok(source, _items("good", 3))
            return FetchResult(source_id=source.id, success=False, attempts=3, error="HTTP 500")

        fetcher.fetch.side_effect = fetch

        result = await pipeline.run_full_sweep()

        assert result.to_dict() == {"createdCount": 3, "errorCount": 1}

    @pytest.mark.asyncio
    async def test_unexpected_source_failure_counts_one_error(self, pipeline, fetcher, make_source):
        make_source(name="Exploding")
        healthy = make_source(name="Healthy")

        def fetch(source):
            if source.id == healthy.id:
                return self._ok(source, _items("healthy", 1))
            raise RuntimeError("unexpected")

        fetcher.fetch.side_effect = fetch

        result = await pipeline.run_full_sweep()

        assert result.created_count == 1
        assert result.error_count == 1
        assert result.sources_processed == 2

    @pytest.mark.asyncio
    async def test_rerun_creates_nothing(self, pipeline, fetcher, extractor, make_source):
        make_source()
        fetcher.fetch.side_effect = lambda source: self._ok(source, _items("same", 2))

        await pipeline.run_full_sweep()
        result = await pipeline.run_full_sweep()

        assert result.to_dict() == {"createdCount": 0, "errorCount": 0}

    @pytest.mark.asyncio
    async def test_default_source_without_subscribers_skipped(self, pipeline, fetcher, make_source):
        make_source(name="Unfollowed default", is_default=True)

        result = await pipeline.run_full_sweep()

        assert result.to_dict() == {"createdCount": 0, "errorCount": 0}
        fetcher.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_article_fields(self, pipeline, fetcher, make_source):
        source = make_source()
        item = RawItem(
            title="Budget approved",
            link="https://news.example.com/budget",
            raw_content=LONG_BODY + '<script>track()</script>',
            published_at=datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc),
            author="Desk",
        )
        fetcher.fetch.side_effect = lambda s: self._ok(s, [item])

        await pipeline.run_full_sweep()

        article = pipeline.articles.get_by_origin_url(item.link)
        assert article.title_en == "Budget approved"
        assert article.title_translated is None
        assert "track()" not in article.content_html
        assert article.summary.endswith("...")
        assert "<" not in article.summary
        assert article.author == "Desk"
        assert article.published_at == item.published_at

    @pytest.mark.asyncio
    async def test_titles_translated_when_system_toggle_on(
        self, pipeline, fetcher, db_connection, fake_translator, make_source
    ):
        make_source()
        SystemSettingsRepository(db_connection).set_auto_translate(True)
        fetcher.fetch.side_effect = lambda source: self._ok(source, _items("news", 2))

        await pipeline.run_full_sweep()

        stored = pipeline.articles.get_by_origin_url("https://news.example.com/story/0")
        assert stored.title_translated == "[zh-CN] news story 0"
        assert len(fake_translator.calls) == 2

    @pytest.mark.asyncio
    async def test_translation_failure_stores_original_title(
        self, pipeline, fetcher, db_connection, fake_translator, make_source
    ):
        make_source()
        SystemSettingsRepository(db_connection).set_auto_translate(True)
        fake_translator.fail = True
        fetcher.fetch.side_effect = lambda source: self._ok(source, _items("news", 1))

        result = await pipeline.run_full_sweep()

        assert result.to_dict() == {"createdCount": 1, "errorCount": 0}
        stored = pipeline.articles.get_by_origin_url("https://news.example.com/story/0")
        assert stored.title_translated == "news story 0"

    @pytest.mark.asyncio
    async def test_full_page_timeout_falls_back_to_snippet(
        self, db_connection, settings, fake_translator, fetcher, make_source
    ):
        make_source()
        items = [
            RawItem(title="Transit brief", link="https://news.example.com/transit",
                    raw_content="<p>Lines reopen today.</p>"),
            RawItem(title="Budget approved", link="https://news.example.com/budget",
                    raw_content=LONG_BODY),
        ]
        fetcher.fetch.side_effect = lambda source: self._ok(source, items)
        pipeline = IngestionPipeline(
            db_connection, settings, translator=fake_translator,
            fetcher=fetcher, extractor=ContentExtractor(settings)
        )

        with patch("aiohttp.ClientSession.get", side_effect=asyncio.TimeoutError()) as get:
            result = await pipeline.run_full_sweep()

        assert result.to_dict() == {"createdCount": 2, "errorCount": 0}
        get.assert_called_once_with("https://news.example.com/transit")
        stored = pipeline.articles.get_by_origin_url("https://news.example.com/transit")
        assert "Lines reopen today." in stored.content_html

    @pytest.mark.asyncio
    async def test_item_failure_skips_only_that_item(self, pipeline, fetcher, extractor, make_source):
        make_source()
        fetcher.fetch.side_effect = lambda source: self._ok(source, _items("news", 3))
        real_extract = extractor.extract_content

        async def extract(raw_snippet, origin_url, content_kind):
            if origin_url.endswith("/story/1"):
                raise RuntimeError("parser crashed")
            return await real_extract(raw_snippet, origin_url, content_kind)

        extractor.extract_content = extract

        result = await pipeline.run_full_sweep()

        assert result.to_dict() == {"createdCount": 2, "errorCount": 1}
        assert pipeline.articles.exists_by_origin_url("https://news.example.com/story/0")
        assert not pipeline.articles.exists_by_origin_url("https://news.example.com/story/1")

    @pytest.mark.asyncio
    async def test_run_single_source(self, pipeline, fetcher, make_source):
        source = make_source(name="Solo")
        fetcher.fetch.side_effect = lambda s: self._ok(s, _items("solo", 2))

        result = await pipeline.run_single_source(source.id)

        assert result.to_dict() == {"createdCount": 2, "errorCount": 0, "sourceName": "Solo"}

    @pytest.mark.asyncio
    async def test_single_source_not_found(self, pipeline, make_source):
        inactive = make_source(is_active=False)

        with pytest.raises(SourceNotFoundError):
            await pipeline.run_single_source(4242)
        with pytest.raises(SourceNotFoundError):
            await pipeline.run_single_source(inactive.id)

    @pytest.mark.asyncio
    async def test_single_default_source_without_subscribers(self, pipeline, make_source, make_subscriber):
        source = make_source(is_default=True)

        with pytest.raises(NoActiveSubscribersError):
            await pipeline.run_single_source(source.id)

    @pytest.mark.asyncio
    async def test_single_source_failure_reports_one_error(self, pipeline, fetcher, make_source):
        source = make_source(name="Flaky")
        fetcher.fetch.side_effect = RuntimeError("socket closed")

        result = await pipeline.run_single_source(source.id)

        assert result.to_dict() == {"createdCount": 0, "errorCount": 1, "sourceName": "Flaky"}

    def test_run_retention_sweep_returns_total(self, pipeline, make_source):
        make_source()
        assert pipeline.run_retention_sweep() == 0
