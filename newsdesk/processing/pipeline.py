"""
Ingestion Pipeline Orchestrator
===============================

Coordinates fetching, extraction, title enrichment and persistence for every
active source, one source at a time.
"""

from typing import List, Optional

from pydantic import ValidationError

from ..config.settings import NewsDeskSettings, get_settings
from ..database.connection import DatabaseConnection
from ..database.models import Article, RawItem, Source, SourceRunResult, SweepResult
from ..ingestion.content_cleaner import ContentExtractor
from ..ingestion.feed_fetcher import FeedFetcher
from ..retention.retention_manager import RetentionManager
from ..storage.article_repository import ArticleRepository
from ..storage.source_repository import SourceRepository
from ..storage.subscription_repository import SubscriptionRepository
from ..translation.enrichment import SourceTranslationCache, TranslationPolicy
from ..translation.translator import OpenAITranslator, Translator
from ..utils.exceptions import NoActiveSubscribersError, SourceNotFoundError
from ..utils.logging import PerformanceLogger, get_logger_for_component


class IngestionPipeline:
    """Sequential ingestion over all active sources."""

    def __init__(
        self,
        db_connection: DatabaseConnection,
        settings: Optional[NewsDeskSettings] = None,
        translator: Optional[Translator] = None,
        fetcher: Optional[FeedFetcher] = None,
        extractor: Optional[ContentExtractor] = None,
    ):
        """Initialize the pipeline.

        Args:
            db_connection: Database connection manager
            settings: Settings override (defaults to global settings)
            translator: Translation collaborator (defaults to the OpenAI translator)
            fetcher: Feed fetcher override
            extractor: Content extractor override
        """
        self.db = db_connection
        self.settings = settings or get_settings()
        self.logger = get_logger_for_component("pipeline")

        self.fetcher = fetcher or FeedFetcher(self.settings)
        self.extractor = extractor or ContentExtractor(self.settings)
        self.policy = TranslationPolicy(
            db_connection, translator or OpenAITranslator(self.settings), self.settings
        )

        self.sources = SourceRepository(db_connection)
        self.subscriptions = SubscriptionRepository(db_connection)
        self.articles = ArticleRepository(db_connection)
        self.retention = RetentionManager(db_connection, self.settings)

    async def run_full_sweep(self) -> SweepResult:
        """Process every active source.

        A failing source adds one error and the sweep moves on.

        Raises:
            DatabaseError: If the active sources cannot be listed
        """
        result = SweepResult()

        with PerformanceLogger(self.logger, "full ingestion sweep") as perf:
            sources = self.sources.get_active_sources()
            self.logger.info(f"Found {len(sources)} active news sources")

            decisions = SourceTranslationCache(self.policy, self.policy.load_snapshot())

            for source in sources:
                try:
                    run = await self._process_source(source, decisions)
                    result.created_count += run.created_count
                    result.error_count += run.error_count
                except Exception as e:
                    self.logger.error(
                        f"Failed to process source {source.name}: {e}", exc_info=True
                    )
                    result.error_count += 1
                result.sources_processed += 1

            perf.context.update(
                created_count=result.created_count, error_count=result.error_count
            )

        self.logger.info(
            f"News fetching completed. Created: {result.created_count}, "
            f"Errors: {result.error_count}"
        )
        return result

    async def run_single_source(self, source_id: int) -> SourceRunResult:
        """Process one source on demand.

        Raises:
            SourceNotFoundError: If the source is missing or inactive
            NoActiveSubscribersError: If it is a default source nobody follows
        """
        source = self.sources.get_source(source_id)
        if source is None or not source.is_active:
            raise SourceNotFoundError(source_id)

        if source.is_default and self.subscriptions.count_enabled_subscribers(source_id) == 0:
            raise NoActiveSubscribersError(source_id)

        self.logger.info(f"Starting single source fetch for {source.name}")
        decisions = SourceTranslationCache(self.policy, self.policy.load_snapshot())

        try:
            result = await self._process_source(source, decisions)
        except Exception as e:
            self.logger.error(f"Failed to process source {source.name}: {e}", exc_info=True)
            result = SourceRunResult(source_name=source.name, error_count=1)

        self.logger.info(
            f"Single source fetch completed for {source.name}. "
            f"Created: {result.created_count}, Errors: {result.error_count}"
        )
        return result

    def run_retention_sweep(self) -> int:
        """Apply retention rules; returns the number of deleted articles."""
        return self.retention.run_retention_sweep().total_deleted

    async def _process_source(
        self, source: Source, decisions: SourceTranslationCache
    ) -> SourceRunResult:
        logger = get_logger_for_component("pipeline", source_id=source.id)
        fetch = await self.fetcher.fetch(source)

        if not fetch.success:
            return SourceRunResult(source_name=source.name, error_count=1)

        articles: List[Article] = []
        skipped_existing = 0
        item_errors = 0

        for item in fetch.items:
            if self.articles.exists_by_origin_url(item.link):
                skipped_existing += 1
                continue

            try:
                article = await self._build_article(source, item, decisions)
            except Exception as e:
                item_errors += 1
                logger.error(f"Failed to build article from {item.link}: {e}", exc_info=True)
                continue

            if article is not None:
                articles.append(article)

        saved = self.articles.save_articles(articles)

        logger.info(
            f"Processed {source.name}: {saved.created} new, {skipped_existing} existing, "
            f"{saved.duplicates} duplicates, {fetch.invalid_count} invalid, "
            f"{saved.errors + item_errors} errors"
        )
        return SourceRunResult(
            source_name=source.name,
            created_count=saved.created,
            error_count=saved.errors + item_errors,
            skipped_existing=skipped_existing,
        )

    async def _build_article(
        self, source: Source, item: RawItem, decisions: SourceTranslationCache
    ) -> Optional[Article]:
        content_html = await self.extractor.extract_content(
            item.raw_content, item.link, source.content_type
        )

        title_translated = None
        if decisions.should_translate(source.id):
            title_translated = await self.policy.translate_title(item.title)

        try:
            return Article(
                source_id=source.id,
                title_en=item.title,
                title_translated=title_translated,
                content_html=content_html,
                origin_url=item.link,
                image_url=item.image_url,
                published_at=item.published_at,
                author=item.author,
                summary=self.extractor.generate_summary(item.raw_content),
            )
        except ValidationError as e:
            self.logger.warning(f"Skipping malformed item '{item.title[:80]}': {e}")
            return None
