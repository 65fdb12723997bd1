"""
Manual Refresh Service
======================

Shared service for operator-triggered operations used by the CLI and the
scheduler service.

Features:
- Refresh of every active source or of a single source
- Feed preview before a source is registered
- Source registration with URL validation
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..config.settings import NewsDeskSettings, get_settings
from ..database.connection import DatabaseConnection
from ..database.models import ContentKind, Source, SourceType
from ..processing.pipeline import IngestionPipeline
from ..storage.source_repository import SourceRepository
from ..utils.logging import get_logger_for_component
from ..utils.validators import URLValidator


@dataclass
class FeedPreview:
    """Summary of a single feed fetch done without storing anything."""
    url: str
    success: bool
    item_count: int = 0
    invalid_count: int = 0
    error_message: Optional[str] = None
    sample_items: List[Dict[str, Any]] = field(default_factory=list)


class ManualRefreshService:
    """Operator entry points on top of the ingestion pipeline."""

    def __init__(
        self,
        db_connection: DatabaseConnection,
        settings: Optional[NewsDeskSettings] = None,
        pipeline: Optional[IngestionPipeline] = None,
    ):
        """Initialize the manual refresh service.

        Args:
            db_connection: Database connection manager
            settings: Settings override (defaults to global settings)
            pipeline: Pipeline override, mostly for tests
        """
        self.db = db_connection
        self.settings = settings or get_settings()
        self.pipeline = pipeline or IngestionPipeline(db_connection, self.settings)
        self.sources = SourceRepository(db_connection)
        self.logger = get_logger_for_component('manual_refresh')

    async def refresh_all(self) -> Dict[str, int]:
        """Run a full sweep now.

        Returns:
            ``{"createdCount": ..., "errorCount": ...}``
        """
        self.logger.info("Manual refresh of all active sources requested")
        result = await self.pipeline.run_full_sweep()
        return result.to_dict()

    async def refresh_source(self, source_id: int) -> Dict[str, Any]:
        """Fetch one source now.

        Raises:
            SourceNotFoundError: If the source is missing or inactive
            NoActiveSubscribersError: If it is a default source nobody follows
        """
        self.logger.info(f"Manual refresh of source {source_id} requested")
        result = await self.pipeline.run_single_source(source_id)
        return result.to_dict()

    async def preview_feed(self, url: str, content_type: ContentKind = ContentKind.TEXT) -> FeedPreview:
        """Fetch and parse a feed without storing anything.

        Raises:
            ValidationError: If the URL is not an acceptable feed URL
        """
        url = URLValidator.validate_feed_url(url)
        self.logger.info(f"Previewing feed: {url}")

        preview_source = Source(name=url, url=url, content_type=content_type)
        fetch = await self.pipeline.fetcher.fetch(preview_source)

        if not fetch.success:
            return FeedPreview(url=url, success=False, error_message=fetch.error)

        sample_items = [
            {
                'title': item.title,
                'link': item.link,
                'published': item.published_at.isoformat(),
                'summary': self.pipeline.extractor.generate_summary(item.raw_content),
            }
            for item in fetch.items[:3]
        ]

        return FeedPreview(
            url=url,
            success=True,
            item_count=len(fetch.items),
            invalid_count=fetch.invalid_count,
            sample_items=sample_items,
        )

    def register_source(
        self,
        name: str,
        url: str,
        content_type: ContentKind = ContentKind.TEXT,
        source_type: SourceType = SourceType.RSS,
        category: Optional[str] = None,
        is_default: bool = False,
    ) -> int:
        """Validate the URL and store a new active source.

        Raises:
            ValidationError: If the URL is not acceptable
            DatabaseError: If the insert fails
        """
        url = URLValidator.validate_feed_url(url)
        if source_type == SourceType.RSS and not URLValidator.is_likely_feed_url(url):
            self.logger.warning(f"URL does not look like a feed, registering anyway: {url}")

        source = Source(
            name=name,
            url=url,
            source_type=source_type,
            content_type=content_type,
            category=category,
            is_default=is_default,
        )
        return self.sources.create_source(source)
