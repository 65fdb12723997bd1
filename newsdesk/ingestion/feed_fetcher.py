"""
Feed Fetcher
============

Downloads and parses a source's feed into raw items, retrying transient
failures with linear backoff.
"""

import asyncio
import calendar
import ssl
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Callable, List, Optional, Tuple

import aiohttp
import certifi
import feedparser
from bs4 import BeautifulSoup

from ..config.settings import NewsDeskSettings, get_settings
from ..database.models import ContentKind, FetchResult, RawItem, Source, SourceType
from ..recovery.retry_logic import RetryConfig, RetryManager
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import ErrorCode, FeedFetchError

# Publication date candidates in priority order: RSS pubDate, Atom/ISO
# updated (feedparser also maps dc:date here), then created
DATE_FIELDS: Tuple[str, ...] = ("published", "updated", "created", "dc_date")


def _parse_struct_time(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromtimestamp(calendar.timegm(value), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None


def _parse_date_string(value: Any) -> Optional[datetime]:
    if not value or not isinstance(value, str):
        return None
    value = value.strip()
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _image_from_enclosures(entry: Any) -> Optional[str]:
    for enclosure in entry.get("enclosures", []):
        if enclosure.get("type", "").startswith("image/") and enclosure.get("href"):
            return enclosure["href"]
    return None


def _image_from_media_thumbnail(entry: Any) -> Optional[str]:
    for thumbnail in entry.get("media_thumbnail", []):
        if thumbnail.get("url"):
            return thumbnail["url"]
    return None


def _image_from_media_content(entry: Any) -> Optional[str]:
    for media in entry.get("media_content", []):
        if media.get("url"):
            return media["url"]
    return None


def _image_from_markup(entry: Any) -> Optional[str]:
    markup = _entry_markup(entry)
    if not markup or "<img" not in markup.lower():
        return None
    img = BeautifulSoup(markup, "html.parser").find("img", src=True)
    return img["src"] if img else None


IMAGE_EXTRACTORS: Tuple[Callable[[Any], Optional[str]], ...] = (
    _image_from_enclosures,
    _image_from_media_thumbnail,
    _image_from_media_content,
    _image_from_markup,
)


def _entry_markup(entry: Any) -> str:
    """Full body if the feed carries one, else the description."""
    for content in entry.get("content", []):
        value = content.get("value")
        if value:
            return value
    return entry.get("summary", "") or entry.get("description", "") or ""


class FeedFetcher:
    """Fetches a single source and converts its entries to ``RawItem``s."""

    def __init__(self, settings: Optional[NewsDeskSettings] = None):
        self.settings = settings or get_settings()
        self.logger = get_logger_for_component("feed_fetcher")

        ingestion = self.settings.ingestion
        self.timeout = ingestion.fetch_timeout
        self.retry_config = RetryConfig(
            max_attempts=ingestion.max_attempts,
            base_delay=ingestion.retry_base_delay,
            retry_on_exceptions=(FeedFetchError, aiohttp.ClientError, asyncio.TimeoutError),
        )
        self.retry_manager = RetryManager(self.retry_config, component="feed_fetcher")

        self.ssl_context = ssl.create_default_context(cafile=certifi.where())

    @asynccontextmanager
    async def get_session(self):
        """Get configured aiohttp session."""
        connector = aiohttp.TCPConnector(ssl=self.ssl_context, enable_cleanup_closed=True)
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        headers = {
            "User-Agent": self.settings.ingestion.feed_user_agent,
            "Accept": "application/rss+xml, application/atom+xml, application/xml, text/xml, */*",
        }

        async with aiohttp.ClientSession(
            connector=connector, timeout=timeout, headers=headers
        ) as session:
            yield session

    async def fetch_items(self, source: Source) -> List[RawItem]:
        """Fetch a source's items; never raises, returns [] after exhausting retries."""
        return (await self.fetch(source)).items

    async def fetch(self, source: Source) -> FetchResult:
        """Fetch and parse a source with retries.

        Args:
            source: Source to fetch

        Returns:
            FetchResult; ``success`` is False once every attempt failed
        """
        if source.source_type == SourceType.API:
            self.logger.warning(f"API fetching not implemented for {source.name}")
            return FetchResult(source_id=source.id, success=True)

        start_time = time.monotonic()
        attempts = 0

        async def attempt() -> feedparser.FeedParserDict:
            nonlocal attempts
            attempts += 1
            self.logger.info(
                f"Fetching feed {source.name} ({source.url}) - "
                f"attempt {attempts}/{self.retry_config.max_attempts}"
            )
            content = await self._download(source.url)
            return self._parse_document(content, source.url)

        try:
            feed_data = await self.retry_manager.retry_async(
                attempt, operation=f"fetch {source.name}"
            )
        except (FeedFetchError, aiohttp.ClientError, TimeoutError) as e:
            error_msg = str(e)
            self.logger.error(
                f"Failed to fetch feed {source.name} after {attempts} attempts: {error_msg}"
            )
            return FetchResult(
                source_id=source.id,
                success=False,
                attempts=attempts,
                error=error_msg,
                fetch_time=time.monotonic() - start_time,
            )

        items, invalid_count = self._parse_entries(feed_data, source)
        fetch_time = time.monotonic() - start_time

        self.logger.info(
            f"Fetched {len(items)} items from {source.name} in {fetch_time:.2f}s "
            f"({invalid_count} invalid)"
        )
        return FetchResult(
            source_id=source.id,
            success=True,
            items=items,
            invalid_count=invalid_count,
            attempts=attempts,
            fetch_time=fetch_time,
        )

    async def _download(self, url: str) -> bytes:
        """Download a feed document.

        Raises:
            FeedFetchError: On HTTP errors, network errors and timeouts
        """
        try:
            async with self.get_session() as session:
                async with session.get(url) as response:
                    if response.status >= 400:
                        raise FeedFetchError(
                            f"HTTP {response.status}: {response.reason}",
                            feed_url=url,
                            error_code=ErrorCode.FEED_HTTP_ERROR,
                        )
                    return await response.read()

        except asyncio.TimeoutError as e:
            raise FeedFetchError(
                f"Request timeout after {self.timeout}s",
                feed_url=url,
                error_code=ErrorCode.FEED_FETCH_TIMEOUT,
            ) from e
        except aiohttp.ClientError as e:
            raise FeedFetchError(
                f"Network error: {e}",
                feed_url=url,
                error_code=ErrorCode.FEED_NETWORK_ERROR,
            ) from e

    def _parse_document(self, content: bytes, url: str) -> feedparser.FeedParserDict:
        """Parse a feed document.

        Raises:
            FeedFetchError: If the document is malformed and yields no entries
        """
        feed_data = feedparser.parse(content)

        if feed_data.get("bozo") and not feed_data.get("entries"):
            reason = feed_data.get("bozo_exception", "Invalid XML structure")
            raise FeedFetchError(
                f"Feed parse error: {reason}",
                feed_url=url,
                error_code=ErrorCode.FEED_PARSE_ERROR,
            )

        if feed_data.get("bozo"):
            self.logger.info(f"Feed has parse warnings but contains entries: {url}")

        return feed_data

    def _parse_entries(self, feed_data: Any, source: Source) -> Tuple[List[RawItem], int]:
        items: List[RawItem] = []
        invalid_count = 0

        for entry in feed_data.get("entries", []):
            title = (entry.get("title") or "").strip()
            link = (entry.get("link") or "").strip()
            if not title or not link:
                invalid_count += 1
                continue

            image_url = None
            if source.content_type == ContentKind.MEDIA:
                image_url = self._extract_image_url(entry)

            items.append(
                RawItem(
                    title=title,
                    link=link,
                    raw_content=_entry_markup(entry),
                    published_at=self._parse_published_date(entry),
                    author=entry.get("author") or entry.get("dc_creator") or None,
                    image_url=image_url,
                )
            )

        return items, invalid_count

    def _parse_published_date(self, entry: Any) -> datetime:
        """First parsable date among ``DATE_FIELDS``; falls back to now."""
        for field in DATE_FIELDS:
            parsed = _parse_struct_time(entry.get(f"{field}_parsed"))
            if parsed is None:
                parsed = _parse_date_string(entry.get(field))
            if parsed is not None:
                return parsed

        self.logger.warning(
            f"No valid publish date for '{entry.get('title', '')}', using current time"
        )
        return datetime.now(timezone.utc)

    def _extract_image_url(self, entry: Any) -> Optional[str]:
        for extractor in IMAGE_EXTRACTORS:
            image_url = extractor(entry)
            if image_url:
                return image_url
        return None
