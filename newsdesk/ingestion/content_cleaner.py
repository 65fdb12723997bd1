"""
Content Extractor
=================

Turns a feed item's raw snippet into safe HTML.

This module provides:
- Full-page fallback fetch with an ordered list of content selectors
- Allowlist sanitization that differs for text-only and media sources
- Plain-text summaries cut at a word boundary
"""

import re
import html
import ssl
import asyncio
from typing import Optional, Tuple
from urllib.parse import urljoin, urlparse

import aiohttp
import certifi
from bs4 import BeautifulSoup, Comment
from bs4.element import CData, ProcessingInstruction, Doctype

from ..config.settings import NewsDeskSettings, get_settings
from ..database.models import ContentKind
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import ContentExtractionError, ErrorCode

# Tried in order against a fetched page; the first one with enough text wins
CONTENT_SELECTORS: Tuple[str, ...] = (
    "article",
    ".post-content",
    ".entry-content",
    ".article-content",
    ".content",
    "main",
    ".main-content",
)

UNWANTED_SELECTORS: Tuple[str, ...] = (
    "script",
    "style",
    "nav",
    "header",
    "footer",
    ".advertisement",
    ".ads",
    ".social-share",
    ".comments",
)

MEDIA_SELECTORS: Tuple[str, ...] = (
    "img",
    "figure",
    ".image",
    ".photo",
    "video",
    "iframe",
)

TEXT_ALLOWED_TAGS = frozenset(
    {
        "p", "h1", "h2", "h3", "h4", "h5", "h6",
        "strong", "em", "ul", "ol", "li", "a",
        "blockquote", "code", "pre", "br",
    }
)
MEDIA_ALLOWED_TAGS = TEXT_ALLOWED_TAGS | {"img"}

TEXT_ALLOWED_ATTRIBUTES = frozenset({"href", "title"})
MEDIA_ALLOWED_ATTRIBUTES = frozenset({"href", "src", "alt", "title"})

URL_ATTRIBUTES = ("href", "src")


class ContentExtractor:
    """Extracts and sanitizes article bodies."""

    WHITESPACE_PATTERN = re.compile(r"\s+", re.MULTILINE)
    TAG_PATTERN = re.compile(r"<[^>]*>")
    JAVASCRIPT_URL_PATTERN = re.compile(r"^\s*javascript:", re.IGNORECASE)
    DATA_URL_PATTERN = re.compile(r"^\s*data:", re.IGNORECASE)

    def __init__(self, settings: Optional[NewsDeskSettings] = None):
        self.settings = settings or get_settings()
        self.logger = get_logger_for_component("content_extractor")
        self.parser = "html.parser"
        self.ssl_context = ssl.create_default_context(cafile=certifi.where())

    async def extract_content(
        self, raw_snippet: str, origin_url: Optional[str], content_kind: ContentKind
    ) -> str:
        """Produce sanitized HTML for an article body.

        A short snippet triggers one full-page fetch of ``origin_url``; the
        snippet is used whenever that fetch or the selector search fails.

        Args:
            raw_snippet: Body or description from the feed, possibly HTML
            origin_url: Article URL
            content_kind: Source content kind deciding what markup survives

        Returns:
            Sanitized HTML (never raises)
        """
        raw_snippet = raw_snippet or ""
        body = raw_snippet

        ingestion = self.settings.ingestion
        if origin_url and len(self.extract_text(raw_snippet)) < ingestion.min_snippet_length:
            try:
                full_content = await self.fetch_full_content(origin_url)
            except ContentExtractionError as e:
                self.logger.warning(
                    f"Failed to fetch full content from {origin_url}: {e}",
                    extra=e.to_dict()
                )
                full_content = None

            if full_content:
                body = full_content

        return self.sanitize(body, content_kind, base_url=origin_url)

    async def fetch_full_content(self, url: str) -> Optional[str]:
        """Fetch an article page and return the inner HTML of its main region.

        Returns:
            Inner HTML of the first selector match with enough text, else None

        Raises:
            ContentExtractionError: If the page cannot be downloaded
        """
        page = await self._download_page(url)
        soup = BeautifulSoup(page, self.parser)
        min_length = self.settings.ingestion.min_extracted_text_length

        for selector in CONTENT_SELECTORS:
            element = soup.select_one(selector)
            if element is not None and len(element.get_text()) > min_length:
                self.logger.debug(f"Extracted full content from {url} using '{selector}'")
                return element.decode_contents()

        self.logger.debug(f"No content region found on {url}")
        return None

    async def _download_page(self, url: str) -> str:
        ingestion = self.settings.ingestion
        timeout = aiohttp.ClientTimeout(total=ingestion.full_page_timeout)
        headers = {"User-Agent": ingestion.browser_user_agent}

        try:
            connector = aiohttp.TCPConnector(ssl=self.ssl_context)
            async with aiohttp.ClientSession(
                connector=connector, timeout=timeout, headers=headers
            ) as session:
                async with session.get(url) as response:
                    if response.status >= 400:
                        raise ContentExtractionError(
                            f"HTTP {response.status}: {response.reason}", origin_url=url
                        )
                    return await response.text(errors="replace")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ContentExtractionError(
                f"Page download failed: {e.__class__.__name__}: {e}",
                origin_url=url,
                error_code=ErrorCode.CONTENT_EXTRACTION_FAILED,
            ) from e

    def sanitize(
        self, html_content: str, content_kind: ContentKind, base_url: Optional[str] = None
    ) -> str:
        """Sanitize HTML against the allowlists of ``content_kind``.

        Disallowed tags become bare ``div`` elements that keep their children.
        Falls back to escaped plain text if parsing fails.
        """
        if not html_content or not html_content.strip():
            return ""

        if content_kind == ContentKind.MEDIA:
            allowed_tags, allowed_attrs = MEDIA_ALLOWED_TAGS, MEDIA_ALLOWED_ATTRIBUTES
            removed = UNWANTED_SELECTORS
        else:
            allowed_tags, allowed_attrs = TEXT_ALLOWED_TAGS, TEXT_ALLOWED_ATTRIBUTES
            removed = UNWANTED_SELECTORS + MEDIA_SELECTORS

        try:
            soup = BeautifulSoup(html_content, self.parser)

            self._remove_non_content_elements(soup)
            self._remove_unwanted_elements(soup, removed)

            for element in soup.find_all(True):
                if element.name.lower() not in allowed_tags:
                    element.name = "div"
                    element.attrs = {}
                else:
                    self._clean_attributes(element, allowed_attrs, base_url)

            return str(soup).strip()

        except Exception as e:
            self.logger.error(f"Failed to sanitize HTML content: {e}")
            return html.escape(self._extract_text_fallback(html_content))

    def extract_text(self, html_content: str) -> str:
        """Plain text of an HTML fragment with whitespace collapsed."""
        if not html_content or not html_content.strip():
            return ""
        soup = BeautifulSoup(html_content, self.parser)
        text = soup.get_text(separator=" ")
        return self.WHITESPACE_PATTERN.sub(" ", text).strip()

    def generate_summary(self, content: str, max_length: Optional[int] = None) -> str:
        """Strip tags and cut to ``max_length`` at the last word boundary."""
        if not content:
            return ""

        max_length = max_length or self.settings.ingestion.summary_max_length
        text = html.unescape(self.TAG_PATTERN.sub("", content)).strip()
        if len(text) <= max_length:
            return text

        truncated = text[:max_length]
        last_space = truncated.rfind(" ")
        if last_space > 0:
            return truncated[:last_space] + "..."
        return truncated + "..."

    def _remove_non_content_elements(self, soup: BeautifulSoup) -> None:
        """Remove comments, CDATA, processing instructions and doctypes."""
        for element in soup.find_all(
            string=lambda text: isinstance(
                text, (Comment, CData, ProcessingInstruction, Doctype)
            )
        ):
            element.extract()

    def _remove_unwanted_elements(self, soup: BeautifulSoup, selectors: Tuple[str, ...]) -> None:
        for selector in selectors:
            for element in soup.select(selector):
                # Nested matches die with their ancestor
                if not element.decomposed:
                    element.decompose()

    def _clean_attributes(self, element, allowed_attrs, base_url: Optional[str]) -> None:
        for attr_name in list(element.attrs):
            if attr_name.lower() not in allowed_attrs:
                del element[attr_name]

        for attr_name in URL_ATTRIBUTES:
            value = element.get(attr_name)
            if value is None:
                continue
            value = value.strip()

            if self.JAVASCRIPT_URL_PATTERN.match(value) or self.DATA_URL_PATTERN.match(value):
                del element[attr_name]
            elif base_url and value and not urlparse(value).scheme and not value.startswith("#"):
                element[attr_name] = urljoin(base_url, value)

    def _extract_text_fallback(self, html_content: str) -> str:
        """Regex text extraction used when the parser fails."""
        content = re.sub(
            r"<(script|style)[^>]*>.*?</\1>",
            "",
            html_content,
            flags=re.IGNORECASE | re.DOTALL,
        )
        content = self.TAG_PATTERN.sub("", content)
        content = html.unescape(content)
        return self.WHITESPACE_PATTERN.sub(" ", content).strip()
