"""
Tests for Content Extractor
===========================

Sanitization allowlists for text and media sources, the full-page fallback,
and summary generation.
"""

import pytest
from unittest.mock import AsyncMock, patch
from bs4 import BeautifulSoup

from newsdesk.database.models import ContentKind
from newsdesk.ingestion.content_cleaner import ContentExtractor
from newsdesk.utils.exceptions import ContentExtractionError

LONG_TEXT = "The committee published its findings on Tuesday after months of review. " * 8


def _page(article_text: str, entry_text: str = "") -> str:
    return (
        "<html><head><title>Page</title></head><body>"
        "<nav>Home | World | Sport</nav>"
        f"<article><p>{article_text}</p></article>"
        f'<div class="entry-content"><p>{entry_text}</p></div>'
        "<footer>Copyright</footer>"
        "</body></html>"
    )


class TestSanitize:
    """Allowlist sanitization."""

    @pytest.fixture
    def extractor(self, settings):
        return ContentExtractor(settings)

    def test_text_source_strips_media(self, extractor):
        html = (
            '<p>Intro</p><img src="https://cdn.example.com/a.jpg" alt="A">'
            "<figure><figcaption>Caption</figcaption></figure>"
            '<iframe src="https://video.example.com"></iframe><p>Outro</p>'
        )
        result = extractor.sanitize(html, ContentKind.TEXT)

        soup = BeautifulSoup(result, "html.parser")
        assert soup.find("img") is None
        assert soup.find("iframe") is None
        assert "Caption" not in result
        assert "Intro" in result and "Outro" in result

    def test_media_source_keeps_images_with_allowed_attributes(self, extractor):
        html = '<p>Look</p><img src="https://cdn.example.com/a.jpg" alt="A" class="wide" width="640" onerror="x()">'
        result = extractor.sanitize(html, ContentKind.MEDIA)

        img = BeautifulSoup(result, "html.parser").find("img")
        assert img is not None
        assert set(img.attrs) == {"src", "alt"}
        assert img["src"] == "https://cdn.example.com/a.jpg"

    def test_disallowed_tags_become_div(self, extractor):
        result = extractor.sanitize('<p>Hi <span style="color:red">there</span></p>', ContentKind.TEXT)
        assert result == "<p>Hi <div>there</div></p>"

    def test_unwanted_elements_removed(self, extractor):
        html = (
            "<script>alert(1)</script><style>p{}</style><nav>menu</nav>"
            '<p>Story</p><div class="advertisement"><p>Buy now</p></div>'
            '<div class="comments"><div class="ads">nested</div></div>'
        )
        result = extractor.sanitize(html, ContentKind.MEDIA)

        assert "alert" not in result
        assert "menu" not in result
        assert "Buy now" not in result
        assert "nested" not in result
        assert "Story" in result

    def test_link_attributes_filtered(self, extractor):
        html = '<p><a href="https://example.com/x" title="X" target="_blank" rel="nofollow">link</a></p>'
        result = extractor.sanitize(html, ContentKind.TEXT)

        link = BeautifulSoup(result, "html.parser").find("a")
        assert set(link.attrs) == {"href", "title"}

    def test_javascript_urls_dropped(self, extractor):
        result = extractor.sanitize('<a href="javascript:alert(1)">bad</a>', ContentKind.TEXT)
        link = BeautifulSoup(result, "html.parser").find("a")
        assert "href" not in link.attrs

    def test_relative_urls_resolved(self, extractor):
        html = '<p><a href="/world/story">story</a></p><img src="img/photo.jpg" alt="p">'
        result = extractor.sanitize(html, ContentKind.MEDIA, base_url="https://news.example.com/today/index.html")

        soup = BeautifulSoup(result, "html.parser")
        assert soup.find("a")["href"] == "https://news.example.com/world/story"
        assert soup.find("img")["src"] == "https://news.example.com/today/img/photo.jpg"

    def test_comments_removed(self, extractor):
        result = extractor.sanitize("<p>Text<!-- tracking --></p>", ContentKind.TEXT)
        assert "tracking" not in result

    def test_empty_input(self, extractor):
        assert extractor.sanitize("", ContentKind.TEXT) == ""
        assert extractor.sanitize("   ", ContentKind.MEDIA) == ""

    def test_plain_text_passes_through(self, extractor):
        assert extractor.sanitize("Just words", ContentKind.TEXT) == "Just words"


class TestFullPageFallback:
    """Snippet length threshold and the selector cascade."""

    @pytest.fixture
    def extractor(self, settings):
        return ContentExtractor(settings)

    @pytest.mark.asyncio
    async def test_long_snippet_is_used_without_fetch(self, extractor):
        fetch = AsyncMock()
        with patch.object(extractor, "fetch_full_content", fetch):
            result = await extractor.extract_content(
                f"<p>{LONG_TEXT}</p>", "https://news.example.com/a", ContentKind.TEXT
            )

        fetch.assert_not_awaited()
        assert "committee" in result

    @pytest.mark.asyncio
    async def test_short_snippet_triggers_full_page(self, extractor):
        fetch = AsyncMock(return_value=f"<p>{LONG_TEXT}</p>")
        with patch.object(extractor, "fetch_full_content", fetch):
            result = await extractor.extract_content(
                "<p>Short teaser</p>", "https://news.example.com/a", ContentKind.TEXT
            )

        fetch.assert_awaited_once_with("https://news.example.com/a")
        assert "committee" in result
        assert "Short teaser" not in result

    @pytest.mark.asyncio
    async def test_failed_fetch_falls_back_to_snippet(self, extractor):
        fetch = AsyncMock(side_effect=ContentExtractionError("HTTP 404", origin_url="https://x"))
        with patch.object(extractor, "fetch_full_content", fetch):
            result = await extractor.extract_content(
                "<p>Short teaser</p>", "https://news.example.com/a", ContentKind.TEXT
            )

        assert result == "<p>Short teaser</p>"

    @pytest.mark.asyncio
    async def test_no_region_found_falls_back_to_snippet(self, extractor):
        with patch.object(extractor, "fetch_full_content", AsyncMock(return_value=None)):
            result = await extractor.extract_content(
                "<p>Short teaser</p>", "https://news.example.com/a", ContentKind.TEXT
            )

        assert result == "<p>Short teaser</p>"

    @pytest.mark.asyncio
    async def test_full_page_result_is_sanitized(self, extractor):
        page_html = f'<p>{LONG_TEXT}</p><img src="https://cdn.example.com/p.jpg"><script>x()</script>'
        with patch.object(extractor, "fetch_full_content", AsyncMock(return_value=page_html)):
            result = await extractor.extract_content("", "https://news.example.com/a", ContentKind.TEXT)

        assert "<img" not in result
        assert "x()" not in result

    @pytest.mark.asyncio
    async def test_first_selector_with_enough_text_wins(self, extractor):
        page = _page(LONG_TEXT, entry_text="Entry text " * 60)
        with patch.object(extractor, "_download_page", AsyncMock(return_value=page)):
            content = await extractor.fetch_full_content("https://news.example.com/a")

        assert "committee" in content
        assert "Entry text" not in content

    @pytest.mark.asyncio
    async def test_cascade_skips_regions_with_little_text(self, extractor):
        page = _page("Too short", entry_text="Entry text " * 60)
        with patch.object(extractor, "_download_page", AsyncMock(return_value=page)):
            content = await extractor.fetch_full_content("https://news.example.com/a")

        assert content.startswith("<p>Entry text")

    @pytest.mark.asyncio
    async def test_cascade_returns_none_without_match(self, extractor):
        page = _page("Too short", entry_text="Also short")
        with patch.object(extractor, "_download_page", AsyncMock(return_value=page)):
            assert await extractor.fetch_full_content("https://news.example.com/a") is None


class TestSummary:
    """Plain-text summaries."""

    @pytest.fixture
    def extractor(self, settings):
        return ContentExtractor(settings)

    def test_short_content_unchanged(self, extractor):
        assert extractor.generate_summary("<p>Short &amp; sweet</p>") == "Short & sweet"

    def test_cut_at_word_boundary(self, extractor):
        text = "a" * 195 + " bcdefghijk"
        assert extractor.generate_summary(text) == "a" * 195 + "..."

    def test_long_html_summary(self, extractor):
        summary = extractor.generate_summary(f"<div><p>{LONG_TEXT}</p></div>")

        assert summary.endswith("...")
        assert len(summary) <= 203
        assert "<" not in summary

    def test_no_space_hard_cut(self, extractor):
        assert extractor.generate_summary("x" * 300, max_length=50) == "x" * 50 + "..."

    def test_empty(self, extractor):
        assert extractor.generate_summary("") == ""
