"""
NewsDesk Input Validators
=========================

Validation for operator-supplied input such as new source URLs.
"""

import re
from urllib.parse import urlparse, urlunparse

from .exceptions import ValidationError, ErrorCode


class URLValidator:
    """URL validation and normalization utilities."""

    ALLOWED_SCHEMES = {'http', 'https'}

    # Matched against the parsed hostname only
    PRIVATE_HOST_PATTERNS = [
        r'^(.+\.)?localhost$',
        r'^127\.\d+\.\d+\.\d+$',
        r'^10\.\d+\.\d+\.\d+$',
        r'^192\.168\.\d+\.\d+$',
        r'^0\.0\.0\.0$',
    ]

    RSS_PATTERNS = [
        r'\.rss$', r'\.xml$', r'\.atom$',
        r'/rss/?$', r'/feed/?$', r'/feeds/?$',
        r'/atom/?$',
    ]

    @classmethod
    def validate_feed_url(cls, url: str) -> str:
        """Validate and normalize a feed URL.

        Args:
            url: URL to validate

        Returns:
            URL with lower-cased scheme and host and no fragment

        Raises:
            ValidationError: If URL is invalid
        """
        if not url or not isinstance(url, str):
            raise ValidationError(
                "URL is required and must be a string",
                error_code=ErrorCode.VALIDATION_REQUIRED_FIELD,
                field_name="url"
            )

        url = url.strip()
        parsed = urlparse(url)

        if parsed.scheme.lower() not in cls.ALLOWED_SCHEMES:
            raise ValidationError(
                f"URL scheme must be {' or '.join(sorted(cls.ALLOWED_SCHEMES))}",
                field_name="url"
            )

        hostname = parsed.hostname
        if not hostname:
            raise ValidationError("URL must include a hostname", field_name="url")

        if any(re.match(pattern, hostname) for pattern in cls.PRIVATE_HOST_PATTERNS):
            raise ValidationError("URL points to a local or private host", field_name="url")

        return urlunparse(parsed._replace(
            scheme=parsed.scheme.lower(),
            netloc=parsed.netloc.lower(),
            path=parsed.path or '/',
            fragment=''
        ))

    @classmethod
    def is_likely_feed_url(cls, url: str) -> bool:
        """Check if URL looks like an RSS/Atom feed."""
        url_lower = url.lower()
        return any(re.search(pattern, url_lower) for pattern in cls.RSS_PATTERNS)
