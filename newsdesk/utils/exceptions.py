"""
NewsDesk Custom Exceptions
==========================

Exception hierarchy for the ingestion pipeline with error codes, context
information and caller-facing messages.
"""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for categorizing exceptions."""

    # Configuration errors (C001-C099)
    CONFIG_INVALID = "C001"

    # Database errors (D001-D099)
    DATABASE_CONSTRAINT = "D003"
    DATABASE_TRANSACTION = "D004"
    DATABASE_ERROR = "D006"

    # Feed ingestion errors (F001-F099)
    FEED_FETCH_TIMEOUT = "F002"
    FEED_PARSE_ERROR = "F003"
    FEED_NETWORK_ERROR = "F004"
    FEED_HTTP_ERROR = "F005"

    # Content processing errors (P001-P099)
    CONTENT_EXTRACTION_FAILED = "P003"

    # Translation errors (T001-T099)
    TRANSLATION_FAILED = "T001"
    TRANSLATION_EMPTY_RESPONSE = "T002"

    # Validation errors (V001-V099)
    VALIDATION_REQUIRED_FIELD = "V001"
    VALIDATION_INVALID_FORMAT = "V002"

    # Resource errors (R001-R099)
    DUPLICATE_RESOURCE = "R001"
    RESOURCE_NOT_FOUND = "R002"
    NO_ACTIVE_SUBSCRIBERS = "R004"

    # Scheduler errors (S001-S099)
    JOB_NOT_FOUND = "S002"


class NewsDeskError(Exception):
    """Base exception for all NewsDesk errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        recoverable: bool = False,
    ):
        """Initialize NewsDesk error.

        Args:
            message: Technical error message for logging
            error_code: Categorized error code
            context: Additional context information
            user_message: Message suitable for the manual-trigger caller
            recoverable: Whether retrying can succeed
        """
        super().__init__(message)
        self.error_code = error_code
        self.context = context or {}
        self.user_message = user_message or message
        self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": str(self),
            "user_message": self.user_message,
            "context": self.context,
            "recoverable": self.recoverable,
        }

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code.value}] {super().__str__()}"
        return super().__str__()


def _split_kwargs(kwargs: Dict[str, Any], *consumed: str) -> Dict[str, Any]:
    return {k: v for k, v in kwargs.items() if k not in consumed}


class ConfigurationError(NewsDeskError):
    """Configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if config_key:
            context["config_key"] = config_key

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.CONFIG_INVALID),
            context=context,
            user_message=kwargs.get("user_message", f"Configuration error: {message}"),
            **_split_kwargs(kwargs, "context", "error_code", "user_message"),
        )


class DatabaseError(NewsDeskError):
    """Database-related errors."""

    def __init__(self, message: str, query: Optional[str] = None, **kwargs):
        """Initialize database error.

        Args:
            message: Error message
            query: SQL query that caused the error
            **kwargs: Additional arguments for NewsDeskError
        """
        context = kwargs.get("context", {})
        if query:
            context["query"] = query

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.DATABASE_ERROR),
            context=context,
            user_message=kwargs.get("user_message", "Database operation failed"),
            recoverable=kwargs.get("recoverable", True),
            **_split_kwargs(
                kwargs, "context", "error_code", "user_message", "recoverable"
            ),
        )


class DuplicateArticleError(DatabaseError):
    """An article with the same origin URL is already stored."""

    def __init__(self, origin_url: str, **kwargs):
        context = kwargs.pop("context", {})
        context["origin_url"] = origin_url
        super().__init__(
            f"Article already stored: {origin_url}",
            error_code=ErrorCode.DUPLICATE_RESOURCE,
            context=context,
            recoverable=False,
            **kwargs,
        )
        self.origin_url = origin_url


class FeedError(NewsDeskError):
    """Feed ingestion and parsing errors."""

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if feed_url:
            context["feed_url"] = feed_url

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.FEED_FETCH_TIMEOUT),
            context=context,
            user_message=kwargs.get(
                "user_message", f"Feed processing failed: {message}"
            ),
            recoverable=kwargs.get("recoverable", True),
            **_split_kwargs(
                kwargs, "context", "error_code", "user_message", "recoverable"
            ),
        )


class FeedFetchError(FeedError):
    """Transient feed download or parse failure."""

    pass


class ContentExtractionError(NewsDeskError):
    """Full-page extraction or sanitization failure."""

    def __init__(self, message: str, origin_url: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if origin_url:
            context["origin_url"] = origin_url

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.CONTENT_EXTRACTION_FAILED),
            context=context,
            recoverable=kwargs.get("recoverable", True),
            **_split_kwargs(kwargs, "context", "error_code", "recoverable"),
        )


class TranslationError(NewsDeskError):
    """Translation collaborator failures."""

    def __init__(self, message: str, provider: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if provider:
            context["provider"] = provider

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.TRANSLATION_FAILED),
            context=context,
            user_message=kwargs.get(
                "user_message", "Translation temporarily unavailable"
            ),
            recoverable=kwargs.get("recoverable", True),
            **_split_kwargs(
                kwargs, "context", "error_code", "user_message", "recoverable"
            ),
        )


class ValidationError(NewsDeskError):
    """Input validation errors."""

    def __init__(self, message: str, field_name: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if field_name:
            context["field_name"] = field_name

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.VALIDATION_INVALID_FORMAT),
            context=context,
            user_message=kwargs.get(
                "user_message", f"Invalid {field_name or 'input'}: {message}"
            ),
            recoverable=False,
            **_split_kwargs(
                kwargs, "context", "error_code", "user_message", "recoverable"
            ),
        )


class SourceNotFoundError(NewsDeskError):
    """Requested source does not exist or is inactive."""

    def __init__(self, source_id: int, **kwargs):
        super().__init__(
            f"Source {source_id} not found or inactive",
            error_code=ErrorCode.RESOURCE_NOT_FOUND,
            context={"source_id": source_id},
            user_message="News source not found or inactive",
            **kwargs,
        )
        self.source_id = source_id


class NoActiveSubscribersError(NewsDeskError):
    """A default source was requested while nobody subscribes to it."""

    def __init__(self, source_id: int, **kwargs):
        super().__init__(
            f"No users subscribed to default source {source_id}",
            error_code=ErrorCode.NO_ACTIVE_SUBSCRIBERS,
            context={"source_id": source_id},
            user_message="No users subscribed to default source",
            **kwargs,
        )
        self.source_id = source_id


class JobNotFoundError(NewsDeskError):
    """Unknown scheduled job key."""

    def __init__(self, job_key: str, **kwargs):
        super().__init__(
            f"Scheduled job '{job_key}' not found",
            error_code=ErrorCode.JOB_NOT_FOUND,
            context={"job_key": job_key},
            **kwargs,
        )
        self.job_key = job_key


def is_retryable_error(exception: NewsDeskError) -> bool:
    """Check if an error is worth retrying.

    Args:
        exception: NewsDesk exception to check

    Returns:
        True if the error is potentially retryable
    """
    if not exception.recoverable:
        return False

    retryable_codes = {
        ErrorCode.FEED_NETWORK_ERROR,
        ErrorCode.FEED_FETCH_TIMEOUT,
        ErrorCode.FEED_HTTP_ERROR,
        ErrorCode.FEED_PARSE_ERROR,
    }

    return exception.error_code in retryable_codes
