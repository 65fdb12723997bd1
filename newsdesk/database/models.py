"""
NewsDesk Data Models
====================

Pydantic models mirroring the database schema, plus the dataclasses that
carry results between pipeline stages.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Dict, Any
from dataclasses import dataclass, field
from pydantic import BaseModel, Field, field_validator
import uuid

DB_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_db_timestamp(value: datetime) -> str:
    """Render a datetime as UTC text whose lexical order is chronological."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(DB_TIMESTAMP_FORMAT)


def from_db_timestamp(value: Any) -> Optional[datetime]:
    """Parse a stored timestamp back into an aware UTC datetime."""
    if value is None or isinstance(value, datetime):
        return value
    parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class SourceType(str, Enum):
    """How a source is fetched."""
    RSS = "rss"
    API = "api"


class ContentKind(str, Enum):
    """Which markup survives sanitization."""
    TEXT = "text"
    MEDIA = "media"


class Source(BaseModel):
    """News source model."""
    id: Optional[int] = Field(default=None, description="Database primary key")
    name: str = Field(..., min_length=1, max_length=200, description="Display name")
    url: str = Field(..., min_length=1, description="Feed or API URL")
    source_type: SourceType = Field(default=SourceType.RSS, description="Fetch strategy")
    content_type: ContentKind = Field(default=ContentKind.TEXT, description="Content kind")
    category: Optional[str] = Field(default=None, description="Free-form category")
    is_default: bool = Field(default=False, description="Offered to every user by default")
    is_active: bool = Field(default=True, description="Whether the source is fetched at all")
    created_at: Optional[datetime] = Field(default_factory=utc_now)

    @field_validator('name', 'url')
    @classmethod
    def strip_value(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("value cannot be empty")
        return v

    @field_validator('created_at', mode='before')
    @classmethod
    def parse_created_at(cls, v):
        return from_db_timestamp(v)

    def __str__(self) -> str:
        return f"Source({self.name}:{self.id})"


class User(BaseModel):
    """Viewer account model."""
    id: Optional[int] = Field(default=None, description="Database primary key")
    email: str = Field(..., min_length=3, description="Unique e-mail address")
    auto_translate: bool = Field(default=False, description="Account-level auto-translate preference")
    created_at: Optional[datetime] = Field(default_factory=utc_now)

    @field_validator('created_at', mode='before')
    @classmethod
    def parse_created_at(cls, v):
        return from_db_timestamp(v)


class Subscription(BaseModel):
    """A user's subscription to a source."""
    id: Optional[int] = Field(default=None, description="Database primary key")
    user_id: int = Field(..., description="Subscribing user")
    source_id: int = Field(..., description="Subscribed source")
    enabled: bool = Field(default=True, description="Whether the subscription is enabled")
    auto_translate: Optional[bool] = Field(default=None, description="Subscription-level preference, None if unset")


class Article(BaseModel):
    """Stored article.

    ``content_html`` is always the sanitized body and ``origin_url`` is the
    deduplication key, stored exactly as the feed published it.
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique article ID")
    source_id: int = Field(..., description="Owning source")
    title_en: str = Field(..., min_length=1, max_length=1000, description="Original title")
    title_translated: Optional[str] = Field(default=None, description="Translated title")
    content_html: str = Field(default="", description="Sanitized HTML body")
    origin_url: str = Field(..., min_length=1, description="Original article URL")
    image_url: Optional[str] = Field(default=None, description="Lead image URL")
    published_at: datetime = Field(..., description="Publication time (UTC)")
    author: Optional[str] = Field(default=None, description="Author name")
    summary: str = Field(default="", description="Plain-text summary")
    created_at: Optional[datetime] = Field(default_factory=utc_now)

    @field_validator('published_at', 'created_at', mode='before')
    @classmethod
    def parse_timestamps(cls, v):
        return from_db_timestamp(v)

    @field_validator('published_at')
    @classmethod
    def ensure_utc(cls, v):
        """Store every publication time as an aware UTC datetime."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    def __str__(self) -> str:
        return f"Article({self.title_en[:50]}...)"


@dataclass
class RawItem:
    """A feed entry before extraction, enrichment and persistence."""
    title: str
    link: str
    raw_content: str = ""
    published_at: datetime = field(default_factory=utc_now)
    author: Optional[str] = None
    image_url: Optional[str] = None


@dataclass
class FetchResult:
    """Result of fetching one source."""
    source_id: Optional[int]
    success: bool
    items: List[RawItem] = field(default_factory=list)
    invalid_count: int = 0
    attempts: int = 0
    error: Optional[str] = None
    fetch_time: float = 0.0


@dataclass
class SaveResult:
    """Outcome of persisting a batch of articles."""
    created: int = 0
    duplicates: int = 0
    errors: int = 0


@dataclass
class SweepResult:
    """Aggregate counts of a full ingestion sweep."""
    created_count: int = 0
    error_count: int = 0
    sources_processed: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"createdCount": self.created_count, "errorCount": self.error_count}


@dataclass
class SourceRunResult:
    """Counts for a single source run."""
    source_name: str
    created_count: int = 0
    error_count: int = 0
    skipped_existing: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "createdCount": self.created_count,
            "errorCount": self.error_count,
            "sourceName": self.source_name,
        }


@dataclass
class RetentionResult:
    """Per-rule deletion counts of one retention run."""
    capped_deleted: int = 0
    orphan_deleted: int = 0
    errors: int = 0

    @property
    def total_deleted(self) -> int:
        return self.capped_deleted + self.orphan_deleted
