"""
NewsDesk Storage Layer
======================

Repository implementations for data access.

This module provides:
- Article repository with origin-URL deduplication and retention deletes
- Source repository with active-source selection
- Subscription repository for users and subscriptions
- Translation cache and system settings repositories
"""

from .article_repository import ArticleRepository
from .source_repository import SourceRepository
from .subscription_repository import SubscriptionRepository
from .translation_repository import TranslationRepository, SystemSettingsRepository

__all__ = [
    "ArticleRepository",
    "SourceRepository",
    "SubscriptionRepository",
    "TranslationRepository",
    "SystemSettingsRepository",
]
