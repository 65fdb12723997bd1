"""
NewsDesk Services
=================

Shared service layer used by the CLI and the scheduler service.
"""

from .manual_refresh_service import ManualRefreshService, FeedPreview

__all__ = [
    'ManualRefreshService',
    'FeedPreview',
]
