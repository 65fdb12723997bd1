"""
NewsDesk Retention Module
=========================

Storage reclamation rules for stored articles.
"""

from .retention_manager import RetentionManager

__all__ = [
    "RetentionManager",
]
