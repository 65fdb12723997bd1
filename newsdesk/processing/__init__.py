"""
NewsDesk Processing Module
==========================

Pipeline orchestration for full and single-source ingestion runs.
"""

from .pipeline import IngestionPipeline

__all__ = [
    "IngestionPipeline",
]
