"""
NewsDesk Translation Module
===========================

Title translation collaborator and the enrichment policy deciding when to
use it.
"""

from .translator import Translator, OpenAITranslator
from .enrichment import EnrichmentSnapshot, TranslationPolicy, SourceTranslationCache

__all__ = [
    "Translator",
    "OpenAITranslator",
    "EnrichmentSnapshot",
    "TranslationPolicy",
    "SourceTranslationCache",
]
