"""
Title Enrichment Policy
=======================

Decides whether a source's titles get translated and produces cached
translations. Every method degrades to "no translation" instead of raising.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from ..config.settings import NewsDeskSettings, get_settings
from ..database.connection import DatabaseConnection
from ..storage.subscription_repository import SubscriptionRepository
from ..storage.translation_repository import SystemSettingsRepository, TranslationRepository
from ..utils.exceptions import DatabaseError, NewsDeskError
from ..utils.logging import get_logger_for_component
from .translator import Translator


@dataclass(frozen=True)
class EnrichmentSnapshot:
    """Global toggles read once at the start of a sweep."""
    system_auto_translate: bool = False


class TranslationPolicy:
    """Hybrid per-subscription / system-wide title translation policy."""

    def __init__(
        self,
        db_connection: DatabaseConnection,
        translator: Translator,
        settings: Optional[NewsDeskSettings] = None,
    ):
        self.settings = settings or get_settings()
        self.translator = translator
        self.subscriptions = SubscriptionRepository(db_connection)
        self.translations = TranslationRepository(db_connection)
        self.system_settings = SystemSettingsRepository(db_connection)
        self.logger = get_logger_for_component("translation_policy")

    def load_snapshot(self) -> EnrichmentSnapshot:
        """Read the global toggle; a failed read means off."""
        try:
            return EnrichmentSnapshot(system_auto_translate=self.system_settings.get_auto_translate())
        except DatabaseError as e:
            self.logger.error(f"Failed to load system settings, translation defaults off: {e}")
            return EnrichmentSnapshot()

    def should_translate_title(
        self, source_id: int, snapshot: Optional[EnrichmentSnapshot] = None
    ) -> bool:
        """Decide whether titles of ``source_id`` should be translated.

        First match wins: an enabled subscription opted in at both the
        subscription and the account level, then the system toggle, then no.
        """
        try:
            if self.subscriptions.has_auto_translate_subscriber(source_id):
                return True
            if snapshot is None:
                return self.system_settings.get_auto_translate()
            return snapshot.system_auto_translate
        except DatabaseError as e:
            self.logger.error(
                f"Failed to evaluate translation policy for source {source_id}: {e}"
            )
            return False

    async def translate_title(self, original_title: str) -> str:
        """Return the translated title, or the original if anything fails."""
        language = self.settings.translation.target_language

        try:
            cached = self.translations.get_translation(original_title)
        except DatabaseError as e:
            self.logger.warning(f"Translation cache lookup failed: {e}")
            cached = None

        if cached:
            self.logger.debug(f"Translation cache hit: {original_title}")
            return cached

        try:
            translated = await self.translator.translate(original_title, language)
        except NewsDeskError as e:
            self.logger.warning(
                f"Failed to translate title '{original_title}': {e}", extra=e.to_dict()
            )
            return original_title
        except Exception as e:
            self.logger.error(
                f"Unexpected translator failure for '{original_title}': {e}", exc_info=True
            )
            return original_title

        try:
            self.translations.upsert_translation(original_title, translated, language)
        except DatabaseError as e:
            self.logger.warning(f"Failed to cache translation of '{original_title}': {e}")

        return translated


class SourceTranslationCache:
    """Per-run memo of the translation decision for each source."""

    def __init__(self, policy: TranslationPolicy, snapshot: EnrichmentSnapshot):
        self.policy = policy
        self.snapshot = snapshot
        self._decisions: Dict[int, bool] = {}

    def should_translate(self, source_id: int) -> bool:
        if source_id not in self._decisions:
            self._decisions[source_id] = self.policy.should_translate_title(
                source_id, self.snapshot
            )
        return self._decisions[source_id]
