"""
Translation Provider
====================

The translation collaborator used for title enrichment: an abstract
``Translator`` and an implementation backed by any OpenAI-compatible chat
completion endpoint.
"""

from abc import ABC, abstractmethod
from typing import Optional

import openai
from openai import AsyncOpenAI

from ..config.settings import NewsDeskSettings, get_settings
from ..utils.exceptions import ErrorCode, TranslationError
from ..utils.logging import get_logger_for_component

LANGUAGE_NAMES = {
    "zh-CN": "Simplified Chinese",
    "zh-TW": "Traditional Chinese",
    "en": "English",
    "ja": "Japanese",
}


class Translator(ABC):
    """Translates short texts into a target language."""

    @abstractmethod
    async def translate(self, text: str, target_language: str) -> str:
        """Translate ``text``.

        Raises:
            TranslationError: If no translation could be produced
        """


class OpenAITranslator(Translator):
    """Translator backed by the OpenAI async client."""

    def __init__(
        self,
        settings: Optional[NewsDeskSettings] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.settings = settings or get_settings()
        self.config = self.settings.translation
        self.logger = get_logger_for_component("translator")

        self._client = client
        self.logger.debug(f"Translator configured with model: {self.config.model}")

    @property
    def client(self) -> AsyncOpenAI:
        """Client created on first use; without an explicit key it reads OPENAI_API_KEY."""
        if self._client is None:
            try:
                self._client = AsyncOpenAI(
                    api_key=self.config.api_key,
                    base_url=self.config.base_url,
                    timeout=self.config.timeout,
                )
            except openai.OpenAIError as e:
                raise TranslationError(
                    f"Translation client unavailable: {e}",
                    provider="openai",
                    recoverable=False,
                ) from e
        return self._client

    def _build_messages(self, text: str, target_language: str) -> list:
        language = LANGUAGE_NAMES.get(target_language, target_language)
        return [
            {
                "role": "system",
                "content": (
                    f"You are a professional translator. Translate the user's text into {language}. "
                    "Keep the tone and style of the original, translate technical terms accurately, "
                    "and reply with the translation only, without any explanation."
                ),
            },
            {"role": "user", "content": text},
        ]

    async def translate(self, text: str, target_language: str) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.config.model,
                messages=self._build_messages(text, target_language),
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
            )

        except openai.APIConnectionError as e:
            raise TranslationError(
                f"Connection to translation endpoint failed: {e}",
                provider="openai",
            ) from e

        except openai.APIStatusError as e:
            raise TranslationError(
                f"Translation API error: {e.status_code} - {e.message}",
                provider="openai",
                recoverable=e.status_code >= 500 or e.status_code == 429,
            ) from e

        except openai.OpenAIError as e:
            raise TranslationError(
                f"Translation request failed: {e}",
                provider="openai",
            ) from e

        if not response.choices:
            raise TranslationError(
                "Empty translation response",
                provider="openai",
                error_code=ErrorCode.TRANSLATION_EMPTY_RESPONSE,
            )

        translated = (response.choices[0].message.content or "").strip()
        if not translated:
            raise TranslationError(
                "Empty translation response",
                provider="openai",
                error_code=ErrorCode.TRANSLATION_EMPTY_RESPONSE,
            )
        return translated
