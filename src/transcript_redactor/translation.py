"""Translation wrapper — redacts on the way out AND on the way back.

Usage:

    translator = Translator(OpenAIProvider(api_key="sk-..."))
    result = translator.translate("Call 555-123-4567", "en-US", "es-ES")
    result.source_text   # "Call [PHONE]"   (what the provider saw)
    result.translation   # "Llame al [PHONE]"

The provider's answer goes through the redactor again because a
translation can reintroduce numbers or dates in the target language's
own conventions.
"""

from __future__ import annotations
import logging
import time
from dataclasses import dataclass
from typing import Protocol

from .errors import InvalidRequest, NotConfigured, TranslationFailed
from .redactor import Redactor

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHARS = 1000

LANGUAGE_NAMES: dict[str, str] = {
    "en-US": "English",
    "es-ES": "Spanish",
    "fr-FR": "French",
    "de-DE": "German",
    "it-IT": "Italian",
    "pt-PT": "Portuguese",
    "zh-CN": "Chinese",
    "ja-JP": "Japanese",
    "ru-RU": "Russian",
    "ur-PK": "Urdu",
    "hi-IN": "Hindi",
    "ar-SA": "Arabic",
}

_SYSTEM_PROMPT = (
    "You are a professional medical translator. Translate the following text "
    "from {source} to {target}. Provide only the translation without any "
    "additional text or explanations. Maintain medical terminology accuracy."
)


def language_name(code: str) -> str:
    """Human name for a language code; unknown codes are returned as is."""
    return LANGUAGE_NAMES.get(code, code)


def build_messages(text: str, source: str, target: str) -> list[dict]:
    """Chat-format messages for a translation request."""
    return [
        {
            "role": "system",
            "content": _SYSTEM_PROMPT.format(
                source=language_name(source), target=language_name(target),
            ),
        },
        {"role": "user", "content": text},
    ]


class TranslationProvider(Protocol):
    def complete(self, messages: list[dict]) -> str: ...


class OpenAIProvider:
    """Chat-completions backed provider."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gpt-4",
        max_tokens: int = 1000,
        temperature: float = 0.1,
        client=None,
    ) -> None:
        if not api_key and client is None:
            raise NotConfigured("OpenAI API key not configured")
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._api_key = api_key
        self._client = client

    def _get_client(self):
        if self._client is None:
            from openai import OpenAI  # optional dependency
            self._client = OpenAI(api_key=self._api_key)
        return self._client

    def complete(self, messages: list[dict]) -> str:
        response = self._get_client().chat.completions.create(
            model=self.model,
            messages=messages,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )
        if not response.choices:
            return ""
        return (response.choices[0].message.content or "").strip()


@dataclass(frozen=True, slots=True)
class TranslationResult:
    source_text: str       # redacted text sent to the provider
    translation: str       # redacted provider answer
    source_language: str
    target_language: str


class Translator:
    """Validates, redacts, forwards to a provider, redacts the answer."""

    def __init__(
        self,
        provider: TranslationProvider,
        redactor: Redactor | None = None,
        *,
        max_chars: int = DEFAULT_MAX_CHARS,
    ) -> None:
        self.provider = provider
        self.redactor = redactor or Redactor()
        self.max_chars = max_chars

    def validate(self, text: str | None, source: str | None, target: str | None) -> None:
        if not text or not source or not target:
            raise InvalidRequest("Missing required parameters")
        if not isinstance(text, str):
            raise InvalidRequest("text must be a string")
        if len(text) > self.max_chars:
            raise InvalidRequest(
                f"Text too long. Maximum {self.max_chars} characters allowed."
            )

    def translate(self, text: str, source: str, target: str) -> TranslationResult:
        self.validate(text, source, target)
        safe_text = self.redactor.redact(text)

        started = time.perf_counter()
        try:
            answer = self.provider.complete(build_messages(safe_text, source, target))
        except Exception as e:
            logger.error("provider call failed: %s", type(e).__name__)
            raise TranslationFailed("Failed to translate text") from e

        if not answer or not answer.strip():
            raise TranslationFailed("No translation received from provider")

        translation = self.redactor.redact(answer.strip())
        logger.info(
            "translated %s -> %s",
            source,
            target,
            extra={
                "event_type": "translation",
                "latency_ms": round((time.perf_counter() - started) * 1000, 1),
            },
        )
        return TranslationResult(
            source_text=safe_text,
            translation=translation,
            source_language=source,
            target_language=target,
        )
