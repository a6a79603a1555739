"""Text-to-speech for the (already redacted) translation.

Usage:

    speaker = Speaker(GoogleTTSProvider(os.environ["GOOGLE_SERVICE_ACCOUNT_CREDENTIALS_FILE"]))
    audio = speaker.speak("Llame al 555-123-4567", "es-ES")
    audio.text       # "Llame al [PHONE]"   (what was synthesized)
    audio.audio      # MP3 bytes

The credentials variable holds the service-account JSON itself, not a path.
"""

from __future__ import annotations
import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from .errors import InvalidRequest, NotConfigured, SynthesisFailed
from .redactor import Redactor
from .translation import DEFAULT_MAX_CHARS

logger = logging.getLogger(__name__)

CREDENTIALS_ENV = "GOOGLE_SERVICE_ACCOUNT_CREDENTIALS_FILE"
AUDIO_CONTENT_TYPE = "audio/mpeg"

_REQUIRED_KEYS = ("client_email", "private_key", "project_id")


def parse_service_account(raw: str | None) -> dict[str, Any]:
    """Decode the service-account JSON; raises NotConfigured when unusable."""
    if not raw:
        raise NotConfigured("TTS service not configured")
    try:
        info = json.loads(raw)
    except json.JSONDecodeError as e:
        raise NotConfigured("Invalid service account config") from e
    if not isinstance(info, dict) or any(not info.get(k) for k in _REQUIRED_KEYS):
        raise NotConfigured("Invalid service account config")
    # keys pasted into env vars usually carry literal "\n"
    info["private_key"] = info["private_key"].replace("\\n", "\n")
    info.setdefault("token_uri", "https://oauth2.googleapis.com/token")
    return info


class SpeechProvider(Protocol):
    def synthesize(self, text: str, language: str) -> bytes: ...


class GoogleTTSProvider:
    """Google Cloud Text-to-Speech: neutral voice, MP3 output."""

    def __init__(
        self,
        credentials_json: str | None = None,
        *,
        voice_gender: str = "NEUTRAL",
        audio_encoding: str = "MP3",
        client=None,
    ) -> None:
        self._info = parse_service_account(credentials_json) if client is None else None
        self.voice_gender = voice_gender
        self.audio_encoding = audio_encoding
        self._client = client

    def _get_client(self):
        if self._client is None:
            from google.cloud import texttospeech  # optional dependency
            from google.oauth2 import service_account

            credentials = service_account.Credentials.from_service_account_info(self._info)
            self._client = texttospeech.TextToSpeechClient(credentials=credentials)
        return self._client

    def synthesize(self, text: str, language: str) -> bytes:
        response = self._get_client().synthesize_speech(request={
            "input": {"text": text},
            "voice": {"language_code": language, "ssml_gender": self.voice_gender},
            "audio_config": {"audio_encoding": self.audio_encoding},
        })
        return bytes(response.audio_content)


@dataclass(frozen=True, slots=True)
class SpeechAudio:
    text: str              # redacted text that was synthesized
    language: str
    audio: bytes
    content_type: str = AUDIO_CONTENT_TYPE


class Speaker:
    """Redacts text, then hands it to a speech provider."""

    def __init__(
        self,
        provider: SpeechProvider,
        redactor: Redactor | None = None,
        *,
        max_chars: int = DEFAULT_MAX_CHARS,
    ) -> None:
        self.provider = provider
        self.redactor = redactor or Redactor()
        self.max_chars = max_chars

    def speak(self, text: str | None, language: str | None = "en-US") -> SpeechAudio:
        if not text or not isinstance(text, str):
            raise InvalidRequest('Missing "text" query param')
        if len(text) > self.max_chars:
            raise InvalidRequest(
                f"Text too long. Maximum {self.max_chars} characters allowed."
            )
        language = language or "en-US"
        safe_text = self.redactor.redact(text)
        try:
            audio = self.provider.synthesize(safe_text, language)
        except Exception as e:
            logger.error("speech synthesis failed: %s", type(e).__name__)
            raise SynthesisFailed("Failed to generate speech") from e
        if not audio:
            raise SynthesisFailed("Failed to generate speech")
        return SpeechAudio(text=safe_text, language=language, audio=audio)
