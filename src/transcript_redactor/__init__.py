"""Transcript redactor — ordered regex redaction for speech-translation transcripts."""

from .redactor import Redactor, RedactorConfig, redact
from .patterns import DEFAULT_RULES, PLACEHOLDERS
from .session import TranscriptSession
from .translation import Translator, OpenAIProvider, TranslationResult
from .tts import Speaker, GoogleTTSProvider, SpeechAudio
from .ratelimit import FixedWindowRateLimiter
from .config import create_redactor, create_translator, create_speaker, load_config, load_from_yaml
from .types import RedactionRule, RedactedText, RuleHit

__all__ = [
    "Redactor", "RedactorConfig", "redact",
    "DEFAULT_RULES", "PLACEHOLDERS",
    "TranscriptSession",
    "Translator", "OpenAIProvider", "TranslationResult",
    "Speaker", "GoogleTTSProvider", "SpeechAudio",
    "FixedWindowRateLimiter",
    "create_redactor", "create_translator", "create_speaker", "load_config", "load_from_yaml",
    "RedactionRule", "RedactedText", "RuleHit",
]
__version__ = "0.1.0"
