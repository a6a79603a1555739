"""YAML/dict config loader for transcript-redactor.

Supports loading from a YAML file or a plain dict (for embedding
in a larger application config).

Example YAML:

    transcript_redactor:
      enabled: true
      skip_rules:
        - DATE
      allow_list:
        - 555-0100
      max_chars: 1000
      rate_limit:
        requests: 20
        window_seconds: 60
      # key clients on X-Forwarded-For; only behind a trusted proxy
      trust_forwarded: false
      translation:
        model: gpt-4
        max_tokens: 1000
        temperature: 0.1
      tts:
        voice_gender: NEUTRAL
"""

from __future__ import annotations
import os
from pathlib import Path
from typing import Any

import yaml

from .patterns import RULE_NAMES
from .ratelimit import FixedWindowRateLimiter
from .redactor import Redactor, RedactorConfig
from .translation import DEFAULT_MAX_CHARS, OpenAIProvider, Translator
from .tts import CREDENTIALS_ENV, GoogleTTSProvider, Speaker


class _NoopRedactor(Redactor):
    """Pass-through redactor when redaction is disabled."""

    def __init__(self) -> None:
        super().__init__(RedactorConfig(rules=[]))


def load_config(data: dict[str, Any] | None) -> dict[str, Any]:
    """Normalize a config dict (from YAML or inline)."""
    data = data or {}
    # Support nested under "transcript_redactor" key or flat
    if "transcript_redactor" in data:
        data = data["transcript_redactor"] or {}

    skip_rules = set(data.get("skip_rules") or [])
    unknown = skip_rules - set(RULE_NAMES)
    if unknown:
        raise ValueError(f"unknown rule names in skip_rules: {sorted(unknown)}")

    rate_limit = data.get("rate_limit") or {}
    translation = data.get("translation") or {}
    tts = data.get("tts") or {}
    return {
        "enabled": data.get("enabled", True),
        "skip_rules": skip_rules,
        "allow_list": set(data.get("allow_list") or []),
        "max_chars": int(data.get("max_chars", DEFAULT_MAX_CHARS)),
        "rate_limit_requests": int(rate_limit.get("requests", 20)),
        "rate_limit_window": float(rate_limit.get("window_seconds", 60)),
        "trust_forwarded": bool(data.get("trust_forwarded", False)),
        "model": translation.get("model", "gpt-4"),
        "max_tokens": int(translation.get("max_tokens", 1000)),
        "temperature": float(translation.get("temperature", 0.1)),
        "voice_gender": str(tts.get("voice_gender", "NEUTRAL")).upper(),
    }


def load_from_yaml(path: str | Path) -> dict[str, Any]:
    """Load config from a YAML file."""
    with open(Path(path).expanduser()) as f:
        return load_config(yaml.safe_load(f))


def resolve_config(path: str | Path | None = None) -> dict[str, Any]:
    """Config from ``path``, else ``$TRANSCRIPT_REDACTOR_CONFIG``, else defaults."""
    path = path or os.environ.get("TRANSCRIPT_REDACTOR_CONFIG")
    if path:
        return load_from_yaml(path)
    return load_config({})


def normalize_config(config: dict[str, Any]) -> dict[str, Any]:
    return config if "rate_limit_requests" in config else load_config(config)


def create_redactor(config: dict[str, Any]) -> Redactor:
    """Create a configured redactor from a config dict."""
    cfg = normalize_config(config)
    if not cfg["enabled"]:
        return _NoopRedactor()
    return Redactor(RedactorConfig(
        skip_rules=cfg["skip_rules"],
        allow_list=cfg["allow_list"],
    ))


def create_rate_limiter(config: dict[str, Any]) -> FixedWindowRateLimiter:
    cfg = normalize_config(config)
    return FixedWindowRateLimiter(cfg["rate_limit_requests"], cfg["rate_limit_window"])


def create_translator(
    config: dict[str, Any],
    *,
    api_key: str | None = None,
    redactor: Redactor | None = None,
) -> Translator:
    """Create an OpenAI-backed translator.  Raises NotConfigured without a key."""
    cfg = normalize_config(config)
    provider = OpenAIProvider(
        api_key if api_key is not None else os.environ.get("OPENAI_API_KEY", ""),
        model=cfg["model"],
        max_tokens=cfg["max_tokens"],
        temperature=cfg["temperature"],
    )
    return Translator(
        provider,
        redactor or create_redactor(cfg),
        max_chars=cfg["max_chars"],
    )


def create_speaker(
    config: dict[str, Any],
    *,
    credentials_json: str | None = None,
    redactor: Redactor | None = None,
) -> Speaker:
    """Create a Google-backed speaker.  Raises NotConfigured without credentials."""
    cfg = normalize_config(config)
    provider = GoogleTTSProvider(
        credentials_json if credentials_json is not None else os.environ.get(CREDENTIALS_ENV),
        voice_gender=cfg["voice_gender"],
    )
    return Speaker(
        provider,
        redactor or create_redactor(cfg),
        max_chars=cfg["max_chars"],
    )
