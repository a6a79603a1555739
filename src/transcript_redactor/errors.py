"""Errors raised by the service surfaces.

The redactor itself never raises; everything here belongs to the code
that wraps it (request validation, provider calls, rate limiting).
"""

from __future__ import annotations


class TranslatorError(Exception):
    """Base class; ``status`` is the HTTP status the sidecar answers with."""
    status = 500


class InvalidRequest(TranslatorError):
    status = 400


class RateLimited(TranslatorError):
    status = 429


class NotConfigured(TranslatorError):
    status = 500


class TranslationFailed(TranslatorError):
    status = 500


class SynthesisFailed(TranslatorError):
    status = 500
