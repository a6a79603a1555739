"""Per-session transcript state for a speech-capture front end.

Live and final transcript updates both go through the redactor before
they are stored, so nothing unredacted is ever held here.

Usage:
    session = TranscriptSession()
    session.update("my number is 555-123-4567")
    session.transcript                        # "my number is [PHONE]"
    if session.needs_translation("en-US", "es-ES"):
        result = translator.translate(session.transcript, "en-US", "es-ES")
        session.record_translation(result.translation)
"""

from __future__ import annotations
import time
from typing import Callable

from .redactor import Redactor

# Clear everything after 30 minutes without activity
DEFAULT_IDLE_TIMEOUT = 30 * 60


class TranscriptSession:
    """Holds the redacted transcript, its translation and the last request."""

    __slots__ = (
        "_redactor", "_idle_timeout", "_clock",
        "_transcript", "_translation", "_last_request", "_last_activity",
    )

    def __init__(
        self,
        redactor: Redactor | None = None,
        *,
        idle_timeout: float = DEFAULT_IDLE_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._redactor = redactor or Redactor()
        self._idle_timeout = idle_timeout
        self._clock = clock
        self._transcript = ""
        self._translation = ""
        self._last_request: tuple[str, str, str] | None = None
        self._last_activity = clock()

    @property
    def transcript(self) -> str:
        return self._transcript

    @property
    def translation(self) -> str:
        return self._translation

    def update(self, transcript: str) -> str:
        """Store a new (live or final) transcript; returns the redacted text."""
        self._touch()
        self._transcript = self._redactor.redact(transcript or "")
        if not self._transcript.strip():
            self._translation = ""
            self._last_request = None
        return self._transcript

    def needs_translation(self, source: str, target: str) -> bool:
        """True when the current transcript has not been sent for this language pair.

        Marks the request as sent when it returns True.
        """
        if not self._transcript.strip():
            return False
        request = (self._transcript, source, target)
        if request == self._last_request:
            return False
        self._last_request = request
        return True

    def record_translation(self, translation: str) -> str:
        self._touch()
        self._translation = self._redactor.redact(translation or "")
        return self._translation

    def expire_if_idle(self) -> bool:
        """Clear the session if it has been idle too long.  Returns True if cleared."""
        if self._clock() - self._last_activity < self._idle_timeout:
            return False
        self.clear()
        return True

    def clear(self) -> None:
        self._transcript = ""
        self._translation = ""
        self._last_request = None
        self._last_activity = self._clock()

    def _touch(self) -> None:
        self._last_activity = self._clock()
