"""Logging setup for the CLI and the sidecar.

Handlers only ever see redacted text: callers log counts, rule names and
client keys, never request bodies.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from typing import IO

# ``extra=`` keys copied into JSON records when present
EXTRA_FIELDS = ("event_type", "client", "rule_counts", "latency_ms")

PLAIN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Provider SDKs log request details at INFO
_NOISY = ("httpx", "openai", "google", "urllib3")


class JsonFormatter(logging.Formatter):
    """One JSON object per record, extras included only when set."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in EXTRA_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                payload[name] = value
        if record.exc_info:
            payload["exc_type"] = record.exc_info[0].__name__
        return json.dumps(payload, default=str)


def configure_logging(
    level: str | int | None = None,
    fmt: str | None = None,
    stream: IO[str] | None = None,
) -> None:
    """Install a single root handler.

    ``level`` falls back to ``$LOG_LEVEL`` (INFO); ``fmt`` to ``$LOG_FORMAT``,
    either ``plain`` or ``json``.  Output goes to stderr so stdout stays
    clean for CLI results.
    """
    level = level or os.getenv("LOG_LEVEL", "INFO").upper()
    fmt = (fmt or os.getenv("LOG_FORMAT", "plain")).lower()

    handler = logging.StreamHandler(stream or sys.stderr)
    if fmt == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt="%H:%M:%S"))
    logging.basicConfig(level=level, handlers=[handler], force=True)

    for name in _NOISY:
        logging.getLogger(name).setLevel(max(logging.WARNING, logging.getLogger().level))
