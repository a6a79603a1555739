"""HTTP sidecar server for transcript-redactor.

A small stdlib HTTP server on localhost.  The front end posts transcript
text here instead of calling the providers directly, so raw text never
leaves the machine unredacted.

Endpoints:
    GET  /health                — Health check
    GET  /rules                 — Active rule names, in order
    GET  /tts?text=...&lang=... — MP3 of the redacted text
    POST /redact                — {"text": ...} → {"text": ..., "counts": ...}
    POST /redact-messages       — {"messages": [...]} → {"messages": [...]}
    POST /translate             — {"text", "sourceLanguage", "targetLanguage"}
                                  → {"translation", "sourceText"}

JSON in and out, except the audio from /tts.  /tts and every POST count
toward the per-client rate limit.
"""

from __future__ import annotations
import json
import logging
import os
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any
from urllib.parse import parse_qs, urlsplit

from .config import (
    create_rate_limiter, create_redactor, create_speaker, create_translator,
    normalize_config, resolve_config,
)
from .errors import InvalidRequest, NotConfigured, RateLimited, TranslatorError
from .ratelimit import FixedWindowRateLimiter
from .redactor import Redactor
from .translation import Translator
from .tts import Speaker

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = int(os.environ.get("TRANSCRIPT_REDACTOR_PORT", "18792"))


@dataclass
class SidecarState:
    """Everything the handler needs; shared by all request threads."""
    redactor: Redactor
    limiter: FixedWindowRateLimiter
    max_chars: int
    translator: Translator | None = None
    speaker: Speaker | None = None
    # X-Forwarded-For is client-controlled unless a proxy sets it
    trust_forwarded: bool = False


class RedactHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the redaction sidecar."""

    server: "RedactServer"

    @property
    def state(self) -> SidecarState:
        return self.server.state

    def _read_body(self) -> bytes:
        raw_length = self.headers.get("Content-Length") or "0"
        try:
            length = int(raw_length)
        except ValueError as e:
            raise InvalidRequest("Invalid Content-Length header") from e
        if length < 0:
            raise InvalidRequest("Invalid Content-Length header")
        return self.rfile.read(length) if length else b""

    def _parse_json(self, raw: bytes) -> dict[str, Any]:
        try:
            body = raw.decode("utf-8")
            data = json.loads(body) if body else {}
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise InvalidRequest("Request body is not valid JSON") from e
        if not isinstance(data, dict):
            raise InvalidRequest("Request body must be a JSON object")
        return data

    def _respond(self, status: int, data: Any) -> None:
        body = json.dumps(data, ensure_ascii=False).encode("utf-8")
        self._send(status, body, "application/json")

    def _send(
        self, status: int, body: bytes, content_type: str,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        for name, value in (headers or {}).items():
            self.send_header(name, value)
        self.end_headers()
        self.wfile.write(body)

    def _client_id(self) -> str:
        if self.state.trust_forwarded:
            forwarded = self.headers.get("X-Forwarded-For", "")
            if forwarded.strip():
                return forwarded.split(",")[0].strip()
        return self.client_address[0] if self.client_address else "unknown"

    def _check_rate(self) -> None:
        if not self.state.limiter.allow(self._client_id()):
            raise RateLimited("Too many requests. Please slow down.")

    def _fail(self, e: TranslatorError) -> None:
        logger.warning("%s %s: %s", self.path.split("?")[0], type(e).__name__, e,
                       extra={"event_type": "request_error", "client": self._client_id()})
        self._respond(e.status, {"error": str(e)})

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)

    def do_GET(self) -> None:
        url = urlsplit(self.path)
        if url.path == "/health":
            self._respond(200, {
                "status": "ok",
                "rules": len(self.state.redactor.rule_names),
                "translation": self.state.translator is not None,
                "tts": self.state.speaker is not None,
            })
        elif url.path == "/rules":
            self._respond(200, {"rules": self.state.redactor.rule_names})
        elif url.path == "/tts":
            try:
                self._check_rate()
                self._tts(parse_qs(url.query))
            except TranslatorError as e:
                self._fail(e)
            except Exception:
                logger.exception("/tts failed")
                self._respond(500, {"error": "internal error"})
        else:
            self._respond(404, {"error": "not found"})

    def do_POST(self) -> None:
        routes = {
            "/redact": self._redact,
            "/redact-messages": self._redact_messages,
            "/translate": self._translate,
        }
        try:
            # Body is read before any early response.
            raw = self._read_body()
            route = routes.get(self.path)
            if route is None:
                self._respond(404, {"error": "not found"})
                return
            self._check_rate()
            self._respond(200, route(self._parse_json(raw)))
        except TranslatorError as e:
            self._fail(e)
        except Exception:
            logger.exception("%s failed", self.path)
            self._respond(500, {"error": "internal error"})

    def _redact(self, body: dict[str, Any]) -> dict[str, Any]:
        text = body.get("text", "")
        if not isinstance(text, str):
            raise InvalidRequest("text must be a string")
        if len(text) > self.state.max_chars:
            raise InvalidRequest(
                f"Text too long. Maximum {self.state.max_chars} characters allowed."
            )
        result = self.state.redactor.redact_with_report(text)
        logger.info(
            "redacted %d chars, %d spans", len(text), len(result.hits),
            extra={"event_type": "redact", "client": self._client_id(),
                   "rule_counts": result.counts},
        )
        return {"text": result.text, "counts": result.counts}

    def _redact_messages(self, body: dict[str, Any]) -> dict[str, Any]:
        messages = body.get("messages", [])
        if not isinstance(messages, list) or not all(isinstance(m, dict) for m in messages):
            raise InvalidRequest("messages must be a list of objects")
        return {"messages": self.state.redactor.redact_messages(messages)}

    def _translate(self, body: dict[str, Any]) -> dict[str, Any]:
        translator = self.state.translator
        if translator is None:
            raise NotConfigured("Translation service not configured")
        result = translator.translate(
            body.get("text"), body.get("sourceLanguage"), body.get("targetLanguage"),
        )
        return {"translation": result.translation, "sourceText": result.source_text}

    def _tts(self, query: dict[str, list[str]]) -> None:
        text = query.get("text", [""])[0]
        if not text:
            raise InvalidRequest('Missing "text" query param')
        speaker = self.state.speaker
        if speaker is None:
            raise NotConfigured("TTS service not configured")
        speech = speaker.speak(text, query.get("lang", ["en-US"])[0])
        self._send(
            200, speech.audio, speech.content_type,
            {"Content-Disposition": 'inline; filename="speech.mp3"'},
        )


class RedactServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address: tuple[str, int], state: SidecarState) -> None:
        super().__init__(address, RedactHandler)
        self.state = state


def make_server(
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    config: dict[str, Any] | None = None,
    *,
    translator: Translator | None = None,
    speaker: Speaker | None = None,
) -> RedactServer:
    """Build (but do not start) the sidecar.  ``port=0`` picks a free port."""
    cfg = normalize_config(config if config is not None else resolve_config())
    redactor = create_redactor(cfg)
    if translator is None:
        try:
            translator = create_translator(cfg, redactor=redactor)
        except NotConfigured:
            logger.warning("OPENAI_API_KEY not set; /translate is disabled")
    if speaker is None:
        try:
            speaker = create_speaker(cfg, redactor=redactor)
        except NotConfigured as e:
            logger.warning("%s; /tts is disabled", e)
    state = SidecarState(
        redactor=redactor,
        limiter=create_rate_limiter(cfg),
        max_chars=cfg["max_chars"],
        translator=translator,
        speaker=speaker,
        trust_forwarded=cfg["trust_forwarded"],
    )
    return RedactServer((host, port), state)


def serve(host: str = DEFAULT_HOST, port: int = DEFAULT_PORT, config: dict[str, Any] | None = None) -> None:
    """Start the redaction HTTP sidecar."""
    server = make_server(host, port, config)
    state = server.state
    logger.info("transcript-redactor sidecar listening on http://%s:%d", host, server.server_port)
    logger.info("  rules: %s", ", ".join(state.redactor.rule_names) or "(disabled)")
    logger.info("  translation: %s", "enabled" if state.translator else "disabled")
    logger.info("  tts: %s", "enabled" if state.speaker else "disabled")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        server.server_close()


if __name__ == "__main__":
    import argparse
    from .logging import configure_logging

    parser = argparse.ArgumentParser(description="Transcript redactor HTTP sidecar")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--config", default=None, help="YAML config path")
    args = parser.parse_args()
    configure_logging()
    serve(host=args.host, port=args.port, config=resolve_config(args.config))
