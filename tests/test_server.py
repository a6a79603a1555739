"""Tests for the HTTP sidecar — real server on an ephemeral port."""

import http.client
import json
import logging
import sys, os
import threading
import urllib.error
import urllib.parse
import urllib.request
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import pytest

from transcript_redactor.server import make_server
from transcript_redactor.translation import Translator
from transcript_redactor.tts import Speaker


class FakeProvider:
    def __init__(self):
        self.calls = []

    def complete(self, messages):
        self.calls.append(messages)
        return "Llame al 555-123-4567"


class FakeSpeech:
    def __init__(self):
        self.calls = []

    def synthesize(self, text, language):
        self.calls.append((text, language))
        return b"ID3-fake-mp3"


@pytest.fixture(autouse=True)
def _no_provider_env(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_SERVICE_ACCOUNT_CREDENTIALS_FILE", raising=False)


def _start(config, translator=None, speaker=None):
    server = make_server("127.0.0.1", 0, config, translator=translator, speaker=speaker)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return server


def _stop(server):
    server.shutdown()
    server.server_close()


def _request(server, method, path, body=None, headers=None):
    url = f"http://127.0.0.1:{server.server_port}{path}"
    data = None
    if body is not None:
        data = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
    req = urllib.request.Request(url, data=data, method=method, headers=headers or {})
    try:
        with urllib.request.urlopen(req, timeout=5) as resp:
            return resp.status, json.loads(resp.read())
    except urllib.error.HTTPError as e:
        return e.code, json.loads(e.read())


def _get_raw(server, path):
    url = f"http://127.0.0.1:{server.server_port}{path}"
    try:
        with urllib.request.urlopen(url, timeout=5) as resp:
            return resp.status, dict(resp.headers), resp.read()
    except urllib.error.HTTPError as e:
        return e.code, dict(e.headers), e.read()


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def speech():
    return FakeSpeech()


@pytest.fixture
def server(provider, speech):
    srv = _start({"rate_limit": {"requests": 100}}, Translator(provider), Speaker(speech))
    yield srv
    _stop(srv)


# ── Routes ───────────────────────────────────────────────────────────

def test_health(server):
    status, body = _request(server, "GET", "/health")
    assert status == 200
    assert body == {"status": "ok", "rules": 7, "translation": True, "tts": True}


def test_rules(server):
    status, body = _request(server, "GET", "/rules")
    assert status == 200
    assert body["rules"] == ["PHONE", "EMAIL", "ID", "DATE", "MRN", "SSN", "DOB"]


def test_redact(server):
    status, body = _request(server, "POST", "/redact", {"text": "MRN: 123456, call 555-1234"})
    assert status == 200
    assert body["text"] == "[REDACTED], call [PHONE]"
    assert body["counts"] == {"PHONE": 1, "ID": 1, "MRN": 1}


def test_redact_logs_counts_not_text(server, caplog):
    with caplog.at_level(logging.INFO, logger="transcript_redactor.server"):
        _request(server, "POST", "/redact", {"text": "call 555-123-4567"})
    records = [r for r in caplog.records if getattr(r, "event_type", None) == "redact"]
    assert len(records) == 1
    assert records[0].rule_counts == {"PHONE": 1}
    assert records[0].client == "127.0.0.1"
    assert "555-123-4567" not in caplog.text


def test_redact_messages(server):
    messages = [{"role": "user", "content": "I'm alice@x.com"}]
    status, body = _request(server, "POST", "/redact-messages", {"messages": messages})
    assert status == 200
    assert body["messages"] == [{"role": "user", "content": "I'm [EMAIL]"}]


def test_translate(server, provider):
    payload = {"text": "Call 555-123-4567", "sourceLanguage": "en-US", "targetLanguage": "es-ES"}
    status, body = _request(server, "POST", "/translate", payload)
    assert status == 200
    assert body == {"translation": "Llame al [PHONE]", "sourceText": "Call [PHONE]"}
    assert provider.calls[0][1]["content"] == "Call [PHONE]"


def test_translate_missing_params(server):
    status, body = _request(server, "POST", "/translate", {"text": "hi"})
    assert status == 400
    assert body["error"] == "Missing required parameters"


def test_tts(server, speech):
    query = urllib.parse.urlencode({"text": "Llame al 555-123-4567", "lang": "es-ES"})
    status, headers, body = _get_raw(server, f"/tts?{query}")
    assert status == 200
    assert headers["Content-Type"] == "audio/mpeg"
    assert headers["Content-Disposition"] == 'inline; filename="speech.mp3"'
    assert body == b"ID3-fake-mp3"
    assert speech.calls == [("Llame al [PHONE]", "es-ES")]


def test_tts_default_language(server, speech):
    status, _, _ = _get_raw(server, "/tts?text=hello")
    assert status == 200
    assert speech.calls == [("hello", "en-US")]


def test_tts_missing_text(server, speech):
    status, _, body = _get_raw(server, "/tts?lang=es-ES")
    assert status == 400
    assert json.loads(body)["error"] == 'Missing "text" query param'
    assert speech.calls == []


# ── Errors ───────────────────────────────────────────────────────────

def test_text_too_long(server):
    status, body = _request(server, "POST", "/redact", {"text": "x" * 1001})
    assert status == 400
    assert "Maximum 1000" in body["error"]


def test_bad_json(server):
    status, body = _request(server, "POST", "/redact", b"{not json")
    assert status == 400


@pytest.mark.parametrize("length", ["abc", "-5"])
def test_bad_content_length(server, length):
    conn = http.client.HTTPConnection("127.0.0.1", server.server_port, timeout=5)
    try:
        conn.putrequest("POST", "/redact")
        conn.putheader("Content-Length", length)
        conn.endheaders()
        resp = conn.getresponse()
        assert resp.status == 400
        assert json.loads(resp.read())["error"] == "Invalid Content-Length header"
    finally:
        conn.close()


def test_unknown_path(server):
    assert _request(server, "GET", "/nope")[0] == 404
    assert _request(server, "POST", "/nope", {})[0] == 404


def test_providers_not_configured():
    srv = _start({})
    try:
        status, body = _request(srv, "GET", "/health")
        assert body["translation"] is False
        assert body["tts"] is False
        payload = {"text": "hi", "sourceLanguage": "en-US", "targetLanguage": "es-ES"}
        status, body = _request(srv, "POST", "/translate", payload)
        assert status == 500
        assert body["error"] == "Translation service not configured"
        status, _, raw = _get_raw(srv, "/tts?text=hi")
        assert status == 500
        assert json.loads(raw)["error"] == "TTS service not configured"
    finally:
        _stop(srv)


# ── Rate limiting ────────────────────────────────────────────────────

def test_forwarded_header_does_not_reset_limit():
    srv = _start({"rate_limit": {"requests": 2, "window_seconds": 60}})
    try:
        statuses = [
            _request(srv, "POST", "/redact", {"text": "x"}, {"X-Forwarded-For": f"10.0.0.{i}"})[0]
            for i in range(6)
        ]
        assert statuses == [200, 200, 429, 429, 429, 429]
    finally:
        _stop(srv)


def test_tts_counts_toward_limit():
    srv = _start({"rate_limit": {"requests": 1, "window_seconds": 60}}, speaker=Speaker(FakeSpeech()))
    try:
        assert _get_raw(srv, "/tts?text=hi")[0] == 200
        assert _get_raw(srv, "/tts?text=hi")[0] == 429
    finally:
        _stop(srv)


def test_trusted_forwarded_header_keys_clients():
    config = {"rate_limit": {"requests": 2, "window_seconds": 60}, "trust_forwarded": True}
    srv = _start(config)
    try:
        a = {"X-Forwarded-For": "10.0.0.1"}
        b = {"X-Forwarded-For": "10.0.0.2, 172.16.0.1"}
        assert _request(srv, "POST", "/redact", {"text": "x"}, a)[0] == 200
        assert _request(srv, "POST", "/redact", {"text": "x"}, a)[0] == 200
        status, body = _request(srv, "POST", "/redact", {"text": "x"}, a)
        assert status == 429
        assert "Too many requests" in body["error"]
        assert _request(srv, "POST", "/redact", {"text": "x"}, b)[0] == 200
    finally:
        _stop(srv)
