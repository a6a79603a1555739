import io
import json
import logging
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from transcript_redactor.logging import configure_logging


def _last_line(stream):
    return stream.getvalue().strip().splitlines()[-1]


def test_json_records_carry_extras():
    out = io.StringIO()
    configure_logging("INFO", "json", out)
    logging.getLogger("transcript_redactor.test").info(
        "redacted %d chars", 42,
        extra={"event_type": "redact", "client": "127.0.0.1",
               "rule_counts": {"PHONE": 1}, "latency_ms": 1.5},
    )
    data = json.loads(_last_line(out))
    assert data["level"] == "info"
    assert data["logger"] == "transcript_redactor.test"
    assert data["message"] == "redacted 42 chars"
    assert data["event_type"] == "redact"
    assert data["client"] == "127.0.0.1"
    assert data["rule_counts"] == {"PHONE": 1}
    assert data["latency_ms"] == 1.5
    assert "ts" in data


def test_json_omits_unset_extras():
    out = io.StringIO()
    configure_logging("INFO", "json", out)
    logging.getLogger("transcript_redactor.test").warning("plain event")
    data = json.loads(_last_line(out))
    assert set(data) == {"ts", "level", "logger", "message"}


def test_format_from_env(monkeypatch):
    monkeypatch.setenv("LOG_FORMAT", "json")
    monkeypatch.setenv("LOG_LEVEL", "warning")
    out = io.StringIO()
    configure_logging(stream=out)
    log = logging.getLogger("transcript_redactor.test")
    log.info("dropped")
    log.warning("kept")
    lines = out.getvalue().strip().splitlines()
    assert [json.loads(line)["message"] for line in lines] == ["kept"]


def test_plain_logging():
    out = io.StringIO()
    configure_logging("DEBUG", "plain", out)
    logging.getLogger("transcript_redactor.test").debug("hello")
    assert "[DEBUG] transcript_redactor.test: hello" in out.getvalue()
