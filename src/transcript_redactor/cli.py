"""CLI interface for transcript-redactor.

Usage:
    # Redact plain text (stdin → stdout)
    echo 'Call me at 555-123-4567' | python -m transcript_redactor.cli redact

    # Redact chat messages (stdin: JSON array, stdout: redacted JSON)
    echo '[{"role":"user","content":"I am john@x.com"}]' | \
        python -m transcript_redactor.cli redact-messages

    # Show what each rule replaced
    echo 'MRN: 123456' | python -m transcript_redactor.cli report

    # Translate (needs OPENAI_API_KEY); both input and answer are redacted
    echo 'DOB 04/12/1990' | \
        python -m transcript_redactor.cli translate --source en-US --target es-ES

    # Speak redacted text (needs GOOGLE_SERVICE_ACCOUNT_CREDENTIALS_FILE)
    echo 'Call 555-1234' | \
        python -m transcript_redactor.cli speak --lang en-US --output speech.mp3

    # Run the HTTP sidecar
    python -m transcript_redactor.cli serve --port 18792
"""

from __future__ import annotations
import argparse
import json
import logging
import sys
from typing import Any

from .config import create_redactor, create_speaker, create_translator, resolve_config
from .errors import TranslatorError
from .logging import configure_logging
from .patterns import DEFAULT_RULES
from .redactor import Redactor

logger = logging.getLogger(__name__)


def _load(args: argparse.Namespace) -> dict[str, Any]:
    cfg = resolve_config(args.config)
    if args.skip_rules:
        cfg["skip_rules"] = cfg["skip_rules"] | set(args.skip_rules.split(","))
    if args.allow_list:
        cfg["allow_list"] = cfg["allow_list"] | set(args.allow_list.split(","))
    return cfg


def _build_redactor(args: argparse.Namespace) -> Redactor:
    return create_redactor(_load(args))


def cmd_redact(args: argparse.Namespace) -> int:
    """Redact plain text on stdin."""
    redactor = _build_redactor(args)
    sys.stdout.write(redactor.redact(sys.stdin.read()))
    return 0


def cmd_redact_messages(args: argparse.Namespace) -> int:
    """Redact chat-format messages on stdin."""
    redactor = _build_redactor(args)
    messages = json.loads(sys.stdin.read())
    json.dump(redactor.redact_messages(messages), sys.stdout, ensure_ascii=False)
    sys.stdout.write("\n")
    return 0


def cmd_report(args: argparse.Namespace) -> int:
    """Redact stdin and print the result with per-rule hits as JSON."""
    redactor = _build_redactor(args)
    result = redactor.redact_with_report(sys.stdin.read())
    output = {
        "text": result.text,
        "counts": result.counts,
        "hits": [
            {"rule": h.rule, "start": h.start, "end": h.end, "replacement": h.replacement}
            for h in result.hits
        ],
    }
    json.dump(output, sys.stdout, ensure_ascii=False)
    sys.stdout.write("\n")
    return 0


def cmd_rules(args: argparse.Namespace) -> int:
    """List the active rules in pipeline order."""
    active = set(_build_redactor(args).rule_names)
    for rule in DEFAULT_RULES:
        flag = "" if rule.name in active else "  (skipped)"
        sys.stdout.write(f"{rule.name}\t{rule.replacement}{flag}\n")
    return 0


def cmd_translate(args: argparse.Namespace) -> int:
    """Translate stdin text; both sides are redacted."""
    cfg = _load(args)
    try:
        translator = create_translator(cfg, redactor=create_redactor(cfg))
        result = translator.translate(sys.stdin.read().strip(), args.source, args.target)
    except TranslatorError as e:
        sys.stderr.write(f"error: {e}\n")
        return 1
    sys.stdout.write(result.translation + "\n")
    return 0


def cmd_speak(args: argparse.Namespace) -> int:
    """Synthesize redacted stdin text to an MP3 file."""
    cfg = _load(args)
    try:
        speaker = create_speaker(cfg, redactor=create_redactor(cfg))
        speech = speaker.speak(sys.stdin.read().strip(), args.lang)
    except TranslatorError as e:
        sys.stderr.write(f"error: {e}\n")
        return 1
    with open(args.output, "wb") as f:
        f.write(speech.audio)
    logger.info("wrote %d bytes to %s", len(speech.audio), args.output)
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    from .server import serve
    serve(host=args.host, port=args.port, config=_load(args))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="transcript-redactor",
        description="Redact phone numbers, emails, IDs, dates and health identifiers from transcripts",
    )
    parser.add_argument("--config", default=None, help="YAML config path")
    parser.add_argument("--skip-rules", default="", help="Comma-separated rule names to skip")
    parser.add_argument("--allow-list", default="", help="Comma-separated values to never redact")
    parser.add_argument("--log-level", default=None, help="Logging level (default: $LOG_LEVEL or INFO)")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("redact", help="Redact plain text (stdin)")
    sub.add_parser("redact-messages", help="Redact chat messages (JSON stdin)")
    sub.add_parser("report", help="Redact and report hits (stdin)")
    sub.add_parser("rules", help="List rules in order")

    p = sub.add_parser("translate", help="Translate stdin text via the provider")
    p.add_argument("--source", default="en-US", help="Source language code")
    p.add_argument("--target", required=True, help="Target language code")

    p = sub.add_parser("speak", help="Synthesize redacted stdin text to MP3")
    p.add_argument("--lang", default="en-US", help="Voice language code")
    p.add_argument("--output", default="speech.mp3", help="Output MP3 path")

    p = sub.add_parser("serve", help="Run the HTTP sidecar")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=18792)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level.upper() if args.log_level else None)

    cmds = {
        "redact": cmd_redact,
        "redact-messages": cmd_redact_messages,
        "report": cmd_report,
        "rules": cmd_rules,
        "translate": cmd_translate,
        "speak": cmd_speak,
        "serve": cmd_serve,
    }
    return cmds[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
