"""Ordered redaction rules for transcript text.

Rules run one after another over the whole string, so each rule sees the
output of the previous one.  Order is part of the contract: a phone number
must become [PHONE] before the numeric-ID rule gets a chance at its digits.

All patterns are ASCII-only (``re.ASCII``); digits and letters from other
scripts pass through untouched.
"""

from __future__ import annotations
import re

from .types import RedactionRule

PHONE = "[PHONE]"
EMAIL = "[EMAIL]"
ID = "[ID]"
DATE = "[DATE]"
REDACTED = "[REDACTED]"

PLACEHOLDERS: tuple[str, ...] = (PHONE, EMAIL, ID, DATE, REDACTED)

# Shortest digit run the ID rule treats as an identifier.
MIN_ID_DIGITS = 5


def _looks_like_id(matched: str) -> bool:
    return len(matched) >= MIN_ID_DIGITS


DEFAULT_RULES: list[RedactionRule] = [
    # 555-123-4567, (555) 123-4567, 555.1234, 5551234567.  Separators are
    # optional, so unbroken 7- and 10-digit runs are phones, not IDs.
    RedactionRule("PHONE", re.compile(
        r"\d{3}[\-.\s]?\d{3}[\-.\s]?\d{4}"
        r"|\(\d{3}\)\s*\d{3}[\-.\s]?\d{4}"
        r"|\d{3}[\-.\s]?\d{4}",
        re.ASCII,
    ), PHONE),

    RedactionRule("EMAIL", re.compile(
        r"\b[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}\b",
        re.ASCII,
    ), EMAIL),

    # The predicate is implied by the pattern today; it stays so the
    # pattern can be widened without touching the pipeline.
    RedactionRule("ID", re.compile(
        r"\b\d{5,10}\b",
        re.ASCII,
    ), ID, predicate=_looks_like_id),

    RedactionRule("DATE", re.compile(
        r"\b\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4}\b",
        re.ASCII,
    ), DATE),

    # Labeled health identifiers.  The value may already be a placeholder
    # left by an earlier rule ("MRN: [ID]", "DOB: [DATE]"); label and
    # value are replaced together.
    RedactionRule("MRN", re.compile(
        r"\bMRN\s*:?\s*(?:\[ID\]|\[PHONE\]|\d+\b)",
        re.ASCII | re.IGNORECASE,
    ), REDACTED),

    RedactionRule("SSN", re.compile(
        r"\bSSN\s*:?\s*\d{3}-\d{2}-\d{4}\b",
        re.ASCII | re.IGNORECASE,
    ), REDACTED),

    RedactionRule("DOB", re.compile(
        r"\bDOB\s*:?\s*(?:\[DATE\]|\[ID\]|[\d/\-]+\b)",
        re.ASCII | re.IGNORECASE,
    ), REDACTED),
]

RULE_NAMES: tuple[str, ...] = tuple(r.name for r in DEFAULT_RULES)
