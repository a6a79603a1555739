"""Redactor — the main API.  A fixed, ordered pass of regex rewrites.

Usage:
    from transcript_redactor import Redactor, redact

    redact("Call me at 555-123-4567")        # "Call me at [PHONE]"

    redactor = Redactor()                     # reusable, thread-safe
    result = redactor.redact_with_report("MRN: 123456")
    print(result.text)                        # "[REDACTED]"
    print(result.counts)                      # {"ID": 1, "MRN": 1}
"""

from __future__ import annotations
import dataclasses
from dataclasses import dataclass, field
from typing import Callable

from .patterns import DEFAULT_RULES
from .types import RedactedText, RedactionRule, RuleHit


@dataclass
class RedactorConfig:
    """Configuration for the Redactor."""
    # Rule names to leave out of the pass (e.g. {"DATE"})
    skip_rules: set[str] = field(default_factory=set)
    # Allow-list: matched values that should NEVER be replaced
    allow_list: set[str] = field(default_factory=set)
    # None = DEFAULT_RULES
    rules: list[RedactionRule] | None = None


class Redactor:
    """Applies the rule list in order, each rule over the whole current text.

    Holds no per-call state, so one instance can be shared between threads
    and request handlers.
    """

    def __init__(self, config: RedactorConfig | None = None) -> None:
        self.config = config or RedactorConfig()
        self._rules = _build_rules(self.config)

    @property
    def rule_names(self) -> list[str]:
        return [r.name for r in self._rules]

    @property
    def rules(self) -> list[RedactionRule]:
        return list(self._rules)

    def redact(self, text: str) -> str:
        """Return ``text`` with every rule applied.  Falsy input is returned as is."""
        if not text:
            return text
        for rule in self._rules:
            text, _ = rule.apply(text)
        return text

    def redact_with_report(self, text: str) -> RedactedText:
        """Like :meth:`redact`, but also records which spans each rule replaced."""
        if not text:
            return RedactedText(text=text)
        hits: list[RuleHit] = []
        for rule in self._rules:
            text, rule_hits = rule.apply(text)
            hits.extend(rule_hits)
        return RedactedText(text=text, hits=hits)

    def redact_messages(
        self,
        messages: list[dict],
        *,
        content_key: str = "content",
    ) -> list[dict]:
        """Redact a list of chat-format messages.

        Returns new message dicts with content redacted.  Does NOT
        mutate the originals.
        """
        out: list[dict] = []
        for msg in messages:
            content = msg.get(content_key)
            if isinstance(content, str) and content:
                out.append({**msg, content_key: self.redact(content)})
            else:
                out.append(msg)
        return out


def _build_rules(config: RedactorConfig) -> list[RedactionRule]:
    rules = config.rules if config.rules is not None else DEFAULT_RULES
    rules = [r for r in rules if r.name not in config.skip_rules]
    if not config.allow_list:
        return rules
    allowed = frozenset(config.allow_list)
    return [
        dataclasses.replace(r, predicate=_allowing(allowed, r.predicate))
        for r in rules
    ]


def _allowing(
    allowed: frozenset[str],
    inner: Callable[[str], bool] | None,
) -> Callable[[str], bool]:
    def predicate(matched: str) -> bool:
        if matched in allowed:
            return False
        return inner is None or inner(matched)
    return predicate


_default: Redactor | None = None


def redact(text: str) -> str:
    """Redact ``text`` with the default rule set."""
    global _default
    if _default is None:
        _default = Redactor()
    return _default.redact(text)
