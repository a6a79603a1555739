"""Core types."""

from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import Callable


@dataclass(frozen=True, slots=True)
class RuleHit:
    """A single replaced span."""
    rule: str              # e.g. "PHONE", "EMAIL", "MRN"
    start: int             # offsets into the text the rule saw
    end: int
    text: str
    replacement: str


@dataclass(frozen=True, slots=True)
class RedactionRule:
    """One step of the pipeline: matcher, optional predicate, placeholder.

    When ``predicate`` returns False for a match the matched text is kept.
    """
    name: str
    pattern: re.Pattern
    replacement: str
    predicate: Callable[[str], bool] | None = None

    def apply(self, text: str) -> tuple[str, list[RuleHit]]:
        hits: list[RuleHit] = []

        def _sub(m: re.Match) -> str:
            matched = m.group()
            if self.predicate is not None and not self.predicate(matched):
                return matched
            hits.append(RuleHit(self.name, m.start(), m.end(), matched, self.replacement))
            return self.replacement

        return self.pattern.sub(_sub, text), hits


@dataclass(slots=True)
class RedactedText:
    """Result of a reported redaction pass."""
    text: str
    hits: list[RuleHit] = field(default_factory=list)

    @property
    def counts(self) -> dict[str, int]:
        out: dict[str, int] = {}
        for h in self.hits:
            out[h.rule] = out.get(h.rule, 0) + 1
        return out
