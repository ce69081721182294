from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Literal

from persona_chat.content.types import Persona

Severity = Literal["low", "medium", "high"]

MIN_LENGTH = 50
MAX_LENGTH = 800
PASS_SCORE = 70

HEDGING_PHRASES = (
    "maybe",
    "perhaps",
    "possibly",
    "i think",
    "in my opinion",
    "sort of",
    "kind of",
)
APOLOGETIC_PHRASES = ("sorry", "apologize", "my apologies", "excuse me")

_SENTENCE_SPLIT = re.compile(r"[.!?]+")


@dataclass(frozen=True)
class ValidationIssue:
    kind: str
    severity: Severity
    description: str


@dataclass(frozen=True)
class ValidationReport:
    score: int
    issues: tuple[ValidationIssue, ...] = field(default_factory=tuple)

    @property
    def passed(self) -> bool:
        return self.score >= PASS_SCORE


class ResponseValidator:
    """Heuristic persona checks run on the final reply text only."""

    def __init__(self, persona: Persona) -> None:
        self._anachronisms = tuple(term.lower() for term in persona.anachronisms)

    def validate(self, reply: str) -> ValidationReport:
        issues: list[ValidationIssue] = []
        penalty = 0
        lowered = reply.lower()

        if len(reply) < MIN_LENGTH:
            issues.append(
                ValidationIssue("length", "high", f"Reply too brief ({len(reply)} chars)")
            )
            penalty += 30
        elif len(reply) > MAX_LENGTH:
            issues.append(
                ValidationIssue("length", "medium", f"Reply too long ({len(reply)} chars)")
            )
            penalty += 15

        hedging = [phrase for phrase in HEDGING_PHRASES if _contains_phrase(lowered, phrase)]
        if hedging:
            issues.append(
                ValidationIssue("tone", "medium", f"Hedging language: {', '.join(hedging)}")
            )
            penalty += 15

        if any(_contains_phrase(lowered, phrase) for phrase in APOLOGETIC_PHRASES):
            issues.append(ValidationIssue("tone", "high", "Apologetic language"))
            penalty += 20

        found = [term for term in self._anachronisms if _contains_phrase(lowered, term)]
        if found:
            issues.append(
                ValidationIssue("accuracy", "high", f"Anachronisms: {', '.join(found)}")
            )
            penalty += 35

        if _has_repetition(reply):
            issues.append(ValidationIssue("content", "medium", "Repeated sentences"))
            penalty += 10

        return ValidationReport(score=max(0, 100 - penalty), issues=tuple(issues))


def _contains_phrase(text: str, phrase: str) -> bool:
    return re.search(rf"(?<!\w){re.escape(phrase)}(?!\w)", text) is not None


def _has_repetition(reply: str) -> bool:
    sentences = [item.strip().lower() for item in _SENTENCE_SPLIT.split(reply) if item.strip()]
    if not sentences:
        return False
    return (len(sentences) - len(set(sentences))) / len(sentences) > 0.2
