from __future__ import annotations

import logging
from dataclasses import dataclass

from persona_chat.content.lexical_index import LexicalIndex
from persona_chat.content.text import similarity, tokenize
from persona_chat.content.types import ConversationContent, ConversationUnit
from persona_chat.sessions.models import ConversationSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoreWeights:
    """Tunable contributions of each matching signal."""

    trigger_exact: float = 20.0
    trigger_partial: float = 10.0
    trigger_word_min_len: int = 4
    keyword: float = 7.0
    keyword_token_min_len: int = 3
    keyword_similarity: float = 0.7
    context_flag: float = 5.0
    lexical: float = 15.0
    flow: float = 6.0
    recency_window: int = 3
    recency_damping: float = 0.7
    default_damping: float = 0.1


@dataclass(frozen=True)
class MatchResult:
    """Winning unit of one scoring pass."""

    unit: ConversationUnit
    score: float
    used_remote: bool = False


class CandidateScorer:
    """Rank conversation units against a user message and session state."""

    def __init__(
        self,
        content: ConversationContent,
        index: LexicalIndex | None = None,
        weights: ScoreWeights | None = None,
    ) -> None:
        self._content = content
        self._index = index or LexicalIndex([unit.index_text() for unit in content.units])
        self._weights = weights or ScoreWeights()

    def score_all(self, message: str, session: ConversationSession) -> list[float]:
        """Return the final score of every unit, aligned with the unit list."""

        if not message.strip():
            return [0.0] * len(self._content.units)
        message_lower = message.lower()
        tokens = [
            token for token in tokenize(message)
            if len(token) >= self._weights.keyword_token_min_len
        ]
        lexical = self._index.similarity(message)
        successors: tuple[str, ...] = ()
        if session.current_unit:
            current = self._content.get_unit(session.current_unit)
            if current is not None:
                successors = current.next_units
        recent = set(session.recent_units(self._weights.recency_window))

        scores: list[float] = []
        for position, unit in enumerate(self._content.units):
            score = self._trigger_score(unit, message_lower)
            score += self._keyword_score(unit, tokens)
            score += self._weights.context_flag * sum(
                1 for name in unit.context if name in session.context
            )
            measure = lexical.get(position, 0.0)
            if measure > 0:
                score += measure * self._weights.lexical
            if unit.id in successors:
                score += self._weights.flow

            score *= unit.priority
            if unit.id in recent:
                score *= self._weights.recency_damping
            if unit.is_default and score > 0:
                score *= self._weights.default_damping
            scores.append(score)
        return scores

    def best_match(self, message: str, session: ConversationSession) -> MatchResult:
        """Pick the strictly highest-scoring unit; the default unit wins ties at zero."""

        scores = self.score_all(message, session)
        best_unit = self._content.default_unit
        best_score = 0.0
        for unit, score in zip(self._content.units, scores):
            if score > best_score:
                best_unit = unit
                best_score = score
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Match %r -> %s (score %.2f); top candidates %s",
                message,
                best_unit.id,
                best_score,
                ", ".join(f"{unit_id}={score:.2f}" for unit_id, score in self._top(scores)),
            )
        return MatchResult(unit=best_unit, score=best_score)

    def _top(self, scores: list[float], limit: int = 5) -> list[tuple[str, float]]:
        ordered = sorted(
            zip((unit.id for unit in self._content.units), scores),
            key=lambda item: item[1],
            reverse=True,
        )
        return ordered[:limit]

    def _trigger_score(self, unit: ConversationUnit, message_lower: str) -> float:
        score = 0.0
        for trigger in unit.triggers:
            trigger_lower = trigger.lower()
            if trigger_lower in message_lower:
                score += self._weights.trigger_exact
            elif any(
                len(word) >= self._weights.trigger_word_min_len and word in message_lower
                for word in trigger_lower.split(" ")
            ):
                score += self._weights.trigger_partial
        return score

    def _keyword_score(self, unit: ConversationUnit, tokens: list[str]) -> float:
        score = 0.0
        for keyword in unit.keywords:
            keyword_lower = keyword.lower()
            if any(self._keyword_matches(token, keyword_lower) for token in tokens):
                score += self._weights.keyword
        return score

    def _keyword_matches(self, token: str, keyword: str) -> bool:
        return (
            token in keyword
            or keyword in token
            or similarity(token, keyword) > self._weights.keyword_similarity
        )
