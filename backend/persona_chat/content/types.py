from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional

Sentiment = Literal["positive", "negative", "neutral"]

DEFAULT_UNIT_ID = "default"
SENTIMENT_FLAG = "last_sentiment"


@dataclass(frozen=True)
class ConversationUnit:
    """One conversational node: match targets plus candidate replies."""

    id: str
    responses: tuple[str, ...]
    triggers: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()
    context: tuple[str, ...] = ()
    next_units: tuple[str, ...] = ()
    priority: float = 1.0
    sentiment: Optional[Sentiment] = None

    @property
    def is_default(self) -> bool:
        return self.id == DEFAULT_UNIT_ID

    def index_text(self) -> str:
        """Text indexed for lexical similarity."""

        return " ".join((*self.triggers, *self.keywords, *self.context))


@dataclass(frozen=True)
class Topic:
    """A named group of units used to report what was discussed."""

    id: str
    name: str
    description: str = ""
    keywords: tuple[str, ...] = ()
    units: frozenset[str] = frozenset()


@dataclass(frozen=True)
class Persona:
    """Voice definition handed to the remote generator and response checks."""

    name: str
    system_prompt: str
    anachronisms: tuple[str, ...] = ()


@dataclass(frozen=True)
class ConversationContent:
    """Validated, immutable conversation content shared by every session."""

    units: tuple[ConversationUnit, ...]
    topics: tuple[Topic, ...]
    persona: Persona
    start_unit: Optional[str] = None
    context_keys: frozenset[str] = field(default_factory=frozenset)

    @property
    def default_unit(self) -> ConversationUnit:
        return self.units[-1]

    def get_unit(self, unit_id: str) -> Optional[ConversationUnit]:
        for unit in self.units:
            if unit.id == unit_id:
                return unit
        return None

    def topics_for_unit(self, unit_id: str) -> list[Topic]:
        return [topic for topic in self.topics if unit_id in topic.units]
