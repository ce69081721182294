from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Optional, Union

from persona_chat.content.types import SENTIMENT_FLAG, Sentiment
from persona_chat.utils.time_utils import utc_now

Role = Literal["user", "assistant"]
FlagValue = Union[bool, str]


class ContextFlags(Mapping[str, FlagValue]):
    """Context markers restricted to the keys declared by the loaded content."""

    def __init__(self, allowed_keys: frozenset[str]) -> None:
        self._allowed = allowed_keys | {SENTIMENT_FLAG}
        self._values: dict[str, FlagValue] = {}

    def set(self, key: str, value: FlagValue = True) -> None:
        if key not in self._allowed:
            raise KeyError(f"Unknown context flag: {key}")
        self._values[key] = value

    def set_sentiment(self, sentiment: Sentiment) -> None:
        self._values[SENTIMENT_FLAG] = sentiment

    def __getitem__(self, key: str) -> FlagValue:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)


@dataclass(frozen=True)
class HistoryEntry:
    """One message in a session transcript."""

    role: Role
    text: str
    timestamp: datetime = field(default_factory=utc_now)
    unit_id: Optional[str] = None
    used_remote: Optional[bool] = None


@dataclass
class ConversationSession:
    """Mutable per-conversation state owned by a session store."""

    session_id: str
    context: ContextFlags
    current_unit: Optional[str] = None
    visited_units: list[str] = field(default_factory=list)
    history: list[HistoryEntry] = field(default_factory=list)
    topics_discussed: set[str] = field(default_factory=set)
    created_at: datetime = field(default_factory=utc_now)

    def recent_assistant_replies(self, limit: int = 3) -> list[str]:
        replies = [entry.text for entry in self.history if entry.role == "assistant"]
        return replies[-limit:]

    def recent_units(self, limit: int = 3) -> list[str]:
        return self.visited_units[-limit:]
