from __future__ import annotations

import random
from collections.abc import Sequence

from persona_chat.content.types import ConversationUnit
from persona_chat.sessions.models import ConversationSession


class ResponseSelector:
    """Choose one reply text for a winning unit without echoing recent replies."""

    def __init__(self, rng: random.Random | None = None, recent_window: int = 3) -> None:
        self._rng = rng or random.Random()
        self._recent_window = recent_window

    def select(self, unit: ConversationUnit, session: ConversationSession) -> str:
        recent = session.recent_assistant_replies(self._recent_window)
        return self.choose(unit.responses, recent)

    def choose(self, responses: Sequence[str], recent: Sequence[str]) -> str:
        fresh = [text for text in responses if text not in recent]
        return self._rng.choice(fresh or list(responses))
