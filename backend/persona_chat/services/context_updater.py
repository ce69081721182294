from __future__ import annotations

from typing import Optional

from persona_chat.content.types import ConversationContent, ConversationUnit
from persona_chat.services.sentiment import classify_sentiment
from persona_chat.sessions.models import ConversationSession, HistoryEntry
from persona_chat.utils.time_utils import utc_now


class ContextUpdater:
    """Apply the outcome of a turn to session state."""

    def __init__(self, content: ConversationContent) -> None:
        self._content = content

    def apply(
        self,
        session: ConversationSession,
        user_text: str,
        reply_text: str,
        unit: Optional[ConversationUnit],
    ) -> None:
        """Record a finished turn.

        ``unit`` is the locally selected unit, or None when the reply came from
        the remote generator. Only local turns move the session through the
        unit graph.
        """

        used_remote = unit is None
        session.history.append(HistoryEntry(role="user", text=user_text, timestamp=utc_now()))
        session.history.append(
            HistoryEntry(
                role="assistant",
                text=reply_text,
                timestamp=utc_now(),
                unit_id=None if unit is None else unit.id,
                used_remote=used_remote,
            )
        )

        if unit is not None:
            session.current_unit = unit.id
            # Repeats are kept: recency scoring reads the tail of this list.
            session.visited_units.append(unit.id)
            for name in unit.context:
                session.context.set(name, True)
            for topic in self._content.topics_for_unit(unit.id):
                session.topics_discussed.add(topic.id)

        session.context.set_sentiment(classify_sentiment(user_text))
