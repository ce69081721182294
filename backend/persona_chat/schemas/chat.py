from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from persona_chat.schemas.common import APIModel


class HistoryEntryOut(APIModel):
    """Serialized transcript entry."""

    role: str
    text: str
    timestamp: datetime
    unit_id: Optional[str] = None
    used_remote: Optional[bool] = None


class TopicOut(APIModel):
    """Serialized topic."""

    id: str
    name: str
    description: str


class SessionCreateResponse(APIModel):
    """Response returned after creating a chat session."""

    session_id: str
    greeting: str
    persona: str
    created_at: datetime


class MessageRequest(APIModel):
    """Payload carrying one user message."""

    session_id: str = Field(min_length=1, max_length=128)
    message: str = Field(min_length=1)


class MessageResponse(APIModel):
    """Reply to one user message."""

    response: str
    used_remote: bool
    matched_unit_id: Optional[str] = None
    history: List[HistoryEntryOut]
    topics_discussed: List[str]


class ResetRequest(APIModel):
    """Payload for resetting a conversation."""

    session_id: str = Field(min_length=1, max_length=128)


class ResetResponse(APIModel):
    """Confirmation of a reset."""

    session_id: str
    message: str


class HistoryAnalytics(APIModel):
    """Summary figures for a transcript."""

    message_count: int
    user_message_count: int
    conversation_depth: float
    avg_user_message_length: int
    topics_explored: int


class HistoryResponse(APIModel):
    """Full transcript and topics for a session."""

    history: List[HistoryEntryOut]
    topics_discussed: List[TopicOut]
    analytics: HistoryAnalytics


class HealthResponse(APIModel):
    """Liveness payload."""

    status: str
    persona: str
    remote_fallback: bool
