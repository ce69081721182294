from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, status

from persona_chat.core.config import get_settings
from persona_chat.core.security import sanitize_text
from persona_chat.repos.session_repo import SessionNotFound
from persona_chat.schemas.chat import (
    HealthResponse,
    HistoryAnalytics,
    HistoryEntryOut,
    HistoryResponse,
    MessageRequest,
    MessageResponse,
    ResetRequest,
    ResetResponse,
    SessionCreateResponse,
    TopicOut,
)
from persona_chat.services.conversation_service import (
    ConversationService,
    get_conversation_service,
)

router = APIRouter(prefix="/api/chat", tags=["chat"])
health_router = APIRouter(prefix="/api", tags=["health"])

GREETING_MESSAGE = "hello"
RECENT_HISTORY_LIMIT = 10
DEPTH_SCALE = 20


@health_router.get("/health", response_model=HealthResponse)
async def health(
    service: ConversationService = Depends(get_conversation_service),
) -> HealthResponse:
    """Report liveness and the active persona."""

    return HealthResponse(
        status="ok",
        persona=service.content.persona.name,
        remote_fallback=service.gate.remote_available,
    )


@router.post("/session", response_model=SessionCreateResponse)
async def create_session(
    service: ConversationService = Depends(get_conversation_service),
) -> SessionCreateResponse:
    """Open a conversation and return the persona's greeting."""

    session_id = uuid.uuid4().hex
    session = await service.create_session(session_id)
    result = await service.process_turn(session_id, GREETING_MESSAGE)
    return SessionCreateResponse(
        session_id=session_id,
        greeting=result.reply_text,
        persona=service.content.persona.name,
        created_at=session.created_at,
    )


@router.post("/message", response_model=MessageResponse)
async def send_message(
    payload: MessageRequest,
    service: ConversationService = Depends(get_conversation_service),
) -> MessageResponse:
    """Process one user message."""

    message = sanitize_text(payload.message, get_settings().max_message_chars)
    if not message:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Message cannot be empty",
        )
    try:
        result = await service.process_turn(payload.session_id, message)
        history = await service.get_history(payload.session_id)
        topics = await service.get_topics_discussed(payload.session_id)
    except SessionNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return MessageResponse(
        response=result.reply_text,
        used_remote=result.used_remote,
        matched_unit_id=result.matched_unit_id,
        history=[
            HistoryEntryOut.model_validate(entry) for entry in history[-RECENT_HISTORY_LIMIT:]
        ],
        topics_discussed=[topic.name for topic in topics],
    )


@router.post("/reset", response_model=ResetResponse)
async def reset_conversation(
    payload: ResetRequest,
    service: ConversationService = Depends(get_conversation_service),
) -> ResetResponse:
    """Discard the conversation state of a session."""

    await service.reset_session(payload.session_id)
    return ResetResponse(session_id=payload.session_id, message="Conversation reset")


@router.get("/history/{session_id}", response_model=HistoryResponse)
async def get_history(
    session_id: str,
    service: ConversationService = Depends(get_conversation_service),
) -> HistoryResponse:
    """Return the transcript, topics and simple engagement figures."""

    try:
        history = await service.get_history(session_id)
        topics = await service.get_topics_discussed(session_id)
    except SessionNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    user_messages = [entry for entry in history if entry.role == "user"]
    avg_length = (
        sum(len(entry.text) for entry in user_messages) / len(user_messages)
        if user_messages
        else 0
    )
    return HistoryResponse(
        history=[HistoryEntryOut.model_validate(entry) for entry in history],
        topics_discussed=[TopicOut.model_validate(topic) for topic in topics],
        analytics=HistoryAnalytics(
            message_count=len(history),
            user_message_count=len(user_messages),
            conversation_depth=min(len(history) / DEPTH_SCALE, 1.0),
            avg_user_message_length=round(avg_length),
            topics_explored=len(topics),
        ),
    )
