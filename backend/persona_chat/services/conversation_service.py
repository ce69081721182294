from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from persona_chat.content.types import ConversationContent, Topic
from persona_chat.core.config import Settings
from persona_chat.providers.base import LLMAdapter, ProviderRuntimeConfig
from persona_chat.providers.openai_adapter import OpenAICompatibleAdapter
from persona_chat.repos.session_repo import InMemorySessionStore, SessionNotFound, SessionStore
from persona_chat.services.context_updater import ContextUpdater
from persona_chat.services.fallback_gate import FallbackGate, GateMode
from persona_chat.services.remote_generator import RemoteGenerator
from persona_chat.services.response_selector import ResponseSelector
from persona_chat.services.response_validator import ResponseValidator
from persona_chat.services.scoring import CandidateScorer
from persona_chat.sessions.models import ContextFlags, ConversationSession, HistoryEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TurnResult:
    """Outcome of one processed user message."""

    reply_text: str
    used_remote: bool
    matched_unit_id: Optional[str]
    score: float


class ConversationService:
    """Run conversational turns: score, gate, reply, and update session state."""

    def __init__(
        self,
        content: ConversationContent,
        store: SessionStore,
        scorer: CandidateScorer,
        gate: FallbackGate,
        selector: ResponseSelector | None = None,
        validator: ResponseValidator | None = None,
    ) -> None:
        self._content = content
        self._store = store
        self._scorer = scorer
        self._gate = gate
        self._selector = selector or ResponseSelector()
        self._updater = ContextUpdater(content)
        self._validator = validator
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def content(self) -> ConversationContent:
        return self._content

    @property
    def gate(self) -> FallbackGate:
        return self._gate

    async def create_session(self, session_id: str) -> ConversationSession:
        """Create a fresh session; an existing one with the same id is replaced."""

        session = ConversationSession(
            session_id=session_id,
            context=ContextFlags(self._content.context_keys),
            current_unit=self._content.start_unit,
        )
        await self._store.save(session)
        return session

    async def reset_session(self, session_id: str) -> ConversationSession:
        """Discard a session's state and start over under the same id."""

        async with self._lock_for(session_id):
            await self._store.delete(session_id)
            return await self.create_session(session_id)

    async def process_turn(
        self, session_id: str, user_text: str, *, auto_create: bool = False
    ) -> TurnResult:
        """Produce a reply for ``user_text``; never fails because of the remote path."""

        # Unknown ids are rejected before a lock is allocated for them.
        if not auto_create and await self._store.get(session_id) is None:
            raise SessionNotFound(session_id)

        async with self._lock_for(session_id):
            session = await self._store.get(session_id)
            if session is None:
                if not auto_create:
                    self._locks.pop(session_id, None)
                    raise SessionNotFound(session_id)
                session = await self.create_session(session_id)

            match = self._scorer.best_match(user_text, session)
            reply: Optional[str] = None
            if self._gate.decide(match.score) is GateMode.REMOTE:
                logger.info(
                    "Low confidence (%.2f < %.2f) for session %s; trying remote",
                    match.score,
                    self._gate.threshold,
                    session_id,
                )
                reply = await self._gate.try_remote(user_text, session.history)

            used_remote = reply is not None
            if reply is None:
                reply = self._selector.select(match.unit, session)

            self._updater.apply(session, user_text, reply, None if used_remote else match.unit)
            await self._store.save(session)

        if self._validator is not None:
            report = self._validator.validate(reply)
            if not report.passed:
                logger.info(
                    "Reply for session %s scored %d in persona checks: %s",
                    session_id,
                    report.score,
                    "; ".join(issue.description for issue in report.issues),
                )

        return TurnResult(
            reply_text=reply,
            used_remote=used_remote,
            matched_unit_id=None if used_remote else match.unit.id,
            score=match.score,
        )

    async def get_session(self, session_id: str) -> ConversationSession:
        session = await self._store.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    async def get_history(self, session_id: str) -> list[HistoryEntry]:
        session = await self.get_session(session_id)
        return list(session.history)

    async def get_topics_discussed(self, session_id: str) -> list[Topic]:
        session = await self.get_session(session_id)
        return [topic for topic in self._content.topics if topic.id in session.topics_discussed]

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock


def create_conversation_service(
    *,
    content: ConversationContent,
    settings: Settings,
    store: SessionStore | None = None,
    adapter: LLMAdapter | None = None,
    rng: random.Random | None = None,
) -> ConversationService:
    """Wire the conversation service from settings."""

    credential = settings.remote_credential()
    generator = None
    if settings.llm_fallback_enabled and credential:
        runtime_cfg = ProviderRuntimeConfig(
            provider="groq",
            model_name=settings.llm_model,
            base_url=settings.llm_base_url,
            api_key=credential,
            temperature=settings.llm_temperature,
            top_p=settings.llm_top_p,
            max_tokens=settings.llm_max_tokens,
        )
        generator = RemoteGenerator(
            adapter or OpenAICompatibleAdapter(timeout_sec=settings.llm_timeout_sec),
            runtime_cfg,
            content.persona.system_prompt,
            max_retries=settings.llm_max_retries,
            history_turns=settings.llm_history_turns,
            max_reply_chars=settings.llm_max_reply_chars,
            attempt_timeout_sec=settings.llm_timeout_sec,
        )
    gate = FallbackGate(
        settings.confidence_threshold,
        generator,
        enabled=settings.llm_fallback_enabled,
        credential_present=credential is not None,
    )
    validator = (
        ResponseValidator(content.persona) if settings.response_validation_enabled else None
    )
    return ConversationService(
        content=content,
        store=store or InMemorySessionStore(),
        scorer=CandidateScorer(content),
        gate=gate,
        selector=ResponseSelector(rng),
        validator=validator,
    )


def get_conversation_service(request: Request) -> ConversationService:
    """Dependency to access the conversation service from app state."""

    return request.app.state.conversation_service
