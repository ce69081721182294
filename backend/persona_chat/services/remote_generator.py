from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable, Sequence

from persona_chat.providers.base import (
    LLMAdapter,
    ProviderError,
    ProviderRuntimeConfig,
    Unavailable,
)
from persona_chat.sessions.models import HistoryEntry

logger = logging.getLogger(__name__)

_SENTENCE = re.compile(r"[^.!?]+[.!?]+")

Sleep = Callable[[float], Awaitable[None]]


class RemoteGenerator:
    """Generate persona replies through a remote provider with bounded retries."""

    _BACKOFF_DELAYS = (1, 2, 4)

    def __init__(
        self,
        adapter: LLMAdapter,
        runtime_cfg: ProviderRuntimeConfig,
        system_prompt: str,
        *,
        max_retries: int = 2,
        history_turns: int = 8,
        max_reply_chars: int = 500,
        attempt_timeout_sec: float = 20.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._adapter = adapter
        self._cfg = runtime_cfg
        self._system_prompt = system_prompt
        self._max_retries = max(0, max_retries)
        self._history_turns = max(0, history_turns)
        self._max_reply_chars = max_reply_chars
        self._attempt_timeout = attempt_timeout_sec
        self._sleep = sleep

    @property
    def wall_clock_budget(self) -> float:
        """Upper bound for one ``generate`` call: attempt timeouts plus backoff."""

        attempts = self._max_retries + 1
        backoff = sum(self._backoff_delay(attempt) for attempt in range(self._max_retries))
        return attempts * self._attempt_timeout + backoff

    async def generate(self, user_text: str, history: Sequence[HistoryEntry]) -> str:
        """Return a cleaned reply or raise a classified ``ProviderError``."""

        messages = self.build_messages(user_text, history)
        try:
            raw = await asyncio.wait_for(
                self._generate_with_retry(messages), timeout=self.wall_clock_budget
            )
        except asyncio.TimeoutError as exc:
            raise Unavailable(
                "PROVIDER_TIMEOUT", "Remote generation exceeded its time budget."
            ) from exc
        return clean_reply(raw, self._max_reply_chars)

    def build_messages(self, user_text: str, history: Sequence[HistoryEntry]) -> list[dict]:
        recent = list(history)[-self._history_turns :] if self._history_turns else []
        messages = [{"role": "system", "content": self._system_prompt}]
        messages.extend({"role": entry.role, "content": entry.text} for entry in recent)
        messages.append({"role": "user", "content": user_text})
        return messages

    async def _generate_with_retry(self, messages: list[dict]) -> str:
        attempt = 0
        while True:
            try:
                result = await self._adapter.generate(self._cfg, messages)
                return result.content
            except ProviderError as exc:
                if not exc.retryable or attempt >= self._max_retries:
                    raise
                delay = self._backoff_delay(attempt)
                logger.info(
                    "Remote generation attempt %d failed (%s); retrying in %ss",
                    attempt + 1,
                    exc.code,
                    delay,
                )
                await self._sleep(delay)
                attempt += 1

    def _backoff_delay(self, attempt: int) -> int:
        return self._BACKOFF_DELAYS[min(attempt, len(self._BACKOFF_DELAYS) - 1)]


def clean_reply(text: str, max_chars: int) -> str:
    """Trim a generated reply and cut it back to whole sentences within ``max_chars``."""

    cleaned = text.strip()
    if len(cleaned) <= max_chars:
        return cleaned
    truncated = ""
    for sentence in _SENTENCE.findall(cleaned):
        if len(truncated) + len(sentence) > max_chars:
            break
        truncated += sentence
    truncated = truncated.strip()
    return truncated or cleaned[:max_chars] + "..."
