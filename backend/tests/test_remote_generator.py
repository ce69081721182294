from __future__ import annotations

import httpx
import pytest

from conftest import SleepRecorder, StubAdapter
from persona_chat.providers.base import (
    InvalidCredential,
    ProviderRuntimeConfig,
    RateLimited,
    Unavailable,
)
from persona_chat.providers.openai_adapter import OpenAICompatibleAdapter
from persona_chat.services.remote_generator import RemoteGenerator, clean_reply
from persona_chat.sessions.models import HistoryEntry


def _cfg(api_key: str | None = "gsk-test") -> ProviderRuntimeConfig:
    return ProviderRuntimeConfig(
        provider="groq",
        model_name="llama-test",
        base_url="https://api.groq.com/openai",
        api_key=api_key,
    )


def _ok() -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"content": "It worked."}}]})


class ScriptedHandler:
    """Serve queued responses in order, repeating the last one."""

    def __init__(self, *statuses: int) -> None:
        self.statuses = list(statuses)
        self.calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        status = self.statuses[min(self.calls, len(self.statuses) - 1)]
        self.calls += 1
        if status == 200:
            return _ok()
        return httpx.Response(status, json={"error": {"message": f"status {status}"}})


async def _generate(handler, cfg=None, **kwargs):
    sleeper = SleepRecorder()
    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport) as client:
        generator = RemoteGenerator(
            OpenAICompatibleAdapter(http_client=client),
            cfg or _cfg(),
            "You are a test persona.",
            sleep=sleeper,
            **kwargs,
        )
        try:
            reply = await generator.generate("hi", [])
        except Exception as exc:  # noqa: BLE001
            return exc, sleeper.delays
    return reply, sleeper.delays


@pytest.mark.anyio
async def test_retries_server_errors_with_backoff():
    handler = ScriptedHandler(500, 500, 200)

    reply, delays = await _generate(handler)

    assert reply == "It worked."
    assert handler.calls == 3
    assert delays == [1, 2]


@pytest.mark.anyio
async def test_gives_up_after_max_retries():
    handler = ScriptedHandler(500)

    error, delays = await _generate(handler)

    assert isinstance(error, Unavailable)
    assert error.retryable is True
    assert handler.calls == 3
    assert delays == [1, 2]


@pytest.mark.anyio
async def test_rate_limit_is_not_retried():
    handler = ScriptedHandler(429, 200)

    error, delays = await _generate(handler)

    assert isinstance(error, RateLimited)
    assert handler.calls == 1
    assert delays == []


@pytest.mark.anyio
async def test_rejected_credential_is_not_retried():
    handler = ScriptedHandler(401, 200)

    error, delays = await _generate(handler)

    assert isinstance(error, InvalidCredential)
    assert handler.calls == 1
    assert delays == []


@pytest.mark.anyio
async def test_missing_credential_makes_no_request():
    handler = ScriptedHandler(200)

    error, _ = await _generate(handler, cfg=_cfg(api_key=None))

    assert isinstance(error, InvalidCredential)
    assert handler.calls == 0


@pytest.mark.anyio
async def test_zero_retries_makes_single_attempt():
    handler = ScriptedHandler(503, 200)

    error, delays = await _generate(handler, max_retries=0)

    assert isinstance(error, Unavailable)
    assert handler.calls == 1
    assert delays == []


@pytest.mark.anyio
async def test_long_reply_is_cut_to_whole_sentences():
    adapter = StubAdapter(content="First sentence here. " * 40)
    generator = RemoteGenerator(adapter, _cfg(), "prompt", max_reply_chars=100)

    reply = await generator.generate("hi", [])

    assert len(reply) <= 100
    assert reply.endswith(".")
    assert reply.startswith("First sentence here.")


def test_build_messages_keeps_recent_history_window():
    generator = RemoteGenerator(StubAdapter(), _cfg(), "system text", history_turns=2)
    history = [
        HistoryEntry(role="user", text="one"),
        HistoryEntry(role="assistant", text="two"),
        HistoryEntry(role="user", text="three"),
    ]

    messages = generator.build_messages("four", history)

    assert messages == [
        {"role": "system", "content": "system text"},
        {"role": "assistant", "content": "two"},
        {"role": "user", "content": "three"},
        {"role": "user", "content": "four"},
    ]


def test_wall_clock_budget_covers_attempts_and_backoff():
    generator = RemoteGenerator(
        StubAdapter(), _cfg(), "prompt", max_retries=2, attempt_timeout_sec=5
    )

    assert generator.wall_clock_budget == 3 * 5 + 1 + 2


def test_clean_reply_without_sentence_boundary_is_hard_cut():
    text = "x" * 30

    assert clean_reply(text, 10) == "x" * 10 + "..."


def test_clean_reply_keeps_short_text():
    assert clean_reply("  Short reply.  ", 500) == "Short reply."
