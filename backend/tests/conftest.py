import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import copy

import httpx
import pytest

from persona_chat.content.loader import parse_content
from persona_chat.core.config import get_settings
from persona_chat.main import create_app
from persona_chat.providers.base import LLMResult, ProviderError, ProviderRuntimeConfig
from persona_chat.sessions.models import ContextFlags, ConversationSession

SAMPLE_CONTENT = {
    "persona": {
        "name": "Test Persona",
        "system_prompt": "You are a test persona.",
        "anachronisms": ["internet"],
    },
    "units": [
        {
            "id": "greeting",
            "triggers": ["hello", "good morning"],
            "keywords": ["greetings"],
            "context": ["introduced"],
            "next_units": ["biography"],
            "responses": ["Hello there.", "Good to see you.", "Welcome, friend."],
        },
        {
            "id": "biography",
            "triggers": ["tell me about your life", "who are you"],
            "keywords": ["life", "story"],
            "context": ["personal"],
            "next_units": ["prison"],
            "responses": ["I was born long ago.", "My story is a long one."],
        },
        {
            "id": "prison",
            "triggers": ["prison"],
            "keywords": ["prison", "jail"],
            "context": ["personal"],
            "responses": ["Prison changed me."],
        },
        {
            "id": "mecca",
            "triggers": ["mecca"],
            "keywords": ["pilgrimage"],
            "priority": 2.0,
            "responses": ["Mecca opened my eyes."],
        },
    ],
    "topics": [
        {
            "id": "personal",
            "name": "Personal History",
            "description": "Life story.",
            "units": ["biography", "prison"],
        },
        {
            "id": "faith",
            "name": "Faith",
            "description": "Pilgrimage.",
            "units": ["mecca"],
        },
    ],
    "default_responses": ["I do not follow.", "Say that another way."],
}


@pytest.fixture
def content_data():
    return copy.deepcopy(SAMPLE_CONTENT)


@pytest.fixture
def content(content_data):
    return parse_content(content_data)


@pytest.fixture
def make_session(content):
    def _make(session_id: str = "s1", current_unit=None, visited=None) -> ConversationSession:
        return ConversationSession(
            session_id=session_id,
            context=ContextFlags(content.context_keys),
            current_unit=current_unit,
            visited_units=list(visited or []),
        )

    return _make


@pytest.fixture
def app(monkeypatch):
    monkeypatch.setenv("LLM_FALLBACK_ENABLED", "false")
    monkeypatch.delenv("CONTENT_PATH", raising=False)
    get_settings.cache_clear()
    app = create_app()
    yield app
    get_settings.cache_clear()


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def anyio_backend():
    return "asyncio"


class StubAdapter:
    """Adapter stub used to avoid external API calls in tests."""

    def __init__(self, content: str = "Stub reply.", error: ProviderError | None = None) -> None:
        self.content = content
        self.error = error
        self.calls: list[list[dict]] = []

    async def generate(self, cfg: ProviderRuntimeConfig, messages: list[dict]) -> LLMResult:
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return LLMResult(
            content=self.content,
            model_provider=cfg.provider,
            model_name=cfg.model_name,
            token_in=1,
            token_out=1,
        )


class SleepRecorder:
    """Collect backoff delays instead of sleeping."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
