from __future__ import annotations

from typing import Any, Optional

from persona_chat.providers.base import (
    HTTPProviderAdapter,
    LLMResult,
    ProviderRuntimeConfig,
    Unavailable,
    require_api_key,
)

CHAT_COMPLETIONS_PATH = "/v1/chat/completions"


class OpenAICompatibleAdapter(HTTPProviderAdapter):
    """Chat completions against OpenAI-style endpoints such as Groq."""

    async def generate(self, cfg: ProviderRuntimeConfig, messages: list[dict]) -> LLMResult:
        # Fail before any network traffic when no key is configured.
        api_key = require_api_key(cfg.api_key, cfg.provider)
        data = await self._post_json(
            self._join_url(cfg.base_url, CHAT_COMPLETIONS_PATH, cfg.provider),
            {
                "model": cfg.model_name,
                "messages": messages,
                "temperature": cfg.temperature,
                "top_p": cfg.top_p,
                "max_tokens": cfg.max_tokens,
                "stream": False,
            },
            headers={"Authorization": f"Bearer {api_key}"},
        )
        text = _first_choice_text(data)
        if text is None:
            raise Unavailable("PROVIDER_PARSE_ERROR", "Provider returned no completion text.")
        usage = data.get("usage") or {}
        return LLMResult(
            content=text,
            model_provider=cfg.provider,
            model_name=cfg.model_name,
            token_in=_as_int(usage.get("prompt_tokens")),
            token_out=_as_int(usage.get("completion_tokens")),
        )


def _first_choice_text(data: dict[str, Any]) -> Optional[str]:
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    content = (message or {}).get("content")
    if isinstance(content, str) and content.strip():
        return content
    return None


def _as_int(value: Any) -> Optional[int]:
    return value if isinstance(value, int) else None
