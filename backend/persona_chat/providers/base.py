from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol

import httpx


@dataclass
class ProviderRuntimeConfig:
    """Endpoint, credential and sampling parameters for one remote model."""

    provider: str
    model_name: str
    base_url: str | None = None
    api_key: str | None = None
    temperature: float = 0.9
    top_p: float = 0.95
    max_tokens: int = 300


@dataclass
class LLMResult:
    """Text produced by a remote model plus token accounting when reported."""

    content: str
    model_provider: str
    model_name: str
    token_in: int | None = None
    token_out: int | None = None


class LLMAdapter(Protocol):
    """Chat-completion backend used by the remote generator."""

    async def generate(self, cfg: ProviderRuntimeConfig, messages: list[dict]) -> LLMResult:
        """Return one completion for ``messages``."""


class ProviderError(RuntimeError):
    """Remote generation failure with a stable code and a retry hint."""

    def __init__(
        self,
        code: str,
        message: str,
        retryable: bool = False,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.retryable = retryable
        self.status_code = status_code


class InvalidCredential(ProviderError):
    """Credential missing or rejected; never retried."""


class RateLimited(ProviderError):
    """Provider throttled the request; never retried."""


class Unavailable(ProviderError):
    """Provider unreachable, failing, or returning unusable output."""


# status -> (error class, code, retryable)
_STATUS_ERRORS: dict[int, tuple[type[ProviderError], str, bool]] = {
    401: (InvalidCredential, "PROVIDER_AUTH", False),
    403: (InvalidCredential, "PROVIDER_AUTH", False),
    408: (Unavailable, "PROVIDER_TIMEOUT", True),
    429: (RateLimited, "PROVIDER_RATE_LIMIT", False),
}


def build_status_error(response: httpx.Response) -> ProviderError:
    """Classify a failed HTTP response into the provider error taxonomy."""

    status = response.status_code
    if status in _STATUS_ERRORS:
        error_cls, code, retryable = _STATUS_ERRORS[status]
    elif status >= 500:
        error_cls, code, retryable = Unavailable, "PROVIDER_UPSTREAM", True
    else:
        error_cls, code, retryable = Unavailable, "PROVIDER_BAD_STATUS", False
    detail = _error_detail(response)
    return error_cls(
        code,
        f"Provider returned {status}: {detail}",
        retryable=retryable,
        status_code=status,
    )


def require_api_key(api_key: Optional[str], provider_name: str) -> str:
    if api_key:
        return api_key
    raise InvalidCredential("API_KEY_REQUIRED", f"API key is required for {provider_name}.")


def _error_detail(response: httpx.Response) -> str:
    fallback = (response.text or "Unknown error from provider.").strip()
    try:
        payload: Any = response.json()
    except ValueError:
        return fallback
    if not isinstance(payload, dict):
        return fallback

    error = payload.get("error")
    candidates = [error.get("message"), error.get("code")] if isinstance(error, dict) else [error]
    candidates.append(payload.get("message"))
    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return fallback


class HTTPProviderAdapter:
    """JSON-over-HTTP plumbing shared by provider adapters.

    Transport failures and timeouts surface as retryable ``Unavailable``;
    HTTP error statuses go through ``build_status_error``.
    """

    def __init__(
        self, timeout_sec: float = 20, http_client: Optional[httpx.AsyncClient] = None
    ) -> None:
        self._timeout = timeout_sec
        self._client = http_client

    async def _post_json(
        self, url: str, payload: dict[str, Any], headers: Optional[dict[str, str]] = None
    ) -> dict[str, Any]:
        response = await self._send(url, payload, headers or {})
        if response.status_code >= 400:
            raise build_status_error(response)
        try:
            data = response.json()
        except ValueError as exc:
            raise Unavailable("PROVIDER_PARSE_ERROR", "Invalid JSON from provider.") from exc
        if not isinstance(data, dict):
            raise Unavailable("PROVIDER_PARSE_ERROR", "Provider returned invalid JSON payload.")
        return data

    async def _send(
        self, url: str, payload: dict[str, Any], headers: dict[str, str]
    ) -> httpx.Response:
        try:
            if self._client is not None:
                return await self._client.post(
                    url, json=payload, headers=headers, timeout=self._timeout
                )
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                return await client.post(url, json=payload, headers=headers)
        except httpx.TimeoutException as exc:
            raise Unavailable(
                "PROVIDER_TIMEOUT", "Provider request timed out.", retryable=True
            ) from exc
        except httpx.RequestError as exc:
            raise Unavailable(
                "PROVIDER_CONNECTION_ERROR", "Provider connection failed.", retryable=True
            ) from exc

    @staticmethod
    def _join_url(base_url: Optional[str], path: str, provider_name: str) -> str:
        if not base_url:
            raise Unavailable(
                "PROVIDER_BASE_URL_MISSING", f"Base URL is required for {provider_name}."
            )
        base = base_url.rstrip("/")
        # Accept base URLs that already end in the API version segment.
        if base.endswith("/v1") and path.startswith("/v1/"):
            return base + path[3:]
        return base + path
