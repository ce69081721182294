from __future__ import annotations

import logging
from collections.abc import Sequence
from enum import Enum
from typing import Optional

from persona_chat.providers.base import InvalidCredential, ProviderError, RateLimited
from persona_chat.services.remote_generator import RemoteGenerator
from persona_chat.sessions.models import HistoryEntry

logger = logging.getLogger(__name__)


class GateMode(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"


class FallbackGate:
    """Decide per turn whether a weak local match is handed to the remote generator."""

    def __init__(
        self,
        confidence_threshold: float,
        generator: Optional[RemoteGenerator] = None,
        *,
        enabled: bool = False,
        credential_present: bool = False,
    ) -> None:
        self._threshold = confidence_threshold
        self._generator = generator
        self._available = bool(enabled and credential_present and generator is not None)
        if self._available:
            logger.info("Remote fallback enabled (threshold %.2f)", confidence_threshold)
        elif enabled and not credential_present:
            logger.warning("Remote fallback enabled but no credential configured; staying local")
        else:
            logger.info("Remote fallback disabled; all replies are local")

    @property
    def threshold(self) -> float:
        return self._threshold

    @property
    def remote_available(self) -> bool:
        return self._available

    def decide(self, score: float) -> GateMode:
        if self._available and score < self._threshold:
            return GateMode.REMOTE
        return GateMode.LOCAL

    async def try_remote(self, user_text: str, history: Sequence[HistoryEntry]) -> Optional[str]:
        """Return a remote reply, or None when the turn must fall back to local."""

        if not self._available or self._generator is None:
            return None
        try:
            return await self._generator.generate(user_text, history)
        except InvalidCredential as exc:
            self._available = False
            logger.error(
                "Remote credential rejected (%s); remote fallback disabled for this process",
                exc.code,
            )
        except RateLimited as exc:
            logger.warning("Remote generation rate limited (%s); using local reply", exc.code)
        except ProviderError as exc:
            logger.warning("Remote generation unavailable (%s); using local reply", exc.code)
        except Exception:  # noqa: BLE001
            logger.exception("Remote generation failed unexpectedly; using local reply")
        return None
