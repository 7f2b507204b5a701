"""Response orchestrator — persona + history + user turn → model reply."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from pampam.assistant.memory import ConversationMemory
from pampam.assistant.persona import PersonaContext, select_persona
from pampam.config import (
    AI_MAX_TOKENS,
    AI_MODEL,
    AI_PROVIDER,
    AI_TEMPERATURE,
    AI_TIMEOUT_SECONDS,
    DEFAULT_FOCUS_STATUS,
)

logger = logging.getLogger(__name__)

REPLY_PREFIX = "🤖 "

CONFUSED_REPLY = "Maaf, aku lagi bingung nih 🤔"
FALLBACK_REPLY = "Waduh, aku lagi error nih. Bisa ulangi lagi ga? 😅"
QUOTA_FALLBACK_REPLY = "Maaf, lagi ada masalah teknis nih. Coba lagi nanti ya 🙏"


class TextGenerator(Protocol):
    async def complete(
        self,
        messages: list[dict[str, str]],
        model: str = "",
        max_tokens: int | None = None,
        temperature: float | None = None,
        provider: str | None = None,
    ) -> str: ...


class SettingsStore(Protocol):
    async def get_focus_status(self, default: str = "") -> str: ...

    async def get_ai_settings(self) -> dict[str, str]: ...


def _is_quota_error(exc: BaseException) -> bool:
    """OpenAI-compatible APIs report exhausted credit as ``insufficient_quota``."""
    if getattr(exc, "code", None) == "insufficient_quota":
        return True
    body = getattr(exc, "body", None)
    if isinstance(body, dict):
        err = body.get("error", body)
        if isinstance(err, dict) and err.get("code") == "insufficient_quota":
            return True
    return False


class ResponseOrchestrator:
    """Builds the prompt, calls the generator, persists the exchange.

    Provider failures never propagate: the caller always gets text to send.
    Storage failures do propagate so the handler can abort the message.
    """

    def __init__(
        self,
        memory: ConversationMemory,
        store: SettingsStore,
        generator: TextGenerator,
        *,
        timeout: float = AI_TIMEOUT_SECONDS,
    ) -> None:
        self._memory = memory
        self._store = store
        self._generator = generator
        self._timeout = timeout

    async def ai_settings(self) -> dict[str, Any]:
        """Env defaults overlaid with the overrides stored in the database."""
        stored = await self._store.get_ai_settings()
        return {
            "provider": stored.get("ai_provider") or AI_PROVIDER,
            "model": stored.get("ai_model") or AI_MODEL,
            "max_tokens": int(stored.get("ai_max_tokens") or AI_MAX_TOKENS),
            "temperature": float(stored.get("ai_temperature") or AI_TEMPERATURE),
        }

    async def build_messages(
        self, identity: str, message: str, vip: dict[str, str] | None = None
    ) -> list[dict[str, str]]:
        status = await self._store.get_focus_status(DEFAULT_FOCUS_STATUS)
        context = PersonaContext(
            focus_status=status,
            vip_name=(vip or {}).get("name", ""),
            relationship=(vip or {}).get("relationship", ""),
        )
        system = select_persona(vip is not None).build_system_prompt(context)
        history = await self._memory.get_contextual_history(identity, message)
        return [
            {"role": "system", "content": system},
            *history,
            {"role": "user", "content": message},
        ]

    async def respond(self, identity: str, message: str, vip: dict[str, str] | None = None) -> str:
        # History is read before the user turn is stored so it isn't sent twice
        messages = await self.build_messages(identity, message, vip)
        await self._memory.append(identity, "user", message)

        settings = await self.ai_settings()
        logger.info(
            "Generating reply for %s with %d previous messages",
            identity, len(messages) - 2,
        )
        try:
            text = await asyncio.wait_for(
                self._generator.complete(
                    messages,
                    model=settings["model"],
                    max_tokens=settings["max_tokens"],
                    temperature=settings["temperature"],
                    provider=settings["provider"],
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.error("Text generator timed out after %.0fs", self._timeout)
            return FALLBACK_REPLY
        except Exception as e:
            logger.error("Error generating AI response: %s", e)
            if _is_quota_error(e):
                return QUOTA_FALLBACK_REPLY
            return FALLBACK_REPLY

        reply = f"{REPLY_PREFIX}{(text or '').strip() or CONFUSED_REPLY}"
        await self._memory.append(identity, "assistant", reply)
        return reply
