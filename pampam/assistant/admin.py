"""Administrative actions — validated, single-write changes to durable state."""
from __future__ import annotations

import logging

from pampam.assistant.identity import normalize_identity, validate_identity
from pampam.assistant.memory import ConversationMemory
from pampam.models import PROVIDERS
from pampam.storage import StateStore

logger = logging.getLogger(__name__)

FOCUS_NOTICE = "Status {owner} sekarang berubah jadi: {status}"


def _normalized_or_raise(raw: str) -> str:
    identity = normalize_identity(raw)
    if not validate_identity(identity):
        raise ValueError(f"Invalid phone number: {raw}")
    return identity


async def turn_on(store: StateStore) -> None:
    """Activate the bot; every contact gets the greeting again."""
    await store.turn_on()


async def turn_off(store: StateStore) -> None:
    await store.turn_off()


async def set_focus_status(
    store: StateStore, memory: ConversationMemory, status: str, owner: str = ""
) -> int:
    """Persist the away text and tell every open conversation about it.

    Returns the number of conversations that received the notice.
    """
    from pampam.config import OWNER_NAME

    status = status.strip()
    if not status:
        raise ValueError("Focus status must not be empty")
    await store.set_focus_status(status)
    return await memory.inject_system_notice(
        FOCUS_NOTICE.format(owner=owner or OWNER_NAME, status=status)
    )


async def replace_whitelist(store: StateStore, numbers: list[str]) -> list[str]:
    """Validate everything first, then swap the whole list atomically."""
    invalid = [n for n in numbers if not validate_identity(n)]
    if invalid:
        raise ValueError(f"Invalid phone numbers: {', '.join(invalid)}")
    normalized = list(dict.fromkeys(normalize_identity(n) for n in numbers))
    await store.set_whitelist(normalized)
    return normalized


async def add_to_whitelist(store: StateStore, number: str) -> str:
    identity = _normalized_or_raise(number)
    await store.add_to_whitelist(identity)
    logger.info("Added to whitelist: %s", identity)
    return identity


async def remove_from_whitelist(store: StateStore, number: str) -> bool:
    identity = normalize_identity(number)
    removed = await store.remove_from_whitelist(identity)
    logger.info("Removed from whitelist: %s", identity)
    return removed


async def add_vip(store: StateStore, number: str, name: str, relationship: str = "") -> str:
    identity = _normalized_or_raise(number)
    if not name.strip():
        raise ValueError("VIP name must not be empty")
    await store.add_vip(identity, name.strip(), relationship.strip())
    return identity


async def remove_vip(store: StateStore, number: str) -> bool:
    identity = normalize_identity(number)
    removed = await store.remove_vip(identity)
    if removed:
        logger.info("VIP contact removed: %s", identity)
    return removed


async def update_ai_settings(
    store: StateStore,
    *,
    provider: str | None = None,
    model: str | None = None,
    max_tokens: int | None = None,
    temperature: float | None = None,
) -> None:
    """Store runtime AI overrides. API keys always come from the environment."""
    if provider is not None and provider not in PROVIDERS:
        raise ValueError(f"Unknown provider '{provider}'. Supported: {', '.join(PROVIDERS)}")
    if max_tokens is not None and max_tokens < 1:
        raise ValueError("max_tokens must be positive")
    if temperature is not None and not 0.0 <= temperature <= 2.0:
        raise ValueError("temperature must be between 0 and 2")
    await store.update_ai_settings(
        provider=provider, model=model, max_tokens=max_tokens, temperature=temperature
    )
    logger.info("AI configuration updated")
