"""Model factory — create chat model instances for the configured provider.

Two usage modes, same as the rest of the package:

1. **CLI mode** (default): credentials come from module-level globals
   populated by ``pampam.config`` at import time.

2. **Override mode**: pass a ``config`` dict to ``make_model()``.  Keys
   present in the dict win over the globals; this is how the runtime AI
   settings stored in the database reach the provider.

   Recognised config keys (all optional):
     provider, api_key, base_url, max_tokens, temperature, timeout
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from pampam.config import (
    AI_MAX_TOKENS,
    AI_MODEL,
    AI_PROVIDER,
    AI_TEMPERATURE,
    AI_TIMEOUT_SECONDS,
    OPENAI_API_KEY,
    OPENAI_BASE_URL,
    OPENROUTER_API_KEY,
    OPENROUTER_BASE_URL,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Provider registry: factories + default models
# ---------------------------------------------------------------------------

@dataclass
class ProviderSpec:
    """Registration for an LLM provider."""
    factory: Callable  # fn(name, *, config=None) -> BaseChatModel
    default: str = ""  # default model ID


def _cfg(config: dict | None, key: str, default: Any = "") -> Any:
    """Get a config value, falling back to module-level globals."""
    if config and config.get(key) not in (None, ""):
        return config[key]
    _GLOBALS = {
        "provider": AI_PROVIDER,
        "model": AI_MODEL,
        "max_tokens": AI_MAX_TOKENS,
        "temperature": AI_TEMPERATURE,
        "timeout": AI_TIMEOUT_SECONDS,
        "openai_api_key": OPENAI_API_KEY,
        "openrouter_api_key": OPENROUTER_API_KEY,
        "openai_base_url": OPENAI_BASE_URL,
        "openrouter_base_url": OPENROUTER_BASE_URL,
    }
    return _GLOBALS.get(key, default)


def _common_kwargs(config: dict | None) -> dict:
    return {
        "max_tokens": int(_cfg(config, "max_tokens")),
        "temperature": float(_cfg(config, "temperature")),
        "timeout": float(_cfg(config, "timeout")),
        "max_retries": 0,
    }


def _make_openai(name: str, *, config: dict | None = None) -> BaseChatModel:
    from langchain_openai import ChatOpenAI

    kwargs: dict = {
        "model": name,
        "api_key": _cfg(config, "api_key") or _cfg(config, "openai_api_key"),
        **_common_kwargs(config),
    }
    base_url = _cfg(config, "base_url") or _cfg(config, "openai_base_url")
    if base_url:
        kwargs["base_url"] = base_url
    return ChatOpenAI(**kwargs)


def _make_openrouter(name: str, *, config: dict | None = None) -> BaseChatModel:
    """OpenRouter speaks the OpenAI Chat Completions API on its own base URL."""
    from langchain_openai import ChatOpenAI

    api_key = (
        _cfg(config, "api_key")
        or _cfg(config, "openrouter_api_key")
        or _cfg(config, "openai_api_key")
    )
    return ChatOpenAI(
        model=name,
        api_key=api_key,
        base_url=_cfg(config, "base_url") or _cfg(config, "openrouter_base_url"),
        default_headers={"X-Title": "Pampam AI"},
        **_common_kwargs(config),
    )


def _make_local(name: str, *, config: dict | None = None) -> BaseChatModel:
    from langchain_openai import ChatOpenAI

    base_url = _cfg(config, "base_url") or _cfg(config, "openai_base_url") or "http://localhost:8000/v1"
    api_key = _cfg(config, "api_key") or _cfg(config, "openai_api_key") or "not-needed"
    return ChatOpenAI(model=name, api_key=api_key, base_url=base_url, **_common_kwargs(config))


_REGISTRY: dict[str, ProviderSpec] = {
    "openai": ProviderSpec(_make_openai, "gpt-4o-mini"),
    "openrouter": ProviderSpec(_make_openrouter, "meta-llama/llama-3.3-70b-instruct"),
    "local": ProviderSpec(_make_local),
}

PROVIDERS = tuple(_REGISTRY)


def make_model(model_name: str = "", *, config: dict | None = None) -> BaseChatModel:
    """Create a chat model instance for the configured provider.

    Args:
        model_name: Explicit model ID. If empty, the configured model (or the
            provider default) is used.
        config: Optional overrides, see module docstring.

    Returns:
        A LangChain chat model instance.
    """
    provider = _cfg(config, "provider")
    spec = _REGISTRY.get(provider)
    if spec is None:
        raise ValueError(
            f"Unknown LLM provider '{provider}'. "
            f"Supported: {', '.join(_REGISTRY)}"
        )

    name = model_name or _cfg(config, "model") or spec.default
    # Drop a leading "provider/" from the model ID
    prefix = f"{provider}/"
    if name.startswith(prefix):
        name = name[len(prefix):]

    return spec.factory(name, config=config)


_ROLE_TO_MESSAGE = {
    "system": SystemMessage,
    "user": HumanMessage,
    "assistant": AIMessage,
}


def to_langchain_messages(messages: list[dict[str, str]]) -> list[BaseMessage]:
    """Map ``{role, content}`` dicts onto LangChain message objects."""
    out: list[BaseMessage] = []
    for m in messages:
        cls = _ROLE_TO_MESSAGE.get(m["role"])
        if cls is None:
            raise ValueError(f"Unsupported message role: {m['role']}")
        out.append(cls(content=m["content"]))
    return out


class LangChainGenerator:
    """Text generator backed by a LangChain chat model.

    ``complete`` raises whatever the provider raises; callers decide on
    the fallback.
    """

    def __init__(self, config: dict | None = None) -> None:
        self._config = dict(config or {})

    async def complete(
        self,
        messages: list[dict[str, str]],
        model: str = "",
        max_tokens: int | None = None,
        temperature: float | None = None,
        provider: str | None = None,
    ) -> str:
        config = dict(self._config)
        if provider:
            config["provider"] = provider
        if max_tokens is not None:
            config["max_tokens"] = max_tokens
        if temperature is not None:
            config["temperature"] = temperature

        llm = make_model(model, config=config)
        response = await llm.ainvoke(to_langchain_messages(messages))

        usage = getattr(response, "usage_metadata", None) or {}
        logger.debug("Completion done (%s tokens)", usage.get("total_tokens", "?"))

        content = response.content
        if isinstance(content, list):
            content = "".join(
                part.get("text", "") if isinstance(part, dict) else str(part)
                for part in content
            )
        return content or ""
