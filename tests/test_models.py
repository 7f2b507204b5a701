"""Tests for pampam.models — provider registry and LangChain generator."""
from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from pampam import models
from pampam.models import LangChainGenerator, make_model, to_langchain_messages


class TestToLangchainMessages:

    def test_role_mapping(self):
        out = to_langchain_messages([
            {"role": "system", "content": "s"},
            {"role": "user", "content": "u"},
            {"role": "assistant", "content": "a"},
        ])
        assert [type(m) for m in out] == [SystemMessage, HumanMessage, AIMessage]
        assert [m.content for m in out] == ["s", "u", "a"]

    def test_unknown_role(self):
        with pytest.raises(ValueError):
            to_langchain_messages([{"role": "tool", "content": "x"}])


class TestMakeModel:

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown LLM provider"):
            make_model("x", config={"provider": "nope"})

    def test_openrouter_uses_its_base_url(self):
        llm = make_model(
            "openrouter/meta-llama/llama-3.3-70b-instruct",
            config={"provider": "openrouter", "api_key": "sk-test", "max_tokens": 321, "temperature": 0.1},
        )
        assert llm.model_name == "meta-llama/llama-3.3-70b-instruct"
        assert llm.openai_api_base == "https://openrouter.ai/api/v1"
        assert llm.max_tokens == 321
        assert llm.temperature == 0.1

    def test_local_defaults(self):
        llm = make_model("llama3", config={"provider": "local"})
        assert llm.openai_api_base == "http://localhost:8000/v1"

    def test_provider_list(self):
        assert set(models.PROVIDERS) == {"openai", "openrouter", "local"}


class TestLangChainGenerator:

    def test_complete_passes_overrides(self, monkeypatch):
        llm = MagicMock()
        llm.ainvoke = AsyncMock(return_value=AIMessage(content="halo juga"))
        seen = {}

        def fake_make_model(name, *, config=None):
            seen["name"] = name
            seen["config"] = config
            return llm

        monkeypatch.setattr(models, "make_model", fake_make_model)
        gen = LangChainGenerator()
        text = asyncio.run(gen.complete(
            [{"role": "user", "content": "halo"}],
            model="gpt-4o-mini", max_tokens=50, temperature=0.3, provider="openai",
        ))

        assert text == "halo juga"
        assert seen["name"] == "gpt-4o-mini"
        assert seen["config"] == {"provider": "openai", "max_tokens": 50, "temperature": 0.3}
        sent = llm.ainvoke.await_args.args[0]
        assert isinstance(sent[0], HumanMessage)

    def test_errors_propagate(self, monkeypatch):
        llm = MagicMock()
        llm.ainvoke = AsyncMock(side_effect=RuntimeError("401"))
        monkeypatch.setattr(models, "make_model", lambda name, *, config=None: llm)

        with pytest.raises(RuntimeError):
            asyncio.run(LangChainGenerator().complete([{"role": "user", "content": "x"}]))
