"""Tests for pampam.assistant.identity."""
from __future__ import annotations

import asyncio

import pytest

from pampam.assistant.identity import normalize_identity, resolve_identity, validate_identity


class TestNormalizeIdentity:

    @pytest.mark.parametrize("raw,expected", [
        ("628123456789@c.us", "628123456789"),
        ("628123456789@lid", "628123456789"),
        ("+62 812-3456-789", "628123456789"),
        ("12345@telegram", "12345"),
        ("628123456789", "628123456789"),
        ("a@b@c", "a"),
        ("", ""),
    ])
    def test_strips_suffix_and_formatting(self, raw: str, expected: str):
        assert normalize_identity(raw) == expected


class TestResolveIdentity:

    def test_no_resolver_falls_back(self):
        assert asyncio.run(resolve_identity("628111@c.us")) == "628111"

    def test_prefers_resolved_number(self):
        async def resolver(raw):
            return "+62 811-000"

        assert asyncio.run(resolve_identity("abc@lid", resolver)) == "62811000"

    def test_empty_resolution_falls_back(self):
        async def resolver(raw):
            return None

        assert asyncio.run(resolve_identity("628222@c.us", resolver)) == "628222"

    def test_resolver_error_never_raises(self):
        async def resolver(raw):
            raise RuntimeError("contact lookup failed")

        assert asyncio.run(resolve_identity("628333@c.us", resolver)) == "628333"


class TestValidateIdentity:

    @pytest.mark.parametrize("value", ["628123456789", "+62 812-3456-789", "123456"])
    def test_valid(self, value: str):
        assert validate_identity(value)

    @pytest.mark.parametrize("value", ["", "12345", "abc123456", "1" * 16])
    def test_invalid(self, value: str):
        assert not validate_identity(value)
