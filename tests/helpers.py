"""Test doubles and a store opener shared by the test modules."""
from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path

from pampam.assistant.memory import ConversationMemory
from pampam.storage import StateStore, open_database


@asynccontextmanager
async def open_store(path: Path):
    """Yield ``(store, memory)`` on a fresh database file."""
    db = await open_database(path)
    try:
        yield StateStore(db), ConversationMemory(db)
    finally:
        await db.close()


class FakeTransport:
    """Records every outbound message."""

    def __init__(self, ok: bool = True) -> None:
        self.ok = ok
        self.sent: list[tuple[str, str]] = []

    async def send(self, recipient_raw: str, text: str) -> bool:
        self.sent.append((recipient_raw, text))
        return self.ok

    def texts(self) -> list[str]:
        return [t for _, t in self.sent]


class FakeNotifier:
    def __init__(self, ok: bool = True) -> None:
        self.ok = ok
        self.calls: list[tuple[str, str, str]] = []

    async def notify(self, title: str, body: str, priority: str = "default") -> bool:
        self.calls.append((title, body, priority))
        return self.ok


class FakeGenerator:
    """Returns a canned reply, or raises ``error`` when set."""

    def __init__(self, reply: str = "siap!", error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: list[dict] = []

    async def complete(self, messages, model="", max_tokens=None, temperature=None, provider=None) -> str:
        self.calls.append({
            "messages": list(messages),
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "provider": provider,
        })
        if self.error is not None:
            raise self.error
        return self.reply
