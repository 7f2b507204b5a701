"""Tests for pampam.assistant.handler — the full per-message pipeline."""
from __future__ import annotations

import asyncio
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock

from pampam.assistant import persona
from pampam.assistant.escalation import EscalationPolicy
from pampam.assistant.handler import MessageEvent, MessageHandler
from pampam.assistant.responder import FALLBACK_REPLY, ResponseOrchestrator
from pampam.assistant.session import SessionState
from helpers import FakeGenerator, FakeNotifier, FakeTransport, open_store

ALICE = "628111"
VIP = "628999"


def _utc(hour: int) -> datetime:
    return datetime(2026, 10, 17, hour, 0, tzinfo=timezone.utc)


def _event(msg_id: str, body: str, sender: str = ALICE, **kwargs) -> MessageEvent:
    return MessageEvent(id=msg_id, sender_raw=f"{sender}@c.us", body=body, **kwargs)


class Harness:
    def __init__(self, store, memory, *, generator=None, hour: int = 3, **kwargs) -> None:
        self.store = store
        self.memory = memory
        self.transport = FakeTransport()
        self.notifier = FakeNotifier()
        self.generator = generator or FakeGenerator()
        self.escalation = EscalationPolicy(
            store, self.notifier, timeout=1.0, clock=lambda: _utc(hour)
        )
        responder = ResponseOrchestrator(memory, store, self.generator, timeout=1.0)
        self.handler = MessageHandler(store, self.transport, responder, self.escalation, **kwargs)

    def state(self, identity: str = ALICE) -> SessionState:
        return self.handler.sessions.get(identity)

    async def feed(self, *events: MessageEvent) -> None:
        for ev in events:
            await self.handler.handle(ev)


def _scenario(db_path: Path, body, *, active: bool = True, vip: bool = False, **kwargs):
    """Run ``body(harness)`` against a fresh database with ALICE whitelisted."""

    async def go():
        async with open_store(db_path) as (store, memory):
            if active:
                await store.turn_on()
            await store.add_to_whitelist(ALICE)
            if vip:
                await store.add_to_whitelist(VIP)
                await store.add_vip(VIP, "Viia", "temen cewe baru")
            await store.set_focus_status("lagi ngoding")
            h = Harness(store, memory, **kwargs)
            return await body(h)

    return asyncio.run(go())


class TestAdmission:

    def test_duplicate_delivery_is_noop(self, db_path: Path):
        async def body(h: Harness):
            await h.feed(_event("m1", "halo"), _event("m1", "halo"))
            return h.transport.sent, h.state()

        sent, state = _scenario(db_path, body)
        assert len(sent) == 1
        assert state is SessionState.INTRO_SENT

    def test_group_and_self_ignored(self, db_path: Path):
        async def body(h: Harness):
            await h.feed(
                _event("m1", "halo", is_group=True),
                _event("m2", "halo", is_self=True),
            )
            return h.transport.sent, h.state(), await h.store.has_intro_been_sent(ALICE)

        sent, state, intro = _scenario(db_path, body)
        assert sent == []
        assert state is SessionState.NONE
        assert intro is False

    def test_inactive_bot_changes_nothing(self, db_path: Path):
        async def body(h: Harness):
            await h.feed(_event("m1", "halo"), _event("m2", "1"), _event("m3", "2"))
            return h.transport.sent, h.state()

        sent, state = _scenario(db_path, body, active=False)
        assert sent == []
        assert state is SessionState.NONE

    def test_not_whitelisted_is_silent(self, db_path: Path):
        async def body(h: Harness):
            await h.feed(_event("m1", "halo", sender="628555"))
            return h.transport.sent, h.state("628555")

        sent, state = _scenario(db_path, body)
        assert sent == []
        assert state is SessionState.NONE

    def test_spam_gets_notice_only(self, db_path: Path):
        async def body(h: Harness):
            await h.feed(_event("m1", "aaaaaaaaaaaaaaa"))
            return h.transport.texts(), h.state()

        texts, state = _scenario(db_path, body)
        assert texts == [persona.SPAM_NOTICE]
        assert state is SessionState.NONE

    def test_spam_notice_can_be_disabled(self, db_path: Path):
        async def body(h: Harness):
            await h.feed(_event("m1", "?"))
            return h.transport.sent

        assert _scenario(db_path, body, spam_notice=False) == []


class TestSessionFlow:

    def test_first_contact_gets_greeting(self, db_path: Path):
        async def body(h: Harness):
            await h.feed(_event("m1", "halo"))
            return h.transport.sent, h.state(), await h.store.has_intro_been_sent(ALICE)

        sent, state, intro = _scenario(db_path, body)
        assert len(sent) == 1
        recipient, text = sent[0]
        assert recipient == f"{ALICE}@c.us"
        assert "lagi ngoding" in text
        assert "Silakan pilih menu" in text
        assert intro is True
        assert state is SessionState.INTRO_SENT

    def test_vip_first_contact_greeting(self, db_path: Path):
        async def body(h: Harness):
            await h.feed(_event("m1", "halo", sender=VIP))
            return h.transport.texts()

        texts = _scenario(db_path, body, vip=True)
        assert texts[0].startswith("Hai Viia!")

    def test_menu_choices(self, db_path: Path):
        async def body(h: Harness):
            await h.feed(_event("m1", "halo"), _event("m2", "hello"))
            after_invalid = h.state()
            await h.feed(_event("m3", "1"))
            return after_invalid, h.state(), h.transport.texts()

        after_invalid, state, texts = _scenario(db_path, body)
        assert after_invalid is SessionState.INTRO_SENT
        assert texts[1] == persona.invalid_choice_message()
        assert state is SessionState.CHAT_WITH_OWNER
        assert texts[2] == persona.owner_ack_message()

    def test_choose_assistant(self, db_path: Path):
        async def body(h: Harness):
            await h.feed(_event("m1", "halo"), _event("m2", " 2 "))
            return h.state(), h.transport.texts()[-1]

        state, last = _scenario(db_path, body)
        assert state is SessionState.CHAT_WITH_ASSISTANT
        assert last == persona.assistant_greeting()

    def test_soft_reset_after_restart(self, db_path: Path):
        async def body(h: Harness):
            await h.store.mark_intro_sent(ALICE)
            await h.feed(_event("m1", "halo"))
            return h.state(), h.transport.texts()

        state, texts = _scenario(db_path, body)
        assert state is SessionState.INTRO_SENT
        assert texts == [persona.soft_reset_message()]

    def test_turn_on_forces_greeting_again(self, db_path: Path):
        async def body(h: Harness):
            await h.store.mark_intro_sent(ALICE)
            await h.store.turn_on()
            await h.feed(_event("m1", "halo"))
            return h.transport.texts()[0]

        text = _scenario(db_path, body)
        assert "Silakan pilih menu" in text
        assert not text.startswith("Halo lagi")


class TestOwnerChat:

    def test_vip_after_hours_reply_once(self, db_path: Path):
        async def body(h: Harness):
            await h.feed(_event("m1", "halo", sender=VIP), _event("m2", "1", sender=VIP))
            before = len(h.transport.sent)
            await h.feed(
                _event("m3", "masih bangun?", sender=VIP),
                _event("m4", "kangen nih", sender=VIP),
                _event("m5", "yaudah deh", sender=VIP),
            )
            return h.transport.texts()[before:], h.notifier.calls, h.generator.calls

        replies, alerts, gen_calls = _scenario(db_path, body, vip=True, hour=15)
        assert replies == [persona.vip_after_hours_message("Viia")]
        assert len(alerts) == 3
        assert all(p == "urgent" for _, _, p in alerts)
        assert gen_calls == []

    def test_vip_daytime_alert_only(self, db_path: Path):
        async def body(h: Harness):
            await h.feed(_event("m1", "halo", sender=VIP), _event("m2", "1", sender=VIP))
            before = len(h.transport.sent)
            await h.feed(_event("m3", "lagi apa?", sender=VIP))
            return len(h.transport.sent) - before, len(h.notifier.calls)

        assert _scenario(db_path, body, vip=True, hour=3) == (0, 1)

    def test_regular_owner_chat_is_silent(self, db_path: Path):
        async def body(h: Harness):
            await h.feed(_event("m1", "halo"), _event("m2", "1"))
            before = len(h.transport.sent)
            await h.feed(_event("m3", "tolong telpon ya"))
            return len(h.transport.sent) - before, h.notifier.calls, h.generator.calls

        assert _scenario(db_path, body) == (0, [], [])

    def test_regular_owner_chat_low_priority_when_enabled(self, db_path: Path):
        async def body(h: Harness):
            await h.feed(_event("m1", "halo"), _event("m2", "1"), _event("m3", "tolong telpon ya"))
            return h.notifier.calls

        calls = _scenario(db_path, body, notify_regular=True)
        assert len(calls) == 1
        assert calls[0][2] == "low"


class TestAssistantChat:

    def test_reply_sent_and_stored(self, db_path: Path):
        async def body(h: Harness):
            await h.feed(_event("m1", "halo"), _event("m2", "2"), _event("m3", "kamu siapa sih sebenarnya"))
            return h.transport.texts()[-1], await h.memory.get_history(ALICE), h.notifier.calls

        last, history, alerts = _scenario(db_path, body, generator=FakeGenerator(reply="Aku Pampam!"))
        assert last == "🤖 Aku Pampam!"
        assert [m["role"] for m in history] == ["user", "assistant"]
        assert alerts == []

    def test_vip_alert_every_message(self, db_path: Path):
        async def body(h: Harness):
            await h.feed(_event("m1", "halo", sender=VIP), _event("m2", "2", sender=VIP))
            await h.feed(_event("m3", "hai pam", sender=VIP), _event("m4", "lagi ngapain?", sender=VIP))
            return h.notifier.calls, len(h.generator.calls)

        alerts, gen_calls = _scenario(db_path, body, vip=True, hour=3)
        assert len(alerts) == 2
        assert gen_calls == 2

    def test_provider_failure_sends_fallback(self, db_path: Path):
        async def body(h: Harness):
            await h.feed(_event("m1", "halo"), _event("m2", "2"), _event("m3", "bantuin dong"))
            return h.transport.texts()[-1], await h.memory.get_history(ALICE)

        last, history = _scenario(db_path, body, generator=FakeGenerator(error=RuntimeError("down")))
        assert last == FALLBACK_REPLY
        assert history == [{"role": "user", "content": "bantuin dong"}]


class TestConcurrency:

    class Tracking(FakeGenerator):
        def __init__(self) -> None:
            super().__init__()
            self.active = 0
            self.peak = 0

        async def complete(self, *args, **kwargs):
            self.active += 1
            self.peak = max(self.peak, self.active)
            await asyncio.sleep(0.05)
            self.active -= 1
            return "ok"

    def _peak(self, db_path: Path, senders: tuple[str, str]) -> int:
        gen = self.Tracking()

        async def body(h: Harness):
            await h.store.add_to_whitelist("628222")
            for s in set(senders):
                h.handler.sessions.set(s, SessionState.CHAT_WITH_ASSISTANT)
            await asyncio.gather(
                h.handler.handle(_event("a", "pertanyaan pertama", sender=senders[0])),
                h.handler.handle(_event("b", "pertanyaan kedua", sender=senders[1])),
            )
            return gen.peak

        return _scenario(db_path, body, generator=gen)

    def test_same_identity_serialized(self, db_path: Path):
        assert self._peak(db_path, (ALICE, ALICE)) == 1

    def test_different_identities_interleave(self, db_path: Path):
        assert self._peak(db_path, (ALICE, "628222")) == 2


class TestGuard:

    def test_storage_error_is_contained(self):
        store = AsyncMock()
        store.is_active.side_effect = sqlite3.OperationalError("database is locked")
        handler = MessageHandler(store, FakeTransport(), AsyncMock(), AsyncMock())
        asyncio.run(handler.handle(_event("m1", "halo")))

    def test_unexpected_error_is_contained(self):
        store = AsyncMock()
        store.is_active.return_value = True
        store.is_whitelisted.side_effect = RuntimeError("boom")
        transport = FakeTransport()
        handler = MessageHandler(store, transport, AsyncMock(), AsyncMock())
        asyncio.run(handler.handle(_event("m1", "halo")))
        assert transport.sent == []

    def test_transport_failure_does_not_block_state(self, db_path: Path):
        async def body(h: Harness):
            h.transport.ok = False
            await h.feed(_event("m1", "halo"))
            return h.state()

        assert _scenario(db_path, body) is SessionState.INTRO_SENT
