"""Message handler — the per-event pipeline.

identity → dedup → admission → session state machine → owner escalation
or assistant reply.  ``handle`` never raises; a failing message is logged
and dropped so the transport keeps delivering the rest.
"""
from __future__ import annotations

import asyncio
import logging
import sqlite3
from dataclasses import dataclass
from typing import Protocol

import aiosqlite

from pampam.assistant import persona
from pampam.assistant.cache import RecentMessageIds
from pampam.assistant.escalation import EscalationPolicy
from pampam.assistant.gatekeeper import REASON_SPAM, check_admission
from pampam.assistant.identity import Resolver, resolve_identity
from pampam.assistant.responder import ResponseOrchestrator
from pampam.assistant.session import MENU_CHOICES, SessionState, SessionStore
from pampam.config import DEFAULT_FOCUS_STATUS, NOTIFY_REGULAR, SPAM_NOTICE_ENABLED
from pampam.storage import StateStore

logger = logging.getLogger(__name__)


@dataclass
class MessageEvent:
    """One incoming chat message as reported by the transport."""

    id: str
    sender_raw: str
    body: str
    is_group: bool = False
    is_self: bool = False


class Transport(Protocol):
    async def send(self, recipient_raw: str, text: str) -> bool: ...


class MessageHandler:
    """Owns all volatile per-process state: sessions, dedup ids, locks."""

    def __init__(
        self,
        store: StateStore,
        transport: Transport,
        responder: ResponseOrchestrator,
        escalation: EscalationPolicy,
        *,
        resolver: Resolver | None = None,
        spam_notice: bool = SPAM_NOTICE_ENABLED,
        notify_regular: bool = NOTIFY_REGULAR,
    ) -> None:
        self._store = store
        self._transport = transport
        self._responder = responder
        self._escalation = escalation
        self._resolver = resolver
        self._spam_notice = spam_notice
        self._notify_regular = notify_regular
        self.sessions = SessionStore()
        self.recent = RecentMessageIds()
        self._locks: dict[str, asyncio.Lock] = {}

    async def handle(self, event: MessageEvent) -> None:
        try:
            await self._handle(event)
        except (aiosqlite.Error, sqlite3.Error) as e:
            logger.error("Storage error, message %s dropped: %s", event.id, e)
        except Exception:
            logger.exception("Error handling message %s", event.id)

    # --- Pipeline ---

    async def _handle(self, event: MessageEvent) -> None:
        identity = await resolve_identity(event.sender_raw, self._resolver)
        if not self.recent.admit(event.id):
            return

        body = (event.body or "").strip()
        admission = await check_admission(
            identity=identity,
            body=body,
            is_group=event.is_group,
            is_self=event.is_self,
            store=self._store,
        )
        if not admission.allowed:
            logger.info("Message from %s rejected: %s", identity, admission.reason)
            if admission.reason == REASON_SPAM and self._spam_notice:
                await self._send(event.sender_raw, persona.SPAM_NOTICE)
            return

        lock = self._locks.setdefault(identity, asyncio.Lock())
        async with lock:
            await self._store.touch_last_active(identity)
            await self._route(identity, event, body)

    async def _route(self, identity: str, event: MessageEvent, body: str) -> None:
        state = self.sessions.get(identity)

        if state is SessionState.NONE:
            await self._greet(identity, event.sender_raw)
            return

        if state is SessionState.INTRO_SENT:
            target = MENU_CHOICES.get(body)
            if target is None:
                await self._send(event.sender_raw, persona.invalid_choice_message())
                return
            self.sessions.transition(identity, SessionState.INTRO_SENT, target)
            if target is SessionState.CHAT_WITH_OWNER:
                await self._send(event.sender_raw, persona.owner_ack_message())
            else:
                await self._send(event.sender_raw, persona.assistant_greeting())
            return

        if state is SessionState.CHAT_WITH_OWNER:
            await self._owner_chat(identity, event.sender_raw, body)
            return

        await self._assistant_chat(identity, event.sender_raw, body)

    async def _greet(self, identity: str, recipient: str) -> None:
        if await self._store.has_intro_been_sent(identity):
            logger.info("Session expired for %s, showing menu again", identity)
            await self._send(recipient, persona.soft_reset_message())
        else:
            logger.info("Sending intro & menu to %s", identity)
            vip = await self._store.get_vip(identity)
            status = await self._store.get_focus_status(DEFAULT_FOCUS_STATUS)
            vip_name = vip["name"] if vip else None
            await self._send(recipient, persona.intro_message(status, vip_name))
            await self._store.mark_intro_sent(identity)
        self.sessions.set(identity, SessionState.INTRO_SENT)

    async def _owner_chat(self, identity: str, recipient: str, body: str) -> None:
        # No model call on this branch
        if await self._store.is_vip(identity):

            async def reply(text: str) -> bool:
                return await self._send(recipient, text)

            await self._escalation.escalate_owner_chat(identity, body, reply)
            return

        logger.info("User %s sent message to owner: %s", identity, body)
        if self._notify_regular:
            await self._escalation.notify_regular(identity, body)

    async def _assistant_chat(self, identity: str, recipient: str, body: str) -> None:
        vip = await self._store.get_vip(identity)
        if vip is not None:
            await self._escalation.notify_urgent(vip.get("name") or identity, body)

        reply = await self._responder.respond(identity, body, vip)
        await self._send(recipient, reply)
        logger.info("Response sent to %s", identity)

    async def _send(self, recipient: str, text: str) -> bool:
        try:
            ok = await self._transport.send(recipient, text)
        except Exception as e:
            logger.error("Failed to send message to %s: %s", recipient, e)
            return False
        if not ok:
            logger.warning("Transport refused message to %s", recipient)
        return bool(ok)
