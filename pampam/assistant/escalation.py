"""VIP escalation — after-hours auto-reply and urgent owner alerts."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, time, timedelta, timezone
from typing import Awaitable, Callable, Protocol

from pampam.assistant import persona
from pampam.assistant.cache import BoundedSet
from pampam.assistant.notifier import Notifier
from pampam.config import (
    AFTER_HOURS_END_TIME,
    AFTER_HOURS_START_TIME,
    LOCAL_TIME_LABEL,
    NOTIFY_TIMEOUT_SECONDS,
    UTC_OFFSET_HOURS,
)

logger = logging.getLogger(__name__)

# Upper bound on identities remembered as "after-hours reply sent"
AFTER_HOURS_CAPACITY = 10_000

Reply = Callable[[str], Awaitable[bool]]


class VIPStore(Protocol):
    async def get_vip(self, identity: str) -> dict[str, str] | None: ...


def _local_now(now: datetime | None, offset_hours: int) -> datetime:
    """Wall-clock UTC shifted by a fixed offset (no tz database, no DST)."""
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.replace(tzinfo=None) + timedelta(hours=offset_hours)


def is_after_hours(
    now: datetime | None = None,
    start: time = AFTER_HOURS_START_TIME,
    end: time = AFTER_HOURS_END_TIME,
    offset_hours: int = UTC_OFFSET_HOURS,
) -> bool:
    """True when local time-of-day is in [start, end), wrapping past midnight.

    Naive ``now`` values are taken as UTC.
    """
    local = _local_now(now, offset_hours)
    minutes = local.hour * 60 + local.minute
    start_m = start.hour * 60 + start.minute
    end_m = end.hour * 60 + end.minute
    if start_m <= end_m:
        return start_m <= minutes < end_m
    return minutes >= start_m or minutes < end_m


def format_local_time(
    now: datetime | None = None,
    offset_hours: int = UTC_OFFSET_HOURS,
    label: str = LOCAL_TIME_LABEL,
) -> str:
    """``HH:MM WIB``-style timestamp for alerts."""
    return f"{_local_now(now, offset_hours):%H:%M} {label}"


class EscalationPolicy:
    """Owner alerts for VIP traffic.

    The after-hours auto-reply goes out at most once per identity for the
    lifetime of this object; the urgent alert goes out on every call.
    """

    def __init__(
        self,
        store: VIPStore,
        notifier: Notifier,
        *,
        timeout: float = NOTIFY_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._timeout = timeout
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._after_hours_sent = BoundedSet(AFTER_HOURS_CAPACITY)

    def after_hours_sent(self, identity: str) -> bool:
        return identity in self._after_hours_sent

    async def escalate_owner_chat(self, identity: str, body: str, reply: Reply) -> None:
        """VIP message routed to the owner: maybe auto-reply, always alert."""
        vip = await self._store.get_vip(identity)
        name = (vip or {}).get("name") or identity
        now = self._clock()

        # Mark before the send so a concurrent message can't double-reply
        if is_after_hours(now) and self._after_hours_sent.add(identity):
            logger.info("VIP after-hours message from %s", identity)
            try:
                await reply(persona.vip_after_hours_message(name))
            except Exception as e:
                logger.error("Failed to send after-hours reply to %s: %s", identity, e)

        await self.notify_urgent(name, body, now=now)

    async def notify_urgent(self, name: str, body: str, *, now: datetime | None = None) -> bool:
        logger.info("Sending urgent notification about VIP %s", name)
        text = persona.urgent_notification_body(name, body, format_local_time(now or self._clock()))
        return await self._deliver(persona.URGENT_TITLE, text, "urgent")

    async def notify_regular(self, name: str, body: str) -> bool:
        text = persona.regular_notification_body(name, body, format_local_time(self._clock()))
        return await self._deliver(persona.REGULAR_TITLE, text, "low")

    async def _deliver(self, title: str, text: str, priority: str) -> bool:
        try:
            return bool(
                await asyncio.wait_for(
                    self._notifier.notify(title, text, priority), timeout=self._timeout
                )
            )
        except asyncio.TimeoutError:
            logger.warning("Notification timed out after %.0fs", self._timeout)
        except Exception as e:
            logger.error("Notification delivery failed: %s", e)
        return False
