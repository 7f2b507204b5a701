"""Push notifiers — best-effort owner alerts (ntfy.sh or Telegram DM).

Every notifier returns ``True``/``False`` and never raises: an alert that
cannot be delivered must not break the conversation that triggered it.
"""
from __future__ import annotations

import logging
from typing import Protocol

import httpx

from pampam.config import (
    NOTIFIER,
    NOTIFY_TIMEOUT_SECONDS,
    NTFY_BASE_URL,
    NTFY_TOPIC,
    TELEGRAM_OWNER_ID,
)

logger = logging.getLogger(__name__)

PRIORITIES = ("min", "low", "default", "high", "urgent")

# ntfy emoji shortcodes per priority (headers must stay ASCII)
_TAGS = {
    "urgent": "warning,skull,rotating_light",
    "high": "white_check_mark",
    "default": "speech_balloon",
    "low": "speech_balloon",
    "min": "speech_balloon",
}

TEST_TITLE = "Test Notification"
TEST_BODY = "🧪 Test notification dari Pampam. Jika kamu menerima ini, setup berhasil! ✅"


class Notifier(Protocol):
    async def notify(self, title: str, body: str, priority: str = "default") -> bool: ...


class Sender(Protocol):
    async def send(self, recipient_raw: str, text: str) -> bool: ...


class NtfyNotifier:
    """POST alerts to an ntfy.sh topic."""

    def __init__(
        self,
        topic: str = NTFY_TOPIC,
        base_url: str = NTFY_BASE_URL,
        timeout: float = NOTIFY_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.topic = topic or ""
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        if not self.topic:
            logger.warning("NTFY_TOPIC not set - urgent notifications will not be sent")

    @property
    def configured(self) -> bool:
        return bool(self.topic)

    @property
    def url(self) -> str:
        return f"{self._base_url}/{self.topic}"

    async def notify(self, title: str, body: str, priority: str = "default") -> bool:
        if not self.topic:
            logger.error("Cannot send notification: ntfy topic not configured")
            return False
        if priority not in PRIORITIES:
            priority = "default"

        headers = {
            "Title": title,
            "Priority": priority,
            "Tags": _TAGS[priority],
        }
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                resp = await client.post(self.url, content=body.encode("utf-8"), headers=headers)
        except httpx.HTTPError as e:
            logger.error("Error sending notification to ntfy: %s", e)
            return False

        if resp.is_success:
            logger.info("Notification sent to ntfy topic %s (%s)", self.topic, priority)
            return True
        logger.error(
            "Failed to send notification to ntfy: %s %s", resp.status_code, resp.reason_phrase
        )
        return False


class TelegramOwnerNotifier:
    """Deliver alerts as a direct message to the owner's Telegram chat."""

    def __init__(self, sender: Sender, owner_id: str = TELEGRAM_OWNER_ID) -> None:
        self._sender = sender
        self.owner_id = owner_id

    @property
    def configured(self) -> bool:
        return bool(self.owner_id)

    async def notify(self, title: str, body: str, priority: str = "default") -> bool:
        if not self.owner_id:
            logger.error("Cannot send notification: TELEGRAM_OWNER_ID not configured")
            return False
        try:
            return bool(await self._sender.send(self.owner_id, f"{title}\n\n{body}"))
        except Exception as e:
            logger.error("Error sending owner notification via Telegram: %s", e)
            return False


def make_notifier(kind: str = NOTIFIER, sender: Sender | None = None) -> Notifier:
    """Build the notifier selected by ``PAMPAM_NOTIFIER``."""
    if kind == "telegram":
        if sender is None:
            raise ValueError("Telegram notifier needs a running transport")
        return TelegramOwnerNotifier(sender)
    if kind == "ntfy":
        return NtfyNotifier()
    raise ValueError(f"Unknown notifier '{kind}'. Supported: ntfy, telegram")


async def send_test_notification(notifier: Notifier) -> bool:
    """Send a harmless high-priority message to verify the setup."""
    ok = await notifier.notify(TEST_TITLE, TEST_BODY, priority="high")
    if ok:
        logger.info("Test notification sent successfully")
    else:
        logger.error("Test notification failed")
    return ok
