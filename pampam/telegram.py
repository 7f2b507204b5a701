"""Telegram bot transport — turns updates into MessageEvents and sends replies."""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from telegram import Update
from telegram.constants import ChatType
from telegram.ext import Application, ContextTypes, MessageHandler, filters

from pampam.assistant.handler import MessageEvent
from pampam.config import TELEGRAM_BOT_TOKEN

logger = logging.getLogger(__name__)

SENDER_SUFFIX = "@telegram"

OnEvent = Callable[[MessageEvent], Awaitable[None]]


def update_to_event(update: Any, bot_id: int | None = None) -> MessageEvent | None:
    """Map a Telegram update onto a MessageEvent. None for non-text updates."""
    message = update.effective_message
    if message is None or message.text is None:
        return None

    chat = message.chat
    user = message.from_user
    user_id = user.id if user else chat.id
    return MessageEvent(
        id=f"{chat.id}:{message.message_id}",
        sender_raw=f"{user_id}{SENDER_SUFFIX}",
        body=message.text,
        is_group=chat.type != ChatType.PRIVATE,
        is_self=bool(user and (user.is_bot and (bot_id is None or user.id == bot_id))),
    )


def recipient_chat_id(recipient_raw: str) -> int:
    """``"12345@telegram"`` → ``12345`` (private chat id equals the user id)."""
    return int(recipient_raw.split("@", 1)[0].strip())


class TelegramTransport:
    """Async Telegram bot feeding every text message into ``on_event``."""

    def __init__(self, on_event: OnEvent | None = None, token: str = TELEGRAM_BOT_TOKEN) -> None:
        self.on_event = on_event
        self._token = token
        self._app: Application | None = None

    @property
    def running(self) -> bool:
        return self._app is not None

    async def _handle_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        bot_id = context.bot.id if context and context.bot else None
        event = update_to_event(update, bot_id)
        if event is None or self.on_event is None:
            return
        logger.debug("Telegram message %s from %s", event.id, event.sender_raw)
        await self.on_event(event)

    async def send(self, recipient_raw: str, text: str) -> bool:
        if not self._app:
            logger.warning("Telegram transport not started, dropping message")
            return False
        try:
            chat_id = recipient_chat_id(recipient_raw)
        except ValueError:
            logger.error("Not a Telegram recipient: %s", recipient_raw)
            return False

        try:
            for chunk in _split_message(text):
                await self._app.bot.send_message(chat_id=chat_id, text=chunk)
        except Exception:
            logger.exception("Failed to send message to Telegram chat %s", chat_id)
            return False
        return True

    async def start(self) -> None:
        """Start the Telegram bot (non-blocking)."""
        if not self._token:
            raise RuntimeError("TELEGRAM_BOT_TOKEN is not set")

        self._app = Application.builder().token(self._token).build()
        self._app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, self._handle_message))

        await self._app.initialize()
        await self._app.start()
        await self._app.updater.start_polling(drop_pending_updates=True)
        logger.info("Telegram bot started")

    async def stop(self) -> None:
        """Stop the Telegram bot."""
        if not self._app:
            return
        try:
            await self._app.updater.stop()
        except Exception:
            logger.debug("Telegram updater stop error (ignored)", exc_info=True)
        try:
            await self._app.stop()
        except Exception:
            logger.debug("Telegram app stop error (ignored)", exc_info=True)
        try:
            await self._app.shutdown()
        except Exception:
            logger.debug("Telegram app shutdown error (ignored)", exc_info=True)
        self._app = None
        logger.info("Telegram bot stopped")


def _split_message(text: str, max_len: int = 4096) -> list[str]:
    """Split text into Telegram-safe chunks."""
    if len(text) <= max_len:
        return [text]
    chunks = []
    while text:
        if len(text) <= max_len:
            chunks.append(text)
            break
        split_at = text.rfind("\n", 0, max_len)
        if split_at == -1:
            split_at = max_len
        chunks.append(text[:split_at])
        text = text[split_at:].lstrip("\n")
    return chunks
