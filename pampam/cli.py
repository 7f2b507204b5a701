"""CLI entry point — Click group: run the bot + admin commands."""
from __future__ import annotations

import asyncio
import logging
import signal
from typing import Any, Awaitable, Callable

import click

from pampam import ui
from pampam.config import DB_PATH, DEFAULT_FOCUS_STATUS, NOTIFIER, parse_default_vip

logger = logging.getLogger(__name__)

# Third-party loggers that drown out ours at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "telegram", "openai")


def _setup_logging(debug: bool, level: int = logging.WARNING) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else level,
        format="%(asctime)s %(name)s: %(message)s",
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


async def _open_store():
    """Open the database and seed first-run defaults."""
    from pampam.assistant.identity import normalize_identity
    from pampam.storage import StateStore, open_database

    db = await open_database(DB_PATH)
    store = StateStore(db)
    vip = parse_default_vip()
    if vip:
        number, name, relationship = vip
        if await store.seed_default_vip(normalize_identity(number), name, relationship):
            logger.info("Default VIP contact initialized")
    await store.ensure_focus_status(DEFAULT_FOCUS_STATUS)
    return db, store


def _admin(fn: Callable[..., Awaitable[Any]]) -> Any:
    """Run an admin coroutine ``fn(store, memory)`` against a fresh connection."""
    from pampam.assistant.memory import ConversationMemory

    async def _go():
        db, store = await _open_store()
        try:
            return await fn(store, ConversationMemory(db))
        finally:
            await db.close()

    try:
        return asyncio.run(_go())
    except ValueError as e:
        ui.print_error(str(e))
        raise SystemExit(1)


@click.group()
@click.option("--debug", is_flag=True, help="Debug logging")
def main(debug: bool) -> None:
    """Pampam — personal message-routing assistant."""
    _setup_logging(debug)


# ── run ──────────────────────────────────────────────────────────────

@main.command()
@click.option("--debug", is_flag=True, help="Debug logging")
def run(debug: bool) -> None:
    """Start the Telegram bot and handle messages until interrupted."""
    logging.getLogger().setLevel(logging.DEBUG if debug else logging.INFO)
    asyncio.run(_run())


async def _run() -> None:
    from pampam.assistant.escalation import EscalationPolicy
    from pampam.assistant.handler import MessageHandler
    from pampam.assistant.memory import ConversationMemory
    from pampam.assistant.notifier import make_notifier
    from pampam.assistant.responder import ResponseOrchestrator
    from pampam.models import LangChainGenerator
    from pampam.telegram import TelegramTransport

    db, store = await _open_store()
    transport = TelegramTransport()
    memory = ConversationMemory(db)
    escalation = EscalationPolicy(store, make_notifier(NOTIFIER, sender=transport))
    responder = ResponseOrchestrator(memory, store, LangChainGenerator())
    handler = MessageHandler(store, transport, responder, escalation)
    transport.on_event = handler.handle

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError):
            pass  # not supported on this platform

    try:
        await transport.start()
        snap = await store.snapshot()
        ui.print_status(f"Pampam running ({'ON' if snap['active'] else 'OFF'}, notifier={NOTIFIER})")
        ui.print_info("Press Ctrl+C to stop.")
        await stop.wait()
    finally:
        await transport.stop()
        await db.close()
        ui.print_info("Stopped.")


# ── bot ──────────────────────────────────────────────────────────────

@main.group()
def bot() -> None:
    """Turn the bot on/off or show its state."""


@bot.command(name="on")
def bot_on() -> None:
    """Activate; every contact is greeted again."""
    from pampam.assistant import admin

    _admin(lambda store, memory: admin.turn_on(store))
    ui.print_status("Bot activated - intro state reset")


@bot.command(name="off")
def bot_off() -> None:
    from pampam.assistant import admin

    _admin(lambda store, memory: admin.turn_off(store))
    ui.print_status("Bot deactivated", style="red")


@bot.command(name="status")
def bot_status() -> None:
    ui.print_snapshot(_admin(lambda store, memory: store.snapshot()))


# ── focus ────────────────────────────────────────────────────────────

@main.group()
def focus() -> None:
    """Owner's away status shown to contacts."""


@focus.command(name="show")
def focus_show() -> None:
    status = _admin(lambda store, memory: store.get_focus_status(DEFAULT_FOCUS_STATUS))
    ui.print_status(f"Focus status: [cyan]{status}[/cyan]")


@focus.command(name="set")
@click.argument("status", nargs=-1, required=True)
def focus_set(status: tuple[str, ...]) -> None:
    from pampam.assistant import admin

    text = " ".join(status)
    count = _admin(lambda store, memory: admin.set_focus_status(store, memory, text))
    ui.print_status(f"Focus status updated to: {text}")
    ui.print_info(f"Notice added to {count} active conversation(s)")


# ── whitelist ────────────────────────────────────────────────────────

@main.group()
def whitelist() -> None:
    """Numbers allowed to talk to the bot."""


@whitelist.command(name="show")
def whitelist_show() -> None:
    ui.print_whitelist(_admin(lambda store, memory: store.get_whitelist()))


@whitelist.command(name="set")
@click.argument("numbers", nargs=-1)
def whitelist_set(numbers: tuple[str, ...]) -> None:
    """Replace the whole whitelist."""
    from pampam.assistant import admin

    saved = _admin(lambda store, memory: admin.replace_whitelist(store, list(numbers)))
    ui.print_status(f"Whitelist updated: {len(saved)} numbers")


@whitelist.command(name="add")
@click.argument("number")
def whitelist_add(number: str) -> None:
    from pampam.assistant import admin

    identity = _admin(lambda store, memory: admin.add_to_whitelist(store, number))
    ui.print_status(f"Added to whitelist: {identity}")


@whitelist.command(name="remove")
@click.argument("number")
def whitelist_remove(number: str) -> None:
    from pampam.assistant import admin

    if _admin(lambda store, memory: admin.remove_from_whitelist(store, number)):
        ui.print_status(f"Removed from whitelist: {number}")
    else:
        ui.print_info(f"{number} was not whitelisted")


# ── vip ──────────────────────────────────────────────────────────────

@main.group()
def vip() -> None:
    """VIP contacts (urgent alerts, warmer persona)."""


@vip.command(name="list")
def vip_list() -> None:
    ui.print_vips(_admin(lambda store, memory: store.list_vips()))


@vip.command(name="add")
@click.argument("number")
@click.argument("name")
@click.option("--relationship", default="", help="How the owner knows them")
def vip_add(number: str, name: str, relationship: str) -> None:
    from pampam.assistant import admin

    identity = _admin(lambda store, memory: admin.add_vip(store, number, name, relationship))
    ui.print_status(f"VIP contact added: {name} ({identity})")


@vip.command(name="remove")
@click.argument("number")
def vip_remove(number: str) -> None:
    from pampam.assistant import admin

    if _admin(lambda store, memory: admin.remove_vip(store, number)):
        ui.print_status(f"VIP contact removed: {number}")
    else:
        ui.print_info(f"{number} is not a VIP")


# ── ai ───────────────────────────────────────────────────────────────

@main.group()
def ai() -> None:
    """Text generator settings."""


@ai.command(name="show")
def ai_show() -> None:
    from pampam.assistant.responder import ResponseOrchestrator

    async def _show(store, memory):
        stored = await store.get_ai_settings()
        effective = await ResponseOrchestrator(memory, store, generator=None).ai_settings()
        return effective, set(stored)

    effective, overridden = _admin(_show)
    ui.print_ai_settings(effective, overridden)


@ai.command(name="set")
@click.option("--provider", default=None, help="openai | openrouter | local")
@click.option("--model", default=None, help="Model ID")
@click.option("--max-tokens", type=int, default=None, help="Completion budget")
@click.option("--temperature", type=float, default=None, help="Sampling temperature")
def ai_set(provider: str | None, model: str | None, max_tokens: int | None, temperature: float | None) -> None:
    """Override AI settings (API keys always come from the environment)."""
    from pampam.assistant import admin

    _admin(lambda store, memory: admin.update_ai_settings(
        store, provider=provider, model=model, max_tokens=max_tokens, temperature=temperature,
    ))
    ui.print_status("AI configuration updated")


# ── history ──────────────────────────────────────────────────────────

@main.group()
def history() -> None:
    """Stored conversation memory."""


@history.command(name="clear")
@click.argument("number", required=False)
@click.option("--all", "clear_all", is_flag=True, help="Clear every conversation")
def history_clear(number: str | None, clear_all: bool) -> None:
    from pampam.assistant.identity import normalize_identity

    if clear_all:
        _admin(lambda store, memory: memory.clear_all())
        ui.print_status("All conversation histories cleared")
    elif number:
        identity = normalize_identity(number)
        _admin(lambda store, memory: memory.clear(identity))
        ui.print_status(f"Conversation history cleared for {identity}")
    else:
        ui.print_error("Give a number or --all")
        raise SystemExit(1)


# ── notify-test ──────────────────────────────────────────────────────

@main.command(name="notify-test")
def notify_test() -> None:
    """Send a test push notification through ntfy."""
    from pampam.assistant.notifier import NtfyNotifier, send_test_notification

    notifier = NtfyNotifier()
    if not notifier.configured:
        ui.print_error("NTFY_TOPIC not set in .env")
        ui.print_info("Set NTFY_TOPIC=<your-topic> and run this again.")
        raise SystemExit(1)

    ui.print_info(f"Sending test notification to {notifier.url} ...")
    if asyncio.run(send_test_notification(notifier)):
        ui.print_status("Test notification sent - check the ntfy app")
    else:
        ui.print_error("Failed to send test notification")
        ui.print_info("Check your connection and NTFY_TOPIC.")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
