"""Rich console UI — status lines and admin tables."""
from __future__ import annotations

from typing import Any

from rich import box
from rich.console import Console
from rich.table import Table

console = Console()


# ── Status / info / error ────────────────────────────────────────────

def print_status(text: str, style: str = "green") -> None:
    """Print a status line with a colored bullet."""
    console.print(f"  [{style}]●[/{style}] {text}")


def print_info(text: str) -> None:
    console.print(f"  [dim]{text}[/dim]")


def print_error(text: str) -> None:
    console.print(f"  [bold red]✗ {text}[/bold red]")


# ── Admin views ──────────────────────────────────────────────────────

def print_snapshot(snap: dict[str, Any]) -> None:
    """Bot state overview."""
    if snap.get("active"):
        print_status("Bot is [bold]ON[/bold]")
    else:
        print_status("Bot is [bold]OFF[/bold]", style="red")
    console.print(f"  Focus status:    [cyan]{snap.get('focus_status', '')}[/cyan]")
    console.print(f"  Whitelisted:     {snap.get('whitelist_count', 0)}")
    console.print(f"  VIP contacts:    {snap.get('vip_count', 0)}")
    console.print(f"  Active (24h):    {snap.get('active_users_24h', 0)}")
    console.print(
        f"  Stored messages: {snap.get('stored_messages', 0)}"
        f" [dim]in {snap.get('conversations', 0)} conversations[/dim]"
    )
    console.print()


def print_whitelist(numbers: list[str]) -> None:
    if not numbers:
        print_info("Whitelist is empty.")
        return
    table = Table(
        title="Whitelist",
        border_style="cyan",
        box=box.SIMPLE,
        header_style="bold cyan",
        padding=(0, 1),
    )
    table.add_column("#", style="dim", no_wrap=True, width=4)
    table.add_column("Number", style="bold yellow", no_wrap=True)
    for i, number in enumerate(numbers, 1):
        table.add_row(str(i), number)
    console.print(table)
    console.print()


def print_vips(vips: list[dict[str, str]]) -> None:
    if not vips:
        print_info("No VIP contacts.")
        return
    table = Table(
        title="VIP Contacts",
        border_style="magenta",
        box=box.SIMPLE,
        header_style="bold magenta",
        padding=(0, 1),
    )
    table.add_column("Name", style="bold magenta", no_wrap=True)
    table.add_column("Number", style="yellow", no_wrap=True)
    table.add_column("Relationship", style="dim")
    for vip in vips:
        table.add_row(vip["name"], vip["identity"], vip.get("relationship", ""))
    console.print(table)
    console.print()


def print_ai_settings(settings: dict[str, Any], overridden: set[str]) -> None:
    """Effective AI settings; stored overrides are marked."""
    table = Table(box=box.SIMPLE, header_style="bold cyan", padding=(0, 1))
    table.add_column("Setting", style="bold")
    table.add_column("Value", style="cyan")
    table.add_column("Source", style="dim")
    for key, value in settings.items():
        source = "db" if f"ai_{key}" in overridden else "env"
        table.add_row(key, str(value), source)
    console.print(table)
    console.print()
