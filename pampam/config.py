"""Configuration — loads .env, resolves workspace, assistant settings."""
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv


def _default_workspace() -> Path:
    """Return the default workspace root (the directory that contains ``.pampam/``).

    ``PAMPAM_HOME`` overrides; otherwise the user's home directory.
    """
    env = os.getenv("PAMPAM_HOME")
    if env:
        return Path(env).expanduser().resolve()
    return Path.home()


def _find_workspace() -> Path:
    """Walk up from cwd to find a directory containing .pampam/ or .env.

    Falls back to ``_default_workspace()`` when nothing is found.
    """
    p = Path.cwd()
    while p != p.parent:
        if (p / ".pampam").is_dir() or (p / ".env").is_file():
            return p
        p = p.parent
    ws = _default_workspace()
    ws.mkdir(parents=True, exist_ok=True)
    return ws


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("true", "1", "yes", "on")


def _parse_time_str(spec: str):
    """Parse time string like '21:00' into datetime.time."""
    from datetime import time as _time
    parts = spec.strip().split(":")
    return _time(int(parts[0]), int(parts[1]) if len(parts) > 1 else 0)


def _parse_seconds(spec: str, default: float) -> float:
    """Parse a timeout like '60', '60s', '2m' into seconds."""
    import re as _re
    spec = (spec or "").strip()
    m = _re.match(r"^(\d+(?:\.\d+)?)\s*(s|m)?$", spec, _re.I)
    if not m:
        return default
    val = float(m.group(1))
    if (m.group(2) or "s").lower() == "m":
        val *= 60
    return val


WORKSPACE = _find_workspace()

# --- Internal storage (.pampam/) ---
PAMPAM_DIR = WORKSPACE / ".pampam"
PAMPAM_DIR.mkdir(exist_ok=True)

# .env: prefer PAMPAM_DIR/.env, then WORKSPACE/.env.  load_dotenv won't
# override vars already set by the first call.
load_dotenv(PAMPAM_DIR / ".env")
load_dotenv(WORKSPACE / ".env")

DB_PATH = Path(os.getenv("PAMPAM_DB_PATH", "") or PAMPAM_DIR / "pampam.db")

# --- AI provider ---
# openai | openrouter | local
AI_PROVIDER = os.getenv("AI_PROVIDER", "openrouter")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY", "")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "")
OPENROUTER_BASE_URL = os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1")
AI_MODEL = os.getenv("OPENAI_MODEL", "meta-llama/llama-3.3-70b-instruct")
AI_MAX_TOKENS = int(os.getenv("MAX_TOKENS", "500"))
AI_TEMPERATURE = float(os.getenv("TEMPERATURE", "0.7"))
AI_TIMEOUT_SECONDS = _parse_seconds(os.getenv("PAMPAM_AI_TIMEOUT", "60"), 60.0)

# --- Notifications ---
# ntfy | telegram
NOTIFIER = os.getenv("PAMPAM_NOTIFIER", "ntfy").lower()
NTFY_TOPIC = os.getenv("NTFY_TOPIC", "")
NTFY_BASE_URL = os.getenv("NTFY_BASE_URL", "https://ntfy.sh").rstrip("/")
NOTIFY_TIMEOUT_SECONDS = _parse_seconds(os.getenv("PAMPAM_NOTIFY_TIMEOUT", "10"), 10.0)
NOTIFY_REGULAR = _env_flag("PAMPAM_NOTIFY_REGULAR", "false")

# --- Telegram ---
TELEGRAM_BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN", "")
TELEGRAM_OWNER_ID = os.getenv("TELEGRAM_OWNER_ID", "")

# --- After-hours window (fixed UTC offset, no DST) ---
AFTER_HOURS_START = os.getenv("PAMPAM_AFTER_HOURS_START", "21:00")
AFTER_HOURS_END = os.getenv("PAMPAM_AFTER_HOURS_END", "05:00")
AFTER_HOURS_START_TIME = _parse_time_str(AFTER_HOURS_START)
AFTER_HOURS_END_TIME = _parse_time_str(AFTER_HOURS_END)
UTC_OFFSET_HOURS = int(os.getenv("PAMPAM_UTC_OFFSET_HOURS", "7"))
LOCAL_TIME_LABEL = os.getenv("PAMPAM_LOCAL_TIME_LABEL", "WIB")

# --- Persona ---
OWNER_NAME = os.getenv("PAMPAM_OWNER_NAME", "Farhan")
ASSISTANT_NAME = os.getenv("PAMPAM_ASSISTANT_NAME", "Pampam")
DEFAULT_FOCUS_STATUS = os.getenv("PAMPAM_DEFAULT_FOCUS_STATUS", "lagi santai aja")
# "<number>:<name>:<relationship>" seeded into an empty VIP table
DEFAULT_VIP = os.getenv("PAMPAM_DEFAULT_VIP", "6281234567890:Viia:temen cewe baru")

# --- Gatekeeper ---
SPAM_NOTICE_ENABLED = _env_flag("PAMPAM_SPAM_NOTICE", "true")


def parse_default_vip(spec: str = DEFAULT_VIP) -> tuple[str, str, str] | None:
    """Split ``number:name:relationship``. Returns None for an empty spec."""
    parts = [p.strip() for p in (spec or "").split(":", 2)]
    if not parts or not parts[0]:
        return None
    number = parts[0]
    name = parts[1] if len(parts) > 1 and parts[1] else number
    relationship = parts[2] if len(parts) > 2 else ""
    return number, name, relationship
