"""SQLite storage — schema plus the durable records the assistant relies on.

Tables:
  conversations   per-identity dialogue log (owned by ConversationMemory)
  bot_states      IntroRecord: intro_sent flag + last_active
  whitelist       identities allowed to talk to the assistant at all
  vip_contacts    identities with elevated treatment
  config          key/value settings (focus status, bot flag, AI overrides)
"""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any

import aiosqlite

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS conversations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    identity TEXT NOT NULL,
    role TEXT NOT NULL CHECK(role IN ('user', 'assistant')),
    content TEXT NOT NULL,
    timestamp INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_conversations_identity
    ON conversations(identity, timestamp DESC);
CREATE TABLE IF NOT EXISTS bot_states (
    identity TEXT PRIMARY KEY,
    intro_sent INTEGER NOT NULL DEFAULT 0,
    last_active INTEGER
);
CREATE TABLE IF NOT EXISTS whitelist (
    identity TEXT PRIMARY KEY,
    added_at INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS vip_contacts (
    identity TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    relationship TEXT NOT NULL DEFAULT '',
    added_at INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS config (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at INTEGER NOT NULL
);
"""

FOCUS_STATUS_KEY = "focus_status"
BOT_ACTIVE_KEY = "bot_active"

# GlobalConfig keys that override the env-derived AI settings
AI_SETTING_KEYS = ("ai_provider", "ai_model", "ai_max_tokens", "ai_temperature")


def now_ms() -> int:
    return int(time.time() * 1000)


async def open_database(path: str | Path) -> aiosqlite.Connection:
    """Open (and create if needed) the assistant database."""
    if str(path) != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)
    conn = await aiosqlite.connect(str(path))
    conn.row_factory = aiosqlite.Row
    await conn.executescript(_SCHEMA)
    await conn.commit()
    logger.debug("Database ready at %s", path)
    return conn


class StateStore:
    """Durable records: intro flags, whitelist, VIPs, config, bot flag.

    Every mutating method is a single committed write so admin actions are
    visible to the message handler on its next read.
    """

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    @property
    def db(self) -> aiosqlite.Connection:
        return self._db

    # --- IntroRecord ---

    async def has_intro_been_sent(self, identity: str) -> bool:
        row = await self._fetchone(
            "SELECT intro_sent FROM bot_states WHERE identity = ?", (identity,)
        )
        return bool(row and row["intro_sent"])

    async def mark_intro_sent(self, identity: str) -> None:
        ts = now_ms()
        await self._db.execute(
            """
            INSERT INTO bot_states (identity, intro_sent, last_active) VALUES (?, 1, ?)
            ON CONFLICT(identity) DO UPDATE SET intro_sent = 1, last_active = excluded.last_active
            """,
            (identity, ts),
        )
        await self._db.commit()
        logger.info("Intro marked as sent for %s", identity)

    async def touch_last_active(self, identity: str) -> None:
        ts = now_ms()
        await self._db.execute(
            """
            INSERT INTO bot_states (identity, last_active) VALUES (?, ?)
            ON CONFLICT(identity) DO UPDATE SET last_active = excluded.last_active
            """,
            (identity, ts),
        )
        await self._db.commit()

    async def reset_intro_state(self, identity: str) -> None:
        await self._db.execute(
            "UPDATE bot_states SET intro_sent = 0 WHERE identity = ?", (identity,)
        )
        await self._db.commit()

    async def reset_all_intro_states(self) -> None:
        await self._db.execute("UPDATE bot_states SET intro_sent = 0")
        await self._db.commit()

    async def get_active_users(self, hours: int = 24) -> list[str]:
        """Identities active within the last ``hours``, most recent first."""
        cutoff = now_ms() - hours * 3600 * 1000
        rows = await self._fetchall(
            "SELECT identity FROM bot_states WHERE last_active > ? ORDER BY last_active DESC",
            (cutoff,),
        )
        return [r["identity"] for r in rows]

    # --- Whitelist ---

    async def get_whitelist(self) -> list[str]:
        rows = await self._fetchall(
            "SELECT identity FROM whitelist ORDER BY added_at DESC, identity"
        )
        return [r["identity"] for r in rows]

    async def is_whitelisted(self, identity: str) -> bool:
        row = await self._fetchone(
            "SELECT 1 FROM whitelist WHERE identity = ?", (identity,)
        )
        return row is not None

    async def set_whitelist(self, identities: list[str]) -> None:
        """Replace the whole whitelist in one transaction."""
        ts = now_ms()
        try:
            await self._db.execute("DELETE FROM whitelist")
            await self._db.executemany(
                "INSERT OR IGNORE INTO whitelist (identity, added_at) VALUES (?, ?)",
                [(i, ts) for i in identities],
            )
            await self._db.commit()
        except Exception:
            await self._db.rollback()
            raise
        logger.info("Whitelist updated: %d numbers", len(identities))

    async def add_to_whitelist(self, identity: str) -> None:
        await self._db.execute(
            "INSERT OR IGNORE INTO whitelist (identity, added_at) VALUES (?, ?)",
            (identity, now_ms()),
        )
        await self._db.commit()

    async def remove_from_whitelist(self, identity: str) -> bool:
        cur = await self._db.execute("DELETE FROM whitelist WHERE identity = ?", (identity,))
        await self._db.commit()
        return cur.rowcount > 0

    # --- VIP contacts ---

    async def is_vip(self, identity: str) -> bool:
        return await self.get_vip(identity) is not None

    async def get_vip(self, identity: str) -> dict[str, str] | None:
        row = await self._fetchone(
            "SELECT identity, name, relationship FROM vip_contacts WHERE identity = ?",
            (identity,),
        )
        return dict(row) if row else None

    async def add_vip(self, identity: str, name: str, relationship: str = "") -> None:
        await self._db.execute(
            "INSERT OR REPLACE INTO vip_contacts (identity, name, relationship, added_at) "
            "VALUES (?, ?, ?, ?)",
            (identity, name, relationship, now_ms()),
        )
        await self._db.commit()
        logger.info("VIP contact added: %s (%s)", name, identity)

    async def remove_vip(self, identity: str) -> bool:
        cur = await self._db.execute("DELETE FROM vip_contacts WHERE identity = ?", (identity,))
        await self._db.commit()
        return cur.rowcount > 0

    async def list_vips(self) -> list[dict[str, str]]:
        rows = await self._fetchall(
            "SELECT identity, name, relationship FROM vip_contacts ORDER BY name"
        )
        return [dict(r) for r in rows]

    async def seed_default_vip(self, identity: str, name: str, relationship: str = "") -> bool:
        """Insert the default VIP when the table is empty. Returns True if seeded."""
        row = await self._fetchone("SELECT COUNT(*) AS n FROM vip_contacts")
        if row and row["n"]:
            return False
        await self.add_vip(identity, name, relationship)
        return True

    # --- GlobalConfig ---

    async def get_config(self, key: str, default: str | None = None) -> str | None:
        row = await self._fetchone("SELECT value FROM config WHERE key = ?", (key,))
        return row["value"] if row else default

    async def set_config(self, key: str, value: str) -> None:
        await self._db.execute(
            "INSERT OR REPLACE INTO config (key, value, updated_at) VALUES (?, ?, ?)",
            (key, value, now_ms()),
        )
        await self._db.commit()

    async def get_focus_status(self, default: str = "") -> str:
        return await self.get_config(FOCUS_STATUS_KEY, default) or default

    async def set_focus_status(self, status: str) -> None:
        await self.set_config(FOCUS_STATUS_KEY, status)
        logger.info("Focus status updated to: %s", status)

    async def ensure_focus_status(self, default: str) -> str:
        """Seed the focus status on first run; return the stored value."""
        current = await self.get_config(FOCUS_STATUS_KEY)
        if current is None:
            await self.set_config(FOCUS_STATUS_KEY, default)
            return default
        return current

    # --- BotActiveFlag ---

    async def is_active(self) -> bool:
        return (await self.get_config(BOT_ACTIVE_KEY, "0")) == "1"

    async def turn_on(self) -> None:
        """Activate and force every identity back through the greeting."""
        ts = now_ms()
        try:
            await self._db.execute(
                "INSERT OR REPLACE INTO config (key, value, updated_at) VALUES (?, '1', ?)",
                (BOT_ACTIVE_KEY, ts),
            )
            await self._db.execute("UPDATE bot_states SET intro_sent = 0")
            await self._db.commit()
        except Exception:
            await self._db.rollback()
            raise
        logger.info("Bot activated - intro state reset")

    async def turn_off(self) -> None:
        await self.set_config(BOT_ACTIVE_KEY, "0")
        logger.info("Bot deactivated")

    # --- AI settings ---

    async def get_ai_settings(self) -> dict[str, str]:
        """Return stored AI overrides (only keys that were set)."""
        rows = await self._fetchall(
            f"SELECT key, value FROM config WHERE key IN ({','.join('?' * len(AI_SETTING_KEYS))})",
            AI_SETTING_KEYS,
        )
        return {r["key"]: r["value"] for r in rows}

    async def update_ai_settings(self, **settings: Any) -> None:
        for key, value in settings.items():
            if value is None:
                continue
            full = key if key.startswith("ai_") else f"ai_{key}"
            if full not in AI_SETTING_KEYS:
                raise ValueError(f"Unknown AI setting: {key}")
            await self._db.execute(
                "INSERT OR REPLACE INTO config (key, value, updated_at) VALUES (?, ?, ?)",
                (full, str(value), now_ms()),
            )
        await self._db.commit()

    # --- Display ---

    async def snapshot(self) -> dict[str, Any]:
        """Aggregate state for the admin status view."""
        convo = await self._fetchone(
            "SELECT COUNT(*) AS n, COUNT(DISTINCT identity) AS ids FROM conversations"
        )
        return {
            "active": await self.is_active(),
            "focus_status": await self.get_focus_status(),
            "whitelist_count": len(await self.get_whitelist()),
            "vip_count": len(await self.list_vips()),
            "active_users_24h": len(await self.get_active_users()),
            "stored_messages": convo["n"] if convo else 0,
            "conversations": convo["ids"] if convo else 0,
        }

    # --- Internal ---

    async def _fetchone(self, sql: str, params: tuple = ()) -> aiosqlite.Row | None:
        async with self._db.execute(sql, params) as cur:
            return await cur.fetchone()

    async def _fetchall(self, sql: str, params: tuple = ()) -> list[aiosqlite.Row]:
        async with self._db.execute(sql, params) as cur:
            return list(await cur.fetchall())
