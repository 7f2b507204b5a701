"""Conversation memory — capped per-identity dialogue log in SQLite.

Only the newest ``MAX_ENTRIES`` turns per identity survive an insert.
``needs_context`` decides whether a message is worth sending that log to
the model at all; short greetings go out without history.
"""
from __future__ import annotations

import logging

import aiosqlite

from pampam.storage import now_ms

logger = logging.getLogger(__name__)

MAX_ENTRIES = 7

ROLES = ("user", "assistant")

SYSTEM_NOTICE_PREFIX = "[SYSTEM NOTIFICATION]"

# Words that point back at earlier turns (Indonesian chat register)
CONTEXT_KEYWORDS = (
    # references to earlier turns
    "itu", "tadi", "sebelumnya", "kamu bilang", "kamu tanya",
    "maksudnya", "maksud", "yang", "gimana", "kenapa", "kok",
    "lagi", "masih", "udah", "belum",
    # follow-ups
    "terus", "lalu", "habis itu", "abis itu",
    # clarification / WH-questions
    "hah", "apa", "siapa", "kapan", "dimana", "di mana",
)

GREETINGS = ("hai", "halo", "hi", "hello", "pam", "hei", "hey")


def needs_context(message: str) -> bool:
    """Heuristic: does this message refer back to the conversation?"""
    lower = message.lower()
    has_keyword = any(k in lower for k in CONTEXT_KEYWORDS)

    if len(message) < 10 and not has_keyword:
        return False
    if lower.strip() in GREETINGS:
        return False
    if has_keyword:
        return True
    return len(message) > 15


class ConversationMemory:
    """Per-identity FIFO log of user/assistant turns."""

    def __init__(self, db: aiosqlite.Connection, max_entries: int = MAX_ENTRIES) -> None:
        self._db = db
        self._max = max_entries

    async def append(self, identity: str, role: str, content: str) -> None:
        """Insert one turn, then trim the identity's log to the newest entries."""
        if role not in ROLES:
            raise ValueError(f"Invalid role: {role!r}")
        await self._db.execute(
            "INSERT INTO conversations (identity, role, content, timestamp) VALUES (?, ?, ?, ?)",
            (identity, role, content, now_ms()),
        )
        await self._db.execute(
            """
            DELETE FROM conversations
            WHERE identity = ?
              AND id NOT IN (
                SELECT id FROM conversations
                WHERE identity = ?
                ORDER BY timestamp DESC, id DESC
                LIMIT ?
              )
            """,
            (identity, identity, self._max),
        )
        await self._db.commit()
        logger.debug("Message added for %s (%s)", identity, role)

    async def get_history(self, identity: str) -> list[dict[str, str]]:
        """Stored turns for ``identity``, oldest first."""
        async with self._db.execute(
            """
            SELECT role, content FROM conversations
            WHERE identity = ?
            ORDER BY timestamp ASC, id ASC
            LIMIT ?
            """,
            (identity, self._max),
        ) as cur:
            rows = await cur.fetchall()
        return [{"role": r[0], "content": r[1]} for r in rows]

    async def get_contextual_history(self, identity: str, message: str) -> list[dict[str, str]]:
        if not needs_context(message):
            logger.debug("No context needed for %r, skipping history", message)
            return []
        return await self.get_history(identity)

    async def inject_system_notice(self, text: str) -> int:
        """Append a notice turn to every identity with stored history.

        Returns the number of conversations touched.
        """
        async with self._db.execute("SELECT DISTINCT identity FROM conversations") as cur:
            identities = [r[0] for r in await cur.fetchall()]
        for identity in identities:
            await self.append(identity, "assistant", f"{SYSTEM_NOTICE_PREFIX} {text}")
        logger.info("System notice sent to %d active conversations", len(identities))
        return len(identities)

    async def clear(self, identity: str) -> None:
        await self._db.execute("DELETE FROM conversations WHERE identity = ?", (identity,))
        await self._db.commit()
        logger.info("Conversation history cleared for %s", identity)

    async def clear_all(self) -> None:
        await self._db.execute("DELETE FROM conversations")
        await self._db.commit()
        logger.info("All conversation histories cleared")

    async def count(self, identity: str) -> int:
        async with self._db.execute(
            "SELECT COUNT(*) FROM conversations WHERE identity = ?", (identity,)
        ) as cur:
            row = await cur.fetchone()
        return row[0] if row else 0
