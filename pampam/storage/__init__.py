"""Durable storage for the assistant (SQLite via aiosqlite).

Public API::

    from pampam.storage import open_database, StateStore

    db = await open_database(DB_PATH)
    store = StateStore(db)
    if await store.is_active():
        ...
"""
from __future__ import annotations

from pampam.storage.sqlite import StateStore, now_ms, open_database

__all__ = ["StateStore", "now_ms", "open_database"]
