"""aiosqlite connection factory and schema bootstrap.

Both stores share one :class:`Database`. Each operation opens its own
connection and closes it when done; the schema is created on the first
connection.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import aiosqlite

from bellpull.config import settings

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS memories (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        date TEXT,
        text TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS messages (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        chat_id TEXT NOT NULL,
        sender_id TEXT NOT NULL,
        sender_name TEXT NOT NULL,
        message TEXT NOT NULL,
        is_bot INTEGER NOT NULL DEFAULT 0,
        created_at TEXT DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_messages_chat_id ON messages (chat_id)",
)


class Database:
    """Opens connections to the SQLite file at *db_path*.

    Singleton accessed via ``Database.get()``. Pass an explicit *db_path*
    for test isolation (e.g. ``tmp_path / "test.db"``).
    """

    _instance: Database | None = None

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path or settings.database_path
        self._initialised = False

    @classmethod
    def get(cls) -> Database:
        """Return the shared Database instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    @property
    def path(self) -> Path:
        return self._db_path

    async def connect(self) -> aiosqlite.Connection:
        """Open a connection, creating tables on first use. Caller closes it."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(str(self._db_path))
        db.row_factory = aiosqlite.Row
        if not self._initialised:
            await db.execute("PRAGMA journal_mode=WAL")
            for statement in _SCHEMA:
                await db.execute(statement)
            await db.commit()
            self._initialised = True
            logger.info("Database ready at %s", self._db_path)
        return db
