"""Append-only chat log stored with aiosqlite."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import aiosqlite
from pydantic import ValidationError

from bellpull.db import Database
from bellpull.errors import AppError, ErrorKind
from bellpull.messages.models import ChatMessage, NewChatMessage

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

CONTINUE_PROMPT = "[Please continue]"

_COLUMNS = "id, chat_id, sender_id, sender_name, message, is_bot, created_at"


def _parse_rows(rows: Iterable[aiosqlite.Row]) -> list[ChatMessage]:
    try:
        return [ChatMessage.model_validate(dict(row)) for row in rows]
    except ValidationError as exc:
        raise AppError(
            ErrorKind.VALIDATION, "Stored message failed validation", cause=exc
        ) from exc


def to_llm_messages(history: Iterable[ChatMessage]) -> list[dict[str, str]]:
    """Map chat history to Claude API turns.

    Human turns are prefixed with the sender's name. The API needs the last
    turn to come from the user, so a trailing bot turn (or an empty history)
    gets a synthetic "please continue" user turn.
    """
    turns: list[dict[str, str]] = []
    for msg in history:
        if msg.is_bot:
            turns.append({"role": "assistant", "content": msg.message})
        else:
            turns.append({"role": "user", "content": f"{msg.sender_name} says: {msg.message}"})

    if not turns or turns[-1]["role"] == "assistant":
        turns.append({"role": "user", "content": CONTINUE_PROMPT})
    return turns


class MessageStore:
    """Persists chat messages in SQLite.

    Singleton accessed via ``MessageStore.get()``. Pass an explicit
    :class:`Database` for test isolation.
    """

    _instance: MessageStore | None = None

    def __init__(self, db: Database | None = None) -> None:
        self._db = db or Database.get()

    @classmethod
    def get(cls) -> MessageStore:
        """Return the shared MessageStore instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    async def append(
        self,
        chat_id: str,
        sender_id: str,
        sender_name: str,
        message: str,
        is_bot: bool = False,
    ) -> ChatMessage:
        """Insert a message and return the stored row."""
        try:
            new = NewChatMessage(
                chat_id=chat_id,
                sender_id=sender_id,
                sender_name=sender_name,
                message=message,
                is_bot=is_bot,
            )
        except ValidationError as exc:
            raise AppError(ErrorKind.VALIDATION, "Invalid chat message", cause=exc) from exc

        logger.info("Storing chat message for chat %s (bot=%s)", chat_id, is_bot)
        try:
            db = await self._db.connect()
            try:
                cursor = await db.execute(
                    """
                    INSERT INTO messages (chat_id, sender_id, sender_name, message, is_bot)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (new.chat_id, new.sender_id, new.sender_name, new.message, int(new.is_bot)),
                )
                await db.commit()
                cursor = await db.execute(
                    f"SELECT {_COLUMNS} FROM messages WHERE id = ?",  # noqa: S608
                    (cursor.lastrowid,),
                )
                row = await cursor.fetchone()
            finally:
                await db.close()
        except (aiosqlite.Error, OSError) as exc:
            raise AppError(ErrorKind.STORAGE, "Failed to store chat message", cause=exc) from exc

        return _parse_rows([row])[0]

    async def history(self, chat_id: str, limit: int = 50) -> list[ChatMessage]:
        """The most recent *limit* messages for a chat, oldest first."""
        try:
            db = await self._db.connect()
            try:
                cursor = await db.execute(
                    f"""
                    SELECT {_COLUMNS} FROM messages
                    WHERE chat_id = ?
                    ORDER BY created_at DESC, id DESC
                    LIMIT ?
                    """,  # noqa: S608
                    (chat_id, limit),
                )
                rows = await cursor.fetchall()
            finally:
                await db.close()
        except (aiosqlite.Error, OSError) as exc:
            raise AppError(ErrorKind.STORAGE, "Failed to read chat history", cause=exc) from exc

        return list(reversed(_parse_rows(rows)))

