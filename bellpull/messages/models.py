"""Data models for the per-chat message log."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field

# Longest message accepted into the log (Telegram itself allows 4096).
MAX_MESSAGE_LENGTH = 4000


class ChatMessage(BaseModel):
    """One stored turn of a chat, as read back from the log."""

    id: int
    chat_id: str
    sender_id: str
    sender_name: str
    message: str
    is_bot: bool
    created_at: dt.datetime


class NewChatMessage(BaseModel):
    """Validated input for appending to the log."""

    chat_id: str = Field(min_length=1)
    sender_id: str = Field(min_length=1)
    sender_name: str = Field(min_length=1)
    message: str = Field(min_length=1, max_length=MAX_MESSAGE_LENGTH)
    is_bot: bool = False
