"""Send long replies to Telegram in order, recording each chunk."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from telegram.error import TelegramError

from bellpull.config import settings
from bellpull.errors import AppError, ErrorKind
from bellpull.text import chunk_by_lines

if TYPE_CHECKING:
    import telegram

    from bellpull.messages.store import MessageStore

logger = logging.getLogger(__name__)


class DeliveryEngine:
    """Splits replies into Telegram-sized chunks and sends them one at a time.

    Each chunk is sent, then stored as a bot message, then followed by a
    short pause for rate limiting. The first failed send stops delivery;
    chunks already sent stay recorded.
    """

    def __init__(
        self,
        bot: telegram.Bot,
        messages: MessageStore,
        *,
        max_length: int | None = None,
        chunk_delay: float | None = None,
        parse_mode: str | None = None,
    ) -> None:
        self._bot = bot
        self._messages = messages
        self._max_length = max_length or settings.max_message_length
        self._chunk_delay = settings.chunk_delay_seconds if chunk_delay is None else chunk_delay
        self._parse_mode = parse_mode or settings.telegram_parse_mode

    async def reply(self, chat_id: str, text: str) -> None:
        """Send a single message without recording it.

        Raises:
            AppError: ``DELIVERY`` kind if Telegram rejects the message.
        """
        try:
            await self._bot.send_message(chat_id=chat_id, text=text, parse_mode=self._parse_mode)
        except TelegramError as exc:
            raise AppError(ErrorKind.DELIVERY, "Failed to send message", cause=exc) from exc

    async def send(self, chat_id: str, text: str) -> list[str]:
        """Send *text* as one or more chunks. Returns the chunks sent."""
        chunks = chunk_by_lines(text, self._max_length)
        if len(chunks) > 1:
            logger.info("Sending reply to chat %s in %d chunks", chat_id, len(chunks))

        for chunk in chunks:
            await self.reply(chat_id, chunk)
            await self._messages.append(
                chat_id=chat_id,
                sender_id=settings.bot_sender_id,
                sender_name=settings.bot_sender_name,
                message=chunk,
                is_bot=True,
            )
            await asyncio.sleep(self._chunk_delay)

        return chunks
