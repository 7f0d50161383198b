"""Morning briefing: summarise the week's memories and send them to the owner."""

from __future__ import annotations

import datetime as dt
import logging
from typing import TYPE_CHECKING

from bellpull.config import settings
from bellpull.errors import AppError, ErrorKind
from bellpull.llm.prompt import BACKSTORY, build_briefing_prompt
from bellpull.memory.formatter import format_memories

if TYPE_CHECKING:
    from bellpull.bot.delivery import DeliveryEngine
    from bellpull.llm.client import LLMClient
    from bellpull.memory.store import MemoryStore

logger = logging.getLogger(__name__)


def weekday_cheatsheet(today: dt.date) -> str:
    """Seven bullet lines naming each day from *today*, so the model gets weekdays right."""
    lines = []
    for offset in range(7):
        day = today + dt.timedelta(days=offset)
        prefix = {0: "Today: ", 1: "Tomorrow: "}.get(offset, "")
        lines.append(f"* {prefix}{day.strftime('%A, %B')} {day.day}")
    return "\n".join(lines)


async def send_daily_briefing(
    *,
    llm: LLMClient,
    memory: MemoryStore,
    delivery: DeliveryEngine,
    chat_id: str | None = None,
    today: dt.date | None = None,
) -> list[str]:
    """Generate and deliver the briefing. Returns the chunks sent.

    Defaults to the configured chat and to today in the configured zone.

    Raises:
        AppError: ``VALIDATION`` kind if no chat id is available, or any
            error from the stores, Claude, or Telegram.
    """
    target = chat_id or settings.telegram_chat_id
    if not target:
        raise AppError(ErrorKind.VALIDATION, "No chat ID provided or configured")

    if today is None:
        today = memory.today()
        memories = await memory.get_relevant()
    else:
        memories = await memory.get_all(start_date=today)

    prompt = build_briefing_prompt(format_memories(memories), weekday_cheatsheet(today))
    content = await llm.generate_text(
        [{"role": "user", "content": prompt}],
        system_prompt=BACKSTORY,
    )

    chunks = await delivery.send(target, content)
    logger.info("Sent daily briefing to %s (%d memories)", target, len(memories))
    return chunks
