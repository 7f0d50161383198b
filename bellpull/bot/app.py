"""Telegram application factory."""

from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from telegram.ext import Application, CommandHandler, MessageHandler, filters

from bellpull.bot.briefing import send_daily_briefing
from bellpull.bot.delivery import DeliveryEngine
from bellpull.bot.handlers import handle_help, handle_message, handle_start
from bellpull.bot.pipeline import ConversationPipeline
from bellpull.config import settings
from bellpull.errors import AppError, ErrorKind
from bellpull.llm.client import LLMClient
from bellpull.memory.store import MemoryStore
from bellpull.messages.store import MessageStore

logger = logging.getLogger(__name__)

BRIEFING_JOB_ID = "daily-briefing"

# New text messages only; edited messages are ignored.
TEXT_MESSAGES = filters.UpdateType.MESSAGE & filters.TEXT & ~filters.COMMAND


async def _run_briefing(app: Application) -> None:
    """Scheduled job wrapper: a failed briefing is logged and apologised for."""
    pipeline: ConversationPipeline = app.bot_data["pipeline"]
    try:
        await send_daily_briefing(
            llm=app.bot_data["llm"],
            memory=app.bot_data["memory"],
            delivery=app.bot_data["delivery"],
        )
    except Exception as exc:
        error = AppError.wrap(ErrorKind.UNEXPECTED, "Daily briefing failed", exc)
        await pipeline.handle_error(settings.telegram_chat_id, error)


def create_briefing_scheduler(app: Application) -> AsyncIOScheduler | None:
    """Schedule the daily briefing, or return None if it is disabled."""
    if not settings.briefing_enabled or not settings.telegram_chat_id:
        logger.info("Daily briefing disabled (enabled=%s)", settings.briefing_enabled)
        return None

    scheduler = AsyncIOScheduler(timezone=settings.timezone)
    scheduler.add_job(
        _run_briefing,
        CronTrigger(hour=settings.briefing_hour, minute=0, timezone=settings.timezone),
        args=[app],
        id=BRIEFING_JOB_ID,
        replace_existing=True,
    )
    return scheduler


async def _post_init(app: Application) -> None:
    """Called after the Application is fully initialized (event loop running)."""
    scheduler = create_briefing_scheduler(app)
    if scheduler is not None:
        scheduler.start()
        app.bot_data["scheduler"] = scheduler
        logger.info(
            "Daily briefing scheduled at %02d:00 (%s)", settings.briefing_hour, settings.timezone
        )


async def _post_shutdown(app: Application) -> None:
    """Called during graceful shutdown."""
    scheduler = app.bot_data.get("scheduler")
    if scheduler is not None:
        scheduler.shutdown(wait=False)


def create_app() -> Application:
    """Build and configure the Telegram application."""
    app = Application.builder().token(settings.telegram_bot_token).build()

    memory = MemoryStore.get()
    messages = MessageStore.get()
    llm = LLMClient.get()
    delivery = DeliveryEngine(app.bot, messages)
    app.bot_data.update(
        memory=memory,
        messages=messages,
        llm=llm,
        delivery=delivery,
        pipeline=ConversationPipeline(
            llm=llm, memory=memory, messages=messages, delivery=delivery
        ),
    )

    app.add_handler(CommandHandler("start", handle_start))
    app.add_handler(CommandHandler("help", handle_help))
    app.add_handler(MessageHandler(TEXT_MESSAGES, handle_message))

    app.post_init = _post_init
    app.post_shutdown = _post_shutdown

    return app
