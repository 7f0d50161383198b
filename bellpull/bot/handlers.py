"""Telegram command and message handlers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from bellpull.bot.pipeline import ConversationPipeline, InboundMessage
from bellpull.bot.security import is_allowed
from bellpull.errors import AppError, ErrorKind

if TYPE_CHECKING:
    from telegram import Update
    from telegram.ext import ContextTypes

    from bellpull.bot.delivery import DeliveryEngine

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = (
    "Good day. I am Noelle, at your service. I shall make note of any important "
    "matters you wish me to remember and will see that they are attended to at the "
    "appropriate time. If I may, I would like to ask you a few questions to understand "
    "how I can better serve you and your household."
)

HELP_MESSAGE = (
    "I am your personal assistant and I remember important things for you. Simply "
    "tell me what you would like me to remember and I will keep it organised for "
    "future reference.\n\n"
    "Available commands:\n"
    "/start - Introduction and initial setup\n"
    "/help - Show this help message"
)

# Used when a Telegram user has neither a username nor a first name.
FALLBACK_SENDER_NAME = "Sir/Madam"


def to_inbound(update: Update) -> InboundMessage:
    """Pull the fields the pipeline needs out of a Telegram update.

    In a 1:1 chat the chat id equals the sender id; in a group it is the
    group id. Either way it is stable for the conversation.
    """
    user = update.effective_user
    return InboundMessage(
        chat_id=str(update.effective_chat.id),
        sender_id=str(user.id),
        sender_name=user.username or user.first_name or FALLBACK_SENDER_NAME,
        text=update.effective_message.text or "",
    )


def _pipeline(context: ContextTypes.DEFAULT_TYPE) -> ConversationPipeline:
    return context.bot_data["pipeline"]


def _delivery(context: ContextTypes.DEFAULT_TYPE) -> DeliveryEngine:
    return context.bot_data["delivery"]


async def _send_and_record(
    update: Update, context: ContextTypes.DEFAULT_TYPE, text: str
) -> None:
    chat_id = str(update.effective_chat.id)
    try:
        await _delivery(context).send(chat_id, text)
    except Exception as exc:
        error = AppError.wrap(ErrorKind.UNEXPECTED, "Failed to answer command", exc)
        await _pipeline(context).handle_error(chat_id, error)


async def handle_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start: introduce the bot."""
    if not is_allowed(update):
        return
    await _send_and_record(update, context, WELCOME_MESSAGE)


async def handle_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help: list commands."""
    if not is_allowed(update):
        return
    await _send_and_record(update, context, HELP_MESSAGE)


async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle incoming text messages."""
    if not is_allowed(update):
        return
    await _pipeline(context).handle(to_inbound(update))
