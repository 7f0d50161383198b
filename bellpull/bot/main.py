"""Bell Pull bot entry point."""

import logging

from bellpull.config import settings

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level.upper()),
)
logger = logging.getLogger(__name__)


def main() -> None:
    """Start the bot with long polling."""
    from bellpull.bot.app import create_app

    if not settings.telegram_bot_token:
        raise SystemExit("TELEGRAM_BOT_TOKEN is not set")
    if not settings.anthropic_api_key:
        raise SystemExit("ANTHROPIC_API_KEY is not set")

    allowed = settings.get_allowed_user_ids()
    if not allowed:
        logger.warning("ALLOWED_USER_IDS is empty, bot will reject all messages")
    else:
        logger.info("Allowed user IDs: %s", allowed)

    logger.info("Starting Bell Pull on Telegram with model %s...", settings.anthropic_model)
    app = create_app()
    app.run_polling()


if __name__ == "__main__":
    main()
