"""User allowlist security gate."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from bellpull.config import settings

if TYPE_CHECKING:
    from telegram import Update

logger = logging.getLogger(__name__)


def is_allowed(update: Update) -> bool:
    """Check if the update is from an allowed user.

    Returns False (silently rejected) for unknown users.
    """
    user = update.effective_user
    if user is None:
        return False

    allowed = settings.get_allowed_user_ids()
    if not allowed:
        logger.warning("ALLOWED_USER_IDS is empty, rejecting all messages")
        return False

    if user.id not in allowed:
        logger.info("Ignoring message from unknown user %s", user.id)
        return False
    return True
