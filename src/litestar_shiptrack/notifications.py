"""Notification sink used when no delivery mechanism is wired in."""

from __future__ import annotations

import logging
from typing import Any

from litestar_shiptrack.enums import NotificationType

logger = logging.getLogger(__name__)


class LoggingNotifier:
    """Implements the Notifier protocol by writing to the log."""

    async def send_notification(
        self,
        user_id: str,
        type: NotificationType,
        payload: dict[str, Any],
    ) -> None:
        logger.info("Notification %s for user %s: %s", type, user_id, payload)
