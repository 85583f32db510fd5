"""Notification Sink — default toast replacement that writes to the log.

Invariants:
    - Notifying never raises into the caller; sink failures are logged
"""

import logging

from crossapp.core.repository_protocols import NotificationSink

logger = logging.getLogger(__name__)


class LoggingNotificationSink:
    """Surfaces admin notifications as log lines."""

    def __init__(self, name: str = "crossapp.notifications"):
        self._logger = logging.getLogger(name)

    def success(self, message: str) -> None:
        self._logger.info(message)

    def error(self, message: str) -> None:
        self._logger.warning(message)


def notify(sink: NotificationSink | None, level: str, message: str) -> None:
    """Send to sink; a broken sink is logged, not propagated."""
    if sink is None:
        return
    try:
        getattr(sink, level)(message)
    except Exception as e:
        logger.warning(f"Notification sink failed: {e}")
