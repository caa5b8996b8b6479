"""Fire-and-forget order notifications."""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)

EVENT_ORDER_NEW = "order:new"
EVENT_ORDER_STATUS = "order:status"
EVENT_SUB_ORDER_NEW = "sub_order:new"
EVENT_SUB_ORDER_STATUS = "sub_order:status"


class Notifier:
    """Sink for order events; delivery is never awaited by the caller."""

    def publish(self, channel: str, event: str, payload: dict[str, Any]) -> None:
        raise NotImplementedError


class LoggingNotifier(Notifier):
    """Default notifier that records events in the application log."""

    def publish(self, channel: str, event: str, payload: dict[str, Any]) -> None:
        logger.info("[NOTIFY] %s -> %s %s", event, channel, payload)


_default_notifier: Notifier = LoggingNotifier()


def get_notifier() -> Notifier:
    return _default_notifier


def notify(notifier: Notifier | None, channel: str, event: str, payload: dict[str, Any]) -> None:
    """Publish an event; a failing notifier never fails the operation."""
    if notifier is None:
        return
    try:
        notifier.publish(channel, event, payload)
    except Exception:
        logger.exception("[NOTIFY] Failed to publish %s to %s", event, channel)
