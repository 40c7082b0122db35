"""In-process change notification for dashboards and other subscribers."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

# Event types
ORDER_STAGE_CHANGED = "order.stage_changed"
ORDER_PAYMENT_APPLIED = "order.payment_applied"
SETTLEMENT_CREATED = "settlement.created"

CHANGE_EVENT_TYPES = [
    ORDER_STAGE_CHANGED,
    ORDER_PAYMENT_APPLIED,
    SETTLEMENT_CREATED,
]

ChangeCallback = Callable[[str, dict[str, Any]], None]


class ChangeNotifier:
    """Fan committed state changes out to subscribers.

    Events are published only after the unit of work that produced them has
    committed. A failing subscriber is logged and skipped; it never affects
    the operation that published the event or the other subscribers.
    """

    def __init__(self) -> None:
        self._subscribers: list[ChangeCallback] = []

    def subscribe(self, callback: ChangeCallback) -> Callable[[], None]:
        """Register a callback and return a function that unregisters it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, event_type: str, payload: dict[str, Any]) -> None:
        if event_type not in CHANGE_EVENT_TYPES:
            raise ValueError(f"Unknown change event type: {event_type}")
        for callback in list(self._subscribers):
            try:
                callback(event_type, payload)
            except Exception:
                logger.warning(
                    "Change subscriber %r failed for %s", callback, event_type, exc_info=True
                )
