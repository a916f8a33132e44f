"""Notification service — deliver events to subscribers synchronously."""

from __future__ import annotations

import logging
from collections import deque
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    from evm_accounts.notifications.events import RawEvent

logger = logging.getLogger(__name__)

_HISTORY_SIZE = 1000


class NotificationService:
    """In-process event sink with a bounded history.

    Usage::

        svc = NotificationService()
        svc.add_subscriber("audit", lambda event: print(event.to_dict()))
        svc.notify(ClaimAccountEvent.create(account, address))
        svc.events  # [ClaimAccountEvent(...)]
    """

    def __init__(self, *, history: int = _HISTORY_SIZE) -> None:
        self._subscribers: dict[str, Callable[[RawEvent], None]] = {}
        self._events: deque[RawEvent] = deque(maxlen=history)

    @property
    def events(self) -> list[RawEvent]:
        """Events emitted so far, oldest first."""
        return list(self._events)

    def add_subscriber(self, key: str, callback: Callable[[RawEvent], None]) -> None:
        """Register a subscriber callback under ``key``."""
        self._subscribers[key] = callback

    def remove_subscriber(self, key: str) -> None:
        """Unregister a subscriber."""
        self._subscribers.pop(key, None)

    def notify(self, event: RawEvent) -> None:
        """Record the event and deliver it to every subscriber."""
        self._events.append(event)
        for key, callback in list(self._subscribers.items()):
            try:
                callback(event)
            except Exception:
                logger.exception("Subscriber %s failed on event %s", key, event.type)

    def clear(self) -> None:
        """Forget recorded events."""
        self._events.clear()
