"""Notifications — event types and the in-process event sink."""

from __future__ import annotations

from evm_accounts.notifications.events import ClaimAccountEvent, RawEvent
from evm_accounts.notifications.service import NotificationService

__all__ = [
    "ClaimAccountEvent",
    "NotificationService",
    "RawEvent",
]
