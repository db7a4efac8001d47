"""Client notification delivery."""

from .dispatcher import (
    NotificationDispatcher,
    NullNotificationDispatcher,
    TelegramNotificationDispatcher,
)
from .messages import NotificationKind, render_message

__all__ = [
    "NotificationDispatcher",
    "NotificationKind",
    "NullNotificationDispatcher",
    "TelegramNotificationDispatcher",
    "render_message",
]
