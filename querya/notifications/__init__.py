"""Transient user notifications (the terminal equivalent of toasts)."""

from querya.notifications.channels import Level, NotificationChannel
from querya.notifications.console_channel import ConsoleChannel
from querya.notifications.router import NotificationRouter

__all__ = [
    "ConsoleChannel",
    "Level",
    "NotificationChannel",
    "NotificationRouter",
]
