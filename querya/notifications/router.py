"""NotificationRouter — fans transient notifications out to registered channels."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from querya.notifications.channels import Level, NotificationChannel

logger = logging.getLogger(__name__)

_SEVERITY = {"info": 0, "success": 0, "warning": 1, "error": 2}


class NotificationRouter:
    """Delivers each notification to every channel whose threshold it meets.

    A channel registered with ``min_level="warning"`` only sees warnings
    and errors. ``notify(..., channel=name)`` bypasses the fan-out and
    targets a single channel regardless of its threshold.
    """

    def __init__(self) -> None:
        self._channels: dict[str, tuple[NotificationChannel, int]] = {}

    def register_channel(self, channel: NotificationChannel, *, min_level: Level = "info") -> None:
        """Add *channel*. Raises ValueError if its name is taken."""
        if channel.name in self._channels:
            msg = f"Channel '{channel.name}' is already registered"
            raise ValueError(msg)
        self._channels[channel.name] = (channel, _SEVERITY[min_level])

    def unregister_channel(self, name: str) -> None:
        """Remove a channel by name. Raises KeyError if not registered."""
        if name not in self._channels:
            msg = f"Channel '{name}' is not registered"
            raise KeyError(msg)
        del self._channels[name]

    def list_channels(self) -> list[str]:
        return list(self._channels)

    async def notify(
        self,
        level: Level,
        title: str,
        message: str = "",
        *,
        channel: str | None = None,
    ) -> bool:
        """Send a notification. Returns True if at least one channel delivered it."""
        if channel is not None:
            entry = self._channels.get(channel)
            if entry is None:
                logger.warning("Notification %r for unknown channel '%s'", title, channel)
                return False
            targets = [entry[0]]
        else:
            severity = _SEVERITY.get(level, 0)
            targets = [ch for ch, threshold in self._channels.values() if severity >= threshold]

        if not targets:
            logger.debug("No channel accepted %s notification %r", level, title)
            return False

        delivered = False
        for target in targets:
            if await target.notify(level, title, message):
                delivered = True
            else:
                logger.warning("Channel '%s' failed to deliver %r", target.name, title)
        return delivered
