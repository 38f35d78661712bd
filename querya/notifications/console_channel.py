"""Console implementation of the NotificationChannel protocol."""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, TextIO

if TYPE_CHECKING:
    from querya.notifications.channels import Level

logger = logging.getLogger(__name__)

_ICONS = {"info": "i", "success": "+", "warning": "!", "error": "x"}


class ConsoleChannel:
    """Writes one line per notification to a text stream (stderr by default)."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    @property
    def name(self) -> str:
        return "console"

    async def notify(self, level: Level, title: str, message: str) -> bool:
        stream = self._stream or sys.stderr
        line = f"[{_ICONS.get(level, '?')}] {title}"
        if message:
            line += f": {message}"
        try:
            stream.write(line + "\n")
            stream.flush()
            return True
        except (OSError, ValueError):
            logger.exception("ConsoleChannel.notify failed")
            return False
