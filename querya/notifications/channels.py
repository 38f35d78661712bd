"""NotificationChannel protocol — interface for all notification outputs."""

from typing import Literal, Protocol, runtime_checkable

Level = Literal["info", "success", "warning", "error"]


@runtime_checkable
class NotificationChannel(Protocol):
    """Protocol that all notification channels must satisfy."""

    @property
    def name(self) -> str:
        """Unique channel identifier (e.g. 'console')."""
        ...

    async def notify(self, level: Level, title: str, message: str) -> bool:
        """Deliver a transient notification. Returns True on success."""
        ...
