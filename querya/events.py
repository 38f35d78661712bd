"""EventBus — explicit publish/subscribe for lifecycle and state-change events."""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)

Handler = Callable[..., None]


class Event(StrEnum):
    """Event names published by the store, the agent loop and the session."""

    MESSAGE_APPENDED = "message_appended"
    TURN_STARTED = "turn_started"
    TOOL_EXECUTING = "tool_executing"
    TERMINATED = "terminated"
    ERROR = "error"
    STATE_CHANGED = "state_changed"


class EventBus:
    """Synchronous observer registry.

    Handlers are called in subscription order with the keyword data passed
    to ``publish``. A failing handler is logged and skipped so one broken
    listener cannot interrupt the publisher.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = {}

    def subscribe(self, event: str, handler: Handler) -> Callable[[], None]:
        """Register *handler* for *event*. Returns a callable that unsubscribes it."""
        self._handlers.setdefault(event, []).append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(event, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def publish(self, event: str, **data: Any) -> None:
        for handler in list(self._handlers.get(event, [])):
            try:
                handler(**data)
            except Exception:
                logger.exception("Handler for event '%s' failed", event)

    def handler_count(self, event: str) -> int:
        return len(self._handlers.get(event, []))
