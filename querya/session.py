"""ChatSession — the caller side of the agent loop.

Owns the mutable session state (current conversation, processing flag,
call statistics), gates user input while a loop is running, and saves the
archive after every turn.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from querya.errors import SessionBusyError
from querya.events import Event
from querya.llm.aipipe import looks_like_openai_key

if TYPE_CHECKING:
    from querya.agent.loop import AgentLoop, LoopOutcome
    from querya.config import Settings
    from querya.conversations.archive import ConversationArchive
    from querya.conversations.models import Conversation
    from querya.conversations.store import MessageStore
    from querya.events import EventBus
    from querya.notifications.router import NotificationRouter

logger = logging.getLogger(__name__)


@dataclass
class SessionState:
    current_conversation_id: str | None = None
    is_processing: bool = False
    api_calls: int = 0
    last_response_ms: int | None = None


class ChatSession:
    """Single-user chat session over a MessageStore.

    Every state mutation goes through ``_update``, which publishes
    ``Event.STATE_CHANGED`` once per changed field.
    """

    def __init__(
        self,
        store: MessageStore,
        loop: AgentLoop,
        settings: Settings,
        *,
        archive: ConversationArchive | None = None,
        notifier: NotificationRouter | None = None,
        events: EventBus | None = None,
    ) -> None:
        self._store = store
        self._loop = loop
        self._settings = settings
        self._archive = archive
        self._notifier = notifier
        self._events = events
        self._state = SessionState()

    # -- State -----------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_processing(self) -> bool:
        return self._state.is_processing

    @property
    def current_conversation(self) -> Conversation | None:
        cid = self._state.current_conversation_id
        return self._store.get(cid) if cid else None

    def _update(self, **changes: Any) -> None:
        for field_name, value in changes.items():
            old = getattr(self._state, field_name)
            if old == value:
                continue
            setattr(self._state, field_name, value)
            if self._events is not None:
                self._events.publish(Event.STATE_CHANGED, field=field_name, value=value, old=old)

    # -- Conversations ---------------------------------------------------------

    def start(self) -> Conversation:
        """Open the most recently updated conversation, or create one."""
        recent = self._store.most_recent()
        if recent is None:
            recent = self._store.create()
        self._update(current_conversation_id=recent.id)
        return recent

    def new_conversation(self) -> Conversation:
        conversation = self._store.create()
        self._update(current_conversation_id=conversation.id)
        return conversation

    def open_conversation(self, conversation_id: str) -> Conversation:
        """Switch to an existing conversation. Raises KeyError if unknown."""
        conversation = self._store.require(conversation_id)
        self._update(current_conversation_id=conversation.id)
        return conversation

    # -- Messaging -------------------------------------------------------------

    async def send(self, text: str) -> LoopOutcome | None:
        """Append a user message and run the agent loop on it.

        Blank input, or input while a loop is already running, is ignored
        and returns None.
        """
        text = text.strip()
        if not text or self._state.is_processing:
            return None

        if not self._settings.api_key:
            await self._notify(
                "info", "Demo mode", "Add your AI Pipe token in Settings to use real models."
            )
        elif looks_like_openai_key(self._settings.api_key):
            await self._notify(
                "warning",
                "Likely Wrong Key",
                "That looks like an OpenAI key. Please paste your AI Pipe token.",
            )

        self._update(is_processing=True)
        outcome: LoopOutcome | None = None
        conversation_id = self._state.current_conversation_id
        if conversation_id is None or conversation_id not in self._store:
            conversation_id = self.new_conversation().id
        try:
            self._store.add(conversation_id, "user", text)
            outcome = await self._loop.run(conversation_id)
            if not outcome.ok:
                await self._notify("error", "Agent Error", outcome.error or "Unknown error")
        except Exception as exc:
            logger.exception("Agent loop error")
            self._store.add(conversation_id, "system", f"An error occurred: {exc}")
            await self._notify("error", "Agent Error", str(exc) or "Unknown error")
        finally:
            if outcome is not None:
                self._update(
                    api_calls=self._state.api_calls + outcome.turns,
                    last_response_ms=outcome.last_response_ms,
                )
            self._update(is_processing=False)
            self.save()
        return outcome

    # -- Edits -----------------------------------------------------------------

    def _require_idle(self) -> str:
        if self._state.is_processing:
            msg = "Cannot edit the conversation while a response is being generated"
            raise SessionBusyError(msg)
        if self._state.current_conversation_id is None:
            msg = "No active conversation"
            raise KeyError(msg)
        return self._state.current_conversation_id

    def delete_message(self, message_id: str) -> bool:
        deleted = self._store.delete_message(self._require_idle(), message_id)
        if deleted:
            self.save()
        return deleted

    def toggle_bookmark(self, message_id: str) -> bool | None:
        bookmarked = self._store.toggle_bookmark(self._require_idle(), message_id)
        if bookmarked is not None:
            self.save()
        return bookmarked

    def clear_conversation(self) -> int:
        count = self._store.clear(self._require_idle())
        self.save()
        return count

    # -- Persistence -----------------------------------------------------------

    def save(self) -> None:
        if self._archive is None or not self._settings.auto_save:
            return
        try:
            self._archive.save(self._store.snapshot())
        except OSError:
            logger.exception("Could not save conversations to %s", self._archive.path)

    async def _notify(self, level: str, title: str, message: str) -> None:
        if self._notifier is not None:
            await self._notifier.notify(level, title, message)
